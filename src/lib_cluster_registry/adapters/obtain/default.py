"""Subprocess-backed obtain runner.

Purpose
-------
Execute an entry's obtain argv with no stdin and a hard timeout, parse stdout as
a kubeconfig, and reject anything that is not a usable bundle. Stderr is logged
against the anchor and never parsed.

System Role
-----------
Implements :class:`lib_cluster_registry.application.ports.ObtainRunner`. Every
problem is reported as :class:`ObtainFailure`; the pipeline counts it and moves
on. There are no retries.
"""

from __future__ import annotations

import subprocess
from typing import Final

import yaml

from ...domain.errors import InvalidFormat, ObtainFailure
from ...domain.kubeconfig import Kubeconfig
from ...domain.registry import ClusterEntry
from ...domain.settings import DEFAULT_OBTAIN_TIMEOUT
from ...observability import log_debug, make_event

_STDERR_TAIL: Final[int] = 400


class SubprocessObtainRunner:
    """Run obtain commands as child processes.

    Parameters
    ----------
    timeout:
        Seconds allowed per command; a timeout is an obtain failure.
    env:
        Optional environment for the child process (inherits by default).
    """

    def __init__(self, *, timeout: float = DEFAULT_OBTAIN_TIMEOUT, env: dict[str, str] | None = None) -> None:
        self.timeout = timeout
        self.env = env

    def obtain(self, entry: ClusterEntry) -> Kubeconfig:
        """Return the bundle emitted by *entry*'s obtain command.

        Raises
        ------
        ObtainFailure
            When the command is missing, exits non-zero, times out, prints
            something that is not a kubeconfig, or prints one without clusters.
        """

        anchor = entry.anchor
        if not entry.obtain:
            raise ObtainFailure(f"{anchor}: missing obtain command")
        log_debug("obtain_started", **make_event(anchor, "obtain", {"argv": list(entry.obtain)}))
        completed = self._execute(entry)
        if completed.stderr:
            stderr = completed.stderr.decode("utf-8", errors="replace")
            log_debug("obtain_stderr", **make_event(anchor, "obtain", {"stderr": stderr[-_STDERR_TAIL:]}))
        if completed.returncode != 0:
            raise ObtainFailure(f"{anchor}: obtain command failed with exit code {completed.returncode}")
        bundle = parse_bundle(completed.stdout, anchor=anchor)
        log_debug("obtain_succeeded", **make_event(anchor, "obtain", {"clusters": len(bundle.clusters)}))
        return bundle

    def _execute(self, entry: ClusterEntry) -> subprocess.CompletedProcess[bytes]:
        try:
            return subprocess.run(
                list(entry.obtain),
                stdin=subprocess.DEVNULL,
                capture_output=True,
                timeout=self.timeout,
                env=self.env,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise ObtainFailure(f"{entry.anchor}: obtain command timed out after {self.timeout:g}s") from exc
        except OSError as exc:
            raise ObtainFailure(f"{entry.anchor}: cannot run obtain command: {exc}") from exc


def parse_bundle(output: bytes | str, *, anchor: str) -> Kubeconfig:
    """Decode and parse obtain stdout into a :class:`Kubeconfig` with at least one cluster.

    Examples
    --------
    >>> parse_bundle("clusters: []", anchor="dev")
    Traceback (most recent call last):
    ...
    lib_cluster_registry.domain.errors.ObtainFailure: dev: obtain produced empty kubeconfig
    """

    try:
        text = output.decode("utf-8") if isinstance(output, bytes) else output
        data = yaml.safe_load(text)
    except (UnicodeDecodeError, yaml.YAMLError) as exc:
        raise ObtainFailure(f"{anchor}: obtain did not produce valid YAML") from exc
    if not data:
        raise ObtainFailure(f"{anchor}: obtain produced empty kubeconfig")
    try:
        bundle = Kubeconfig.from_mapping(data, source=f"{anchor} obtain output")
    except InvalidFormat as exc:
        raise ObtainFailure(f"{anchor}: {exc}") from exc
    if not bundle.clusters:
        raise ObtainFailure(f"{anchor}: obtain produced empty kubeconfig")
    return bundle
