"""Atomic kubeconfig writer and reader for the combined store.

The store is serialised to a temporary file in the target directory, flushed
and fsynced, then moved over the target with :func:`os.replace`. Readers see
either the previous complete store or the new one, never a partial document.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import yaml

from ...domain.errors import AssemblerWriteFailure, NotBootstrapped, NotFound
from ...domain.kubeconfig import Kubeconfig
from ...observability import log_debug, log_error
from ..file_loaders.structured import YAMLFileLoader


class AtomicStoreWriter:
    """Persist a :class:`Kubeconfig` with a single atomic replace."""

    def __init__(self, *, mode: int = 0o600) -> None:
        self.mode = mode

    def write(self, path: Path, store: Kubeconfig) -> None:
        text = dump_kubeconfig(store)
        target = Path(path)
        tmp_name: str | None = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_name, self.mode)
            os.replace(tmp_name, target)
            tmp_name = None
        except OSError as exc:
            log_error("store_write_failed", path=str(target), error=str(exc))
            raise AssemblerWriteFailure(f"Cannot write combined store {target}: {exc}") from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
        log_debug("store_replaced", path=str(target), size=len(text))


def dump_kubeconfig(store: Kubeconfig) -> str:
    """Serialise *store* deterministically (no key sorting, block style).

    Examples
    --------
    >>> print(dump_kubeconfig(Kubeconfig()), end="")
    apiVersion: v1
    kind: Config
    preferences: {}
    clusters: []
    contexts: []
    users: []
    current-context: ''
    """

    return yaml.safe_dump(store.to_mapping(), sort_keys=False, default_flow_style=False)


def read_store(path: Path) -> Kubeconfig:
    """Load the combined store at *path*.

    Raises
    ------
    NotBootstrapped
        When the store has never been written.
    InvalidFormat
        When the file is not a kubeconfig document.
    """

    try:
        data = YAMLFileLoader().load(str(path))
    except NotFound as exc:
        raise NotBootstrapped(f"K8s not bootstrapped: {path} does not exist") from exc
    return Kubeconfig.from_mapping(data, source=str(path))
