"""Shared sandbox helpers for the cluster registry test-suite.

A sandbox owns a temporary state directory, a base catalog file, and fake
obtain commands. Obtain commands are real child processes of
``sys.executable`` so the subprocess adapter is exercised end to end.
"""

from __future__ import annotations

import json
import sys
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from lib_cluster_registry.core import load_settings
from lib_cluster_registry.domain.settings import Settings

__all__ = [
    "ClusterSandbox",
    "create_cluster_sandbox",
    "kubeconfig_bundle",
    "override_entry",
]


def kubeconfig_bundle(
    name: str,
    *,
    user: str | None = None,
    context: str | None = None,
    current: bool = True,
    server: str | None = None,
) -> dict[str, Any]:
    """Return a kubeconfig document shaped like the output of a cloud CLI."""

    user = user or f"{name}-user"
    context = context or f"arn:aws:eks:us-west-2:123456789012:cluster/{name}"
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [{"name": name, "cluster": {"server": server or f"https://{name}.example.com"}}],
        "contexts": [{"name": context, "context": {"cluster": name, "user": user}}],
        "users": [{"name": user, "user": {"token": "vendor-default"}}],
        "current-context": context if current else "",
    }


def override_entry(anchor: str, identity: str, *, command: str = "fetch-token", **extra: Any) -> dict[str, Any]:
    """Return a user override entry configuring *identity* for *anchor*."""

    entry: dict[str, Any] = {
        "anchor": anchor,
        "override": {
            "identities": [
                {
                    "name": identity,
                    "credentialFetch": {
                        "exec": {
                            "apiVersion": "client.authentication.k8s.io/v1beta1",
                            "command": command,
                            "args": ["--cluster", anchor],
                        }
                    },
                }
            ]
        },
    }
    entry.update(extra)
    return entry


@dataclass(slots=True)
class ClusterSandbox:
    """Temporary layout mirroring the real state directory."""

    root: Path
    state_dir: Path
    registry_path: Path
    env: dict[str, str] = field(default_factory=dict)

    @property
    def overrides_path(self) -> Path:
        return self.state_dir / "clusters.yaml"

    @property
    def store_path(self) -> Path:
        return self.state_dir / "kubeconfig"

    def write_registry(self, entries: Iterable[Mapping[str, Any]]) -> Path:
        self.registry_path.write_text(yaml.safe_dump({"clusters": list(entries)}, sort_keys=False), encoding="utf-8")
        return self.registry_path

    def write_overrides(self, entries: Iterable[Mapping[str, Any]] | str) -> Path:
        if isinstance(entries, str):
            text = entries
        else:
            text = yaml.safe_dump({"clusters": list(entries)}, sort_keys=False)
        self.overrides_path.write_text(text, encoding="utf-8")
        return self.overrides_path

    def obtain_command(
        self,
        name: str,
        *,
        bundle: Mapping[str, Any] | None = None,
        stdout: str | bytes | None = None,
        stderr: str | bytes = "",
        exit_code: int = 0,
        sleep: float = 0.0,
    ) -> list[str]:
        """Write a fake obtain script and return the argv that runs it.

        Bytes for *stdout* or *stderr* are written unencoded so tests can emit
        invalid UTF-8.
        """

        if stdout is None:
            stdout = json.dumps(bundle) if bundle is not None else ""
        stream = "sys.stdout.buffer" if isinstance(stdout, bytes) else "sys.stdout"
        err_stream = "sys.stderr.buffer" if isinstance(stderr, bytes) else "sys.stderr"
        script = self.root / "bin" / f"obtain_{name}.py"
        script.parent.mkdir(parents=True, exist_ok=True)
        script.write_text(
            textwrap.dedent(
                f"""\
                import sys
                import time

                time.sleep({sleep!r})
                {err_stream}.write({stderr!r})
                {stream}.write({stdout!r})
                sys.exit({exit_code!r})
                """
            ),
            encoding="utf-8",
        )
        return [sys.executable, str(script)]

    def settings(self, **overrides: Any) -> Settings:
        return load_settings(env=self.env, **overrides)

    def base_entry(self, anchor: str, obtain: list[str] | None = None, **extra: Any) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "anchor": anchor,
            "metadata": {"description": f"{anchor} cluster", "keywords": [anchor], "provider": "aws"},
            "obtain": obtain if obtain is not None else self.obtain_command(anchor, bundle=kubeconfig_bundle(anchor)),
            "override": {},
        }
        entry.update(extra)
        return entry


def create_cluster_sandbox(tmp_path: Path) -> ClusterSandbox:
    """Create a sandbox whose settings point at *tmp_path* only."""

    state_dir = tmp_path / "state"
    state_dir.mkdir(parents=True, exist_ok=True)
    registry_path = tmp_path / "cluster-registry.yaml"
    registry_path.write_text("clusters: []\n", encoding="utf-8")
    env = {
        "LIB_CLUSTER_REGISTRY_HOME": str(state_dir),
        "LIB_CLUSTER_REGISTRY_REGISTRY__PATH": str(registry_path),
    }
    return ClusterSandbox(root=tmp_path, state_dir=state_dir, registry_path=registry_path, env=env)
