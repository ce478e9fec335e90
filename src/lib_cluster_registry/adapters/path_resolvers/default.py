"""Filesystem path resolution for registry documents and the combined store.

Purpose
-------
Encapsulate where things live: the shipped base catalog (package data), the
user-owned state directory holding ``clusters.yaml``, ``settings.toml`` and the
assembled ``kubeconfig``. Environment overrides keep tests and custom
deployments away from the real home directory.

Contents
--------
* :class:`DefaultPathResolver` – resolves every well-known location.
* :data:`STATE_DIR_ENV` – variable that relocates the state directory.
"""

from __future__ import annotations

import os
from importlib import resources
from pathlib import Path
from typing import Final, Mapping

from ...observability import log_debug

STATE_DIR_ENV: Final[str] = "LIB_CLUSTER_REGISTRY_HOME"
DEFAULT_STATE_DIR: Final[Path] = Path("~/.dataops-assistant/k8s")

REGISTRY_FILENAME: Final[str] = "cluster-registry.yaml"
OVERRIDES_FILENAME: Final[str] = "clusters.yaml"
SETTINGS_FILENAME: Final[str] = "settings.toml"
STORE_FILENAME: Final[str] = "kubeconfig"


class DefaultPathResolver:
    """Resolve the well-known locations used by the engine.

    Examples
    --------
    >>> resolver = DefaultPathResolver(env={"LIB_CLUSTER_REGISTRY_HOME": "/srv/k8s"})
    >>> resolver.store().as_posix(), resolver.overrides().name
    ('/srv/k8s/kubeconfig', 'clusters.yaml')
    """

    def __init__(self, *, env: Mapping[str, str] | None = None, home: Path | None = None) -> None:
        """Store the environment and home directory used to expand paths.

        Parameters
        ----------
        env:
            Mapping that overrides ``os.environ`` values (deterministic tests).
        home:
            Home directory used to expand ``~``; defaults to :meth:`Path.home`.
        """

        self.env = {**os.environ, **(env or {})}
        self.home = home

    def state_dir(self) -> Path:
        """Return the user state directory (``~/.dataops-assistant/k8s`` by default)."""

        override = self.env.get(STATE_DIR_ENV)
        if override:
            return Path(override)
        if self.home is not None:
            return self.home / DEFAULT_STATE_DIR.relative_to("~")
        return DEFAULT_STATE_DIR.expanduser()

    def registry(self) -> Path:
        """Return the shipped base catalog bundled as package data."""

        path = Path(str(resources.files("lib_cluster_registry").joinpath("data", REGISTRY_FILENAME)))
        log_debug("path_resolved", kind="registry", path=str(path))
        return path

    def overrides(self) -> Path:
        return self.state_dir() / OVERRIDES_FILENAME

    def settings(self) -> Path:
        return self.state_dir() / SETTINGS_FILENAME

    def store(self) -> Path:
        return self.state_dir() / STORE_FILENAME

    def defaults(self) -> dict[str, object]:
        """Return the lowest-precedence settings layer built from resolved paths."""

        return {
            "registry": {"path": str(self.registry())},
            "overrides": {"path": str(self.overrides())},
            "store": {"path": str(self.store())},
        }
