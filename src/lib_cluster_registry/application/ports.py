"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts adapters must satisfy so the pipeline and the
composition root can orchestrate behaviour without depending on concrete
implementations (and so tests can substitute in-memory doubles).

Contents
--------
* :class:`FileLoader` – parses structured documents (YAML/JSON/TOML).
* :class:`EnvLoader` – materialises prefixed environment variables.
* :class:`ObtainRunner` – executes an entry's obtain command.
* :class:`StoreWriter` – persists the combined store atomically.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Protocol, runtime_checkable

from ..domain.kubeconfig import Kubeconfig
from ..domain.registry import ClusterEntry


@runtime_checkable
class FileLoader(Protocol):
    """Parse a structured document into a mapping."""

    def load(self, path: str) -> Mapping[str, object]:
        """Read *path* and return a mapping or raise ``NotFound`` / ``InvalidFormat``."""


@runtime_checkable
class EnvLoader(Protocol):
    """Translate prefixed environment variables into nested dictionaries."""

    def load(self, prefix: str) -> Mapping[str, object]:
        """Return variables that match *prefix* (``__`` for nesting)."""


@runtime_checkable
class ObtainRunner(Protocol):
    """Produce a raw credential bundle for one registry entry.

    Why
    ----
    The engine treats the credential-issuing command as opaque; isolating it
    behind a port keeps the pipeline testable without real cloud tooling.
    """

    def obtain(self, entry: ClusterEntry) -> Kubeconfig:
        """Return a bundle with at least one cluster or raise ``ObtainFailure``."""


@runtime_checkable
class StoreWriter(Protocol):
    """Persist the combined store so readers never observe a partial document."""

    def write(self, path: Path, store: Kubeconfig) -> None:
        """Replace *path* with *store* or raise ``AssemblerWriteFailure``."""
