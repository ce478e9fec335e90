"""Structured document loaders.

Purpose
-------
Convert on-disk registry documents and engine settings into Python mappings.
Adapters are small wrappers around ``yaml.safe_load`` and ``tomllib`` so error
handling and observability live in one place.

Contents
--------
* :class:`BaseFileLoader` – shared helpers for reading files and validating
  mapping outputs.
* :class:`YAMLFileLoader` – registry documents (JSON is accepted as a YAML
  subset).
* :class:`TOMLFileLoader` – ``settings.toml``.
* :func:`loader_for` – suffix dispatch used by the composition root.

System Role
-----------
Invoked by :mod:`lib_cluster_registry.core` before documents are handed to the
merge policy.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Mapping

import yaml

from ...domain.errors import InvalidFormat, NotFound
from ...observability import log_debug, log_error


class BaseFileLoader:
    """Common utilities shared by the structured file loaders."""

    format_name = "file"

    def _read(self, path: str) -> bytes:
        """Read *path* as bytes, raising :class:`NotFound` when the file is missing.

        Examples
        --------
        >>> from tempfile import NamedTemporaryFile
        >>> tmp = NamedTemporaryFile(delete=False)
        >>> _ = tmp.write(b"clusters: []")
        >>> tmp.close()
        >>> BaseFileLoader()._read(tmp.name)[:8]
        b'clusters'
        >>> Path(tmp.name).unlink()
        """

        file_path = Path(path)
        if not file_path.is_file():
            raise NotFound(f"File not found: {path}")
        try:
            payload = file_path.read_bytes()
        except OSError as exc:
            raise InvalidFormat(f"Cannot read {path}: {exc}") from exc
        log_debug("file_read", path=path, size=len(payload))
        return payload

    @staticmethod
    def _ensure_mapping(data: object, *, path: str) -> Mapping[str, object]:
        """Ensure *data* behaves like a mapping, otherwise raise ``InvalidFormat``.

        Examples
        --------
        >>> BaseFileLoader._ensure_mapping({"clusters": []}, path="demo")
        {'clusters': []}
        >>> BaseFileLoader._ensure_mapping([1], path="demo")
        Traceback (most recent call last):
        ...
        lib_cluster_registry.domain.errors.InvalidFormat: File demo did not produce a mapping
        """

        if not isinstance(data, Mapping):
            raise InvalidFormat(f"File {path} did not produce a mapping")
        return data  # type: ignore[return-value]


class YAMLFileLoader(BaseFileLoader):
    """Load YAML (and JSON) documents; an empty file is an empty mapping."""

    format_name = "yaml"

    def load(self, path: str) -> Mapping[str, object]:
        """Return the mapping stored in the YAML file at *path*.

        Examples
        --------
        >>> from tempfile import NamedTemporaryFile
        >>> tmp = NamedTemporaryFile('w', suffix='.yaml', delete=False, encoding='utf-8')
        >>> _ = tmp.write('clusters:\\n  - anchor: dev\\n')
        >>> tmp.close()
        >>> YAMLFileLoader().load(tmp.name)["clusters"][0]["anchor"]
        'dev'
        >>> Path(tmp.name).unlink()
        """

        try:
            data = yaml.safe_load(self._read(path))
        except yaml.YAMLError as exc:
            log_error("file_invalid", path=path, format="yaml", error=str(exc))
            raise InvalidFormat(f"Invalid YAML in {path}: {exc}") from exc
        if data is None:
            data = {}
        result = self._ensure_mapping(data, path=path)
        log_debug("file_loaded", path=path, format="yaml")
        return result


class TOMLFileLoader(BaseFileLoader):
    """Load TOML documents using the standard library parser."""

    format_name = "toml"

    def load(self, path: str) -> Mapping[str, object]:
        """Return the mapping stored in the TOML file at *path*."""

        try:
            data = tomllib.loads(self._read(path).decode("utf-8"))
        except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
            log_error("file_invalid", path=path, format="toml", error=str(exc))
            raise InvalidFormat(f"Invalid TOML in {path}: {exc}") from exc
        result = self._ensure_mapping(data, path=path)
        log_debug("file_loaded", path=path, format="toml")
        return result


_LOADERS: dict[str, BaseFileLoader] = {
    ".yaml": YAMLFileLoader(),
    ".yml": YAMLFileLoader(),
    ".json": YAMLFileLoader(),
    ".toml": TOMLFileLoader(),
}


def loader_for(path: str | Path) -> BaseFileLoader:
    """Return the loader registered for *path*'s suffix (YAML when unknown).

    Examples
    --------
    >>> loader_for("settings.toml").format_name, loader_for("kubeconfig").format_name
    ('toml', 'yaml')
    """

    return _LOADERS.get(Path(path).suffix.lower(), _LOADERS[".yaml"])
