"""Environment variable adapter for engine settings.

Purpose
-------
Translate ``LIB_CLUSTER_REGISTRY_*`` variables into the nested settings
payload. Environment is the highest file-free settings layer; only explicit CLI
options win over it.

Key behaviours
--------------
* Only keys with the settings prefix are captured; the state-directory
  variable (``LIB_CLUSTER_REGISTRY_HOME``) is consumed by the path resolver and
  skipped here.
* ``__`` is the nesting delimiter (``OBTAIN__TIMEOUT`` → ``{"obtain": {"timeout": ...}}``).
* Light scalar coercion (bools, ints, floats, ``null``/``none``).
"""

from __future__ import annotations

import os
from typing import Final, Mapping

from ...observability import log_debug

_RESERVED: Final[frozenset[str]] = frozenset({"HOME"})


def default_env_prefix(slug: str) -> str:
    """Return the canonical environment prefix for *slug*.

    Examples
    --------
    >>> default_env_prefix('lib-cluster-registry')
    'LIB_CLUSTER_REGISTRY'
    """

    return slug.replace("-", "_").upper()


ENV_PREFIX: Final[str] = default_env_prefix("lib-cluster-registry")


class DefaultEnvLoader:
    """Load environment variables that belong to the settings namespace."""

    def __init__(self, *, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def load(self, prefix: str = ENV_PREFIX) -> dict[str, object]:
        """Return a nested mapping containing variables with the supplied *prefix*.

        Examples
        --------
        >>> env = {
        ...     'DEMO_OBTAIN__TIMEOUT': '30',
        ...     'DEMO_STORE__PATH': '/tmp/kubeconfig',
        ...     'DEMO_HOME': '/ignored',
        ... }
        >>> DefaultEnvLoader(environ=env).load('DEMO')
        {'obtain': {'timeout': 30}, 'store': {'path': '/tmp/kubeconfig'}}
        """

        prefix = f"{prefix}_" if prefix and not prefix.endswith("_") else prefix
        collected: dict[str, object] = {}
        for key, value in sorted(self._environ.items()):
            if not key.startswith(prefix):
                continue
            stripped = key[len(prefix) :]
            if not stripped or stripped.upper() in _RESERVED:
                continue
            assign_nested(collected, stripped, _coerce(value))
        log_debug("env_settings_loaded", keys=sorted(collected.keys()))
        return collected


def assign_nested(target: dict[str, object], key: str, value: object) -> None:
    """Assign ``value`` inside ``target`` using ``__`` as a nesting delimiter.

    Examples
    --------
    >>> data: dict[str, object] = {}
    >>> assign_nested(data, 'OBTAIN__WORKERS', 4)
    >>> data
    {'obtain': {'workers': 4}}
    """

    parts = [part.lower() for part in key.split("__")]
    cursor = target
    for part in parts[:-1]:
        child = cursor.setdefault(part, {})
        if not isinstance(child, dict):
            raise ValueError(f"Cannot override scalar with mapping for key {key}")
        cursor = child
    cursor[parts[-1]] = value


def _coerce(value: str) -> object:
    """Coerce textual environment values to Python primitives where possible.

    Examples
    --------
    >>> _coerce('true'), _coerce('10'), _coerce('2.5'), _coerce('/home/me')
    (True, 10, 2.5, '/home/me')
    """

    lowered = value.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"null", "none"}:
        return None
    if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
        return int(value)
    try:
        return float(value)
    except ValueError:
        return value
