"""Engine settings value object.

Purpose
-------
Hold the resolved locations and obtain limits for one invocation. The merged
layer payload (defaults, ``settings.toml``, environment, CLI) is validated
here so adapters and the pipeline only ever see typed values.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Final

from .errors import SettingsError

DEFAULT_OBTAIN_TIMEOUT: Final[float] = 120.0
DEFAULT_WORKERS: Final[int] = 1


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved settings for a registry/bootstrap invocation.

    Attributes
    ----------
    registry_path:
        Shipped base catalog.
    overrides_path:
        User override document (may not exist).
    store_path:
        Combined store target.
    obtain_timeout:
        Seconds allowed for each obtain command.
    workers:
        Obtain commands allowed to run at once (``1`` is sequential).
    """

    registry_path: Path
    overrides_path: Path
    store_path: Path
    obtain_timeout: float = DEFAULT_OBTAIN_TIMEOUT
    workers: int = DEFAULT_WORKERS

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Settings:
        """Build settings from a merged layer payload.

        Examples
        --------
        >>> settings = Settings.from_mapping({
        ...     "registry": {"path": "/r.yaml"},
        ...     "overrides": {"path": "/o.yaml"},
        ...     "store": {"path": "/kubeconfig"},
        ...     "obtain": {"timeout": 30, "workers": 2},
        ... })
        >>> settings.obtain_timeout, settings.workers
        (30.0, 2)
        """

        obtain = _section(data, "obtain")
        return cls(
            registry_path=_path(data, "registry"),
            overrides_path=_path(data, "overrides"),
            store_path=_path(data, "store"),
            obtain_timeout=_positive_number(obtain.get("timeout", DEFAULT_OBTAIN_TIMEOUT), "obtain.timeout"),
            workers=_positive_int(obtain.get("workers", DEFAULT_WORKERS), "obtain.workers"),
        )

    def with_overrides(
        self,
        *,
        registry_path: Path | None = None,
        overrides_path: Path | None = None,
        store_path: Path | None = None,
        obtain_timeout: float | None = None,
        workers: int | None = None,
    ) -> Settings:
        """Return a copy with any explicitly supplied values replaced (CLI layer)."""

        changes: dict[str, Any] = {}
        if registry_path is not None:
            changes["registry_path"] = Path(registry_path)
        if overrides_path is not None:
            changes["overrides_path"] = Path(overrides_path)
        if store_path is not None:
            changes["store_path"] = Path(store_path)
        if obtain_timeout is not None:
            changes["obtain_timeout"] = _positive_number(obtain_timeout, "obtain.timeout")
        if workers is not None:
            changes["workers"] = _positive_int(workers, "obtain.workers")
        return replace(self, **changes)


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, Mapping):
        raise SettingsError(f"Setting '{key}' must be a table")
    return value


def _path(data: Mapping[str, Any], key: str) -> Path:
    value = _section(data, key).get("path")
    if not isinstance(value, (str, Path)) or not str(value):
        raise SettingsError(f"Setting '{key}.path' must be a non-empty path")
    return Path(value).expanduser()


def _positive_number(value: object, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise SettingsError(f"Setting '{label}' must be a positive number, got {value!r}")
    return float(value)


def _positive_int(value: object, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise SettingsError(f"Setting '{label}' must be a positive integer, got {value!r}")
    return value
