"""Domain-level error taxonomy.

Purpose
-------
Expose the error taxonomy shared by adapters, the pipeline, the composition
root, and the CLI. The hierarchy lives in the domain layer so outer rings may
depend on it without creating import cycles.

Contents
--------
* :class:`ClusterRegistryError` – umbrella base class.
* :class:`InvalidFormat` – a document could not be parsed into the expected shape.
* :class:`NotFound` – an anchor or file that was asked for does not exist.
* :class:`NotConfigured` – the anchor exists but carries no user override.
* :class:`NotBootstrapped` – the combined store has never been written.
* :class:`RegistryError` – the base catalog is unusable; aborts a run.
* :class:`SettingsError` – engine settings failed validation.
* :class:`ValidationFailure` – a configured override is malformed.
* :class:`ObtainFailure` – an obtain command failed or returned an unusable bundle.
* :class:`AssemblerWriteFailure` – the combined store could not be written; aborts a run.
* :class:`MergeWarning` / :class:`ApplyNoop` – non-fatal records, not exceptions.

System Role
-----------
Only :class:`RegistryError` and :class:`AssemblerWriteFailure` escape
:func:`lib_cluster_registry.core.bootstrap`. Everything else is scoped to one
entry and ends up in the run summary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


class ClusterRegistryError(Exception):
    """Base type for all exceptions emitted by ``lib_cluster_registry``."""


class InvalidFormat(ClusterRegistryError):
    """Raised when a document cannot be parsed into the expected structure.

    Typical Sources
    ---------------
    Structured file loaders, registry entry deserialisation, and obtain output
    that is not a kubeconfig mapping.
    """


class NotFound(ClusterRegistryError):
    """Represents a missing anchor or resource.

    When raised for an anchor, ``available`` lists the valid anchors so callers
    can present them to the user.
    """

    def __init__(self, message: str, *, available: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.available = tuple(available)


class NotConfigured(ClusterRegistryError):
    """The anchor is known but has no user override."""


class NotBootstrapped(ClusterRegistryError):
    """The combined store file does not exist yet."""


class RegistryError(ClusterRegistryError):
    """The shipped base catalog is missing, unreadable, or inconsistent."""


class SettingsError(ClusterRegistryError):
    """Engine settings contain a value of the wrong type or range."""


class ValidationFailure(ClusterRegistryError):
    """A configured override is not well-formed enough to use."""


class ObtainFailure(ClusterRegistryError):
    """The obtain command failed, timed out, or produced an unusable bundle."""


class AssemblerWriteFailure(ClusterRegistryError):
    """The combined store could not be persisted."""


@dataclass(frozen=True, slots=True)
class MergeWarning:
    """A user override entry that was ignored during the registry merge.

    Attributes
    ----------
    message:
        Human readable reason.
    anchor:
        Anchor named by the offending entry, when it had one.
    index:
        Position of the entry in the override document, when known.
    """

    message: str
    anchor: str | None = None
    index: int | None = None

    def __str__(self) -> str:
        if self.anchor:
            return f"user config '{self.anchor}': {self.message}"
        if self.index is not None:
            return f"user config entry {self.index}: {self.message}"
        return f"user config: {self.message}"


@dataclass(frozen=True, slots=True)
class ApplyNoop:
    """The override named an identity that the obtained bundle does not contain."""

    anchor: str
    identity: str

    def __str__(self) -> str:
        return f"identity '{self.identity}' not present in obtained kubeconfig; override not applied"
