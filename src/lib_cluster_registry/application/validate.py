"""Entry validation run immediately before an entry enters the pipeline.

Neither function mutates anything; a failed validation short-circuits only the
entry it was called for.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..domain.registry import ClusterEntry

MISSING_IDENTITY_NAME = "missing identity override name"
MISSING_OBTAIN = "missing obtain command"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of :func:`validate_override`; truthy when the entry may proceed."""

    ok: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.ok


def is_configured(entry: ClusterEntry) -> bool:
    """Return ``True`` when the merged override is non-empty."""

    return entry.override is not None


def validate_override(entry: ClusterEntry) -> ValidationResult:
    """Check that a configured entry is well-formed enough to obtain credentials.

    Examples
    --------
    >>> from lib_cluster_registry.domain.registry import ClusterEntry
    >>> entry = ClusterEntry.from_mapping({"anchor": "a", "obtain": ["true"], "override": {"identities": [{}]}})
    >>> validate_override(entry)
    ValidationResult(ok=False, reason='missing identity override name')
    """

    override = entry.override
    if override is None or override.primary is None:
        return ValidationResult(False, MISSING_IDENTITY_NAME)
    for identity in override.identities:
        if not identity.name:
            return ValidationResult(False, MISSING_IDENTITY_NAME)
    if not entry.obtain:
        return ValidationResult(False, MISSING_OBTAIN)
    return ValidationResult(True)
