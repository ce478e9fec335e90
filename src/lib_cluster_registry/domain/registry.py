"""Domain value objects for the cluster registry.

Purpose
-------
Replace loosely-typed registry documents with immutable, schema-checked value
objects. Deserialisation happens once, here, so the rest of the system works
with ``Override | None`` instead of comparing subtrees against sentinel text.

Contents
--------
* :class:`ClusterMetadata` – descriptive, informational fields.
* :class:`IdentityOverride` – identity name plus credential-fetch spec.
* :class:`Override` – user-supplied fragment (``None`` when absent or empty).
* :class:`ClusterEntry` – one anchor with its obtain command and override.
* :class:`Registry` – ordered, anchor-unique collection of entries.
* :class:`ClusterSummary` – projection returned by the query surface.

System Role
-----------
Built by :func:`lib_cluster_registry.application.merge.merge_registries` and
consumed by the validator, the pipeline, and the query surface in
:mod:`lib_cluster_registry.core`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, TypedDict

from .errors import InvalidFormat, NotFound


class ClusterSummary(TypedDict):
    """Projection of a :class:`ClusterEntry` for listings."""

    anchor: str
    description: str | None
    keywords: list[str]
    provider: str | None
    configured: bool


@dataclass(frozen=True, slots=True)
class ClusterMetadata:
    """Informational fields; never influence merge or pipeline behaviour."""

    description: str | None = None
    keywords: tuple[str, ...] = ()
    provider: str | None = None

    @classmethod
    def from_mapping(cls, data: object, *, anchor: str) -> ClusterMetadata:
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise InvalidFormat(f"Cluster '{anchor}': metadata must be a mapping")
        keywords = data.get("keywords") or ()
        if isinstance(keywords, str) or not isinstance(keywords, (list, tuple)):
            raise InvalidFormat(f"Cluster '{anchor}': metadata.keywords must be a list")
        return cls(
            description=_optional_str(data.get("description"), f"Cluster '{anchor}': metadata.description"),
            keywords=tuple(str(keyword) for keyword in keywords),
            provider=_optional_str(data.get("provider"), f"Cluster '{anchor}': metadata.provider"),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {"description": self.description, "keywords": list(self.keywords), "provider": self.provider}


@dataclass(frozen=True, slots=True)
class IdentityOverride:
    """Replacement credential-fetch specification for one named identity.

    ``name`` stays optional at parse time so the validator, not the parser,
    reports a missing name as a per-entry skip.
    """

    name: str | None
    credential_fetch: Mapping[str, Any] | None

    @classmethod
    def from_mapping(cls, data: object, *, anchor: str) -> IdentityOverride:
        if not isinstance(data, Mapping):
            raise InvalidFormat(f"Cluster '{anchor}': override identities must be mappings")
        name = _optional_str(data.get("name"), f"Cluster '{anchor}': identity name")
        fetch = data.get("credentialFetch")
        if fetch is not None and not isinstance(fetch, Mapping):
            raise InvalidFormat(f"Cluster '{anchor}': credentialFetch must be a mapping")
        return cls(name=name or None, credential_fetch=freeze_mapping(fetch) if fetch is not None else None)

    def to_mapping(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name}
        if self.credential_fetch is not None:
            payload["credentialFetch"] = thaw_mapping(self.credential_fetch)
        return payload


@dataclass(frozen=True, slots=True)
class Override:
    """Non-empty user override for one cluster entry.

    Unknown keys are kept in ``extra`` so a round trip through the registry
    does not lose user data.
    """

    identities: tuple[IdentityOverride, ...] = ()
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_mapping(cls, data: object, *, anchor: str) -> Override | None:
        """Return an :class:`Override` or ``None`` when *data* is absent or empty.

        Examples
        --------
        >>> Override.from_mapping({}, anchor="a") is None
        True
        >>> Override.from_mapping({"identities": [{"name": "u"}]}, anchor="a").primary.name
        'u'
        """

        if data is None:
            return None
        if not isinstance(data, Mapping):
            raise InvalidFormat(f"Cluster '{anchor}': override must be a mapping")
        if not data:
            return None
        raw_identities = data.get("identities") or []
        if not isinstance(raw_identities, list):
            raise InvalidFormat(f"Cluster '{anchor}': override.identities must be a list")
        identities = tuple(IdentityOverride.from_mapping(item, anchor=anchor) for item in raw_identities)
        extra = {key: value for key, value in data.items() if key != "identities"}
        return cls(identities=identities, extra=freeze_mapping(extra))

    @property
    def primary(self) -> IdentityOverride | None:
        """The identity override whose name the validator requires."""

        return self.identities[0] if self.identities else None

    def to_mapping(self) -> dict[str, Any]:
        payload = thaw_mapping(self.extra)
        payload["identities"] = [identity.to_mapping() for identity in self.identities]
        return payload


@dataclass(frozen=True, slots=True)
class ClusterEntry:
    """A single anchor in the merged registry."""

    anchor: str
    metadata: ClusterMetadata = ClusterMetadata()
    obtain: tuple[str, ...] = ()
    override: Override | None = None

    @classmethod
    def from_mapping(cls, data: object, *, index: int | None = None) -> ClusterEntry:
        """Deserialise one registry entry, raising :class:`InvalidFormat` on schema errors.

        Examples
        --------
        >>> entry = ClusterEntry.from_mapping({"anchor": "dev", "obtain": ["echo"], "override": {}})
        >>> entry.anchor, entry.obtain, entry.is_configured
        ('dev', ('echo',), False)
        """

        where = f"entry {index}" if index is not None else "entry"
        if not isinstance(data, Mapping):
            raise InvalidFormat(f"Registry {where} must be a mapping")
        anchor = data.get("anchor")
        if not isinstance(anchor, str) or not anchor.strip():
            raise InvalidFormat(f"Registry {where} is missing 'anchor'")
        obtain = data.get("obtain")
        if obtain is None:
            argv: tuple[str, ...] = ()
        elif isinstance(obtain, list) and all(isinstance(arg, (str, int, float)) for arg in obtain):
            argv = tuple(str(arg) for arg in obtain)
        else:
            raise InvalidFormat(f"Cluster '{anchor}': obtain must be a list of arguments")
        return cls(
            anchor=anchor,
            metadata=ClusterMetadata.from_mapping(data.get("metadata"), anchor=anchor),
            obtain=argv,
            override=Override.from_mapping(data.get("override"), anchor=anchor),
        )

    @property
    def is_configured(self) -> bool:
        return self.override is not None

    def summary(self) -> ClusterSummary:
        return ClusterSummary(
            anchor=self.anchor,
            description=self.metadata.description,
            keywords=list(self.metadata.keywords),
            provider=self.metadata.provider,
            configured=self.is_configured,
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "anchor": self.anchor,
            "metadata": self.metadata.to_mapping(),
            "obtain": list(self.obtain),
            "override": self.override.to_mapping() if self.override is not None else {},
        }


@dataclass(frozen=True, slots=True)
class Registry:
    """Ordered, anchor-unique collection of :class:`ClusterEntry` objects."""

    entries: tuple[ClusterEntry, ...] = ()

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for entry in self.entries:
            if entry.anchor in seen:
                raise InvalidFormat(f"Duplicate anchor in registry: {entry.anchor}")
            seen.add(entry.anchor)

    def __iter__(self) -> Iterator[ClusterEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, anchor: object) -> bool:
        return any(entry.anchor == anchor for entry in self.entries)

    @property
    def anchors(self) -> list[str]:
        return [entry.anchor for entry in self.entries]

    def get(self, anchor: str) -> ClusterEntry:
        """Return the entry for *anchor* or raise :class:`NotFound` listing valid anchors."""

        for entry in self.entries:
            if entry.anchor == anchor:
                return entry
        available = self.anchors
        raise NotFound(f"Cluster '{anchor}' not found. Available: {', '.join(available)}", available=available)

    def configured(self) -> list[ClusterEntry]:
        return [entry for entry in self.entries if entry.is_configured]


def _optional_str(value: object, label: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise InvalidFormat(f"{label} must be a scalar")
    return str(value)


def freeze_mapping(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return a read-only deep copy of *mapping*."""

    return MappingProxyType({key: _freeze_value(value) for key, value in mapping.items()})


def _freeze_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return freeze_mapping(value)
    if isinstance(value, (list, tuple)):
        return tuple(_freeze_value(item) for item in value)
    return value


def thaw_mapping(mapping: Mapping[str, Any]) -> dict[str, Any]:
    """Return a plain, mutable deep copy of a frozen mapping (for serialisation)."""

    return {key: _thaw_value(value) for key, value in mapping.items()}


def _thaw_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return thaw_mapping(value)
    if isinstance(value, (list, tuple)):
        return [_thaw_value(item) for item in value]
    return value

