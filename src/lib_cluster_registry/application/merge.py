"""Application-layer merge policy.

Purpose
-------
Deep-merge the shipped base catalog with the sparse user override document,
keyed by anchor, and deep-merge settings layers. Remains free of I/O so the
composition root decides where documents come from.

Contents
    - ``deep_merge``: recursive mapping merge (mappings merge, everything else
      replaces).
    - ``merge_registries``: public entry point returning the merged
      :class:`Registry` and the list of :class:`MergeWarning` records.
    - ``_parse_base`` / ``_apply_override_entry``: stanzas that keep the
      skip-on-error rules readable.

System Role
-----------
Receives raw documents from :mod:`lib_cluster_registry.core` and returns the
registry consumed by the query surface and the bootstrap pipeline.
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Any, Iterable

from ..domain.errors import InvalidFormat, MergeWarning, RegistryError
from ..domain.registry import ClusterEntry, Registry
from ..observability import log_debug, log_warning, make_event


def deep_merge(base: Mapping[str, Any], incoming: Mapping[str, Any]) -> dict[str, Any]:
    """Return a new mapping with *incoming* merged over *base*.

    Why
    ----
    Registry overrides and settings layers share one rule: nested mappings
    merge key by key, while lists and scalars in *incoming* replace the base
    value wholesale (collections are never appended).

    Side Effects
    ------------
    None; both inputs are left untouched.

    Examples
    --------
    >>> deep_merge({"a": {"x": 1, "y": [1, 2]}}, {"a": {"y": [3]}})
    {'a': {'x': 1, 'y': [3]}}
    """

    merged: dict[str, Any] = deepcopy(dict(base))
    for key, value in incoming.items():
        existing = merged.get(key)
        if isinstance(value, Mapping) and isinstance(existing, Mapping):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = deepcopy(value)
    return merged


def merge_layers(layers: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """Fold *layers* (lowest precedence first) with :func:`deep_merge`.

    Examples
    --------
    >>> merge_layers([{"obtain": {"timeout": 5}}, {"obtain": {"workers": 2}}, {"obtain": {"timeout": 9}}])
    {'obtain': {'timeout': 9, 'workers': 2}}
    """

    merged: dict[str, Any] = {}
    for layer in layers:
        merged = deep_merge(merged, layer)
    return merged


def merge_registries(
    base: Mapping[str, Any],
    overrides: Mapping[str, Any] | None = None,
) -> tuple[Registry, list[MergeWarning]]:
    """Merge the user *overrides* document into the *base* catalog.

    Why
    ----
    Users only ship the fields they customise; every anchor they reference
    must already exist in the base catalog.

    What
    ----
    Each override entry is skipped with a warning when it is not a mapping,
    lacks an anchor, names an anchor absent from *base*, repeats an anchor
    already seen in the override document, or produces an entry that fails
    schema validation once merged. Accepted entries are deep-merged into a
    copy of the matching base entry.

    Parameters
    ----------
    base:
        Parsed base catalog, ``{"clusters": [...]}``.
    overrides:
        Parsed user override document or ``None``.

    Returns
    -------
    tuple[Registry, list[MergeWarning]]
        One entry per base anchor in base order, plus the warnings raised.

    Raises
    ------
    RegistryError
        When the base catalog itself is malformed or repeats an anchor.

    Examples
    --------
    >>> base = {"clusters": [{"anchor": "a", "obtain": ["true"]}, {"anchor": "b", "obtain": ["true"]}]}
    >>> registry, warnings = merge_registries(base, {"clusters": [{"anchor": "z", "override": {"x": 1}}]})
    >>> registry.anchors, [str(w) for w in warnings]
    (['a', 'b'], ["user config 'z': not found in cluster registry, skipping"])
    """

    merged_raw, merged_entries = _parse_base(base)
    warnings: list[MergeWarning] = []
    override_entries = _override_entries(overrides, warnings)
    for problem in warnings:
        log_warning("merge_warning", **make_event(None, "merge", {"reason": problem.message}))

    seen: set[str] = set()
    for index, entry in enumerate(override_entries):
        warning = _apply_override_entry(index, entry, merged_raw, merged_entries, seen)
        if warning is not None:
            log_warning("merge_warning", **make_event(warning.anchor, "merge", {"index": index, "reason": warning.message}))
            warnings.append(warning)

    registry = Registry(tuple(merged_entries[anchor] for anchor in merged_raw))
    log_debug(
        "registries_merged",
        **make_event(None, "merge", {"entries": len(registry), "overrides": len(seen), "warnings": len(warnings)}),
    )
    return registry, warnings


def _parse_base(base: Mapping[str, Any]) -> tuple[dict[str, dict[str, Any]], dict[str, ClusterEntry]]:
    """Validate the base catalog and return raw and parsed entries keyed by anchor, in order."""

    if not isinstance(base, Mapping):
        raise RegistryError("Cluster registry must be a mapping with a 'clusters' list")
    clusters = base.get("clusters")
    if clusters is None:
        clusters = []
    if not isinstance(clusters, list):
        raise RegistryError("Cluster registry 'clusters' must be a list")
    raw_entries: dict[str, dict[str, Any]] = {}
    entries: dict[str, ClusterEntry] = {}
    for index, raw in enumerate(clusters):
        try:
            entry = ClusterEntry.from_mapping(raw, index=index)
        except InvalidFormat as exc:
            raise RegistryError(f"Invalid cluster registry entry {index}: {exc}") from exc
        if entry.anchor in entries:
            raise RegistryError(f"Duplicate anchor in cluster registry: {entry.anchor}")
        raw_entries[entry.anchor] = dict(raw)
        entries[entry.anchor] = entry
    return raw_entries, entries


def _override_entries(overrides: Mapping[str, Any] | None, warnings: list[MergeWarning]) -> list[object]:
    """Return the override document's entries, warning once when the shape is wrong."""

    if not overrides:
        return []
    if not isinstance(overrides, Mapping):
        warnings.append(MergeWarning("document is not a mapping, ignoring all overrides"))
        return []
    clusters = overrides.get("clusters")
    if clusters is None:
        return []
    if not isinstance(clusters, list):
        warnings.append(MergeWarning("'clusters' must be a list, ignoring all overrides"))
        return []
    return clusters


def _apply_override_entry(
    index: int,
    entry: object,
    merged_raw: dict[str, dict[str, Any]],
    merged_entries: dict[str, ClusterEntry],
    seen: set[str],
) -> MergeWarning | None:
    """Merge one override *entry* in place, returning a warning when it is skipped."""

    if not isinstance(entry, Mapping):
        return MergeWarning("entry is not a mapping, skipping", index=index)
    anchor = entry.get("anchor")
    if not isinstance(anchor, str) or not anchor.strip():
        return MergeWarning("missing 'anchor' field, skipping", index=index)
    if anchor not in merged_raw:
        return MergeWarning("not found in cluster registry, skipping", anchor=anchor, index=index)
    if anchor in seen:
        return MergeWarning("duplicate anchor in user config, skipping", anchor=anchor, index=index)
    seen.add(anchor)
    candidate = deep_merge(merged_raw[anchor], entry)
    try:
        parsed = ClusterEntry.from_mapping(candidate, index=index)
    except InvalidFormat as exc:
        return MergeWarning(f"invalid after merge ({exc}), skipping", anchor=anchor, index=index)
    merged_raw[anchor] = candidate
    merged_entries[anchor] = parsed
    return None
