"""Apply a validated user override to a freshly obtained bundle.

Two steps, both tolerant:

1. Replace the credential-fetch specification of every identity the override
   names. An identity missing from the bundle is recorded as :class:`ApplyNoop`
   and the bundle keeps its original identity.
2. Rename the bundle's current context to the entry's anchor so the combined
   store is keyed by anchor no matter what the obtain command called it. When
   no usable current context exists, or the anchor is already taken by a
   different context, the bundle keeps its original naming.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..domain.errors import ApplyNoop
from ..domain.kubeconfig import Kubeconfig
from ..domain.registry import ClusterEntry
from ..observability import log_debug, log_warning, make_event


@dataclass(frozen=True, slots=True)
class AppliedBundle:
    """Result of :func:`apply_override`."""

    bundle: Kubeconfig
    noops: tuple[ApplyNoop, ...] = ()
    renamed: bool = False
    notes: tuple[str, ...] = ()


def apply_override(bundle: Kubeconfig, entry: ClusterEntry) -> AppliedBundle:
    """Return *bundle* with *entry*'s identity overrides applied and its context renamed."""

    anchor = entry.anchor
    noops: list[ApplyNoop] = []
    notes: list[str] = []
    identities = entry.override.identities if entry.override is not None else ()
    for identity in identities:
        if identity.name is None or identity.credential_fetch is None:
            continue
        if bundle.find_user(identity.name) is None:
            noop = ApplyNoop(anchor=anchor, identity=identity.name)
            log_warning("override_noop", **make_event(anchor, "apply", {"identity": identity.name}))
            noops.append(noop)
            notes.append(str(noop))
            continue
        bundle = bundle.with_user(identity.name, identity.credential_fetch)
        log_debug("override_applied", **make_event(anchor, "apply", {"identity": identity.name}))

    bundle, renamed, note = _rename_current_context(bundle, anchor)
    if note:
        notes.append(note)
    return AppliedBundle(bundle=bundle, noops=tuple(noops), renamed=renamed, notes=tuple(notes))


def _rename_current_context(bundle: Kubeconfig, anchor: str) -> tuple[Kubeconfig, bool, str | None]:
    current = bundle.current_context
    if current is None or bundle.find_context(current) is None:
        log_debug("context_rename_skipped", **make_event(anchor, "apply", {"reason": "no current context"}))
        return bundle, False, "no current context; kept original context names"
    if current == anchor:
        return bundle, True, None
    if bundle.find_context(anchor) is not None:
        log_warning("context_rename_skipped", **make_event(anchor, "apply", {"reason": "anchor already used"}))
        return bundle, False, f"context '{anchor}' already exists; kept '{current}'"
    log_debug("context_renamed", **make_event(anchor, "apply", {"from": current}))
    return bundle.rename_context(current, anchor), True, None
