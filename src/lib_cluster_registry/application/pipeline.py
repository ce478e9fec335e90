"""Per-entry bootstrap pipeline.

Purpose
-------
Fold the merged registry into ``(store, summary)``: every entry ends in exactly
one terminal state and expected failures never raise out of the fold.

State machine per entry::

    unconfigured                                   (never enters the pipeline)
    configured -> validate -> skipped              (malformed override)
                           -> obtain -> failed     (ObtainFailure)
                                     -> apply -> merge -> merged

Contents
--------
* :class:`EntryState` / :class:`EntryOutcome` – per-entry result.
* :class:`RunSummary` – counts plus outcomes, returned to callers.
* :func:`run_pipeline` – public entry point.

Concurrency
-----------
Obtain commands may run on a bounded :class:`~concurrent.futures.ThreadPoolExecutor`.
Apply and merge always happen on the calling thread in registry order, which
keeps the combined store deterministic regardless of completion order. Every
worker runs inside a copy of the caller's ``contextvars`` context so structured
logs keep the run's trace identifier.
"""

from __future__ import annotations

import contextvars
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from ..domain.errors import ObtainFailure
from ..domain.kubeconfig import Kubeconfig
from ..domain.registry import ClusterEntry, Registry
from ..observability import log_info, log_warning, make_event
from .assemble import StoreAssembler
from .override import apply_override
from .ports import ObtainRunner
from .validate import is_configured, validate_override


class EntryState(str, Enum):
    """Terminal state of one entry within a run."""

    UNCONFIGURED = "unconfigured"
    SKIPPED = "skipped"
    FAILED = "failed"
    MERGED = "merged"


@dataclass(frozen=True, slots=True)
class EntryOutcome:
    """What happened to one anchor during a run."""

    anchor: str
    state: EntryState
    reason: str | None = None
    notes: tuple[str, ...] = ()


@dataclass(slots=True)
class RunSummary:
    """Per-run tally returned to callers even on partial failure."""

    outcomes: list[EntryOutcome] = field(default_factory=list)

    def record(self, outcome: EntryOutcome) -> None:
        self.outcomes.append(outcome)

    def _count(self, state: EntryState) -> int:
        return sum(1 for outcome in self.outcomes if outcome.state is state)

    @property
    def configured(self) -> int:
        """Entries whose credentials made it into the combined store."""

        return self._count(EntryState.MERGED)

    @property
    def skipped(self) -> int:
        return self._count(EntryState.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(EntryState.FAILED)

    @property
    def unconfigured(self) -> int:
        return self._count(EntryState.UNCONFIGURED)

    @property
    def ok(self) -> bool:
        return self.configured > 0

    @property
    def nothing_configured(self) -> bool:
        """``True`` when no entry even entered the pipeline (distinct from all failing)."""

        return self.configured + self.skipped + self.failed == 0

    def anchors(self, state: EntryState) -> list[str]:
        return [outcome.anchor for outcome in self.outcomes if outcome.state is state]

    def as_dict(self) -> dict[str, object]:
        return {
            "configured": self.configured,
            "skipped": self.skipped,
            "failed": self.failed,
            "unconfigured": self.unconfigured,
            "entries": [
                {"anchor": o.anchor, "state": o.state.value, "reason": o.reason, "notes": list(o.notes)}
                for o in self.outcomes
            ],
        }


def run_pipeline(
    registry: Registry | Iterable[ClusterEntry],
    runner: ObtainRunner,
    *,
    assembler: StoreAssembler | None = None,
    workers: int = 1,
) -> tuple[StoreAssembler, RunSummary]:
    """Process every entry of *registry*, isolating per-entry failures.

    Parameters
    ----------
    registry:
        Merged registry (or any iterable of entries) in the order the store
        should be assembled.
    runner:
        Obtain adapter; each candidate entry is attempted exactly once.
    assembler:
        Store to merge into; a fresh :class:`StoreAssembler` by default.
    workers:
        Maximum obtain commands in flight. ``1`` runs them sequentially on the
        calling thread.

    Returns
    -------
    tuple[StoreAssembler, RunSummary]
        The populated (not yet persisted) store and the run summary.
    """

    assembler = assembler if assembler is not None else StoreAssembler()
    summary = RunSummary()
    slots: list[tuple[ClusterEntry, EntryOutcome | None]] = []

    for entry in registry:
        if not is_configured(entry):
            slots.append((entry, EntryOutcome(entry.anchor, EntryState.UNCONFIGURED, "no override configured")))
            continue
        result = validate_override(entry)
        if not result:
            log_warning("entry_skipped", **make_event(entry.anchor, "validate", {"reason": result.reason}))
            slots.append((entry, EntryOutcome(entry.anchor, EntryState.SKIPPED, result.reason)))
            continue
        slots.append((entry, None))

    candidates = [entry for entry, outcome in slots if outcome is None]
    obtained = _obtain_all(candidates, runner, workers)

    for entry, outcome in slots:
        if outcome is None:
            outcome = _finish_entry(entry, obtained[entry.anchor], assembler)
        summary.record(outcome)

    log_info(
        "pipeline_complete",
        **make_event(
            None,
            "summary",
            {
                "configured": summary.configured,
                "skipped": summary.skipped,
                "failed": summary.failed,
                "unconfigured": summary.unconfigured,
            },
        ),
    )
    return assembler, summary


def _obtain_all(
    entries: list[ClusterEntry],
    runner: ObtainRunner,
    workers: int,
) -> dict[str, Kubeconfig | ObtainFailure]:
    """Run obtain for *entries*, returning a bundle or the failure per anchor."""

    if workers <= 1 or len(entries) <= 1:
        return {entry.anchor: _obtain_one(runner, entry) for entry in entries}

    futures: dict[str, Future[Kubeconfig | ObtainFailure]] = {}
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="obtain") as pool:
        for entry in entries:
            context = contextvars.copy_context()
            futures[entry.anchor] = pool.submit(context.run, _obtain_one, runner, entry)
    return {anchor: future.result() for anchor, future in futures.items()}


def _obtain_one(runner: ObtainRunner, entry: ClusterEntry) -> Kubeconfig | ObtainFailure:
    try:
        return runner.obtain(entry)
    except ObtainFailure as exc:
        return exc


def _finish_entry(
    entry: ClusterEntry,
    obtained: Kubeconfig | ObtainFailure,
    assembler: StoreAssembler,
) -> EntryOutcome:
    if isinstance(obtained, ObtainFailure):
        log_warning("obtain_failed", **make_event(entry.anchor, "obtain", {"reason": str(obtained)}))
        return EntryOutcome(entry.anchor, EntryState.FAILED, str(obtained))
    applied = apply_override(obtained, entry)
    assembler.merge(entry.anchor, applied.bundle)
    return EntryOutcome(entry.anchor, EntryState.MERGED, None, applied.notes)
