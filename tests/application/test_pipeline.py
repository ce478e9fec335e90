"""Per-entry pipeline fold with an in-memory obtain runner."""

from __future__ import annotations

import threading
import time
from typing import Mapping

import pytest

from lib_cluster_registry.application.merge import merge_registries
from lib_cluster_registry.application.pipeline import EntryState, run_pipeline
from lib_cluster_registry.domain.errors import ObtainFailure
from lib_cluster_registry.domain.kubeconfig import Kubeconfig
from lib_cluster_registry.domain.registry import ClusterEntry, Registry
from lib_cluster_registry.observability import TRACE_ID, bind_trace_id
from tests.support import kubeconfig_bundle, override_entry


class FakeRunner:
    """Return canned bundles; anchors mapped to ``None`` fail."""

    def __init__(self, bundles: Mapping[str, Mapping | None], delay: float = 0.0) -> None:
        self.bundles = dict(bundles)
        self.delay = delay
        self.calls: list[str] = []
        self.trace_ids: list[str | None] = []
        self.threads: set[str] = set()
        self._lock = threading.Lock()

    def obtain(self, entry: ClusterEntry) -> Kubeconfig:
        with self._lock:
            self.calls.append(entry.anchor)
            self.trace_ids.append(TRACE_ID.get())
            self.threads.add(threading.current_thread().name)
        if self.delay:
            time.sleep(self.delay)
        raw = self.bundles.get(entry.anchor)
        if raw is None:
            raise ObtainFailure(f"{entry.anchor}: obtain produced empty kubeconfig")
        return Kubeconfig.from_mapping(raw)


def _registry(anchors: list[str], configured: list[str], extra: Mapping[str, dict] | None = None) -> Registry:
    base = {"clusters": [{"anchor": anchor, "obtain": ["obtain", anchor], "override": {}} for anchor in anchors]}
    overrides = {"clusters": [override_entry(anchor, f"{anchor}-user") | (extra or {}).get(anchor, {}) for anchor in configured]}
    registry, _ = merge_registries(base, overrides)
    return registry


def test_partial_failure_scenario() -> None:
    registry = _registry(["a", "b", "c"], ["a", "c"])
    runner = FakeRunner({"a": kubeconfig_bundle("a"), "c": None})

    assembler, summary = run_pipeline(registry, runner)
    store = assembler.snapshot()

    assert [entry.anchor for entry in registry.configured()] == ["a", "c"]
    assert store.context_names == ["a"]
    assert store.current_context == "a"
    assert (summary.configured, summary.failed, summary.skipped, summary.unconfigured) == (1, 1, 0, 1)
    assert summary.ok
    assert summary.anchors(EntryState.FAILED) == ["c"]
    assert runner.calls == ["a", "c"]


def test_invalid_override_is_skipped_without_obtain() -> None:
    registry = _registry(["a", "b"], ["a", "b"], extra={"b": {"obtain": []}})
    runner = FakeRunner({"a": kubeconfig_bundle("a"), "b": kubeconfig_bundle("b")})

    _, summary = run_pipeline(registry, runner)

    assert runner.calls == ["a"]
    assert summary.skipped == 1
    outcome = next(o for o in summary.outcomes if o.anchor == "b")
    assert outcome.state is EntryState.SKIPPED
    assert outcome.reason == "missing obtain command"


@pytest.mark.parametrize("workers", [1, 4])
def test_n_configured_m_failed(workers: int) -> None:
    anchors = [f"k{index}" for index in range(6)]
    failing = {"k1", "k4"}
    registry = _registry(anchors, anchors)
    runner = FakeRunner({anchor: None if anchor in failing else kubeconfig_bundle(anchor) for anchor in anchors})

    assembler, summary = run_pipeline(registry, runner, workers=workers)

    assert summary.configured == len(anchors) - len(failing)
    assert summary.failed == len(failing)
    assert assembler.snapshot().context_names == [a for a in anchors if a not in failing]


def test_parallel_obtain_keeps_registry_order_and_trace() -> None:
    anchors = ["a", "b", "c", "d"]
    registry = _registry(anchors, anchors)
    runner = FakeRunner({anchor: kubeconfig_bundle(anchor) for anchor in anchors}, delay=0.05)

    bind_trace_id("run-42")
    try:
        assembler, summary = run_pipeline(registry, runner, workers=4)
    finally:
        bind_trace_id(None)

    assert assembler.snapshot().context_names == anchors
    assert [outcome.anchor for outcome in summary.outcomes] == anchors
    assert set(runner.trace_ids) == {"run-42"}
    assert all(name.startswith("obtain") for name in runner.threads)


def test_nothing_configured_is_distinct_from_all_failing() -> None:
    _, idle = run_pipeline(_registry(["a", "b"], []), FakeRunner({}))
    _, failing = run_pipeline(_registry(["a", "b"], ["a"]), FakeRunner({"a": None}))

    assert idle.nothing_configured and not idle.ok
    assert not failing.nothing_configured and not failing.ok
    assert idle.unconfigured == 2


def test_noop_notes_reach_the_summary() -> None:
    registry = _registry(["a"], ["a"])
    runner = FakeRunner({"a": kubeconfig_bundle("a", user="vendor-user")})

    assembler, summary = run_pipeline(registry, runner)

    outcome = summary.outcomes[0]
    assert outcome.state is EntryState.MERGED
    assert any("a-user" in note for note in outcome.notes)
    assert assembler.snapshot().find_user("vendor-user").body == {"token": "vendor-default"}


def test_rerun_is_idempotent() -> None:
    registry = _registry(["a", "b", "c"], ["a", "b", "c"])
    runner = FakeRunner({"a": kubeconfig_bundle("a"), "b": kubeconfig_bundle("b"), "c": None})

    first, _ = run_pipeline(registry, runner)
    second, _ = run_pipeline(registry, runner)

    assert first.snapshot().to_mapping() == second.snapshot().to_mapping()


def test_summary_as_dict() -> None:
    _, summary = run_pipeline(_registry(["a", "b"], ["a"]), FakeRunner({"a": kubeconfig_bundle("a")}))
    payload = summary.as_dict()
    assert payload["configured"] == 1
    assert payload["unconfigured"] == 1
    assert payload["entries"][0] == {"anchor": "a", "state": "merged", "reason": None, "notes": []}
