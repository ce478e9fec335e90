"""Combined store assembly.

Purpose
-------
Union processed bundles into one multi-context kubeconfig held in memory and
hand it to a :class:`~lib_cluster_registry.application.ports.StoreWriter` once
the run completes. Nothing is persisted per entry, so an interrupted run never
leaves a half-written store behind.
"""

from __future__ import annotations

import threading
from pathlib import Path

from ..domain.kubeconfig import EMPTY_KUBECONFIG, Kubeconfig, NamedItem
from ..observability import log_debug, log_info, make_event
from .ports import StoreWriter


class StoreAssembler:
    """Accumulate bundles into a single combined store.

    ``merge`` is lock protected so callers may feed it from worker threads.
    Items are keyed by name per section; a later bundle replaces an earlier
    item of the same name in place (last merged wins).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sections: dict[str, dict[str, NamedItem]] = {"clusters": {}, "contexts": {}, "users": {}}
        self._current: str | None = None
        self._merged: list[str] = []

    def merge(self, anchor: str, bundle: Kubeconfig) -> None:
        """Union *bundle* into the store."""

        with self._lock:
            for section, items in (
                ("clusters", bundle.clusters),
                ("contexts", bundle.contexts),
                ("users", bundle.users),
            ):
                target = self._sections[section]
                for item in items:
                    target[item.name] = item
            if self._current is None and bundle.current_context:
                self._current = bundle.current_context
            self._merged.append(anchor)
        log_debug("bundle_merged", **make_event(anchor, "assemble", {"contexts": len(bundle.contexts)}))

    @property
    def merged_anchors(self) -> list[str]:
        with self._lock:
            return list(self._merged)

    def snapshot(self) -> Kubeconfig:
        """Return the store accumulated so far as an immutable :class:`Kubeconfig`."""

        with self._lock:
            if not self._merged:
                return EMPTY_KUBECONFIG
            return Kubeconfig(
                clusters=tuple(self._sections["clusters"].values()),
                contexts=tuple(self._sections["contexts"].values()),
                users=tuple(self._sections["users"].values()),
                current_context=self._current,
            )

    def finalize(self, path: Path, writer: StoreWriter) -> Kubeconfig:
        """Write the accumulated store to *path* in one atomic replace."""

        store = self.snapshot()
        writer.write(path, store)
        log_info("store_written", **make_event(None, "assemble", {"path": str(path), "contexts": len(store.contexts)}))
        return store
