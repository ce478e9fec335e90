"""Public package surface for ``lib_cluster_registry``.

Re-exports the composition root (registry queries, gatekeeping, bootstrap),
the domain value objects callers receive, the error taxonomy, and the
observability hooks. ``python -m lib_cluster_registry`` runs the CLI.
"""

from __future__ import annotations

from .adapters.store.default import read_store
from .application.pipeline import EntryOutcome, EntryState, RunSummary
from .core import (
    BootstrapResult,
    bootstrap,
    check_bootstrap,
    ensure_ready,
    get_cluster,
    list_all_clusters,
    list_configured_clusters,
    load_registry,
    load_settings,
    validate_cluster,
)
from .domain.errors import (
    ApplyNoop,
    AssemblerWriteFailure,
    ClusterRegistryError,
    InvalidFormat,
    MergeWarning,
    NotBootstrapped,
    NotConfigured,
    NotFound,
    ObtainFailure,
    RegistryError,
    SettingsError,
    ValidationFailure,
)
from .domain.kubeconfig import Kubeconfig
from .domain.registry import ClusterEntry, ClusterSummary, Override, Registry
from .domain.settings import Settings
from .examples import EXAMPLE_OVERRIDES, generate_overrides_example
from .observability import bind_trace_id, get_logger

__all__ = [
    "ApplyNoop",
    "AssemblerWriteFailure",
    "BootstrapResult",
    "ClusterEntry",
    "ClusterRegistryError",
    "ClusterSummary",
    "EXAMPLE_OVERRIDES",
    "EntryOutcome",
    "EntryState",
    "InvalidFormat",
    "Kubeconfig",
    "MergeWarning",
    "NotBootstrapped",
    "NotConfigured",
    "NotFound",
    "ObtainFailure",
    "Override",
    "Registry",
    "RegistryError",
    "RunSummary",
    "Settings",
    "SettingsError",
    "ValidationFailure",
    "bind_trace_id",
    "bootstrap",
    "check_bootstrap",
    "ensure_ready",
    "generate_overrides_example",
    "get_cluster",
    "get_logger",
    "list_all_clusters",
    "list_configured_clusters",
    "load_registry",
    "load_settings",
    "read_store",
    "validate_cluster",
]
