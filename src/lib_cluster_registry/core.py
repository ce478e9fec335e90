"""Composition root for ``lib_cluster_registry``.

Purpose
-------
Wire settings layers, document loaders, the merge policy, the bootstrap
pipeline, and the atomic store writer into the operations callers use.

Contents
--------
* :func:`load_settings` – defaults → ``settings.toml`` → environment → explicit values.
* :func:`load_registry` – read both documents fresh and merge them.
* :func:`list_all_clusters` / :func:`list_configured_clusters` / :func:`get_cluster`
  – the read-only registry query surface.
* :func:`validate_cluster` / :func:`check_bootstrap` / :func:`ensure_ready`
  – gatekeeping used by downstream query tooling.
* :func:`bootstrap` – full run producing the combined store.

System Role
-----------
The query surface never touches the combined store or runs external commands.
:func:`bootstrap` is the only operation that does both. It lets
:class:`RegistryError` and :class:`AssemblerWriteFailure` escape and returns a
:class:`BootstrapResult` for everything else.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .adapters.env.default import ENV_PREFIX, DefaultEnvLoader
from .adapters.file_loaders.structured import TOMLFileLoader, loader_for
from .adapters.obtain.default import SubprocessObtainRunner
from .adapters.path_resolvers.default import DefaultPathResolver
from .adapters.store.default import AtomicStoreWriter, read_store
from .application.assemble import StoreAssembler
from .application.merge import merge_layers, merge_registries
from .application.pipeline import RunSummary, run_pipeline
from .application.ports import ObtainRunner, StoreWriter
from .application.validate import validate_override
from .domain.errors import (
    InvalidFormat,
    MergeWarning,
    NotConfigured,
    NotFound,
    RegistryError,
    SettingsError,
    ValidationFailure,
)
from .domain.kubeconfig import Kubeconfig
from .domain.registry import ClusterEntry, ClusterSummary, Registry
from .domain.settings import Settings
from .observability import log_debug, log_info, make_event, new_trace_id


@dataclass(slots=True)
class BootstrapResult:
    """Everything a caller needs to report on a bootstrap run."""

    summary: RunSummary
    store_path: Path
    store: Kubeconfig
    warnings: list[MergeWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.summary.ok


def load_settings(
    *,
    env: Mapping[str, str] | None = None,
    home: Path | None = None,
    registry_path: Path | None = None,
    overrides_path: Path | None = None,
    store_path: Path | None = None,
    obtain_timeout: float | None = None,
    workers: int | None = None,
) -> Settings:
    """Resolve engine settings from every layer.

    Why
    ----
    Operators relocate the store or tune obtain limits without editing the
    shipped catalog, and tests point everything at a sandbox.

    What
    ----
    Merges resolver defaults, ``<state>/settings.toml`` (when present), and
    ``LIB_CLUSTER_REGISTRY_*`` environment variables, then applies any explicit
    keyword values on top.

    Raises
    ------
    SettingsError
        When ``settings.toml`` is malformed or a value has the wrong type.
    """

    resolver = DefaultPathResolver(env=env, home=home)
    layers: list[Mapping[str, object]] = [resolver.defaults()]
    settings_file = resolver.settings()
    try:
        layers.append(TOMLFileLoader().load(str(settings_file)))
        log_debug("settings_file_loaded", path=str(settings_file))
    except NotFound:
        pass
    except InvalidFormat as exc:
        raise SettingsError(str(exc)) from exc
    try:
        layers.append(DefaultEnvLoader(environ=resolver.env).load(ENV_PREFIX))
    except ValueError as exc:
        raise SettingsError(str(exc)) from exc
    settings = Settings.from_mapping(merge_layers(layers))
    return settings.with_overrides(
        registry_path=registry_path,
        overrides_path=overrides_path,
        store_path=store_path,
        obtain_timeout=obtain_timeout,
        workers=workers,
    )


def load_registry(settings: Settings | None = None) -> tuple[Registry, list[MergeWarning]]:
    """Read the base catalog and the user overrides fresh and merge them.

    Raises
    ------
    RegistryError
        When the base catalog is missing, unreadable, or inconsistent.
    """

    settings = settings or load_settings()
    try:
        base = loader_for(settings.registry_path).load(str(settings.registry_path))
    except NotFound as exc:
        raise RegistryError(f"Shipped registry not found: {settings.registry_path}") from exc
    except InvalidFormat as exc:
        raise RegistryError(f"Shipped registry unreadable: {exc}") from exc

    document_warnings: list[MergeWarning] = []
    overrides: Mapping[str, object] | None
    try:
        overrides = loader_for(settings.overrides_path).load(str(settings.overrides_path))
    except NotFound:
        overrides = None
    except InvalidFormat as exc:
        document_warnings.append(MergeWarning(f"{exc}; ignoring all overrides"))
        overrides = None

    registry, warnings = merge_registries(base, overrides)
    return registry, document_warnings + warnings


def list_all_clusters(settings: Settings | None = None) -> list[ClusterSummary]:
    """Every base-catalog anchor with its ``configured`` flag.

    Examples
    --------
    >>> import tempfile
    >>> tmp = tempfile.TemporaryDirectory()
    >>> cfg = load_settings(env={"LIB_CLUSTER_REGISTRY_HOME": tmp.name})
    >>> all(isinstance(item["configured"], bool) for item in list_all_clusters(cfg))
    True
    >>> tmp.cleanup()
    """

    registry, _ = load_registry(settings)
    return [entry.summary() for entry in registry]


def list_configured_clusters(settings: Settings | None = None) -> list[ClusterSummary]:
    """Only entries whose merged override is non-empty."""

    registry, _ = load_registry(settings)
    return [entry.summary() for entry in registry.configured()]


def get_cluster(anchor: str, settings: Settings | None = None) -> ClusterEntry:
    """Return the merged entry for *anchor* or raise :class:`NotFound`.

    The exception carries ``available`` so callers can present valid anchors.
    """

    registry, _ = load_registry(settings)
    return registry.get(anchor)


def validate_cluster(anchor: str, settings: Settings | None = None) -> ClusterEntry:
    """Return the entry when it exists, is configured, and passes validation.

    Raises
    ------
    NotFound
        Unknown anchor (``available`` lists every anchor).
    NotConfigured
        Known anchor without an override.
    ValidationFailure
        Override present but malformed.
    """

    settings = settings or load_settings()
    entry = get_cluster(anchor, settings)
    if not entry.is_configured:
        raise NotConfigured(f"Cluster '{anchor}' not configured. Add override to {settings.overrides_path}")
    result = validate_override(entry)
    if not result:
        raise ValidationFailure(f"Cluster '{anchor}' override invalid: {result.reason}")
    return entry


def check_bootstrap(settings: Settings | None = None) -> Kubeconfig:
    """Return the combined store or raise :class:`NotBootstrapped` when it does not exist."""

    settings = settings or load_settings()
    return read_store(settings.store_path)


def ensure_ready(anchor: str, settings: Settings | None = None) -> ClusterEntry:
    """Gate used by query tooling: the store exists and *anchor* is usable."""

    settings = settings or load_settings()
    check_bootstrap(settings)
    return validate_cluster(anchor, settings)


def bootstrap(
    settings: Settings | None = None,
    *,
    runner: ObtainRunner | None = None,
    writer: StoreWriter | None = None,
) -> BootstrapResult:
    """Rebuild the combined store from scratch.

    Why
    ----
    The store is the single artifact every downstream tool reads; rebuilding it
    in full on each run guarantees removed clusters disappear.

    What
    ----
    Loads and merges the registries, folds configured entries through
    validate → obtain → apply → merge, and writes the result atomically even
    when no entry succeeded.

    Raises
    ------
    RegistryError
        Base catalog unusable; nothing is written.
    AssemblerWriteFailure
        The store could not be written; in-memory state is discarded.

    Side Effects
    ------------
    Binds a fresh trace identifier, runs obtain commands, replaces the store.
    """

    trace_id = new_trace_id()
    settings = settings or load_settings()
    log_info("bootstrap_started", **make_event(None, "bootstrap", {"store": str(settings.store_path), "run": trace_id}))

    registry, warnings = load_registry(settings)
    runner = runner or SubprocessObtainRunner(timeout=settings.obtain_timeout)
    writer = writer or AtomicStoreWriter()

    assembler, summary = run_pipeline(registry, runner, assembler=StoreAssembler(), workers=settings.workers)
    store = assembler.finalize(settings.store_path, writer)
    return BootstrapResult(summary=summary, store_path=settings.store_path, store=store, warnings=warnings)


__all__ = [
    "BootstrapResult",
    "bootstrap",
    "check_bootstrap",
    "ensure_ready",
    "get_cluster",
    "list_all_clusters",
    "list_configured_clusters",
    "load_registry",
    "load_settings",
    "validate_cluster",
]
