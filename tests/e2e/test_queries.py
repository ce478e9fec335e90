"""Registry query surface, gatekeeping, and settings layering."""

from __future__ import annotations

from pathlib import Path

import pytest
from hypothesis import HealthCheck, given, settings as hypothesis_settings
from hypothesis import strategies as st

from lib_cluster_registry import (
    NotBootstrapped,
    NotConfigured,
    NotFound,
    SettingsError,
    ValidationFailure,
    bootstrap,
    check_bootstrap,
    ensure_ready,
    get_cluster,
    list_all_clusters,
    list_configured_clusters,
    load_settings,
    validate_cluster,
)
from tests.support import ClusterSandbox, create_cluster_sandbox, override_entry


@pytest.fixture()
def sandbox(tmp_path: Path) -> ClusterSandbox:
    sandbox = create_cluster_sandbox(tmp_path)
    sandbox.write_registry([sandbox.base_entry("a"), sandbox.base_entry("b"), sandbox.base_entry("c")])
    sandbox.write_overrides([override_entry("a", "a-user"), override_entry("c", "c-user")])
    return sandbox


def test_list_all_flags_configured(sandbox: ClusterSandbox) -> None:
    listing = list_all_clusters(sandbox.settings())
    assert [(item["anchor"], item["configured"]) for item in listing] == [("a", True), ("b", False), ("c", True)]
    assert listing[0]["description"] == "a cluster"


def test_unknown_override_anchor_never_listed(sandbox: ClusterSandbox) -> None:
    sandbox.write_overrides([override_entry("z", "z-user")])
    assert [item["anchor"] for item in list_all_clusters(sandbox.settings())] == ["a", "b", "c"]


def test_get_cluster_unknown_lists_available(sandbox: ClusterSandbox) -> None:
    with pytest.raises(NotFound) as excinfo:
        get_cluster("z", sandbox.settings())
    assert excinfo.value.available == ("a", "b", "c")


def test_validate_cluster_outcomes(sandbox: ClusterSandbox) -> None:
    settings = sandbox.settings()
    assert validate_cluster("a", settings).anchor == "a"
    with pytest.raises(NotConfigured):
        validate_cluster("b", settings)
    with pytest.raises(NotFound):
        validate_cluster("z", settings)

    sandbox.write_overrides([{"anchor": "a", "override": {"identities": [{"credentialFetch": {"exec": {}}}]}}])
    with pytest.raises(ValidationFailure, match="missing identity override name"):
        validate_cluster("a", settings)


def test_queries_never_touch_the_store(sandbox: ClusterSandbox) -> None:
    list_all_clusters(sandbox.settings())
    get_cluster("a", sandbox.settings())
    assert not sandbox.store_path.exists()


def test_ensure_ready_requires_bootstrap(sandbox: ClusterSandbox) -> None:
    settings = sandbox.settings()
    with pytest.raises(NotBootstrapped):
        check_bootstrap(settings)
    with pytest.raises(NotBootstrapped):
        ensure_ready("a", settings)

    bootstrap(settings)

    assert check_bootstrap(settings).context_names == ["a", "c"]
    assert ensure_ready("a", settings).anchor == "a"


@hypothesis_settings(max_examples=20, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(st.sets(st.sampled_from(["a", "b", "c", "z"])))
def test_configured_is_subset_of_all(sandbox: ClusterSandbox, anchors: set[str]) -> None:
    sandbox.write_overrides([override_entry(anchor, f"{anchor}-user") for anchor in sorted(anchors)])
    settings = sandbox.settings()
    every = {item["anchor"]: item for item in list_all_clusters(settings)}
    configured = list_configured_clusters(settings)
    assert all(item["anchor"] in every and item["configured"] for item in configured)
    assert {item["anchor"] for item in configured} == anchors - {"z"}


def test_settings_layers(sandbox: ClusterSandbox) -> None:
    (sandbox.state_dir / "settings.toml").write_text("[obtain]\ntimeout = 30\nworkers = 2\n", encoding="utf-8")
    env = sandbox.env | {"LIB_CLUSTER_REGISTRY_OBTAIN__WORKERS": "5"}

    settings = load_settings(env=env)
    assert settings.obtain_timeout == 30.0
    assert settings.workers == 5
    assert settings.store_path == sandbox.store_path
    assert settings.registry_path == sandbox.registry_path

    explicit = load_settings(env=env, workers=1, store_path=sandbox.root / "other")
    assert explicit.workers == 1
    assert explicit.store_path == sandbox.root / "other"


def test_invalid_settings_file(sandbox: ClusterSandbox) -> None:
    (sandbox.state_dir / "settings.toml").write_text("[obtain\n", encoding="utf-8")
    with pytest.raises(SettingsError):
        load_settings(env=sandbox.env)


def test_invalid_settings_value_from_environment(sandbox: ClusterSandbox) -> None:
    with pytest.raises(SettingsError):
        load_settings(env=sandbox.env | {"LIB_CLUSTER_REGISTRY_OBTAIN__TIMEOUT": "-1"})
