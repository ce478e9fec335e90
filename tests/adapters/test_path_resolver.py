from __future__ import annotations

from pathlib import Path

from lib_cluster_registry.adapters.path_resolvers.default import DefaultPathResolver


def test_state_dir_from_environment(tmp_path: Path) -> None:
    resolver = DefaultPathResolver(env={"LIB_CLUSTER_REGISTRY_HOME": str(tmp_path)})
    assert resolver.state_dir() == tmp_path
    assert resolver.overrides() == tmp_path / "clusters.yaml"
    assert resolver.settings() == tmp_path / "settings.toml"
    assert resolver.store() == tmp_path / "kubeconfig"


def test_state_dir_under_home(tmp_path: Path) -> None:
    resolver = DefaultPathResolver(env={"LIB_CLUSTER_REGISTRY_HOME": ""}, home=tmp_path)
    assert resolver.state_dir() == tmp_path / ".dataops-assistant" / "k8s"


def test_shipped_registry_is_package_data() -> None:
    path = DefaultPathResolver().registry()
    assert path.name == "cluster-registry.yaml"
    assert path.is_file()


def test_defaults_layer_lists_every_path(tmp_path: Path) -> None:
    defaults = DefaultPathResolver(env={"LIB_CLUSTER_REGISTRY_HOME": str(tmp_path)}).defaults()
    assert set(defaults) == {"registry", "overrides", "store"}
    assert defaults["store"]["path"] == str(tmp_path / "kubeconfig")
