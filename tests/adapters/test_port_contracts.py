"""Adapter contract tests for the default ports implementation.

Verify the default adapters keep satisfying the application-layer ports so the
pipeline can keep depending on protocols only.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from lib_cluster_registry.adapters.env.default import DefaultEnvLoader
from lib_cluster_registry.adapters.file_loaders.structured import TOMLFileLoader, YAMLFileLoader
from lib_cluster_registry.adapters.obtain.default import SubprocessObtainRunner
from lib_cluster_registry.adapters.store.default import AtomicStoreWriter
from lib_cluster_registry.application import ports


@pytest.mark.parametrize("loader_cls", [YAMLFileLoader, TOMLFileLoader])
def test_structured_loader_contract(tmp_path: Path, loader_cls) -> None:
    loader = loader_cls()
    assert isinstance(loader, ports.FileLoader)

    if isinstance(loader, TOMLFileLoader):
        path = tmp_path / "settings.toml"
        path.write_text("[obtain]\nworkers = 1\n", encoding="utf-8")
    else:
        path = tmp_path / "clusters.yaml"
        path.write_text("obtain:\n  workers: 1\n", encoding="utf-8")
    assert loader.load(str(path))["obtain"]["workers"] == 1


def test_env_loader_contract() -> None:
    assert isinstance(DefaultEnvLoader(environ={}), ports.EnvLoader)


def test_obtain_runner_contract() -> None:
    assert isinstance(SubprocessObtainRunner(), ports.ObtainRunner)


def test_store_writer_contract() -> None:
    assert isinstance(AtomicStoreWriter(), ports.StoreWriter)
