"""Example scaffolding helpers for ``lib_cluster_registry``."""

from .generate import EXAMPLE_OVERRIDES, ExampleSpec, generate_overrides_example

__all__ = [
    "EXAMPLE_OVERRIDES",
    "ExampleSpec",
    "generate_overrides_example",
]
