"""Registry merge policy: deep merge, skip-on-error, and anchor invariants."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lib_cluster_registry.application.merge import deep_merge, merge_layers, merge_registries
from lib_cluster_registry.domain.errors import RegistryError

SCALAR = st.one_of(st.booleans(), st.integers(), st.text(min_size=1, max_size=5))
VALUE = st.recursive(
    SCALAR,
    lambda children: st.one_of(
        st.lists(children, max_size=3),
        st.dictionaries(st.text(min_size=1, max_size=5), children, max_size=3),
    ),
    max_leaves=10,
)
MAPPING = st.dictionaries(st.text(min_size=1, max_size=5), VALUE, max_size=4)
ANCHOR = st.text(alphabet="abcdefgh", min_size=1, max_size=3)


def _base(*anchors: str) -> dict:
    return {"clusters": [{"anchor": anchor, "obtain": ["true", anchor], "override": {}} for anchor in anchors]}


def _configured(anchor: str, name: str = "user") -> dict:
    return {"anchor": anchor, "override": {"identities": [{"name": name, "credentialFetch": {"exec": {"command": "x"}}}]}}


def test_lists_replace_and_mappings_merge() -> None:
    merged = deep_merge(
        {"obtain": ["a", "b"], "metadata": {"description": "d", "keywords": ["x", "y"]}},
        {"obtain": ["c"], "metadata": {"keywords": ["z"]}},
    )
    assert merged == {"obtain": ["c"], "metadata": {"description": "d", "keywords": ["z"]}}


def test_deep_merge_leaves_inputs_untouched() -> None:
    base = {"a": {"b": [1]}}
    incoming = {"a": {"c": 2}}
    deep_merge(base, incoming)
    assert base == {"a": {"b": [1]}}
    assert incoming == {"a": {"c": 2}}


def test_absent_overrides_equal_base() -> None:
    registry, warnings = merge_registries(_base("a", "b"), None)
    assert registry.anchors == ["a", "b"]
    assert registry.configured() == []
    assert warnings == []


def test_override_configures_entry_and_replaces_obtain() -> None:
    override = _configured("b") | {"obtain": ["custom", "argv"]}
    registry, warnings = merge_registries(_base("a", "b"), {"clusters": [override]})
    assert warnings == []
    assert registry.get("b").is_configured
    assert registry.get("b").obtain == ("custom", "argv")
    assert not registry.get("a").is_configured


def test_override_identities_replace_wholesale() -> None:
    base = {"clusters": [_configured("a", name="base-user") | {"obtain": ["true"]}]}
    registry, _ = merge_registries(base, {"clusters": [_configured("a", name="mine")]})
    override = registry.get("a").override
    assert override is not None
    assert [identity.name for identity in override.identities] == ["mine"]


@pytest.mark.parametrize(
    ("entry", "fragment"),
    [
        ("not-a-mapping", "entry is not a mapping"),
        ({"override": {"identities": []}}, "missing 'anchor'"),
        ({"anchor": ""}, "missing 'anchor'"),
        ({"anchor": "z", "override": {"x": 1}}, "not found in cluster registry"),
        ({"anchor": "a", "obtain": "not a list"}, "invalid after merge"),
    ],
)
def test_bad_override_entries_warn_and_skip(entry, fragment) -> None:
    registry, warnings = merge_registries(_base("a", "b"), {"clusters": [entry]})
    assert registry.anchors == ["a", "b"]
    assert registry.get("a").obtain == ("true", "a")
    assert len(warnings) == 1
    assert fragment in warnings[0].message


def test_duplicate_override_anchor_first_wins() -> None:
    registry, warnings = merge_registries(
        _base("a"),
        {"clusters": [_configured("a", name="first"), _configured("a", name="second")]},
    )
    assert registry.get("a").override.primary.name == "first"
    assert [str(warning) for warning in warnings] == ["user config 'a': duplicate anchor in user config, skipping"]


@pytest.mark.parametrize("document", [{"clusters": {"a": {}}}, {"clusters": "nope"}])
def test_malformed_override_document_warns_once(document) -> None:
    registry, warnings = merge_registries(_base("a"), document)
    assert registry.anchors == ["a"]
    assert len(warnings) == 1


@pytest.mark.parametrize(
    "base",
    [
        {"clusters": "a"},
        {"clusters": [{"obtain": ["x"]}]},
        {"clusters": [{"anchor": "a"}, {"anchor": "a"}]},
    ],
)
def test_base_problems_are_fatal(base) -> None:
    with pytest.raises(RegistryError):
        merge_registries(base, None)


def test_unknown_anchor_scenario() -> None:
    registry, warnings = merge_registries(_base("a", "b", "c"), {"clusters": [_configured("z")]})
    assert registry.anchors == ["a", "b", "c"]
    assert len(warnings) == 1
    assert warnings[0].anchor == "z"


@given(st.lists(ANCHOR, unique=True, min_size=1, max_size=6), st.lists(ANCHOR, max_size=8))
def test_anchor_invariant_and_unknown_rejection(base_anchors, override_anchors) -> None:
    overrides = {"clusters": [_configured(anchor) for anchor in override_anchors]}
    registry, warnings = merge_registries(_base(*base_anchors), overrides)

    assert registry.anchors == base_anchors
    unknown = [anchor for anchor in override_anchors if anchor not in base_anchors]
    unknown_warnings = [w for w in warnings if "not found in cluster registry" in w.message]
    assert [w.anchor for w in unknown_warnings] == unknown
    configured = {entry.anchor for entry in registry.configured()}
    assert configured == set(override_anchors) & set(base_anchors)


@given(MAPPING, MAPPING)
def test_later_layer_wins_for_non_mapping_values(lower, upper) -> None:
    merged = merge_layers([lower, upper])
    assert set(merged) == set(lower) | set(upper)
    for key, value in upper.items():
        if not isinstance(value, dict):
            assert merged[key] == value


@given(MAPPING)
def test_deep_merge_identity(mapping) -> None:
    assert deep_merge(mapping, {}) == mapping
    assert deep_merge({}, mapping) == mapping
