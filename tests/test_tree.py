# tests/test_tree.py
"""
Tests for flatten / unflatten.

Covers:
    - flattening nested mappings, sequences as opaque leaves, empty mappings
    - unflattening, including keys that are parents of other keys
    - the two round-trip properties
"""

import logging

import pytest

from flatconf.exceptions import KeyConflictError, KeyPathError
from flatconf.tree import NodeKind, flatten, node_kind, shadowed_keys, unflatten

# ---------------------------------------------------------------------------
# flatten
# ---------------------------------------------------------------------------


class TestFlatten:

    def test_nested(self):
        tree = {"db": {"host": "localhost", "port": 5432}, "debug": True}
        assert flatten(tree) == {"db.host": "localhost", "db.port": 5432, "debug": True}

    def test_empty(self):
        assert flatten({}) == {}

    def test_empty_mapping_vanishes(self):
        assert flatten({"a": {}, "b": 1}) == {"b": 1}

    def test_sequences_are_leaves(self):
        tree = {"hosts": ["a", "b"], "rules": [{"x": 1}]}
        assert flatten(tree) == {"hosts": ["a", "b"], "rules": [{"x": 1}]}

    def test_null_is_a_leaf(self):
        assert flatten({"a": {"b": None}}) == {"a.b": None}

    def test_prefix(self):
        assert flatten({"b": {"c": 1}}, prefix=["a"]) == {"a.b.c": 1}

    def test_dotted_mapping_key_rejected(self):
        with pytest.raises(KeyPathError):
            flatten({"a.b": 1})

    def test_node_kinds(self):
        assert node_kind({}) is NodeKind.MAPPING
        assert node_kind([1]) is NodeKind.SEQUENCE
        assert node_kind("x") is NodeKind.SCALAR
        assert node_kind(None) is NodeKind.SCALAR


# ---------------------------------------------------------------------------
# unflatten
# ---------------------------------------------------------------------------


class TestUnflatten:

    def test_nested(self):
        flat = {"db.host": "localhost", "db.port": 5432, "debug": True}
        assert unflatten(flat) == {"db": {"host": "localhost", "port": 5432}, "debug": True}

    def test_empty(self):
        assert unflatten({}) == {}

    def test_preserves_insertion_order(self):
        tree = unflatten({"z.b": 1, "a": 2, "z.a": 3})
        assert list(tree) == ["z", "a"]
        assert list(tree["z"]) == ["b", "a"]

    def test_does_not_mutate_input(self):
        flat = {"a.b": 1}
        unflatten(flat)
        assert flat == {"a.b": 1}

    def test_shadowed_keys(self):
        assert shadowed_keys({"a": 1, "a.b": 2, "c": 3}) == ["a"]
        assert shadowed_keys({"a.b": 1, "a.c": 2}) == []

    @pytest.mark.parametrize("flat", [
        {"a": 1, "a.b": 2},
        {"a.b": 2, "a": 1},
    ])
    def test_branch_wins_regardless_of_order(self, flat):
        assert unflatten(flat) == {"a": {"b": 2}}

    def test_shadowed_key_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="flatconf.tree"):
            unflatten({"a": 1, "a.b.c": 2})
        assert "'a'" in caplog.text

    def test_strict_rejects_conflicts(self):
        with pytest.raises(KeyConflictError) as excinfo:
            unflatten({"a": 1, "a.b": 2, "x.y": 3, "x": 4}, strict=True)
        assert excinfo.value.keys == ["a", "x"]

    def test_invalid_key(self):
        with pytest.raises(KeyPathError):
            unflatten({"a..b": 1})


# ---------------------------------------------------------------------------
# Round trips
# ---------------------------------------------------------------------------


FLAT_MAPS = [
    {},
    {"a": 1},
    {"a.b.c": "x", "a.b.d": [1, 2], "a.e": None, "f": False},
    {"values.v1.b": True, "values.v1.i": -42, "values.v1.d": "1m", "values.v2.s": "hi"},
]

TREES = [
    {},
    {"a": {"b": {"c": 1}}, "d": [{"nested": "in a list"}]},
    {"values": {"v1": {"b": True, "i": -42, "m": {"k1": "v1"}}}},
]


@pytest.mark.parametrize("flat", FLAT_MAPS)
def test_flatten_of_unflatten_is_identity(flat):
    assert flatten(unflatten(flat)) == flat


@pytest.mark.parametrize("tree", TREES)
def test_unflatten_of_flatten_is_identity(tree):
    assert unflatten(flatten(tree)) == tree
