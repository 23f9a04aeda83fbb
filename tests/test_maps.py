"""Tests for deltasync.utils.maps.deep_update."""
import pytest

from deltasync.errors import InvalidStateError
from deltasync.utils.maps import deep_update


class TestDeepUpdate:
    def test_merges_nested_mappings(self):
        original = {"users": {"a": {"name": "Alice", "age": 30}, "b": {"name": "Bob", "age": 25}}}
        updates = {"users": {"b": {"age": 26}}}
        assert deep_update(original, updates) == {
            "users": {"a": {"name": "Alice", "age": 30}, "b": {"name": "Bob", "age": 26}}
        }

    def test_creates_missing_keys(self):
        assert deep_update({}, {"users": {"a": {"profile": {"name": "Alice"}}}}) == {
            "users": {"a": {"profile": {"name": "Alice"}}}
        }

    def test_non_mapping_values_replace(self):
        assert deep_update({"a": {"x": 1}, "b": [1]}, {"a": 5, "b": [2]}) == {"a": 5, "b": [2]}
        assert deep_update({"a": 5}, {"a": {"x": 1}}) == {"a": {"x": 1}}

    def test_inputs_are_not_mutated(self):
        original = {"a": {"x": 1}}
        updates = {"a": {"y": 2}}
        merged = deep_update(original, updates)
        merged["a"]["z"] = 3
        assert original == {"a": {"x": 1}}
        assert updates == {"a": {"y": 2}}

    def test_rejects_non_mappings(self):
        with pytest.raises(InvalidStateError):
            deep_update({}, ["x"])
