"""Utilities for manipulating nested mappings."""
from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from deltasync.errors import InvalidStateError


def deep_update(original: Mapping[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``original`` with ``updates`` merged in recursively.

    Nested mappings present on both sides are merged key by key; any other
    value in ``updates`` replaces the original field outright. Missing keys
    are created. Neither input is mutated.

    Example:
        >>> deep_update({"users": {"a": {"age": 30}}}, {"users": {"b": {"age": 25}}})
        {'users': {'a': {'age': 30}, 'b': {'age': 25}}}
    """
    if not isinstance(original, Mapping) or not isinstance(updates, Mapping):
        raise InvalidStateError(
            "deep_update expects two mappings",
            details={
                "original": type(original).__name__,
                "updates": type(updates).__name__,
            },
        )
    merged = copy.deepcopy(dict(original))
    for key, value in updates.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_update(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged
