"""Delta calculation, coalescing and patching for context state.

A delta maps field names to either a :class:`Change` (a leaf transition) or
to a nested delta, which describes changes inside a sub-mapping that exists
on both sides. A mapping that appears for the first time is recorded as an
``added`` change whose value is itself a delta of ``added`` leaves, so every
leaf a formatter sees has the same shape.

Example:
    >>> diff({"a": 1, "b": 2, "c": 3}, {"a": 1, "b": 5, "d": 4})
    {'b': Change(action=<Action.MODIFIED: 'modified'>, value=5, old_value=2),
     'c': Change(action=<Action.REMOVED: 'removed'>, value=None, old_value=3),
     'd': Change(action=<Action.ADDED: 'added'>, value=4, old_value=None)}
"""
from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from deltasync.errors import InvalidStateError

Delta = dict[Any, Any]

_UNSET = object()


class Action(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class Change:
    """A single field transition.

    ``value`` is unused for ``removed`` and ``old_value`` is unused for
    ``added``; both are left as ``None`` in those cases.
    """

    action: Action
    value: Any = None
    old_value: Any = None

    @classmethod
    def added(cls, value: Any) -> Change:
        return cls(Action.ADDED, value=value)

    @classmethod
    def modified(cls, old_value: Any, value: Any) -> Change:
        return cls(Action.MODIFIED, value=value, old_value=old_value)

    @classmethod
    def removed(cls, old_value: Any) -> Change:
        return cls(Action.REMOVED, old_value=old_value)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"action": self.action.value}
        if self.action == Action.ADDED:
            if _is_added_tree(self.value):
                d["value"] = delta_to_dict(self.value)
            else:
                d["value"] = self.value
        elif self.action == Action.MODIFIED:
            d["old_value"] = self.old_value
            d["value"] = self.value
        else:
            d["old_value"] = self.old_value
        return d

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> Change:
        try:
            action = Action(d["action"])
        except (KeyError, ValueError) as exc:
            raise InvalidStateError(
                "Malformed change record", details={"record": dict(d)}
            ) from exc
        if action == Action.ADDED:
            value = d.get("value")
            if isinstance(value, Mapping):
                value = delta_from_dict(value)
            return cls.added(value)
        if action == Action.MODIFIED:
            return cls.modified(d.get("old_value"), d.get("value"))
        return cls.removed(d.get("old_value"))


def diff(old_state: Mapping[str, Any], new_state: Mapping[str, Any]) -> Delta:
    """Compute the delta that turns ``old_state`` into ``new_state``.

    Returns an empty dict if and only if both states are deeply equal.
    Output key order is sorted, so equal inputs give identical deltas.
    """
    _require_mapping(old_state, "old_state")
    _require_mapping(new_state, "new_state")
    return _diff(old_state, new_state)


def merge(deltas: Iterable[Mapping[Any, Any]]) -> Delta:
    """Coalesce deltas (oldest first) into one equivalent delta.

    For every key the whole chain of records is folded: the latest terminal
    action and value win, and the earliest ``old_value`` seen is kept. Nested
    deltas merge key by key. A modification that ends where it started is
    dropped. The inputs are not modified.
    """
    chains: dict[Any, list[Any]] = {}
    for delta in deltas:
        _require_mapping(delta, "delta")
        for key, record in delta.items():
            chains.setdefault(key, []).append(record)

    merged: Delta = {}
    for key in _sorted_keys(chains):
        record = _fold_chain(chains[key])
        if record is not None:
            merged[key] = record
    return merged


def apply_delta(state: Mapping[str, Any], delta: Mapping[Any, Any]) -> dict[str, Any]:
    """Return ``state`` with ``delta`` applied (added/modified set, removed drop)."""
    _require_mapping(state, "state")
    result = copy.deepcopy(dict(state))
    for key, record in delta.items():
        if isinstance(record, Change):
            if record.action == Action.REMOVED:
                result.pop(key, None)
            else:
                result[key] = _after(record)
        elif isinstance(record, Mapping):
            current = result.get(key)
            if not isinstance(current, Mapping):
                raise InvalidStateError(
                    "Nested delta applied to a non-mapping field",
                    details={"key": key, "found": type(current).__name__},
                )
            result[key] = apply_delta(current, record)
        else:
            raise InvalidStateError(
                "Malformed delta entry", details={"key": key, "entry": repr(record)}
            )
    return result


def revert_delta(state: Mapping[str, Any], delta: Mapping[Any, Any]) -> dict[str, Any]:
    """Undo ``delta`` on a state it was previously applied to."""
    _require_mapping(state, "state")
    result = copy.deepcopy(dict(state))
    for key, record in delta.items():
        if isinstance(record, Change):
            if record.action == Action.ADDED:
                result.pop(key, None)
            else:
                result[key] = copy.deepcopy(record.old_value)
        elif isinstance(record, Mapping):
            current = result.get(key)
            if not isinstance(current, Mapping):
                raise InvalidStateError(
                    "Nested delta reverted on a non-mapping field",
                    details={"key": key, "found": type(current).__name__},
                )
            result[key] = revert_delta(current, record)
        else:
            raise InvalidStateError(
                "Malformed delta entry", details={"key": key, "entry": repr(record)}
            )
    return result


def delta_to_dict(delta: Mapping[Any, Any]) -> dict[Any, Any]:
    """Encode a delta as plain dicts/strings, e.g. for JSON storage."""
    encoded: dict[Any, Any] = {}
    for key, record in delta.items():
        if isinstance(record, Change):
            encoded[key] = record.to_dict()
        else:
            encoded[key] = delta_to_dict(record)
    return encoded


def delta_from_dict(data: Mapping[Any, Any]) -> Delta:
    """Inverse of :func:`delta_to_dict`."""
    decoded: Delta = {}
    for key, record in data.items():
        if not isinstance(record, Mapping):
            raise InvalidStateError(
                "Malformed delta entry", details={"key": key, "entry": repr(record)}
            )
        if isinstance(record.get("action"), str):
            decoded[key] = Change.from_dict(record)
        else:
            decoded[key] = delta_from_dict(record)
    return decoded


# Internals


def _diff(old: Mapping[Any, Any], new: Mapping[Any, Any]) -> Delta:
    delta: Delta = {}
    for key in _sorted_keys(old.keys() | new.keys()):
        if key not in old:
            delta[key] = _added(new[key])
        elif key not in new:
            delta[key] = Change.removed(copy.deepcopy(old[key]))
        else:
            record = _compare(old[key], new[key])
            if record is not None:
                delta[key] = record
    return delta


def _compare(old_value: Any, new_value: Any) -> Any:
    if isinstance(old_value, Mapping) and isinstance(new_value, Mapping):
        nested = _diff(old_value, new_value)
        return nested or None
    if old_value == new_value:
        return None
    return Change.modified(copy.deepcopy(old_value), copy.deepcopy(new_value))


def _added(value: Any) -> Change:
    if isinstance(value, Mapping):
        return Change.added({key: _added(value[key]) for key in _sorted_keys(value)})
    return Change.added(copy.deepcopy(value))


def _is_added_tree(value: Any) -> bool:
    return isinstance(value, Mapping) and all(
        isinstance(child, Change) for child in value.values()
    )


def _materialize(value: Any) -> Any:
    # value held by an ``added`` record: a tree of added leaves or a plain value
    if isinstance(value, Mapping):
        return {key: _materialize(child.value) for key, child in value.items()}
    return copy.deepcopy(value)


def _after(record: Change) -> Any:
    if record.action == Action.ADDED:
        return _materialize(record.value)
    return copy.deepcopy(record.value)


def _fold_chain(chain: list[Any]) -> Any:
    if all(not isinstance(record, Change) for record in chain):
        nested = merge(chain)
        return nested or None

    earliest_old: Any = _UNSET
    pending: list[Mapping[Any, Any]] = []
    current: Change | None = None

    for record in chain:
        if isinstance(record, Change):
            if earliest_old is _UNSET and record.action != Action.ADDED:
                old_value = record.old_value
                for nested in reversed(pending):
                    old_value = revert_delta(old_value, nested)
                earliest_old = old_value
            pending = []
            current = record
        elif current is None:
            pending.append(record)
        elif current.action == Action.REMOVED:
            raise InvalidStateError(
                "Nested delta follows a removal of the same field",
                details={"chain_length": len(chain)},
            )
        else:
            updated = apply_delta(_after(current), record)
            if current.action == Action.ADDED:
                current = _added(updated)
            else:
                current = Change.modified(current.old_value, updated)

    if current.action == Action.ADDED:
        return current
    old_value = current.old_value if earliest_old is _UNSET else earliest_old
    if current.action == Action.REMOVED:
        return Change.removed(old_value)
    if old_value == current.value:
        return None
    return Change.modified(old_value, current.value)


def _sorted_keys(keys: Iterable[Any]) -> list[Any]:
    try:
        return sorted(keys)
    except TypeError:
        return sorted(keys, key=repr)


def _require_mapping(value: Any, name: str) -> None:
    if not isinstance(value, Mapping):
        raise InvalidStateError(
            f"{name} must be a mapping", details={"type": type(value).__name__}
        )
