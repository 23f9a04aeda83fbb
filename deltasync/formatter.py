"""Delta formatting strategies."""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from deltasync.delta import Action, Change


class DeltaFormatter(ABC):
    """Turns a delta into whatever shape a consumer wants to receive."""

    @abstractmethod
    def format(self, delta: Mapping[Any, Any], metadata: Mapping[str, Any] | None = None) -> Any:
        """Format ``delta``, attaching ``metadata`` (e.g. context_id, version)."""


class DefaultFormatter(DeltaFormatter):
    """Flattens a nested delta into one record per changed leaf.

    Each record carries ``key_path`` (keys from the root to the leaf),
    ``action``, ``value`` for added/modified leaves, ``old_value`` for
    modified/removed leaves, plus every metadata entry.

    Example:
        >>> DefaultFormatter().format(
        ...     {"prefs": {"theme": Change.modified("light", "dark")}},
        ...     {"context_id": "user:369"},
        ... )
        [{'key_path': ['prefs', 'theme'], 'action': 'modified',
          'value': 'dark', 'old_value': 'light', 'context_id': 'user:369'}]
    """

    def format(
        self, delta: Mapping[Any, Any], metadata: Mapping[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        self._flatten(delta, [], dict(metadata or {}), records)
        return records

    def _flatten(
        self,
        delta: Mapping[Any, Any],
        path: list[Any],
        metadata: dict[str, Any],
        records: list[dict[str, Any]],
    ) -> None:
        for key, entry in delta.items():
            key_path = [*path, key]
            if isinstance(entry, Change):
                if (
                    entry.action == Action.ADDED
                    and isinstance(entry.value, Mapping)
                    and entry.value
                ):
                    self._flatten(entry.value, key_path, metadata, records)
                else:
                    records.append(self._leaf(key_path, entry, metadata))
            else:
                self._flatten(entry, key_path, metadata, records)

    @staticmethod
    def _leaf(key_path: list[Any], change: Change, metadata: dict[str, Any]) -> dict[str, Any]:
        record: dict[str, Any] = {"key_path": key_path, "action": change.action.value}
        if change.action != Action.REMOVED:
            record["value"] = change.value
        if change.action != Action.ADDED:
            record["old_value"] = change.old_value
        record.update(metadata)
        return record
