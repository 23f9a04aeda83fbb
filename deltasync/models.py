"""Data models for versioned contexts and their delta history."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from deltasync.delta import Delta, delta_from_dict, delta_to_dict


@dataclass
class Snapshot:
    """The current materialized state of a context."""

    context_id: Any
    state: dict[str, Any]
    version: int
    inserted_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "context_id": self.context_id,
            "state": self.state,
            "version": self.version,
            "inserted_at": self.inserted_at,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Snapshot":
        return cls(
            context_id=d["context_id"],
            state=d["state"],
            version=int(d["version"]),
            inserted_at=int(d["inserted_at"]),
        )


@dataclass
class DeltaRecord:
    """One entry of a context's delta history."""

    context_id: Any
    delta: Delta
    version: int
    inserted_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "context_id": self.context_id,
            "delta": delta_to_dict(self.delta),
            "version": self.version,
            "inserted_at": self.inserted_at,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "DeltaRecord":
        return cls(
            context_id=d["context_id"],
            delta=delta_from_dict(d["delta"]),
            version=int(d["version"]),
            inserted_at=int(d["inserted_at"]),
        )


@dataclass
class DeltaCount:
    """Length of a context's delta history."""

    context_id: Any
    count: int


@dataclass
class WriteResult:
    """Outcome of ``set``/``update``.

    ``delta`` is empty when the write was a no-op; ``version`` is then the
    unchanged current version (0 for a context that still does not exist).
    """

    context_id: Any
    state: dict[str, Any]
    version: int
    delta: Delta = field(default_factory=dict)
    inserted_at: int | None = None

    @property
    def changed(self) -> bool:
        return bool(self.delta)


class SyncAction(str, Enum):
    FULL_CONTEXT = "full_context"
    DELTA = "delta"
    NO_CHANGE = "no_change"


@dataclass
class SyncResult:
    """What a client holding a given version should receive."""

    action: SyncAction
    version: int
    snapshot: Snapshot | None = None
    delta: Delta | None = None


@dataclass
class RestoredContext:
    """State handed back by an external restore provider."""

    state: dict[str, Any]
    version: int


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass
class ListFilter:
    """Pagination and predicates for store enumeration.

    ``inserted_since`` keeps entries with ``inserted_at >= inserted_since``;
    ``inserted_before`` keeps entries with ``inserted_at < inserted_before``.
    """

    limit: int | None = None
    offset: int = 0
    order: SortOrder = SortOrder.ASC
    context_id: Any = None
    version: int | None = None
    inserted_since: int | None = None
    inserted_before: int | None = None
