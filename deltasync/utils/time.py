"""Time sources used for timestamping snapshots and deltas."""
from __future__ import annotations

import time
from abc import ABC, abstractmethod
from enum import Enum


class TimeUnit(str, Enum):
    """Resolution of the timestamps recorded by a store."""

    SECOND = "second"
    MILLISECOND = "millisecond"


class Clock(ABC):
    """Injectable source of the current time."""

    @abstractmethod
    def now(self, unit: TimeUnit = TimeUnit.SECOND) -> int:
        """Return the current time as an integer in ``unit``."""


class SystemClock(Clock):
    """Wall-clock time from the operating system."""

    def now(self, unit: TimeUnit = TimeUnit.SECOND) -> int:
        if unit == TimeUnit.MILLISECOND:
            return time.time_ns() // 1_000_000
        return time.time_ns() // 1_000_000_000


_PER_SECOND = {TimeUnit.SECOND: 1, TimeUnit.MILLISECOND: 1000}


def convert(value: int, from_unit: TimeUnit, to_unit: TimeUnit) -> int:
    """Express a duration given in ``from_unit`` in ``to_unit``.

    Converting to a coarser unit rounds down.
    """
    return value * _PER_SECOND[to_unit] // _PER_SECOND[from_unit]
