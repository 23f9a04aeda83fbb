"""Shared fixtures: a controllable clock and both store backends."""
import fakeredis
import fakeredis.aioredis
import pytest

from deltasync.store.memory_store import MemoryStore
from deltasync.store.redis_store import RedisStore
from deltasync.utils.time import Clock, TimeUnit


class FakeClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        self.current = start

    def now(self, unit: TimeUnit = TimeUnit.SECOND) -> int:
        if unit == TimeUnit.MILLISECOND:
            return self.current * 1000
        return self.current

    def advance(self, seconds: int) -> None:
        self.current += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def redis_client():
    return fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer())


@pytest.fixture
def memory_store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def redis_store(redis_client, clock):
    return RedisStore(redis_client, clock=clock)


@pytest.fixture(params=["memory", "redis"])
def store(request, clock):
    if request.param == "memory":
        return MemoryStore(clock=clock)
    client = fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer())
    return RedisStore(client, clock=clock)
