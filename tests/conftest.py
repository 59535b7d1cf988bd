from __future__ import annotations

import pytest


class FakeRedis:
    """Stand-in for a ``redis.asyncio`` client."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.values: dict[str, str] = {}
        self.expiry: dict[str, int] = {}
        self.closed = False

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("redis is down")

    async def ping(self) -> bool:
        self._check()
        return True

    async def get(self, key: str) -> str | None:
        self._check()
        return self.values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._check()
        self.values[key] = value

    async def expire(self, key: str, seconds: int) -> None:
        self._check()
        self.expiry[key] = seconds

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def down_redis() -> FakeRedis:
    return FakeRedis(fail=True)
