"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest

from pubg_api.patterns.rate_limiter import RateLimiter, RateLimiterConfig


async def settle(rounds: int = 10) -> None:
    """Let every ready task run until the loop is idle."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ManualClock:
    """Stand-in for :func:`asyncio.sleep` that only wakes on :meth:`tick`."""

    def __init__(self) -> None:
        self.delays: list[float] = []
        self._pending: list[asyncio.Future[None]] = []

    async def sleep(self, delay: float) -> None:
        self.delays.append(delay)
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._pending.append(fut)
        await fut

    @property
    def sleepers(self) -> int:
        """How many refill loops are currently waiting for a tick."""
        return sum(1 for f in self._pending if not f.done())

    async def tick(self) -> None:
        pending, self._pending = self._pending, []
        for fut in pending:
            if not fut.done():
                fut.set_result(None)
        await settle()


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
async def limiter(clock: ManualClock) -> AsyncIterator[RateLimiter]:
    rl = RateLimiter(RateLimiterConfig(token_rate=10), sleep=clock.sleep)
    yield rl
    await rl.aclose()


@pytest.fixture(name="settle")
def settle_fixture():
    return settle
