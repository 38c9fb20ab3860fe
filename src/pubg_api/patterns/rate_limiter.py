"""Per-minute request budget with a FIFO admission queue.

The limiter grants one token per outgoing request.  While tokens remain,
:meth:`RateLimiter.defer` returns immediately; once the budget is spent,
callers queue up and are released in arrival order by a periodic refill
task.  Server-reported remaining quota (see :meth:`RateLimiter.update`)
overrides the local count so the two never drift far apart.

All state is mutated synchronously between awaits, so the event loop's
cooperative scheduling is the only serialisation needed.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pubg_api.errors import ClientClosedError, ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

SECONDS_PER_MINUTE = 60.0


class LimiterState(enum.Enum):
    DISABLED = "disabled"
    HAS_BUDGET = "has_budget"
    EXHAUSTED = "exhausted"


def _validate_rate(token_rate: int) -> None:
    if isinstance(token_rate, bool) or not isinstance(token_rate, int) or token_rate <= 0:
        raise ConfigurationError(f"token_rate must be a positive integer, got {token_rate!r}")


@dataclass(frozen=True)
class RateLimiterConfig:
    """Budget parameters."""

    enabled: bool = True
    token_rate: int = 10  # tokens per minute

    def __post_init__(self) -> None:
        _validate_rate(self.token_rate)

    @property
    def refill_interval(self) -> float:
        return SECONDS_PER_MINUTE / self.token_rate


@dataclass(eq=False)
class _Waiter:
    """A queued admission request."""

    future: asyncio.Future[None]
    cancelled: bool = False

    @property
    def live(self) -> bool:
        return not self.cancelled and not self.future.done()


class RateLimiter:
    """Async admission control over a per-minute token budget.

    The budget starts full (``token_rate`` tokens).  A background task
    calls :meth:`release` every ``60 / token_rate`` seconds; it is started
    by the first :meth:`defer` and stopped by disabling the limiter or by
    :meth:`aclose`.  At most one refill task exists at any time.

    Args:
        config: Initial budget parameters.
        sleep: Awaitable used by the refill task to wait between ticks.
            Defaults to :func:`asyncio.sleep`; tests substitute a fake.
    """

    def __init__(
        self,
        config: RateLimiterConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        config = config or RateLimiterConfig()
        self._enabled = config.enabled
        self._token_rate = config.token_rate
        self._interval = config.refill_interval
        self._remaining = config.token_rate
        self._waiters: deque[_Waiter] = deque()
        self._refill_task: asyncio.Task[None] | None = None
        self._sleep = sleep or asyncio.sleep
        self._closed = False

    @property
    def state(self) -> LimiterState:
        if not self._enabled:
            return LimiterState.DISABLED
        return LimiterState.HAS_BUDGET if self._remaining >= 1 else LimiterState.EXHAUSTED

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def token_rate(self) -> int:
        return self._token_rate

    @property
    def refill_interval(self) -> float:
        """Seconds between refill ticks."""
        return self._interval

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def queued(self) -> int:
        """Number of callers currently waiting for admission."""
        return sum(1 for w in self._waiters if w.live)

    @property
    def refill_running(self) -> bool:
        return self._refill_task is not None and not self._refill_task.done()

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Admission

    async def defer(self, timeout: float | None = None) -> None:
        """Wait until the caller may issue one request.

        Returns immediately when limiting is disabled, or when a token is
        free and nobody is queued ahead.  Otherwise suspends until a
        refill tick or :meth:`update` reaches this caller in FIFO order.

        Raises :class:`TimeoutError` if *timeout* seconds pass first; the
        caller's queue entry is removed and no token is spent.
        """
        if self._closed:
            raise ClientClosedError("Rate limiter is closed")
        if not self._enabled:
            return

        self._ensure_refill_task()
        if self._remaining >= 1 and not self._waiters:
            self._remaining -= 1
            return

        waiter = _Waiter(asyncio.get_running_loop().create_future())
        self._waiters.append(waiter)
        logger.debug(
            "Budget exhausted, queued request (%d waiting, next tick in %.2fs)",
            len(self._waiters),
            self._interval,
        )
        try:
            await asyncio.wait_for(waiter.future, timeout)
        except TimeoutError:
            # Granted in the same loop iteration the timeout fired.
            if waiter.future.done() and not waiter.future.cancelled():
                self._remaining += 1
            self._discard(waiter)
            raise
        except asyncio.CancelledError:
            self._discard(waiter)
            raise

    def finish(self) -> bool:
        """Grant the oldest queued caller one token.

        Returns ``False`` without touching the budget when the queue is
        empty or no token is available.
        """
        if self._remaining < 1:
            return False
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.live:
                continue
            self._remaining -= 1
            waiter.future.set_result(None)
            return True
        return False

    def release(self) -> None:
        """Run one refill tick.

        Grants queued callers while tokens last, then adds one token for
        the next interval.  The budget never refills past ``token_rate``.
        """
        granted = 0
        while self.finish():
            granted += 1
        if self._remaining < self._token_rate:
            self._remaining += 1
        if granted or self._waiters:
            logger.debug(
                "Refill tick granted %d request(s); %d remaining, %d queued",
                granted,
                self._remaining,
                len(self._waiters),
            )

    def update(self, remaining: int) -> None:
        """Resynchronise with the server-reported remaining quota.

        The server value replaces the local prediction.  Negative values
        are clamped to zero.  Queued callers are granted immediately if
        the new value leaves room for them.
        """
        self._remaining = max(0, int(remaining))
        while self.finish():
            pass

    # ------------------------------------------------------------------
    # Reconfiguration

    def set_rate_limiting(self, enabled: bool, token_rate: int | None = None) -> None:
        """Enable/disable limiting and optionally change the token rate.

        A new rate applies from the next scheduled tick; the tick already
        pending keeps its old delay.  Disabling grants every queued caller
        at once.  Raises :class:`ConfigurationError` for a bad *token_rate*.
        """
        if token_rate is not None:
            _validate_rate(token_rate)
            self._token_rate = token_rate
            self._interval = SECONDS_PER_MINUTE / token_rate

        was_enabled = self._enabled
        self._enabled = bool(enabled)

        if self._enabled and not was_enabled:
            self._start_refill_in_running_loop()
        elif was_enabled and not self._enabled:
            self._stop_refill()
            self._grant_all()

        logger.info(
            "Rate limiting %s: %d tokens/min, refill every %.2fs",
            "enabled" if self._enabled else "disabled",
            self._token_rate,
            self._interval,
        )

    async def aclose(self) -> None:
        """Stop the refill task and fail any callers still queued."""
        if self._closed:
            return
        self._closed = True
        task = self._stop_refill()
        while self._waiters:
            waiter = self._waiters.popleft()
            if waiter.live:
                waiter.future.set_exception(
                    ClientClosedError("Client closed while waiting for admission")
                )
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    # ------------------------------------------------------------------

    def _ensure_refill_task(self) -> None:
        if self._closed or self.refill_running:
            return
        self._refill_task = asyncio.get_running_loop().create_task(
            self._refill_loop(), name="pubg-api-refill"
        )

    def _start_refill_in_running_loop(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # Outside an event loop the first defer() starts the task.
            return
        self._ensure_refill_task()

    def _discard(self, waiter: _Waiter) -> None:
        waiter.cancelled = True
        with contextlib.suppress(ValueError):
            self._waiters.remove(waiter)

    def _stop_refill(self) -> asyncio.Task[None] | None:
        task, self._refill_task = self._refill_task, None
        if task is not None and not task.done():
            task.cancel()
        return task

    def _grant_all(self) -> None:
        released = 0
        while self._waiters:
            waiter = self._waiters.popleft()
            if waiter.live:
                waiter.future.set_result(None)
                released += 1
        if released:
            logger.debug("Released %d queued request(s) on disable", released)

    async def _refill_loop(self) -> None:
        while True:
            # Read on every pass so a new rate applies from the next tick.
            await self._sleep(self._interval)
            self.release()
