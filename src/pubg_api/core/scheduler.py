"""Request scheduler: admission, dispatch and quota feedback.

Every rate-limited call goes through :meth:`RequestScheduler.schedule`,
which obtains a token from the :class:`RateLimiter`, sends the request,
feeds the server's remaining-quota header back into the limiter and
finally decodes the body.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pubg_api.errors import AdmissionTimeoutError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from pubg_api.core.hooks import RequestHook
    from pubg_api.core.models import ApiRequest, ApiResponse
    from pubg_api.patterns.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class RequestScheduler:
    """Runs one outbound call behind the rate limiter.

    Admission and the network call are strictly sequential: the request is
    not issued until :meth:`RateLimiter.defer` returns.
    """

    def __init__(
        self,
        limiter: RateLimiter,
        hooks: list[RequestHook] | None = None,
        admission_timeout: float | None = None,
    ) -> None:
        self._limiter = limiter
        self._hooks = list(hooks or [])
        self._admission_timeout = admission_timeout

    @property
    def limiter(self) -> RateLimiter:
        return self._limiter

    @property
    def hooks(self) -> list[RequestHook]:
        return self._hooks

    def add_hook(self, hook: RequestHook) -> None:
        self._hooks.append(hook)

    async def schedule(
        self,
        request: ApiRequest,
        send: Callable[[ApiRequest], Awaitable[ApiResponse]],
        *,
        timeout: float | None = None,
    ) -> Any:
        """Admit, send and decode *request*.

        *timeout* bounds the wait for admission only (falling back to the
        scheduler default).  Raises :class:`AdmissionTimeoutError` when it
        expires; transport, API and parse errors propagate unchanged.
        """
        wait = timeout if timeout is not None else self._admission_timeout
        try:
            await self._limiter.defer(timeout=wait)
        except TimeoutError as exc:
            raise AdmissionTimeoutError(
                f"No rate-limit token for {request.label} within {wait}s"
            ) from exc

        for hook in self._hooks:
            await hook.before_request(request)

        try:
            response = await send(request)
        except Exception as exc:
            logger.debug("Request %s failed in transport: %s", request.label, exc)
            await self._run_after_hooks(request, None, exc)
            raise

        remaining = response.rate_limit_remaining
        if remaining is not None:
            self._limiter.update(remaining)

        await self._run_after_hooks(request, response, None)
        return response.parse()

    async def _run_after_hooks(
        self,
        request: ApiRequest,
        response: ApiResponse | None,
        error: BaseException | None,
    ) -> None:
        for hook in self._hooks:
            await hook.after_request(request, response, error)
