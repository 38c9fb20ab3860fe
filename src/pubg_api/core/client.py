"""Async client for the PUBG developer API.

Ties together the options, the rate limiter and the request scheduler.
API routes (matches, players) are rate limited; the status endpoint and
the telemetry CDN are not, since they do not count against the key's
per-minute budget.

Example::

    async with PubgApi("<api key>", {"default_shard": "steam"}) as api:
        players = await api.search_players({"player_names": ["shroud"]})
        match = await api.load_match_by_id(match_id)
"""

from __future__ import annotations

import asyncio
import logging
import os
import warnings
from typing import TYPE_CHECKING, Any

import httpx

from pubg_api import params as param_maps
from pubg_api.config import build_options
from pubg_api.core.models import ApiRequest, ApiResponse
from pubg_api.core.scheduler import RequestScheduler
from pubg_api.errors import ClientClosedError, ConfigurationError, TransportError
from pubg_api.patterns.rate_limiter import RateLimiter, RateLimiterConfig

if TYPE_CHECKING:
    from collections.abc import Awaitable, Coroutine, Mapping

    from pubg_api.config import ClientOptions
    from pubg_api.core.hooks import RequestHook

logger = logging.getLogger(__name__)

API_CONTENT_TYPE = "application/vnd.api+json"

ROUTES = {
    "matches": "matches",
    "players": "players",
}


class PubgApi:
    """Rate-limited PUBG API client.

    Args:
        api_key: Developer API key.  Falls back to the ``PUBG_API_KEY``
            environment variable.
        options: A :class:`ClientOptions` or a dict of its fields.  Invalid
            values raise :class:`ConfigurationError` immediately.
        transport: Optional ``httpx`` transport (e.g. ``MockTransport``).
        hooks: :class:`RequestHook` instances run around each API call.
        http_client: Pre-configured ``httpx.AsyncClient``.  The caller keeps
            ownership and must close it.
    """

    def __init__(
        self,
        api_key: str | None = None,
        options: ClientOptions | dict[str, Any] | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        hooks: list[RequestHook] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._options = build_options(options)
        self._api_key: str | None = api_key or os.environ.get("PUBG_API_KEY") or None
        self._limiter = RateLimiter(
            RateLimiterConfig(
                enabled=self._options.defer_requests,
                token_rate=self._options.token_rate,
            )
        )
        self._scheduler = RequestScheduler(
            self._limiter, hooks, admission_timeout=self._options.admission_timeout
        )
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            transport=transport, timeout=self._options.request_timeout
        )
        self._closed = False
        logger.debug(
            "Client ready for shard %s (rate limiting %s, %d requests/min)",
            self._options.default_shard,
            "on" if self._options.defer_requests else "off",
            self._options.token_rate,
        )

    @property
    def options(self) -> ClientOptions:
        return self._options

    @property
    def default_shard(self) -> str:
        return self._options.default_shard

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._limiter

    @property
    def scheduler(self) -> RequestScheduler:
        return self._scheduler

    def set_api_key(self, api_key: str) -> None:
        self._api_key = api_key

    def set_rate_limiting(self, enabled: bool, token_rate: int | None = None) -> None:
        """Reconfigure rate limiting at runtime.

        Safe while requests are queued: disabling releases them, changing
        the rate applies from the next refill tick.
        """
        self._limiter.set_rate_limiting(enabled, token_rate)

    # ------------------------------------------------------------------
    # Core request path

    async def request_api(
        self,
        shard: str,
        route: str,
        params: Mapping[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """GET ``/shards/{shard}/{route}`` through the rate limiter.

        *params* are sent verbatim as query parameters.  *timeout* bounds
        the wait for a rate-limit token.  Returns the decoded JSON body.
        """
        self._check_open()
        request = ApiRequest(
            url=f"{self._options.api_url}/shards/{shard}/{route}",
            params=dict(params) if params else None,
            headers=self._headers(auth=True),
            shard=shard,
            route=route,
        )
        return await self._scheduler.schedule(request, self._send, timeout=timeout)

    async def _send(self, request: ApiRequest) -> ApiResponse:
        self._check_open()
        try:
            response = await self._http.get(
                request.url, params=request.params, headers=request.headers
            )
        except httpx.TransportError as exc:
            raise TransportError(f"GET {request.url} failed: {exc}") from exc
        return ApiResponse(
            status_code=response.status_code,
            headers=response.headers,
            text=response.text,
        )

    async def _get_unlimited(self, url: str) -> Any:
        self._check_open()
        request = ApiRequest(url=url, headers=self._headers(auth=False))
        response = await self._send(request)
        return response.parse()

    def _headers(self, auth: bool) -> dict[str, str]:
        headers = {"Accept": API_CONTENT_TYPE}
        if auth:
            headers["Authorization"] = f"Bearer {self._api_key or ''}"
        return headers

    def _check_open(self) -> None:
        if self._closed:
            raise ClientClosedError("Client is closed")

    def _wrap_async(self, coro: Coroutine[Any, Any, Any]) -> Awaitable[Any]:
        """Return *coro* as-is or scheduled as a task, per ``async_type``."""
        if self._options.async_type == "coroutine":
            return coro
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            coro.close()
            raise ConfigurationError(
                "async_type='task' requires a running event loop"
            ) from exc
        return loop.create_task(coro)

    # ------------------------------------------------------------------
    # Routes

    def load_matches(
        self, params: Mapping[str, Any] | None = None, shard: str | None = None
    ) -> Awaitable[Any]:
        """List matches, filtered by game mode, players or creation time.

        Deprecated upstream in favour of looking matches up through players.
        """
        warnings.warn(
            "load_matches is deprecated by the PUBG API; use search_players "
            "and load_match_by_id instead",
            DeprecationWarning,
            stacklevel=2,
        )
        return self._wrap_async(
            self.request_api(
                shard or self.default_shard,
                ROUTES["matches"],
                param_maps.map_params(params, param_maps.MATCHES),
            )
        )

    def search_players(
        self, params: Mapping[str, Any], shard: str | None = None
    ) -> Awaitable[Any]:
        """Look players up by ``player_names`` or ``player_ids``."""
        return self._wrap_async(
            self.request_api(
                shard or self.default_shard,
                ROUTES["players"],
                param_maps.map_params(params, param_maps.PLAYERS),
            )
        )

    def load_player_by_id(self, player_id: str, shard: str | None = None) -> Awaitable[Any]:
        return self._wrap_async(
            self.request_api(shard or self.default_shard, f"{ROUTES['players']}/{player_id}")
        )

    def load_match_by_id(self, match_id: str, shard: str | None = None) -> Awaitable[Any]:
        return self._wrap_async(
            self.request_api(shard or self.default_shard, f"{ROUTES['matches']}/{match_id}")
        )

    def load_telemetry(self, url: str) -> Awaitable[Any]:
        """Download a match's telemetry events.

        *url* is the asset URL from a match document, or a path on the
        telemetry CDN.  Telemetry is not rate limited.
        """
        if not url.startswith(("http://", "https://")):
            url = f"{self._options.telemetry_url}/{url.lstrip('/')}"
        return self._wrap_async(self._get_unlimited(url))

    def health_status(self) -> Awaitable[Any]:
        """Fetch the API status document.  Not rate limited."""
        return self._wrap_async(self._get_unlimited(f"{self._options.api_url}/status"))

    # ------------------------------------------------------------------
    # Lifecycle

    async def aclose(self) -> None:
        """Stop the refill task, fail queued requests and close HTTP."""
        if self._closed:
            return
        self._closed = True
        await self._limiter.aclose()
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> PubgApi:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
