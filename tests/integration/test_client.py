"""Integration tests for the client against a mocked HTTP transport."""

from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest

from pubg_api import PubgApi
from pubg_api.core.hooks import RequestHook
from pubg_api.core.models import ApiRequest
from pubg_api.errors import (
    APIError,
    ClientClosedError,
    ConfigurationError,
    TransportError,
)
from pubg_api.observability import RequestMetrics
from pubg_api.observability.logging import JSONFormatter, LoggingHook
from pubg_api.patterns.rate_limiter import LimiterState


class FakeApi:
    """Records requests and answers like the PUBG API."""

    def __init__(self, remaining: int | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self.remaining = remaining
        self.status = 200
        self.body: object = {"data": []}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        headers = {"Content-Type": "application/vnd.api+json"}
        if self.remaining is not None and request.url.host == "api.pubg.com":
            headers["X-RateLimit-Remaining"] = str(self.remaining)
        return httpx.Response(self.status, content=json.dumps(self.body), headers=headers)


@pytest.fixture()
def fake() -> FakeApi:
    return FakeApi()


@pytest.fixture()
async def api(fake: FakeApi):
    client = PubgApi("secret-key", transport=httpx.MockTransport(fake))
    yield client
    await client.aclose()


class TestRequests:
    @pytest.mark.asyncio
    async def test_search_players_builds_request(self, api: PubgApi, fake: FakeApi) -> None:
        fake.body = {"data": [{"type": "player", "id": "account.1"}]}
        result = await api.search_players({"player_names": ["alpha", "beta"]})

        assert result["data"][0]["id"] == "account.1"
        sent = fake.requests[0]
        assert sent.url.path == "/shards/steam/players"
        assert sent.url.params["filter[playerNames]"] == "alpha,beta"
        assert sent.headers["Authorization"] == "Bearer secret-key"
        assert sent.headers["Accept"] == "application/vnd.api+json"

    @pytest.mark.asyncio
    async def test_shard_override_and_ids(self, api: PubgApi, fake: FakeApi) -> None:
        await api.load_match_by_id("m-1", shard="kakao")
        await api.load_player_by_id("account.9")
        assert fake.requests[0].url.path == "/shards/kakao/matches/m-1"
        assert fake.requests[1].url.path == "/shards/steam/players/account.9"

    @pytest.mark.asyncio
    async def test_load_matches_is_deprecated(self, api: PubgApi, fake: FakeApi) -> None:
        with pytest.warns(DeprecationWarning):
            await api.load_matches({"game_mode": "squad", "limit": 5})
        assert fake.requests[0].url.params["filter[gameMode]"] == "squad"
        assert fake.requests[0].url.params["page[limit]"] == "5"

    @pytest.mark.asyncio
    async def test_set_api_key(self, api: PubgApi, fake: FakeApi) -> None:
        api.set_api_key("rotated")
        await api.request_api("steam", "players", {"filter[playerIds]": "a"})
        assert fake.requests[0].headers["Authorization"] == "Bearer rotated"

    @pytest.mark.asyncio
    async def test_api_key_from_environment(
        self, fake: FakeApi, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("PUBG_API_KEY", "from-env")
        async with PubgApi(transport=httpx.MockTransport(fake)) as client:
            await client.load_player_by_id("account.1")
        assert fake.requests[0].headers["Authorization"] == "Bearer from-env"

    @pytest.mark.asyncio
    async def test_telemetry_and_status_skip_limiter(self, api: PubgApi, fake: FakeApi) -> None:
        fake.body = [{"_T": "LogMatchStart"}]
        events = await api.load_telemetry(
            "https://telemetry-cdn.pubg.com/bluehole-pubg/steam/2024/01/01/telemetry.json"
        )
        assert events == [{"_T": "LogMatchStart"}]
        assert "Authorization" not in fake.requests[0].headers

        fake.body = {"data": {"type": "status", "id": "pubg-api"}}
        status = await api.health_status()
        assert status["data"]["id"] == "pubg-api"
        assert fake.requests[1].url.path == "/status"
        assert api.rate_limiter.remaining == 10

    @pytest.mark.asyncio
    async def test_relative_telemetry_path(self, api: PubgApi, fake: FakeApi) -> None:
        fake.body = []
        await api.load_telemetry("/bluehole-pubg/x.json")
        assert str(fake.requests[0].url) == "https://telemetry-cdn.pubg.com/bluehole-pubg/x.json"


class TestErrors:
    @pytest.mark.asyncio
    async def test_error_status_raises_api_error(self, api: PubgApi, fake: FakeApi) -> None:
        fake.status = 401
        fake.body = {"errors": [{"title": "Unauthorized"}]}
        with pytest.raises(APIError) as info:
            await api.load_player_by_id("account.1")
        assert info.value.status_code == 401
        assert info.value.payload == {"errors": [{"title": "Unauthorized"}]}

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self) -> None:
        def _refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with PubgApi("k", transport=httpx.MockTransport(_refuse)) as client:
            with pytest.raises(TransportError) as info:
                await client.load_player_by_id("account.1")
            assert isinstance(info.value.__cause__, httpx.ConnectError)
            assert client.rate_limiter.remaining == 9

    def test_invalid_options_raise_at_construction(self) -> None:
        with pytest.raises(ConfigurationError):
            PubgApi("k", {"async_type": "observable"})
        with pytest.raises(ConfigurationError):
            PubgApi("k", {"token_rate": 0})
        with pytest.raises(ConfigurationError):
            PubgApi("k", {"token_rate": True})

    @pytest.mark.asyncio
    async def test_closed_client_rejects_requests(self, fake: FakeApi) -> None:
        client = PubgApi("k", transport=httpx.MockTransport(fake))
        await client.aclose()
        with pytest.raises(ClientClosedError):
            await client.load_player_by_id("account.1")

    @pytest.mark.asyncio
    async def test_client_closed_after_admission(self, fake: FakeApi) -> None:
        client = PubgApi("k", transport=httpx.MockTransport(fake))

        class _CloseFirst(RequestHook):
            async def before_request(self, request: ApiRequest) -> None:
                await client.aclose()

        client.scheduler.add_hook(_CloseFirst())
        with pytest.raises(ClientClosedError):
            await client.load_player_by_id("account.1")
        assert fake.requests == []


class TestRateLimiting:
    @pytest.mark.asyncio
    async def test_server_remaining_drives_queueing(self, fake: FakeApi, settle) -> None:
        fake.remaining = 2
        async with PubgApi("k", transport=httpx.MockTransport(fake)) as client:
            await client.load_player_by_id("a")
            assert client.rate_limiter.remaining == 2

            fake.remaining = None
            await client.load_player_by_id("b")
            await client.load_player_by_id("c")
            assert client.rate_limiter.remaining == 0

            queued = asyncio.ensure_future(client.load_player_by_id("d"))
            await settle()
            assert not queued.done()
            assert client.rate_limiter.state == LimiterState.EXHAUSTED
            assert len(fake.requests) == 3

            client.set_rate_limiting(False)
            await queued
            assert len(fake.requests) == 4

    @pytest.mark.asyncio
    async def test_defer_requests_false_disables_limiter(self, fake: FakeApi) -> None:
        fake.remaining = 0
        async with PubgApi(
            "k", {"defer_requests": False}, transport=httpx.MockTransport(fake)
        ) as client:
            assert client.rate_limiter.state == LimiterState.DISABLED
            await asyncio.gather(*(client.load_player_by_id(str(i)) for i in range(5)))
        assert len(fake.requests) == 5

    @pytest.mark.asyncio
    async def test_clients_do_not_share_budget(self, fake: FakeApi) -> None:
        async with (
            PubgApi("k", transport=httpx.MockTransport(fake)) as first,
            PubgApi("k", transport=httpx.MockTransport(fake)) as second,
        ):
            await first.load_player_by_id("a")
            assert first.rate_limiter.remaining == 9
            assert second.rate_limiter.remaining == 10
            assert first.options is not second.options

    @pytest.mark.asyncio
    async def test_admission_timeout_option(self, fake: FakeApi) -> None:
        async with PubgApi(
            "k", {"admission_timeout": 0.01}, transport=httpx.MockTransport(fake)
        ) as client:
            client.rate_limiter.update(0)
            with pytest.raises(TimeoutError):
                await client.load_player_by_id("a")
        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_close_fails_queued_requests(self, fake: FakeApi, settle) -> None:
        client = PubgApi("k", transport=httpx.MockTransport(fake))
        client.rate_limiter.update(0)
        pending = asyncio.ensure_future(client.load_player_by_id("a"))
        await settle()

        await client.aclose()
        with pytest.raises(ClientClosedError):
            await pending
        assert not client.rate_limiter.refill_running


class TestAsyncType:
    @pytest.mark.asyncio
    async def test_task_mode_returns_running_task(self, fake: FakeApi) -> None:
        async with PubgApi(
            "k", {"async_type": "task"}, transport=httpx.MockTransport(fake)
        ) as client:
            result = client.load_player_by_id("a")
            assert isinstance(result, asyncio.Task)
            assert await result == {"data": []}

    def test_task_mode_needs_event_loop(self) -> None:
        client = PubgApi("k", {"async_type": "task"})
        with pytest.raises(ConfigurationError):
            client.load_player_by_id("a")


class TestObservability:
    @pytest.mark.asyncio
    async def test_logging_hook(self, fake: FakeApi, caplog: pytest.LogCaptureFixture) -> None:
        fake.remaining = 7
        hook = LoggingHook()
        async with PubgApi("k", transport=httpx.MockTransport(fake), hooks=[hook]) as client:
            with caplog.at_level(logging.INFO, logger="pubg_api.requests"):
                await client.load_player_by_id("account.1")

        record = next(r for r in caplog.records if r.name == "pubg_api.requests")
        assert record.getMessage() == "GET steam/players/account.1 -> 200"
        assert record.rate_limit_remaining == 7
        payload = json.loads(JSONFormatter().format(record))
        assert payload["shard"] == "steam"
        assert payload["status_code"] == 200

    @pytest.mark.asyncio
    async def test_metrics_hook(self, api: PubgApi, fake: FakeApi) -> None:
        metrics = RequestMetrics(api.rate_limiter)
        api.scheduler.add_hook(metrics.create_hook())

        await api.load_player_by_id("a")
        fake.status = 429
        with pytest.raises(APIError):
            await api.load_player_by_id("b")

        assert metrics.count("success") == 1
        assert metrics.count("throttled") == 1
        exported = metrics.export()
        assert 'pubg_api_requests_total{outcome="success"} 1' in exported
        assert "pubg_api_rate_limit_remaining 8" in exported
        assert "pubg_api_rate_limit_queued 0" in exported

    @pytest.mark.asyncio
    async def test_logging_hook_ignores_missing_response(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        hook = LoggingHook()
        with caplog.at_level(logging.DEBUG, logger="pubg_api.requests"):
            await hook.after_request(ApiRequest(url="https://api.pubg.com/status"), None, None)
        assert [r for r in caplog.records if r.name == "pubg_api.requests"] == []
