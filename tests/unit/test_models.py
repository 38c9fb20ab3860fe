"""Unit tests for request/response value objects."""

from __future__ import annotations

from datetime import UTC, datetime

import httpx
import pytest

from pubg_api.core.models import ApiRequest, ApiResponse
from pubg_api.errors import APIError, ParseError


class TestApiResponse:
    def test_remaining_header_case_insensitive_dict(self) -> None:
        resp = ApiResponse(200, {"x-ratelimit-remaining": " 7 "}, "{}")
        assert resp.rate_limit_remaining == 7

    def test_remaining_header_from_httpx_headers(self) -> None:
        resp = ApiResponse(200, httpx.Headers({"X-RateLimit-Remaining": "3"}), "{}")
        assert resp.rate_limit_remaining == 3

    def test_missing_and_invalid_headers(self) -> None:
        assert ApiResponse(200, {}, "{}").rate_limit_remaining is None
        assert ApiResponse(200, {"X-RateLimit-Remaining": "n/a"}, "{}").rate_limit_remaining is None

    def test_limit_and_reset(self) -> None:
        resp = ApiResponse(
            200, {"X-RateLimit-Limit": "10", "X-RateLimit-Reset": "1700000000"}, "{}"
        )
        assert resp.rate_limit_limit == 10
        assert resp.rate_limit_reset == datetime.fromtimestamp(1700000000, UTC)
        assert ApiResponse(200, {}, "{}").rate_limit_reset is None

    def test_parse_success(self) -> None:
        assert ApiResponse(200, {}, '{"data": {"id": "m1"}}').parse() == {"data": {"id": "m1"}}

    def test_parse_error_status_keeps_payload(self) -> None:
        with pytest.raises(APIError) as info:
            ApiResponse(401, {}, '{"errors": [{"title": "Unauthorized"}]}').parse()
        assert info.value.payload == {"errors": [{"title": "Unauthorized"}]}

    def test_parse_malformed_body(self) -> None:
        with pytest.raises(ParseError):
            ApiResponse(200, {}, "not json").parse()

    def test_api_error_without_errors_array(self) -> None:
        assert APIError(500, ["unexpected"]).errors == []


class TestApiRequest:
    def test_label(self) -> None:
        assert ApiRequest(url="u", shard="steam", route="players").label == "steam/players"
        assert ApiRequest(url="https://cdn/x.json").label == "https://cdn/x.json"
