"""Value objects passed through the request pipeline.

:class:`ApiRequest` describes one outgoing GET; :class:`ApiResponse` is
the raw transport result before JSON decoding.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pubg_api.errors import APIError, ParseError

REMAINING_HEADER = "X-RateLimit-Remaining"
LIMIT_HEADER = "X-RateLimit-Limit"
RESET_HEADER = "X-RateLimit-Reset"


@dataclass(frozen=True)
class ApiRequest:
    """A single GET against the API or the telemetry CDN."""

    url: str
    params: dict[str, str] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    shard: str | None = None
    route: str | None = None

    @property
    def label(self) -> str:
        """Short human-readable identifier used in log lines."""
        if self.shard and self.route:
            return f"{self.shard}/{self.route}"
        return self.route or self.url


@dataclass(frozen=True)
class ApiResponse:
    """Status, headers and undecoded body of a completed request."""

    status_code: int
    headers: Mapping[str, str]
    text: str

    @property
    def rate_limit_remaining(self) -> int | None:
        """Requests left in the current window, or ``None`` if not reported."""
        return _int_header(self.headers, REMAINING_HEADER)

    @property
    def rate_limit_limit(self) -> int | None:
        return _int_header(self.headers, LIMIT_HEADER)

    @property
    def rate_limit_reset(self) -> datetime | None:
        """When the window resets, from the epoch-seconds reset header."""
        value = _int_header(self.headers, RESET_HEADER)
        if value is None:
            return None
        return datetime.fromtimestamp(value, UTC)

    def parse(self) -> Any:
        """Decode the body.

        Raises :class:`ParseError` for a body that is not JSON and
        :class:`APIError` (carrying the decoded body) for status >= 400.
        """
        try:
            payload = json.loads(self.text)
        except ValueError as exc:
            raise ParseError(self.status_code, self.text) from exc
        if self.status_code >= 400:
            raise APIError(self.status_code, payload)
        return payload


def _int_header(headers: Mapping[str, str], name: str) -> int | None:
    raw = headers.get(name)
    if raw is None:
        # httpx headers are case-insensitive; plain dicts are not.
        raw = next((v for k, v in headers.items() if k.lower() == name.lower()), None)
    if raw is None:
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None
