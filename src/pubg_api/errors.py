"""Exception hierarchy for the PUBG API client.

Every error raised by the client derives from :class:`PubgApiError` so
callers can catch the whole family in one place.  Nothing here is
retried automatically; retries are the caller's responsibility.
"""

from __future__ import annotations

from typing import Any


class PubgApiError(Exception):
    """Base class for all client errors."""


class ConfigurationError(PubgApiError, ValueError):
    """Raised at construction time for invalid options or rate parameters."""


class TransportError(PubgApiError):
    """Network-level failure such as a DNS error or a connection reset.

    The rate-limit token for the request has already been spent.
    """


class APIError(PubgApiError):
    """The API answered with an HTTP status of 400 or above.

    :attr:`payload` holds the decoded error document verbatim.
    """

    def __init__(self, status_code: int, payload: Any) -> None:
        super().__init__(f"API responded with HTTP {status_code}")
        self.status_code = status_code
        self.payload = payload

    @property
    def errors(self) -> list[dict[str, Any]]:
        """The ``errors`` array of a JSON:API error document, if present."""
        if isinstance(self.payload, dict):
            return list(self.payload.get("errors") or [])
        return []


class ParseError(PubgApiError):
    """The response body could not be decoded as JSON."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Malformed response body (HTTP {status_code})")
        self.status_code = status_code
        self.body = body


class AdmissionTimeoutError(PubgApiError, TimeoutError):
    """A request waited longer than its timeout for a rate-limit token."""


class ClientClosedError(PubgApiError):
    """The client was closed while a request was waiting for admission."""
