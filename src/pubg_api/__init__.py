"""pubg-api: asyncio client for the PUBG developer API.

Wraps the matches, players, telemetry and status endpoints and keeps
outgoing calls inside the key's per-minute request budget with a
client-side rate limiter that resynchronises from the server's
remaining-quota header.
"""

from pubg_api.config import ClientOptions
from pubg_api.core.client import PubgApi
from pubg_api.core.hooks import RequestHook
from pubg_api.errors import (
    AdmissionTimeoutError,
    APIError,
    ClientClosedError,
    ConfigurationError,
    ParseError,
    PubgApiError,
    TransportError,
)
from pubg_api.patterns.rate_limiter import LimiterState, RateLimiter, RateLimiterConfig

__version__ = "1.0.0"

__all__ = [
    "APIError",
    "AdmissionTimeoutError",
    "ClientClosedError",
    "ClientOptions",
    "ConfigurationError",
    "LimiterState",
    "ParseError",
    "PubgApi",
    "PubgApiError",
    "RateLimiter",
    "RateLimiterConfig",
    "RequestHook",
    "TransportError",
    "__version__",
]
