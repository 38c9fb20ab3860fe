"""Client configuration.

:class:`ClientOptions` is validated by Pydantic at construction time so
bad settings fail fast instead of surfacing on the first request.  Each
client builds its own options object; no default instance is shared.
"""

from __future__ import annotations

import os
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pubg_api.errors import ConfigurationError

API_URL = "https://api.pubg.com"
TELEMETRY_URL = "https://telemetry-cdn.pubg.com"


class ClientOptions(BaseModel):
    """Options accepted by :class:`~pubg_api.core.client.PubgApi`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_shard: str = Field(default="steam", min_length=1)
    async_type: Literal["coroutine", "task"] = "coroutine"
    defer_requests: bool = True
    token_rate: int = Field(default=10, gt=0, strict=True)
    admission_timeout: float | None = Field(default=None, gt=0)
    request_timeout: float = Field(default=30.0, gt=0)
    api_url: str = API_URL
    telemetry_url: str = TELEMETRY_URL

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientOptions:
        """Build options from ``PUBG_*`` environment variables.

        Recognised variables: ``PUBG_DEFAULT_SHARD``, ``PUBG_TOKEN_RATE``
        and ``PUBG_DEFER_REQUESTS`` (``0``/``false`` disables limiting).
        Keyword arguments take precedence over the environment.
        """
        values: dict[str, Any] = {}
        if shard := os.environ.get("PUBG_DEFAULT_SHARD"):
            values["default_shard"] = shard
        if rate := os.environ.get("PUBG_TOKEN_RATE"):
            try:
                values["token_rate"] = int(rate)
            except ValueError as exc:
                raise ConfigurationError(
                    f"PUBG_TOKEN_RATE must be an integer, got {rate!r}"
                ) from exc
        if defer := os.environ.get("PUBG_DEFER_REQUESTS"):
            values["defer_requests"] = defer.strip().lower() not in {"0", "false", "no", "off"}
        values.update(overrides)
        return build_options(values)


def build_options(options: ClientOptions | dict[str, Any] | None) -> ClientOptions:
    """Coerce *options* into a fresh :class:`ClientOptions`.

    Raises :class:`ConfigurationError` when validation fails.
    """
    if isinstance(options, ClientOptions):
        return options.model_copy()
    try:
        return ClientOptions(**(options or {}))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid client options: {exc}") from exc
