"""Structured JSON logging for the PUBG API client.

The library itself only emits records through module loggers; call
:func:`configure_logging` from your application to get JSON output.

Usage:
    from pubg_api.observability.logging import LoggingHook, configure_logging

    configure_logging(log_level="DEBUG", json_format=True)
    api = PubgApi(api_key, hooks=[LoggingHook()])
"""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pubg_api.core.hooks import RequestHook

if TYPE_CHECKING:
    from pubg_api.core.models import ApiRequest, ApiResponse

# Attributes every LogRecord carries; anything else came from extra={}.
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Outputs log records as JSON with timestamp, level, message, and any
    fields passed through ``extra``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    include_stdlib: bool = False,
) -> None:
    """Configure application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatter if True, plain text if False
        include_stdlib: Keep full verbosity for httpx and asyncio loggers
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, log_level.upper()))

    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    if not include_stdlib:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("asyncio").setLevel(logging.WARNING)


class LoggingHook(RequestHook):
    """Logs one line per API call with shard, route, status and duration."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self._logger = logger or logging.getLogger("pubg_api.requests")
        self._level = level
        self._started: dict[int, float] = {}

    async def before_request(self, request: ApiRequest) -> None:
        self._started[id(request)] = time.monotonic()

    async def after_request(
        self,
        request: ApiRequest,
        response: ApiResponse | None,
        error: BaseException | None,
    ) -> None:
        started = self._started.pop(id(request), None)
        duration_ms = (time.monotonic() - started) * 1000 if started is not None else None
        extra = {
            "shard": request.shard,
            "route": request.route,
            "duration_ms": duration_ms,
        }
        if error is not None:
            self._logger.warning("GET %s failed: %s", request.label, error, extra=extra)
            return
        if response is None:
            return
        extra["status_code"] = response.status_code
        extra["rate_limit_remaining"] = response.rate_limit_remaining
        self._logger.log(
            self._level, "GET %s -> %d", request.label, response.status_code, extra=extra
        )
