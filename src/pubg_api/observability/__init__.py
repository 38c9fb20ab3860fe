"""Prometheus-format metrics for the PUBG API client.

Metrics exposed:
- pubg_api_requests_total: Completed API calls by outcome
- pubg_api_request_duration_seconds: Call duration histogram
- pubg_api_rate_limit_remaining: Tokens left in the local budget
- pubg_api_rate_limit_queued: Requests waiting for admission

Usage:
    from pubg_api.observability import RequestMetrics

    api = PubgApi(api_key)
    metrics = RequestMetrics(api.rate_limiter)
    api.scheduler.add_hook(metrics.create_hook())

    print(metrics.export())
"""

from __future__ import annotations

import time
from collections import defaultdict
from typing import TYPE_CHECKING

from pubg_api.core.hooks import RequestHook

if TYPE_CHECKING:
    from pubg_api.core.models import ApiRequest, ApiResponse
    from pubg_api.patterns.rate_limiter import RateLimiter


class RequestMetrics:
    """Collects request counters and limiter gauges."""

    def __init__(self, limiter: RateLimiter | None = None) -> None:
        self._limiter = limiter
        self._requests_total: dict[str, int] = defaultdict(int)
        self._duration_buckets = [0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        self._duration_observations: dict[str, list[float]] = defaultdict(list)
        self._start_times: dict[int, float] = {}

    def record_started(self, request: ApiRequest) -> None:
        self._start_times[id(request)] = time.monotonic()

    def record_completed(
        self, request: ApiRequest, response: ApiResponse | None, error: BaseException | None
    ) -> None:
        outcome = _outcome(response, error)
        self._requests_total[outcome] += 1
        started = self._start_times.pop(id(request), None)
        if started is not None:
            self._duration_observations[outcome].append(time.monotonic() - started)

    def count(self, outcome: str) -> int:
        return self._requests_total.get(outcome, 0)

    def export(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = [
            "# HELP pubg_api_requests_total Completed API calls by outcome",
            "# TYPE pubg_api_requests_total counter",
        ]
        for outcome, count in sorted(self._requests_total.items()):
            lines.append(f'pubg_api_requests_total{{outcome="{outcome}"}} {count}')

        lines.extend(
            [
                "",
                "# HELP pubg_api_request_duration_seconds API call duration in seconds",
                "# TYPE pubg_api_request_duration_seconds histogram",
            ]
        )
        for outcome, observations in sorted(self._duration_observations.items()):
            for bucket in self._duration_buckets:
                cumulative = sum(1 for obs in observations if obs <= bucket)
                lines.append(
                    f'pubg_api_request_duration_seconds_bucket{{outcome="{outcome}",le="{bucket}"}} {cumulative}'
                )
            lines.append(
                f'pubg_api_request_duration_seconds_bucket{{outcome="{outcome}",le="+Inf"}} {len(observations)}'
            )
            lines.append(
                f'pubg_api_request_duration_seconds_sum{{outcome="{outcome}"}} {sum(observations):.4f}'
            )
            lines.append(
                f'pubg_api_request_duration_seconds_count{{outcome="{outcome}"}} {len(observations)}'
            )

        if self._limiter is not None:
            lines.extend(
                [
                    "",
                    "# HELP pubg_api_rate_limit_remaining Tokens left in the local budget",
                    "# TYPE pubg_api_rate_limit_remaining gauge",
                    f"pubg_api_rate_limit_remaining {self._limiter.remaining}",
                    "",
                    "# HELP pubg_api_rate_limit_queued Requests waiting for admission",
                    "# TYPE pubg_api_rate_limit_queued gauge",
                    f"pubg_api_rate_limit_queued {self._limiter.queued}",
                ]
            )

        return "\n".join(lines) + "\n"

    def create_hook(self) -> RequestMetricsHook:
        return RequestMetricsHook(self)


class RequestMetricsHook(RequestHook):
    """RequestHook that feeds :class:`RequestMetrics`."""

    def __init__(self, metrics: RequestMetrics) -> None:
        self._metrics = metrics

    async def before_request(self, request: ApiRequest) -> None:
        self._metrics.record_started(request)

    async def after_request(
        self,
        request: ApiRequest,
        response: ApiResponse | None,
        error: BaseException | None,
    ) -> None:
        self._metrics.record_completed(request, response, error)


def _outcome(response: ApiResponse | None, error: BaseException | None) -> str:
    if error is not None or response is None:
        return "transport_error"
    if response.status_code == 429:
        return "throttled"
    if response.status_code >= 400:
        return "api_error"
    return "success"
