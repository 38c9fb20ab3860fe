"""Request hooks: middleware for the request lifecycle.

Hooks let you inject cross-cutting logic such as logging or metrics
around every rate-limited API call without touching the client.

Usage::

    class TimingHook(RequestHook):
        async def before_request(self, request):
            print(f"-> {request.label}")

        async def after_request(self, request, response, error):
            print(f"<- {request.label} {response and response.status_code}")

    client = PubgApi(api_key, hooks=[TimingHook()])
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pubg_api.core.models import ApiRequest, ApiResponse


class RequestHook:
    """Base class for request hooks.

    Both methods are no-ops by default.  Hooks run after admission, so a
    hook never delays the rate limiter.
    """

    async def before_request(self, request: ApiRequest) -> None:
        """Called after admission, just before the request is sent.

        Raising here aborts the request; its token is still spent.
        """

    async def after_request(
        self,
        request: ApiRequest,
        response: ApiResponse | None,
        error: BaseException | None,
    ) -> None:
        """Called once the transport returns or fails.

        Exactly one of *response* and *error* is set.
        """
