"""
ASGI middleware for the books API.
"""

import anyio
import structlog
from fastapi import status
from fastapi.responses import JSONResponse

from api.models import ErrorResponse

logger = structlog.get_logger(__name__)


class RequestTimeoutMiddleware:
    """
    Bound the time spent producing a response.

    Requests still running after ``timeout`` seconds are cancelled and
    answered with 504. A timeout of 0 disables the bound. Once response
    headers have gone out the request can only be cut off.
    """

    def __init__(self, app, timeout: float):
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or not self.timeout:
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message):
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        with anyio.move_on_after(self.timeout) as cancel_scope:
            await self.app(scope, receive, send_wrapper)

        if not cancel_scope.cancelled_caught:
            return

        logger.warning(
            "Request timed out",
            method=scope["method"],
            path=scope["path"],
            timeout_seconds=self.timeout,
            response_started=response_started,
        )
        if not response_started:
            status_code = status.HTTP_504_GATEWAY_TIMEOUT
            response = JSONResponse(
                status_code=status_code,
                content=ErrorResponse(
                    error="Request timed out",
                    detail=f"No response within {self.timeout:g} seconds",
                    status_code=status_code,
                ).model_dump(),
            )
            await response(scope, receive, send)
