"""Per-client-IP throttle middleware."""

import logging
import uuid
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from teguh_api.config import Settings
from teguh_api.errors.exceptions import TooManyRequestsError
from teguh_api.middleware.usage import client_ip
from teguh_api.services.rate_limit_service import RateLimitResult, RateLimitService
from teguh_api.services.responder import Responder

logger = logging.getLogger(__name__)


class IPRateLimitMiddleware(BaseHTTPMiddleware):
    """
    Blocks client addresses that exceed the per-minute request limit.

    This is abuse protection only. It runs before authentication and knows
    nothing about API keys or daily quotas.
    """

    # Paths to exclude from throttling
    EXCLUDED_PATHS = {
        "/health",
        "/docs",
        "/redoc",
        "/openapi.json",
    }

    def __init__(self, app: FastAPI):
        super().__init__(app)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        settings: Settings = request.app.state.settings
        if not settings.ip_rate_limit_enabled:
            return await call_next(request)

        address = client_ip(request) or "unknown"
        service: RateLimitService = request.app.state.ip_rate_limiter
        result = await service.check_and_increment(address)

        if not result.allowed:
            request_id = str(uuid.uuid4())
            logger.warning(
                "IP throttle exceeded for %s on %s",
                address,
                request.url.path,
                extra={"request_id": request_id},
            )
            return self._rejection(request, result, request_id)

        return await call_next(request)

    def _rejection(
        self,
        request: Request,
        result: RateLimitResult,
        request_id: str,
    ) -> JSONResponse:
        error = TooManyRequestsError(
            limit=result.limit,
            window_seconds=result.window_seconds,
            retry_after=result.retry_after,
        )
        responder: Responder = request.app.state.responder
        envelope = responder.error(
            code=error.error_code,
            message=error.message,
            details=error.details,
            request_id=request_id,
        )
        response = JSONResponse(
            status_code=error.status_code,
            content=envelope.model_dump(mode="json"),
        )
        response.headers["X-Request-ID"] = request_id
        response.headers["Retry-After"] = str(result.retry_after)
        return response
