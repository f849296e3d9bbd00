"""Request id, quota headers and usage recording around every request."""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from teguh_api.auth.gate import ApiKeyPrincipal
from teguh_api.services.quota_ledger import QuotaDecision
from teguh_api.services.usage_recorder import UsageRecorder

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str | None:
    """Socket address, or the first X-Forwarded-For hop behind a trusted proxy."""
    if request.app.state.settings.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
        if forwarded:
            return forwarded
    return request.client.host if request.client else None


class UsageTrackingMiddleware(BaseHTTPMiddleware):
    """
    Runs after the authentication gate has stored its principal on
    ``request.state``. For API-key principals it adds the ``X-RateLimit-*``
    headers and appends a usage row carrying the handler's real status code.
    """

    def __init__(self, app: FastAPI):
        super().__init__(app)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            await self._record(request, 500, started)
            raise

        response.headers["X-Request-ID"] = request_id
        principal = getattr(request.state, "principal", None)
        if isinstance(principal, ApiKeyPrincipal):
            self._add_rate_limit_headers(response, principal.quota)
        await self._record(request, response.status_code, started)
        return response

    async def _record(self, request: Request, status_code: int, started: float) -> None:
        principal = getattr(request.state, "principal", None)
        if not isinstance(principal, ApiKeyPrincipal):
            return

        recorder: UsageRecorder = request.app.state.usage_recorder
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        await recorder.record(
            user_id=principal.user.id,
            api_key_id=principal.api_key.id,
            endpoint=request.url.path,
            status_code=status_code,
            response_time_ms=elapsed_ms,
            ip_address=client_ip(request),
        )

    def _add_rate_limit_headers(self, response: Response, quota: QuotaDecision) -> None:
        response.headers["X-RateLimit-Limit"] = str(quota.limit)
        response.headers["X-RateLimit-Remaining"] = str(quota.remaining)
        response.headers["X-RateLimit-Reset"] = str(quota.reset_at)
