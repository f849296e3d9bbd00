"""Builds the uniform JSON envelope from the app's settings."""

from typing import Any

from fastapi import Request

from teguh_api.auth.gate import ApiKeyPrincipal, Principal
from teguh_api.config import Settings
from teguh_api.models.responses import Envelope, ErrorEnvelope, QuotaBlock


class Responder:
    """Envelope factory; the ``creator`` field comes from settings, not globals."""

    def __init__(self, settings: Settings):
        self._creator = settings.creator

    def success(
        self,
        message: str,
        data: Any = None,
        principal: Principal | None = None,
        status: bool = True,
    ) -> Envelope:
        quota = principal.quota.to_block() if isinstance(principal, ApiKeyPrincipal) else None
        return Envelope(
            status=status,
            creator=self._creator,
            message=message,
            data=data,
            quota=quota,
        )

    def error(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
        request_id: str | None = None,
        quota: QuotaBlock | None = None,
    ) -> ErrorEnvelope:
        return ErrorEnvelope(
            creator=self._creator,
            message=message,
            code=code,
            details=details,
            request_id=request_id,
            quota=quota,
        )


def get_responder(request: Request) -> Responder:
    return request.app.state.responder
