"""User usage endpoints."""

from fastapi import APIRouter, Depends, Query

from teguh_api.auth.dependencies import require_user
from teguh_api.auth.gate import ApiKeyPrincipal, UserSession
from teguh_api.models.responses import Envelope
from teguh_api.services.account_service import AccountService, get_account_service
from teguh_api.services.responder import Responder, get_responder

router = APIRouter(prefix="/user", tags=["User"])


@router.get(
    "/usage",
    response_model=Envelope,
    summary="Get Usage",
    description="Per-day request totals across all of the user's keys, newest first.",
)
async def get_usage(
    days: int = Query(default=7, ge=1, le=90, description="Days to look back"),
    principal: UserSession | ApiKeyPrincipal = Depends(require_user),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    """
    Get usage statistics.

    The window covers today plus the previous ``days`` UTC days. When called
    with an API key, this request is itself counted.
    """
    report = await account_service.usage_report(principal.user, days)
    return responder.success("Usage statistics retrieved", data=report, principal=principal)
