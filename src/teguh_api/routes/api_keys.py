"""API key management endpoints (session token required)."""

from fastapi import APIRouter, Depends, Query

from teguh_api.auth.dependencies import require_session
from teguh_api.auth.gate import UserSession
from teguh_api.models.api_key import ApiKeyCreateRequest
from teguh_api.models.responses import Envelope
from teguh_api.services.account_service import AccountService, get_account_service
from teguh_api.services.responder import Responder, get_responder

router = APIRouter(prefix="/api-keys", tags=["API Keys"])


@router.get(
    "",
    response_model=Envelope,
    summary="List API Keys",
    description="All keys of the caller, newest first, with live quota.",
)
async def list_api_keys(
    session: UserSession = Depends(require_session),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    keys = await account_service.list_keys(session.user)
    return responder.success("API keys retrieved", data={"api_keys": keys, "total": len(keys)})


@router.post(
    "",
    response_model=Envelope,
    status_code=201,
    summary="Create API Key",
    description="Create a key with the plan's daily limit. Each plan caps the number of keys.",
)
async def create_api_key(
    body: ApiKeyCreateRequest,
    session: UserSession = Depends(require_session),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    key = await account_service.create_key(session.user, body.name, body.expires_in_days)
    return responder.success("API key created successfully", data=key)


@router.post(
    "/{key_id}/revoke",
    response_model=Envelope,
    summary="Revoke API Key",
    description="Deactivate a key. Requests with it answer 403 afterwards.",
)
async def revoke_api_key(
    key_id: str,
    session: UserSession = Depends(require_session),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    key = await account_service.set_key_active(session.user, key_id, False)
    return responder.success("API key revoked", data=key)


@router.post(
    "/{key_id}/activate",
    response_model=Envelope,
    summary="Activate API Key",
)
async def activate_api_key(
    key_id: str,
    session: UserSession = Depends(require_session),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    key = await account_service.set_key_active(session.user, key_id, True)
    return responder.success("API key activated", data=key)


@router.delete(
    "/{key_id}",
    response_model=Envelope,
    summary="Delete API Key",
    description="Delete a key together with its usage history.",
)
async def delete_api_key(
    key_id: str,
    session: UserSession = Depends(require_session),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    await account_service.delete_key(session.user, key_id)
    return responder.success("API key deleted")


@router.get(
    "/{key_id}/usage",
    response_model=Envelope,
    summary="API Key Usage",
    description="Per-day request counts for one key, newest first.",
)
async def api_key_usage(
    key_id: str,
    days: int = Query(default=7, ge=1, le=90, description="Days to look back"),
    session: UserSession = Depends(require_session),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    daily = await account_service.key_usage(session.user, key_id, days)
    return responder.success("API key usage retrieved", data={"days": days, "daily": daily})
