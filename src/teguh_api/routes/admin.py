"""Admin endpoints (admin plan only)."""

from fastapi import APIRouter, Depends

from teguh_api.auth.dependencies import require_admin
from teguh_api.auth.gate import UserSession
from teguh_api.models.responses import Envelope
from teguh_api.models.user import PlanChangeRequest, UserActiveRequest
from teguh_api.services.account_service import AccountService, get_account_service
from teguh_api.services.responder import Responder, get_responder

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.put(
    "/users/{user_id}/plan",
    response_model=Envelope,
    summary="Change Plan",
    description="Move a user to another plan. All of the user's keys take the new daily limit.",
)
async def change_plan(
    user_id: str,
    body: PlanChangeRequest,
    admin: UserSession = Depends(require_admin),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    user = await account_service.change_plan(user_id, body.plan)
    return responder.success(f"Plan changed to {body.plan.value}", data={"user": user})


@router.put(
    "/users/{user_id}/active",
    response_model=Envelope,
    summary="Activate or Deactivate User",
)
async def set_user_active(
    user_id: str,
    body: UserActiveRequest,
    admin: UserSession = Depends(require_admin),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    user = await account_service.set_user_active(user_id, body.is_active)
    message = "User activated" if body.is_active else "User deactivated"
    return responder.success(message, data={"user": user})


@router.get(
    "/stats",
    response_model=Envelope,
    summary="Table Counts",
)
async def stats(
    admin: UserSession = Depends(require_admin),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    return responder.success("Database statistics", data=await account_service.stats())


@router.post(
    "/sessions/cleanup",
    response_model=Envelope,
    summary="Purge Expired Sessions",
)
async def cleanup_sessions(
    admin: UserSession = Depends(require_admin),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    purged = await account_service.cleanup_sessions()
    return responder.success(f"Removed {purged} expired sessions", data={"removed": purged})
