"""Authentication and account self-service endpoints."""

from fastapi import APIRouter, Depends, Query, Request

from teguh_api.auth.dependencies import require_session, require_user
from teguh_api.auth.gate import ApiKeyPrincipal, UserSession
from teguh_api.middleware.usage import client_ip
from teguh_api.models.responses import Envelope
from teguh_api.models.user import (
    DeleteAccountRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from teguh_api.services.account_service import AccountService, get_account_service
from teguh_api.services.responder import Responder, get_responder

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=Envelope,
    status_code=201,
    summary="Register",
    description="Create an account on the free plan with a default API key.",
)
async def register(
    body: RegisterRequest,
    request: Request,
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    data = await account_service.register(
        email=body.email,
        password=body.password,
        full_name=body.full_name,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return responder.success("Registration successful", data=data)


@router.post(
    "/login",
    response_model=Envelope,
    summary="Login",
    description="Exchange e-mail and password for a session token.",
)
async def login(
    body: LoginRequest,
    request: Request,
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    data = await account_service.login(
        email=body.email,
        password=body.password,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return responder.success("Login successful", data=data)


@router.post(
    "/logout",
    response_model=Envelope,
    summary="Logout",
    description=(
        "Delete the session record. Tokens are stateless and stay valid until "
        "they expire."
    ),
)
async def logout(
    body: LogoutRequest | None = None,
    session: UserSession = Depends(require_session),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    session_id = (body.session_id if body else None) or session.session_id
    await account_service.logout(session_id)
    return responder.success("Logout successful")


@router.get(
    "/me",
    response_model=Envelope,
    summary="Current User",
    description="Profile, primary API key and today's usage. Accepts a token or an API key.",
)
async def me(
    principal: UserSession | ApiKeyPrincipal = Depends(require_user),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    data = await account_service.me(principal.user)
    return responder.success("User info retrieved", data=data, principal=principal)


@router.post(
    "/refresh",
    response_model=Envelope,
    summary="Refresh Token",
)
async def refresh(
    session: UserSession = Depends(require_session),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    token = account_service.refresh(session.user, session.session_id)
    return responder.success("Token refreshed", data={"token": token})


@router.put(
    "/profile",
    response_model=Envelope,
    summary="Update Profile",
    description="Change the display name and/or password (current password required).",
)
async def update_profile(
    body: ProfileUpdateRequest,
    session: UserSession = Depends(require_session),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    user = await account_service.update_profile(
        session.user,
        full_name=body.full_name,
        current_password=body.current_password,
        new_password=body.new_password,
    )
    return responder.success("Profile updated successfully", data={"user": user})


@router.get(
    "/check-email",
    response_model=Envelope,
    summary="Check Email",
)
async def check_email(
    email: str = Query(..., min_length=3, description="E-mail address to check"),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    available = await account_service.email_available(email)
    message = "Email is available" if available else "Email is already registered"
    return responder.success(message, data={"available": available})


@router.post(
    "/forgot-password",
    response_model=Envelope,
    summary="Forgot Password",
    description="Always answers generically; no e-mail is sent.",
)
async def forgot_password(
    body: ForgotPasswordRequest,
    responder: Responder = Depends(get_responder),
) -> Envelope:
    return responder.success("If the email exists, a reset link has been sent")


@router.post(
    "/reset-password",
    response_model=Envelope,
    summary="Reset Password",
    description="Not available until reset e-mails are sent.",
)
async def reset_password(
    body: ResetPasswordRequest,
    responder: Responder = Depends(get_responder),
) -> Envelope:
    return responder.success(
        "Password reset is not available yet. Please contact support.",
        status=False,
    )


@router.delete(
    "/account",
    response_model=Envelope,
    summary="Delete Account",
    description='Delete the account and everything it owns. Send confirm_text "delete".',
)
async def delete_account(
    body: DeleteAccountRequest,
    session: UserSession = Depends(require_session),
    account_service: AccountService = Depends(get_account_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    await account_service.delete_account(session.user, body.confirm_text)
    return responder.success("Account deleted successfully")
