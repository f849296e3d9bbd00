"""Account service: registration, login, profile, API keys and admin operations."""

import logging

from fastapi import Request

from teguh_api.auth.tokens import TokenService, hash_password, new_session_id, verify_password
from teguh_api.config import Plan, Settings, get_plan_config
from teguh_api.errors.exceptions import (
    APIKeyLimitReachedError,
    APIKeyNotFoundError,
    InactiveAccountError,
    InvalidCredentialError,
    UserNotFoundError,
    ValidationError,
)
from teguh_api.models.api_key import ApiKeyOut
from teguh_api.models.usage import DailyUsage, UsageReport
from teguh_api.models.user import AuthData, MeData, TodayUsage, UserOut
from teguh_api.services.quota_ledger import QuotaLedger
from teguh_api.services.usage_recorder import UsageRecorder
from teguh_api.storage.credential_store import CredentialStore
from teguh_api.storage.tables import ApiKeyRecord, UserRecord

logger = logging.getLogger(__name__)

DEFAULT_KEY_NAME = "Default API Key"


class AccountService:
    """Service for account and API key operations."""

    def __init__(
        self,
        store: CredentialStore,
        ledger: QuotaLedger,
        recorder: UsageRecorder,
        tokens: TokenService,
        settings: Settings,
    ):
        self._store = store
        self._ledger = ledger
        self._recorder = recorder
        self._tokens = tokens
        self._settings = settings

    async def key_out(self, key: ApiKeyRecord) -> ApiKeyOut:
        """Owner's view of a key with its live quota."""
        quota = await self._ledger.peek(key.id)
        requests_today = quota.limit - quota.remaining if quota else key.requests_today
        return ApiKeyOut(
            id=key.id,
            name=key.name,
            key=key.key_value,
            is_active=key.is_active,
            daily_limit=key.daily_limit,
            requests_today=requests_today,
            created_at=key.created_at,
            expires_at=key.expires_at,
            quota=quota.to_block() if quota else None,
        )

    async def _primary_key(self, user_id: str) -> ApiKeyRecord | None:
        keys = await self._store.list_api_keys(user_id)
        return next((k for k in keys if k.is_active), keys[0] if keys else None)

    async def _start_session(
        self,
        user: UserRecord,
        ip_address: str | None,
        user_agent: str | None,
    ) -> tuple[str, str]:
        session_id = new_session_id()
        await self._store.create_session(session_id, user.id, ip_address, user_agent)
        return self._tokens.issue(user, session_id), session_id

    async def _auth_data(
        self,
        user: UserRecord,
        token: str,
        session_id: str,
        key: ApiKeyRecord | None,
    ) -> AuthData:
        return AuthData(
            user=UserOut.model_validate(user),
            token=token,
            session_id=session_id,
            api_key=key.key_value if key else None,
            api_key_info=await self.key_out(key) if key else None,
        )

    # Authentication

    async def register(
        self,
        email: str,
        password: str,
        full_name: str | None,
        ip_address: str | None,
        user_agent: str | None,
    ) -> AuthData:
        """
        Create a free-plan account with a default API key and open a session.

        Raises:
            EmailAlreadyRegisteredError: e-mail taken (case-insensitive)
        """
        session_id = new_session_id()
        user, key = await self._store.create_account(
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
            plan=Plan.FREE.value,
            key_name=DEFAULT_KEY_NAME,
            daily_limit=get_plan_config(Plan.FREE).daily_limit,
            expires_in_days=self._settings.default_key_expiry_days,
            session_id=session_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info("Registered user %s", user.id)
        token = self._tokens.issue(user, session_id)
        return await self._auth_data(user, token, session_id, key)

    async def login(
        self,
        email: str,
        password: str,
        ip_address: str | None,
        user_agent: str | None,
    ) -> AuthData:
        """
        Raises:
            InvalidCredentialError: unknown e-mail or wrong password
            InactiveAccountError: account deactivated
        """
        user = await self._store.find_user_by_email(email)
        if user is None:
            raise InvalidCredentialError(message="Invalid email or password")
        if not verify_password(password, user.password_hash):
            logger.warning("Failed login for user %s", user.id)
            raise InvalidCredentialError(message="Invalid email or password")
        if not user.is_active:
            raise InactiveAccountError(message="Account is deactivated. Please contact support.")

        token, session_id = await self._start_session(user, ip_address, user_agent)
        return await self._auth_data(user, token, session_id, await self._primary_key(user.id))

    async def logout(self, session_id: str | None) -> int:
        """Delete the session row if given, then purge stale sessions."""
        if session_id:
            await self._store.delete_session(session_id)
        purged = await self._store.cleanup_expired_sessions(self._settings.session_retention_days)
        if purged:
            logger.info("Purged %d expired sessions", purged)
        return purged

    async def me(self, user: UserRecord) -> MeData:
        key = await self._primary_key(user.id)
        key_info = await self.key_out(key) if key else None
        return MeData(
            user=UserOut.model_validate(user),
            api_key=key_info,
            usage=TodayUsage(
                total_requests=await self._recorder.requests_today(user.id),
                limit=key_info.daily_limit if key_info else get_plan_config(user.plan).daily_limit,
            ),
        )

    def refresh(self, user: UserRecord, session_id: str | None) -> str:
        return self._tokens.issue(user, session_id)

    async def update_profile(
        self,
        user: UserRecord,
        full_name: str | None,
        current_password: str | None,
        new_password: str | None,
    ) -> UserOut:
        """
        Raises:
            ValidationError: nothing to update, or the current password is wrong
        """
        fields: dict[str, str] = {}
        if full_name:
            fields["full_name"] = full_name
        if new_password:
            if not current_password or not verify_password(current_password, user.password_hash):
                raise ValidationError(message="Current password is incorrect")
            fields["password_hash"] = hash_password(new_password)
        if not fields:
            raise ValidationError(message="No fields to update")

        updated = await self._store.update_user(user.id, **fields)
        if updated is None:
            raise UserNotFoundError()
        return UserOut.model_validate(updated)

    async def email_available(self, email: str) -> bool:
        return await self._store.find_user_by_email(email) is None

    async def delete_account(self, user: UserRecord, confirm_text: str | None) -> None:
        """
        Remove the user with all sessions, keys and usage rows.

        Raises:
            ValidationError: ``confirm_text`` is not "delete"
            UserNotFoundError: the user was already gone
        """
        if (confirm_text or "").strip().lower() != "delete":
            raise ValidationError(message='Please type "delete" to confirm account deletion')
        if not await self._store.delete_user_cascade(user.id):
            raise UserNotFoundError()
        logger.info("Deleted account %s", user.id)

    # API keys

    async def list_keys(self, user: UserRecord) -> list[ApiKeyOut]:
        return [await self.key_out(key) for key in await self._store.list_api_keys(user.id)]

    async def create_key(
        self,
        user: UserRecord,
        name: str,
        expires_in_days: int | None,
    ) -> ApiKeyOut:
        """
        Raises:
            APIKeyLimitReachedError: the plan's key allowance is used up
        """
        config = get_plan_config(user.plan)
        if await self._store.count_api_keys(user.id) >= config.max_api_keys:
            raise APIKeyLimitReachedError(plan=user.plan, max_keys=config.max_api_keys)

        key = await self._store.create_api_key(
            user_id=user.id,
            name=name,
            daily_limit=config.daily_limit,
            expires_in_days=expires_in_days or self._settings.default_key_expiry_days,
        )
        logger.info("Created API key %s for user %s", key.id, user.id)
        return await self.key_out(key)

    async def set_key_active(self, user: UserRecord, key_id: str, is_active: bool) -> ApiKeyOut:
        key = await self._store.set_api_key_active(key_id, user.id, is_active)
        if key is None:
            raise APIKeyNotFoundError()
        return await self.key_out(key)

    async def delete_key(self, user: UserRecord, key_id: str) -> None:
        if not await self._store.delete_api_key(key_id, user.id):
            raise APIKeyNotFoundError()

    async def key_usage(self, user: UserRecord, key_id: str, days: int) -> list[DailyUsage]:
        key = await self._store.find_api_key_by_id(key_id)
        if key is None or key.user_id != user.id:
            raise APIKeyNotFoundError()
        return await self._recorder.stats_for_key(key_id, days)

    async def usage_report(self, user: UserRecord, days: int) -> UsageReport:
        return await self._recorder.report_for_user(user.id, days)

    # Admin

    async def change_plan(self, user_id: str, plan: Plan) -> UserOut:
        """Switch plans; every key of the user takes the new plan's daily limit."""
        daily_limit = get_plan_config(plan).daily_limit
        user = await self._store.set_user_plan(user_id, plan.value, daily_limit)
        if user is None:
            raise UserNotFoundError()
        logger.info("User %s moved to plan %s", user_id, plan.value)
        return UserOut.model_validate(user)

    async def set_user_active(self, user_id: str, is_active: bool) -> UserOut:
        user = await self._store.set_user_active(user_id, is_active)
        if user is None:
            raise UserNotFoundError()
        logger.info("User %s is_active=%s", user_id, is_active)
        return UserOut.model_validate(user)

    async def stats(self) -> dict[str, int]:
        return await self._store.table_counts()

    async def cleanup_sessions(self) -> int:
        return await self._store.cleanup_expired_sessions(self._settings.session_retention_days)


def get_account_service(request: Request) -> AccountService:
    """Get the account service built at startup."""
    return request.app.state.account_service
