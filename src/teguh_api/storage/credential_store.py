"""Credential store: the single owner of users, keys, sessions and usage rows.

Every other component reads and writes durable state through this class.
Driver and SQLAlchemy errors never escape it; they surface as
``StoreUnavailableError`` after the transaction has been rolled back.
"""

import logging
import secrets
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from teguh_api.errors.exceptions import EmailAlreadyRegisteredError, StoreUnavailableError
from teguh_api.models.usage import DailyUsage
from teguh_api.storage.database import DatabaseManager
from teguh_api.storage.tables import (
    ApiKeyRecord,
    PasswordResetTokenRecord,
    SessionRecord,
    UsageLogRecord,
    UserRecord,
)
from teguh_api.utils.timeutils import now_utc, utc_today

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "tg_"

# Child tables first; the users row goes last.
CASCADE_ORDER = (SessionRecord, PasswordResetTokenRecord, UsageLogRecord, ApiKeyRecord)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def generate_key_value() -> str:
    return f"{API_KEY_PREFIX}{secrets.token_hex(24)}"


def _as_date(value: Any) -> date:
    # SQLite returns DATE(...) as text, PostgreSQL as a date
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


class CredentialStore:
    """Query surface over the relational schema."""

    def __init__(
        self,
        db: DatabaseManager,
        clock: Callable[[], date] = utc_today,
    ):
        self._db = db
        self._clock = clock

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._db.session() as session:
                yield session
        except (SQLAlchemyError, OSError) as e:
            logger.error("Credential store failure: %s", e)
            raise StoreUnavailableError() from e

    async def ping(self) -> bool:
        try:
            async with self._session() as session:
                await session.execute(select(1))
            return True
        except StoreUnavailableError:
            return False

    # Users

    async def create_user(
        self,
        email: str,
        password_hash: str,
        full_name: str | None,
        plan: str = "free",
    ) -> UserRecord:
        user = UserRecord(
            email=normalize_email(email),
            password_hash=password_hash,
            full_name=full_name,
            plan=plan,
        )
        async with self._session() as session:
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise EmailAlreadyRegisteredError() from e
        return user

    async def create_account(
        self,
        email: str,
        password_hash: str,
        full_name: str | None,
        plan: str,
        key_name: str,
        daily_limit: int,
        expires_in_days: int | None,
        session_id: str,
        ip_address: str | None,
        user_agent: str | None,
    ) -> tuple[UserRecord, ApiKeyRecord]:
        """Insert a user, its first API key and its first session, all-or-nothing."""
        user = UserRecord(
            email=normalize_email(email),
            password_hash=password_hash,
            full_name=full_name,
            plan=plan,
        )
        async with self._session() as session:
            try:
                async with session.begin():
                    session.add(user)
                    await session.flush()
                    key = self._new_api_key(user.id, key_name, daily_limit, expires_in_days)
                    session.add(key)
                    session.add(
                        SessionRecord(
                            id=session_id,
                            user_id=user.id,
                            ip_address=ip_address,
                            user_agent=user_agent,
                        )
                    )
            except IntegrityError as e:
                raise EmailAlreadyRegisteredError() from e
        return user, key

    async def find_user_by_email(self, email: str) -> UserRecord | None:
        async with self._session() as session:
            result = await session.execute(
                select(UserRecord).where(UserRecord.email == normalize_email(email))
            )
            return result.scalar_one_or_none()

    async def find_user_by_id(self, user_id: str) -> UserRecord | None:
        async with self._session() as session:
            return await session.get(UserRecord, user_id)

    async def update_user(self, user_id: str, **fields: Any) -> UserRecord | None:
        """Update the given columns and bump ``updated_at``."""
        fields["updated_at"] = now_utc()
        async with self._session() as session:
            result = await session.execute(
                update(UserRecord)
                .where(UserRecord.id == user_id)
                .values(**fields)
                .returning(UserRecord)
                .execution_options(synchronize_session=False)
            )
            user = result.scalar_one_or_none()
            await session.commit()
            return user

    async def set_user_active(self, user_id: str, is_active: bool) -> UserRecord | None:
        return await self.update_user(user_id, is_active=is_active)

    async def set_user_plan(self, user_id: str, plan: str, daily_limit: int) -> UserRecord | None:
        """Change the plan and re-derive every key's daily limit in one transaction."""
        async with self._session() as session:
            async with session.begin():
                result = await session.execute(
                    update(UserRecord)
                    .where(UserRecord.id == user_id)
                    .values(plan=plan, updated_at=now_utc())
                    .returning(UserRecord)
                    .execution_options(synchronize_session=False)
                )
                user = result.scalar_one_or_none()
                if user is not None:
                    await session.execute(
                        update(ApiKeyRecord)
                        .where(ApiKeyRecord.user_id == user_id)
                        .values(daily_limit=daily_limit)
                        .execution_options(synchronize_session=False)
                    )
            return user

    async def delete_user_cascade(self, user_id: str) -> bool:
        """Delete a user and everything it owns, all-or-nothing."""
        async with self._session() as session:
            async with session.begin():
                for table in CASCADE_ORDER:
                    await session.execute(delete(table).where(table.user_id == user_id))
                result = await session.execute(delete(UserRecord).where(UserRecord.id == user_id))
            return bool(result.rowcount)

    # API keys

    async def create_api_key(
        self,
        user_id: str,
        name: str,
        daily_limit: int,
        expires_in_days: int | None = None,
    ) -> ApiKeyRecord:
        key = self._new_api_key(user_id, name, daily_limit, expires_in_days)
        async with self._session() as session:
            session.add(key)
            await session.commit()
        return key

    def _new_api_key(
        self,
        user_id: str,
        name: str,
        daily_limit: int,
        expires_in_days: int | None,
    ) -> ApiKeyRecord:
        expires_at = now_utc() + timedelta(days=expires_in_days) if expires_in_days else None
        return ApiKeyRecord(
            user_id=user_id,
            key_value=generate_key_value(),
            name=name,
            daily_limit=daily_limit,
            requests_today=0,
            last_reset_date=self._clock(),
            expires_at=expires_at,
        )

    async def list_api_keys(self, user_id: str) -> list[ApiKeyRecord]:
        async with self._session() as session:
            result = await session.execute(
                select(ApiKeyRecord)
                .where(ApiKeyRecord.user_id == user_id)
                .order_by(ApiKeyRecord.created_at.desc())
            )
            return list(result.scalars())

    async def count_api_keys(self, user_id: str) -> int:
        async with self._session() as session:
            result = await session.execute(
                select(func.count())
                .select_from(ApiKeyRecord)
                .where(ApiKeyRecord.user_id == user_id)
            )
            return int(result.scalar_one())

    async def find_api_key_by_value(self, key_value: str) -> ApiKeyRecord | None:
        async with self._session() as session:
            result = await session.execute(
                select(ApiKeyRecord).where(ApiKeyRecord.key_value == key_value)
            )
            return result.scalar_one_or_none()

    async def find_api_key_by_id(self, api_key_id: str) -> ApiKeyRecord | None:
        async with self._session() as session:
            return await session.get(ApiKeyRecord, api_key_id)

    async def set_api_key_active(
        self, api_key_id: str, user_id: str, is_active: bool
    ) -> ApiKeyRecord | None:
        async with self._session() as session:
            result = await session.execute(
                update(ApiKeyRecord)
                .where(ApiKeyRecord.id == api_key_id, ApiKeyRecord.user_id == user_id)
                .values(is_active=is_active)
                .returning(ApiKeyRecord)
                .execution_options(synchronize_session=False)
            )
            key = result.scalar_one_or_none()
            await session.commit()
            return key

    async def delete_api_key(self, api_key_id: str, user_id: str) -> bool:
        async with self._session() as session:
            async with session.begin():
                await session.execute(
                    delete(UsageLogRecord).where(UsageLogRecord.api_key_id == api_key_id)
                )
                result = await session.execute(
                    delete(ApiKeyRecord).where(
                        ApiKeyRecord.id == api_key_id, ApiKeyRecord.user_id == user_id
                    )
                )
            return bool(result.rowcount)

    # Quota primitives (Quota Ledger only)

    async def consume_quota(self, api_key_id: str, today: date) -> tuple[int, int] | None:
        """
        Atomically consume one unit of today's quota.

        Single conditional UPDATE ... RETURNING: when ``last_reset_date`` is
        before ``today`` the counter restarts at 1 and the date advances;
        otherwise it is incremented. The row is only touched when the new
        count stays within ``daily_limit``.

        Returns:
            ``(requests_today, daily_limit)`` after the increment, or None when
            nothing was updated (key missing or quota exhausted).
        """
        rolling_over = ApiKeyRecord.last_reset_date < today
        stmt = (
            update(ApiKeyRecord)
            .where(
                ApiKeyRecord.id == api_key_id,
                case((rolling_over, 0), else_=ApiKeyRecord.requests_today)
                < ApiKeyRecord.daily_limit,
            )
            .values(
                requests_today=case((rolling_over, 1), else_=ApiKeyRecord.requests_today + 1),
                last_reset_date=case((rolling_over, today), else_=ApiKeyRecord.last_reset_date),
            )
            .returning(ApiKeyRecord.requests_today, ApiKeyRecord.daily_limit)
            .execution_options(synchronize_session=False)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            row = result.one_or_none()
            await session.commit()
        if row is None:
            return None
        return int(row.requests_today), int(row.daily_limit)

    async def get_quota_state(self, api_key_id: str) -> tuple[int, int, date] | None:
        """Return ``(requests_today, daily_limit, last_reset_date)`` without writing."""
        async with self._session() as session:
            result = await session.execute(
                select(
                    ApiKeyRecord.requests_today,
                    ApiKeyRecord.daily_limit,
                    ApiKeyRecord.last_reset_date,
                ).where(ApiKeyRecord.id == api_key_id)
            )
            row = result.one_or_none()
        if row is None:
            return None
        return int(row.requests_today), int(row.daily_limit), _as_date(row.last_reset_date)

    # Sessions

    async def create_session(
        self,
        session_id: str,
        user_id: str,
        ip_address: str | None,
        user_agent: str | None,
    ) -> SessionRecord:
        record = SessionRecord(
            id=session_id,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        async with self._session() as session:
            session.add(record)
            await session.commit()
        return record

    async def find_session(self, session_id: str) -> SessionRecord | None:
        async with self._session() as session:
            return await session.get(SessionRecord, session_id)

    async def delete_session(self, session_id: str) -> bool:
        async with self._session() as session:
            result = await session.execute(
                delete(SessionRecord).where(SessionRecord.id == session_id)
            )
            await session.commit()
            return bool(result.rowcount)

    async def cleanup_expired_sessions(self, retention_days: int) -> int:
        cutoff = now_utc() - timedelta(days=retention_days)
        async with self._session() as session:
            result = await session.execute(
                delete(SessionRecord).where(SessionRecord.created_at < cutoff)
            )
            await session.commit()
            return int(result.rowcount or 0)

    # Password reset tokens (no route issues them yet)

    async def verify_reset_token(self, token: str) -> PasswordResetTokenRecord | None:
        async with self._session() as session:
            result = await session.execute(
                select(PasswordResetTokenRecord).where(
                    PasswordResetTokenRecord.token == token,
                    PasswordResetTokenRecord.expires_at > now_utc(),
                    PasswordResetTokenRecord.is_used.is_(False),
                )
            )
            return result.scalar_one_or_none()

    async def invalidate_reset_token(self, token: str) -> bool:
        async with self._session() as session:
            result = await session.execute(
                update(PasswordResetTokenRecord)
                .where(PasswordResetTokenRecord.token == token)
                .values(is_used=True)
            )
            await session.commit()
            return bool(result.rowcount)

    # Usage logs

    async def insert_usage_log(
        self,
        user_id: str,
        api_key_id: str,
        endpoint: str,
        status_code: int | None,
        response_time: int | None,
        ip_address: str | None,
    ) -> str:
        record = UsageLogRecord(
            user_id=user_id,
            api_key_id=api_key_id,
            endpoint=endpoint,
            status_code=status_code,
            response_time=response_time,
            ip_address=ip_address,
        )
        async with self._session() as session:
            session.add(record)
            await session.commit()
        return record.id

    async def usage_stats_for_user(self, user_id: str, since: datetime) -> list[DailyUsage]:
        return await self._usage_stats(UsageLogRecord.user_id == user_id, since)

    async def usage_stats_for_key(self, api_key_id: str, since: datetime) -> list[DailyUsage]:
        return await self._usage_stats(UsageLogRecord.api_key_id == api_key_id, since)

    async def _usage_stats(self, criterion: Any, since: datetime) -> list[DailyUsage]:
        day = func.date(UsageLogRecord.created_at).label("day")
        stmt = (
            select(
                day,
                func.count().label("total_requests"),
                func.avg(UsageLogRecord.response_time).label("avg_response_time"),
            )
            .where(criterion, UsageLogRecord.created_at >= since)
            .group_by(day)
            .order_by(day.desc())
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            rows = result.all()
        return [
            DailyUsage(
                date=_as_date(row.day),
                total_requests=int(row.total_requests),
                avg_response_time=(
                    round(float(row.avg_response_time), 2)
                    if row.avg_response_time is not None
                    else None
                ),
            )
            for row in rows
        ]

    async def count_usage_logs(self, user_id: str, since: datetime) -> int:
        async with self._session() as session:
            result = await session.execute(
                select(func.count())
                .select_from(UsageLogRecord)
                .where(UsageLogRecord.user_id == user_id, UsageLogRecord.created_at >= since)
            )
            return int(result.scalar_one())

    # Admin

    async def table_counts(self) -> dict[str, int]:
        tables = (UserRecord, ApiKeyRecord, SessionRecord, UsageLogRecord, PasswordResetTokenRecord)
        counts: dict[str, int] = {}
        async with self._session() as session:
            for table in tables:
                result = await session.execute(select(func.count()).select_from(table))
                counts[table.__tablename__] = int(result.scalar_one())
        return counts
