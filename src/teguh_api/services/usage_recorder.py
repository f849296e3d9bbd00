"""Usage recorder: one append-only row per API-key request, plus daily reports."""

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta

from teguh_api.errors.exceptions import StoreUnavailableError
from teguh_api.models.usage import DailyUsage, UsageReport
from teguh_api.storage.credential_store import CredentialStore
from teguh_api.utils.timeutils import start_of_day, utc_today

logger = logging.getLogger(__name__)


class UsageRecorder:
    """Writes usage rows and aggregates them per UTC day."""

    def __init__(self, store: CredentialStore, clock: Callable[[], date] = utc_today):
        self._store = store
        self._clock = clock

    async def record(
        self,
        user_id: str,
        api_key_id: str,
        endpoint: str,
        status_code: int,
        response_time_ms: int,
        ip_address: str | None,
    ) -> bool:
        """
        Append a usage row.

        Never raises: a failed write is logged and reported as False so the
        request it describes is unaffected.
        """
        try:
            await self._store.insert_usage_log(
                user_id=user_id,
                api_key_id=api_key_id,
                endpoint=endpoint,
                status_code=status_code,
                response_time=response_time_ms,
                ip_address=ip_address,
            )
        except StoreUnavailableError:
            logger.warning("Failed to record usage for key %s on %s", api_key_id, endpoint)
            return False
        return True

    def _window_start(self, window_days: int) -> datetime:
        return start_of_day(self._clock() - timedelta(days=window_days))

    async def stats_for_user(self, user_id: str, window_days: int = 1) -> list[DailyUsage]:
        """Per-day totals for the last ``window_days`` days plus today, newest first."""
        return await self._store.usage_stats_for_user(user_id, self._window_start(window_days))

    async def stats_for_key(self, api_key_id: str, window_days: int = 7) -> list[DailyUsage]:
        return await self._store.usage_stats_for_key(api_key_id, self._window_start(window_days))

    async def requests_today(self, user_id: str) -> int:
        return await self._store.count_usage_logs(user_id, start_of_day(self._clock()))

    async def report_for_user(self, user_id: str, window_days: int) -> UsageReport:
        daily = await self.stats_for_user(user_id, window_days)
        return UsageReport(
            days=window_days,
            total_requests=sum(d.total_requests for d in daily),
            daily=daily,
        )
