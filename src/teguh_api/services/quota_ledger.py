"""Per-key daily quota ledger with lazy UTC-day rollover."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, timedelta

from teguh_api.errors.exceptions import InvalidAPIKeyError
from teguh_api.models.responses import QuotaBlock
from teguh_api.storage.credential_store import CredentialStore
from teguh_api.utils.timeutils import next_reset, utc_today

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaDecision:
    """Result of a quota check."""

    allowed: bool
    limit: int
    remaining: int
    day: date  # UTC day the decision was taken for

    @property
    def reset_date(self) -> date:
        return self.day + timedelta(days=1)

    @property
    def reset_at(self) -> int:
        """Unix timestamp of the next rollover."""
        return int(next_reset(self.day).timestamp())

    def to_block(self) -> QuotaBlock:
        return QuotaBlock(
            daily_limit=self.limit,
            remaining=self.remaining,
            reset_date=self.reset_date,
        )


class QuotaLedger:
    """
    Decides whether an API key may make one more request today.

    The counter lives only in the credential store; nothing is cached in
    process, so several app instances can share one database. The day is the
    UTC calendar date returned by ``clock``.
    """

    def __init__(self, store: CredentialStore, clock: Callable[[], date] = utc_today):
        self._store = store
        self._clock = clock

    async def check_and_consume(self, api_key_id: str) -> QuotaDecision:
        """
        Consume one unit of today's quota if any is left.

        A denied call leaves the stored counter untouched, so repeated calls
        on an exhausted key never push ``requests_today`` past the limit.

        Raises:
            StoreUnavailableError: the store could not be reached. Callers must
                not treat this as an allow.
            InvalidAPIKeyError: the key vanished between lookup and consume.
        """
        today = self._clock()
        consumed = await self._store.consume_quota(api_key_id, today)

        if consumed is not None:
            count, limit = consumed
            return QuotaDecision(
                allowed=True,
                limit=limit,
                remaining=max(limit - count, 0),
                day=today,
            )

        state = await self._store.get_quota_state(api_key_id)
        if state is None:
            raise InvalidAPIKeyError()

        _, limit, _ = state
        logger.info("Daily quota exhausted for key %s (limit %d)", api_key_id, limit)
        return QuotaDecision(allowed=False, limit=limit, remaining=0, day=today)

    async def peek(self, api_key_id: str) -> QuotaDecision | None:
        """Current quota status without consuming; rollover is applied logically only."""
        state = await self._store.get_quota_state(api_key_id)
        if state is None:
            return None

        today = self._clock()
        count, limit, last_reset = state
        used = 0 if last_reset < today else count
        return QuotaDecision(
            allowed=used < limit,
            limit=limit,
            remaining=max(limit - used, 0),
            day=today,
        )
