"""Services module."""

from teguh_api.services.outcome import Degraded, Ok, Outcome
from teguh_api.services.quota_ledger import QuotaDecision, QuotaLedger
from teguh_api.services.rate_limit_service import RateLimitResult, RateLimitService
from teguh_api.services.usage_recorder import UsageRecorder

__all__ = [
    "Degraded",
    "Ok",
    "Outcome",
    "QuotaDecision",
    "QuotaLedger",
    "RateLimitResult",
    "RateLimitService",
    "UsageRecorder",
]
