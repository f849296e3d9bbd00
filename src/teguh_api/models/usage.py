"""Usage reporting models."""

import datetime

from pydantic import BaseModel, Field


class DailyUsage(BaseModel):
    """Aggregated requests for one UTC day."""

    date: datetime.date
    total_requests: int = Field(..., description="Requests recorded that day")
    avg_response_time: float | None = Field(
        default=None, description="Mean handler latency in milliseconds"
    )


class UsageReport(BaseModel):
    """Usage over a window of days, newest first."""

    days: int
    total_requests: int
    daily: list[DailyUsage]
