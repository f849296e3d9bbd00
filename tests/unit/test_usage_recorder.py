"""Tests for usage recording and daily aggregation."""

from datetime import timedelta

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from teguh_api.storage.tables import UsageLogRecord
from teguh_api.utils.timeutils import start_of_day


@pytest.mark.asyncio
async def test_record_appends_row(recorder, store, user, api_key):
    assert await recorder.record(user.id, api_key.id, "/api/ping", 200, 12, "10.0.0.1") is True

    assert await recorder.requests_today(user.id) == 1
    [today] = await recorder.stats_for_user(user.id)
    assert today.total_requests == 1
    assert today.avg_response_time == 12.0


@pytest.mark.asyncio
async def test_record_keeps_real_status_code(recorder, db, user, api_key):
    await recorder.record(user.id, api_key.id, "/api/spotify", 400, 3, None)

    async with db.session() as session:
        row = (await session.execute(UsageLogRecord.__table__.select())).one()
    assert row.status_code == 400
    assert row.endpoint == "/api/spotify"


@pytest.mark.asyncio
async def test_record_failure_is_swallowed(recorder, db, user, api_key):
    def _fail(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("INSERT INTO USAGE_LOGS"):
            raise OperationalError(statement, parameters, Exception("database is locked"))

    event.listen(db.engine.sync_engine, "before_cursor_execute", _fail)
    try:
        recorded = await recorder.record(user.id, api_key.id, "/api/ping", 200, 1, None)
    finally:
        event.remove(db.engine.sync_engine, "before_cursor_execute", _fail)

    assert recorded is False
    assert await recorder.requests_today(user.id) == 0


@pytest.mark.asyncio
async def test_report_sums_window(recorder, db, user, api_key, clock):
    today = start_of_day(clock.today)
    async with db.session() as session:
        for offset in (0, 0, 3, 6, 9):
            session.add(
                UsageLogRecord(
                    user_id=user.id,
                    api_key_id=api_key.id,
                    endpoint="/api/ping",
                    response_time=10,
                    created_at=today - timedelta(days=offset) + timedelta(minutes=5),
                )
            )
        await session.commit()

    report = await recorder.report_for_user(user.id, window_days=7)

    assert report.days == 7
    assert report.total_requests == 4
    assert [d.total_requests for d in report.daily] == [2, 1, 1]


@pytest.mark.asyncio
async def test_key_stats_are_per_key(recorder, store, user, api_key):
    other = await store.create_api_key(user.id, "other", daily_limit=100)
    await recorder.record(user.id, api_key.id, "/api/ping", 200, 5, None)
    await recorder.record(user.id, other.id, "/api/ping", 200, 5, None)
    await recorder.record(user.id, other.id, "/api/ping", 200, 5, None)

    [row] = await recorder.stats_for_key(other.id)

    assert row.total_requests == 2
