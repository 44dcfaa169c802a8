"""Query parameter parsing and QueryService delegation."""

from datetime import datetime, timedelta, timezone

import pytest
from structlog.testing import capture_logs

from logstream.db.models import LogRecord
from logstream.services.log_store import InvalidFilterError
from logstream.services.query_service import QueryService, build_filter, parse_timestamp


# ═══════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════


def test_parse_date_only_is_midnight_utc():
    assert parse_timestamp("2024-01-01") == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_parse_zulu_suffix():
    assert parse_timestamp("2024-01-01T10:30:00Z") == datetime(
        2024, 1, 1, 10, 30, tzinfo=timezone.utc
    )


def test_parse_offset_converted_to_utc():
    assert parse_timestamp("2024-01-01T12:00:00+02:00") == datetime(
        2024, 1, 1, 10, 0, tzinfo=timezone.utc
    )


@pytest.mark.parametrize("raw", [None, "", "   ", "yesterday", "2024-13-45"])
def test_unusable_values_are_absent(raw):
    assert parse_timestamp(raw) is None


@pytest.mark.parametrize("raw", ["9999-12-31T23:59:59-01:00", "0001-01-01T00:00:00+01:00"])
def test_out_of_range_after_utc_conversion_is_absent(raw):
    with capture_logs() as logs:
        assert parse_timestamp(raw) is None
    assert [e["event"] for e in logs] == ["query.invalid_timestamp"]


def test_build_filter_treats_empty_strings_as_absent():
    f = build_filter(type="", service="", from_="", to="")
    assert f.type is None and f.service is None
    assert f.start is None and f.end is None


def test_build_filter_ignores_malformed_bound():
    f = build_filter(service="auth", from_="not-a-date", to="2024-06-01")
    assert f.start is None
    assert f.end == datetime(2024, 6, 1, tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════
# QueryService
# ═══════════════════════════════════════════════════════════


@pytest.fixture
async def seeded(db_session):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    db_session.add_all([
        LogRecord(service="auth", type="error", message="too early",
                  timestamp=base - timedelta(days=3)),
        LogRecord(service="auth", type="error", message="january",
                  timestamp=base + timedelta(days=10)),
        LogRecord(service="auth", type="info", message="april",
                  timestamp=base + timedelta(days=100)),
        LogRecord(service="billing", type="error", message="other service",
                  timestamp=base + timedelta(days=20)),
        LogRecord(service="auth", type="error", message="too late",
                  timestamp=base + timedelta(days=200)),
    ])
    await db_session.commit()


@pytest.mark.asyncio
async def test_service_window_scenario(db_session, seeded):
    svc = QueryService(db_session)
    records = await svc.query(service="auth", from_="2024-01-01", to="2024-06-01")
    assert [r.message for r in records] == ["april", "january"]


@pytest.mark.asyncio
async def test_inverted_window_always_rejected(db_session, seeded):
    svc = QueryService(db_session)
    with pytest.raises(InvalidFilterError):
        await svc.query(type="error", service="auth", from_="2024-06-01", to="2024-01-01")


@pytest.mark.asyncio
async def test_malformed_bound_widens_result(db_session, seeded):
    svc = QueryService(db_session)
    records = await svc.query(service="auth", from_="garbage", to="2024-06-01")
    assert [r.message for r in records] == ["april", "january", "too early"]


@pytest.mark.asyncio
async def test_limit_applies(db_session, seeded):
    svc = QueryService(db_session, limit=2)
    records = await svc.query()
    assert [r.message for r in records] == ["too late", "april"]
