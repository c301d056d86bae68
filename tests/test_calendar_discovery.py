"""Tests for calendar window computation and fail-soft discovery."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from src.transcripts.meetings.calendar.discovery import (
    CalendarDiscovery,
    build_date_range,
)
from src.transcripts.meetings.schemas import CalendarEntry, parse_graph_datetime
from src.transcripts.services.graph.client import GraphAccessDeniedError, GraphTransportError

ACCESS_TOKEN = "graph-token"


# ── Date Range ──────────────────────────────────────────────────────────────


class TestBuildDateRange:
    """Tests for build_date_range."""

    def test_date_filter_covers_whole_utc_day(self):
        assert build_date_range(date(2026, 2, 17)) == (
            "2026-02-17T00:00:00Z",
            "2026-02-17T23:59:59Z",
        )

    def test_default_window_is_lookback_and_lookahead(self):
        now = datetime(2026, 3, 1, 12, 30, 15, 250000, tzinfo=timezone.utc)

        start, end = build_date_range(now=now)

        assert start == "2026-01-30T12:30:15.250Z"
        assert end == "2026-03-08T12:30:15.250Z"

    def test_custom_window(self):
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)

        start, end = build_date_range(now=now, lookback_days=1, lookahead_days=0)

        assert start == "2026-02-28T00:00:00.000Z"
        assert end == "2026-03-01T00:00:00.000Z"

    def test_naive_reference_treated_as_utc(self):
        start, _ = build_date_range(now=datetime(2026, 3, 1), lookback_days=0)
        assert start == "2026-03-01T00:00:00.000Z"

    def test_default_window_brackets_now(self):
        before = datetime.now(timezone.utc)
        start, end = build_date_range()

        assert parse_graph_datetime(start) <= before - timedelta(days=30) + timedelta(seconds=5)
        assert parse_graph_datetime(end) >= before + timedelta(days=7) - timedelta(seconds=5)


# ── Discovery ───────────────────────────────────────────────────────────────


class TestCalendarDiscovery:
    """Tests for CalendarDiscovery.fetch."""

    @pytest.mark.asyncio
    async def test_fetch_converts_events(self, fake_graph):
        fake_graph.events = [
            fake_graph.make_event("Weekly Sync", join_url="https://teams.test/join/1"),
            fake_graph.make_event("Lunch"),
        ]
        discovery = CalendarDiscovery(fake_graph)

        entries = await discovery.fetch(ACCESS_TOKEN)

        assert [e.subject for e in entries] == ["Weekly Sync", "Lunch"]
        assert entries[0].join_url == "https://teams.test/join/1"
        assert entries[0].start == datetime(2026, 2, 17, 10, 0, tzinfo=timezone.utc)
        assert entries[1].join_url is None

    @pytest.mark.asyncio
    async def test_fetch_uses_date_window(self, fake_graph):
        discovery = CalendarDiscovery(fake_graph)

        await discovery.fetch(ACCESS_TOKEN, date(2026, 2, 17), max_entries=30)

        assert fake_graph.calls == [
            ("query_calendar_window", "2026-02-17T00:00:00Z", "2026-02-17T23:59:59Z", 30)
        ]

    @pytest.mark.asyncio
    async def test_max_entries_capped(self, fake_graph):
        discovery = CalendarDiscovery(fake_graph)

        await discovery.fetch(ACCESS_TOKEN, max_entries=250)

        assert fake_graph.calls[0][3] == 100

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            GraphTransportError("query_calendar_window", "boom", 503),
            GraphAccessDeniedError("query_calendar_window", "access denied", 403),
        ],
    )
    async def test_failure_yields_empty_list(self, fake_graph, error):
        """A calendar read failure never raises out of discovery."""
        fake_graph.calendar_error = error
        discovery = CalendarDiscovery(fake_graph)

        assert await discovery.fetch(ACCESS_TOKEN) == []

    @pytest.mark.asyncio
    async def test_empty_calendar(self, fake_graph):
        assert await CalendarDiscovery(fake_graph).fetch(ACCESS_TOKEN) == []

    def test_online_meetings_filters_on_join_url(self):
        entries = [
            CalendarEntry(subject="a", join_url="https://x"),
            CalendarEntry(subject="b", is_online_meeting=True),
            CalendarEntry(subject="c"),
        ]

        assert [e.subject for e in CalendarDiscovery.online_meetings(entries)] == ["a"]


class TestParseGraphDatetime:
    """Tests for Graph timestamp parsing."""

    def test_seven_digit_fraction(self):
        parsed = parse_graph_datetime("2026-02-17T10:00:00.1234567")
        assert parsed == datetime(2026, 2, 17, 10, 0, 0, 123456, tzinfo=timezone.utc)

    def test_zulu_suffix(self):
        parsed = parse_graph_datetime("2026-02-17T10:00:00Z")
        assert parsed == datetime(2026, 2, 17, 10, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "not a date", 42])
    def test_unparseable(self, value):
        assert parse_graph_datetime(value) is None
