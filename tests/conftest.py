"""Shared test doubles for the transcript pipeline.

Provides:
- FakeGraphClient: in-memory stand-in for GraphClient with call recording
  and per-operation failure injection
- Builders for raw Graph calendar events and onlineMeeting items
- Fixtures for the fake backend and a fully wired TranscriptService
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.transcripts.meetings.service import TranscriptService

ACCESS_TOKEN = "graph-token"


def make_event(
    subject: str,
    join_url: str | None = None,
    start: datetime | None = None,
    duration_minutes: int = 30,
) -> dict:
    """Build a raw /me/calendarView event dict."""
    start = start or datetime(2026, 2, 17, 10, 0, tzinfo=timezone.utc)
    end = start + timedelta(minutes=duration_minutes)
    event: dict = {
        "id": f"evt-{subject.lower().replace(' ', '-')}",
        "subject": subject,
        "start": {"dateTime": start.strftime("%Y-%m-%dT%H:%M:%S.0000000"), "timeZone": "UTC"},
        "end": {"dateTime": end.strftime("%Y-%m-%dT%H:%M:%S.0000000"), "timeZone": "UTC"},
        "isOnlineMeeting": join_url is not None,
    }
    if join_url is not None:
        event["onlineMeeting"] = {"joinUrl": join_url}
    return event


def make_meeting(meeting_id: str, subject: str = "", join_url: str = "") -> dict:
    """Build a raw /me/onlineMeetings item."""
    return {
        "id": meeting_id,
        "subject": subject,
        "startDateTime": "2026-02-17T10:00:00Z",
        "endDateTime": "2026-02-17T10:30:00Z",
        "joinWebUrl": join_url,
    }


class FakeGraphClient:
    """In-memory GraphClient double.

    Mirrors the GraphClient operations used by the pipeline. Each call is
    appended to ``calls`` as (operation, *args) so tests can assert on
    call counts and arguments.
    """

    make_event = staticmethod(make_event)
    make_meeting = staticmethod(make_meeting)

    def __init__(self) -> None:
        self.events: list[dict] = []
        self.meetings_by_url: dict[str, dict] = {}
        self.transcripts: dict[str, list[dict]] = {}
        self.recordings: dict[str, list[dict]] = {}
        self.content: dict[tuple[str, str], str] = {}

        self.calendar_error: Exception | None = None
        self.join_url_errors: dict[str, Exception] = {}
        self.transcript_errors: dict[str, Exception] = {}
        self.recording_errors: dict[str, Exception] = {}
        self.content_error: Exception | None = None

        self.calls: list[tuple] = []

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    async def query_calendar_window(
        self, access_token: str, start: str, end: str, max_count: int
    ) -> list[dict]:
        self.calls.append(("query_calendar_window", start, end, max_count))
        if self.calendar_error is not None:
            raise self.calendar_error
        return list(self.events[: min(max_count, 100)])

    async def find_meeting_by_join_url(self, access_token: str, join_url: str) -> dict | None:
        self.calls.append(("find_meeting_by_join_url", join_url))
        if join_url in self.join_url_errors:
            raise self.join_url_errors[join_url]
        return self.meetings_by_url.get(join_url)

    async def list_transcripts(self, access_token: str, meeting_id: str) -> list[dict]:
        self.calls.append(("list_transcripts", meeting_id))
        if meeting_id in self.transcript_errors:
            raise self.transcript_errors[meeting_id]
        return list(self.transcripts.get(meeting_id, []))

    async def list_recordings(self, access_token: str, meeting_id: str) -> list[dict]:
        self.calls.append(("list_recordings", meeting_id))
        if meeting_id in self.recording_errors:
            raise self.recording_errors[meeting_id]
        return list(self.recordings.get(meeting_id, []))

    async def download_transcript_content(
        self,
        access_token: str,
        meeting_id: str,
        transcript_id: str,
        fmt: str = "text/vtt",
    ) -> str:
        self.calls.append(("download_transcript_content", meeting_id, transcript_id, fmt))
        if self.content_error is not None:
            raise self.content_error
        return self.content[(meeting_id, transcript_id)]

    def add_meeting(
        self,
        subject: str,
        meeting_id: str,
        join_url: str | None = None,
        start: datetime | None = None,
        resolved_subject: str = "",
    ) -> str:
        """Add a calendar event and its resolvable onlineMeeting. Returns the join URL."""
        join_url = join_url or f"https://teams.microsoft.com/l/meetup-join/{meeting_id}"
        self.events.append(make_event(subject, join_url=join_url, start=start))
        self.meetings_by_url[join_url] = make_meeting(
            meeting_id, subject=resolved_subject, join_url=join_url
        )
        return join_url


@pytest.fixture
def fake_graph() -> FakeGraphClient:
    """Empty fake Graph backend."""
    return FakeGraphClient()


@pytest.fixture
def transcript_service(fake_graph) -> TranscriptService:
    """TranscriptService wired to the fake backend."""
    return TranscriptService.from_graph_client(fake_graph)
