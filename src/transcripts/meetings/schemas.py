"""Pydantic v2 schemas for the meeting transcript domain.

Defines the data contracts shared by the retrieval pipeline: calendar
entries, resolved meeting references, transcript and recording references,
per-cue utterances, cleaned transcripts, and the result types used for
fail-soft resolution and availability probes.

All models are request-scoped. Nothing here is persisted or shared between
invocations.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ────────────────────────────────────────────────────────────────────


class FailureReason(str, Enum):
    """Tagged reason carried by a failed fail-soft operation."""

    NOT_FOUND = "not_found"
    TRANSPORT_ERROR = "transport_error"
    ACCESS_DENIED = "access_denied"
    MALFORMED_CONTENT = "malformed_content"


class Availability(str, Enum):
    """Outcome of a transcript/recording existence probe."""

    AVAILABLE = "available"
    NOT_AVAILABLE = "not_available"
    UNKNOWN = "unknown"


class TranscriptOutcome(str, Enum):
    """Outcome of a get-transcript request, as shown to the caller."""

    FOUND = "found"
    MEETING_NOT_FOUND = "meeting_not_found"
    TRANSCRIPT_UNAVAILABLE = "transcript_unavailable"


# ── Graph datetime parsing ───────────────────────────────────────────────────

# Graph emits up to 7 fractional digits ("2026-02-17T10:00:00.0000000")
_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_graph_datetime(value: Any) -> datetime | None:
    """Parse a Graph timestamp string into an aware UTC datetime.

    Handles the trailing ``Z``, fractional seconds longer than six digits,
    and naive values (calendar view is requested in UTC, so naive means UTC).
    Returns None for missing or unparseable input.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# ── Calendar & Meeting Models ────────────────────────────────────────────────


class CalendarEntry(BaseModel):
    """A calendar-view event, reduced to the fields discovery needs."""

    model_config = ConfigDict(frozen=True)

    subject: str = ""
    start: datetime | None = None
    end: datetime | None = None
    is_online_meeting: bool = False
    join_url: str | None = None

    @property
    def has_join_reference(self) -> bool:
        return bool(self.join_url)

    @classmethod
    def from_graph(cls, event: dict) -> CalendarEntry:
        """Build from a raw ``/me/calendarView`` event dict."""
        online = event.get("onlineMeeting") or {}
        return cls(
            subject=event.get("subject") or "",
            start=parse_graph_datetime((event.get("start") or {}).get("dateTime")),
            end=parse_graph_datetime((event.get("end") or {}).get("dateTime")),
            is_online_meeting=bool(event.get("isOnlineMeeting")),
            join_url=online.get("joinUrl") or None,
        )


class MeetingReference(BaseModel):
    """Canonical online meeting reference, obtained only through resolution."""

    id: str
    subject: str = ""
    start_date_time: datetime | None = None
    end_date_time: datetime | None = None
    join_web_url: str | None = None

    @classmethod
    def from_graph(cls, data: dict) -> MeetingReference:
        """Build from a raw ``/me/onlineMeetings`` item."""
        return cls(
            id=data["id"],
            subject=data.get("subject") or "",
            start_date_time=parse_graph_datetime(data.get("startDateTime")),
            end_date_time=parse_graph_datetime(data.get("endDateTime")),
            join_web_url=data.get("joinWebUrl"),
        )


class TranscriptReference(BaseModel):
    """A transcript available for a resolved meeting."""

    id: str
    meeting_id: str
    created_date_time: datetime | None = None
    transcript_content_url: str | None = None

    @classmethod
    def from_graph(cls, data: dict, meeting_id: str) -> TranscriptReference:
        return cls(
            id=data["id"],
            meeting_id=meeting_id,
            created_date_time=parse_graph_datetime(data.get("createdDateTime")),
            transcript_content_url=data.get("transcriptContentUrl"),
        )


class RecordingReference(BaseModel):
    """A recording available for a resolved meeting."""

    id: str
    meeting_id: str
    created_date_time: datetime | None = None

    @classmethod
    def from_graph(cls, data: dict, meeting_id: str) -> RecordingReference:
        return cls(
            id=data["id"],
            meeting_id=meeting_id,
            created_date_time=parse_graph_datetime(data.get("createdDateTime")),
        )


class Resolution(BaseModel):
    """Result of a fail-soft join reference resolution.

    Exactly one of ``meeting`` or ``reason`` is set.
    """

    meeting: MeetingReference | None = None
    reason: FailureReason | None = None

    @property
    def ok(self) -> bool:
        return self.meeting is not None

    @classmethod
    def found(cls, meeting: MeetingReference) -> Resolution:
        return cls(meeting=meeting)

    @classmethod
    def failed(cls, reason: FailureReason) -> Resolution:
        return cls(reason=reason)


# ── Transcript Content Models ────────────────────────────────────────────────


class Utterance(BaseModel):
    """A single timed cue with speaker attribution."""

    speaker: str | None = None
    start: str
    end: str
    language: str | None = None
    text: str


class SpeakerTurn(BaseModel):
    """One paragraph of merged dialogue. ``speaker`` is None for unattributed text."""

    speaker: str | None = None
    text: str

    def render(self) -> str:
        if not self.speaker:
            return self.text
        return f"{self.speaker}: {self.text}" if self.text else f"{self.speaker}:"


class CleanedTranscript(BaseModel):
    """Speaker-merged dialogue in chronological order.

    No two adjacent turns share a speaker.
    """

    turns: list[SpeakerTurn] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(turn.render() for turn in self.turns)

    @property
    def speakers(self) -> list[str]:
        seen: list[str] = []
        for turn in self.turns:
            if turn.speaker and turn.speaker not in seen:
                seen.append(turn.speaker)
        return seen


# ── Tool-Layer Result Models ─────────────────────────────────────────────────


class MeetingSummary(BaseModel):
    """A discovered meeting annotated with transcript/recording availability."""

    meeting_id: str
    subject: str
    start_date_time: datetime | None = None
    end_date_time: datetime | None = None
    transcript: Availability = Availability.UNKNOWN
    recording: Availability = Availability.UNKNOWN


class TranscriptResult(BaseModel):
    """Outcome of a get-meeting-transcript request."""

    outcome: TranscriptOutcome
    search_term: str
    date_filter: date | None = None
    meeting: MeetingReference | None = None
    transcript: TranscriptReference | None = None
    content: str = ""
    message: str = ""
