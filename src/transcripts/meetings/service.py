"""TranscriptService -- the operations exposed to the tool/API layer.

Wires the pipeline components together and owns the user-visible wording:

- find_meetings_by_name / list_recent_meetings: MeetingFinder pass-throughs
- list_transcripts / list_recordings / download_transcript_content:
  fail-hard Graph reads
- clean_transcript: pure VTT normalization
- get_meeting_transcript: find -> list -> download -> clean, with distinct
  outcomes for "no meeting" and "meeting but no transcript"
- list_recent_meeting_summaries: recent meetings annotated with transcript
  and recording availability, probed concurrently and fail-soft

Every operation takes the caller's pre-acquired Graph token. The service
keeps no per-request state, so one instance serves all requests.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from datetime import date, datetime
from typing import TYPE_CHECKING

import structlog

from src.transcripts.meetings.calendar.discovery import CalendarDiscovery
from src.transcripts.meetings.finder import (
    DEFAULT_RECENT_LIMIT,
    DEFAULT_RESOLVE_CONCURRENCY,
    MeetingFinder,
    clamp_limit,
)
from src.transcripts.meetings.resolver import JoinReferenceResolver
from src.transcripts.meetings.schemas import (
    Availability,
    MeetingReference,
    MeetingSummary,
    RecordingReference,
    TranscriptOutcome,
    TranscriptReference,
    TranscriptResult,
)
from src.transcripts.meetings.transcripts.fetcher import ContentFetcher
from src.transcripts.meetings.transcripts.locator import TranscriptLocator
from src.transcripts.meetings.transcripts.vtt import clean_vtt_transcript
from src.transcripts.services.graph.client import GraphError

if TYPE_CHECKING:
    from src.transcripts.config import Settings
    from src.transcripts.services.graph.client import GraphClient

logger = structlog.get_logger(__name__)


def format_timestamp(value: datetime | None) -> str:
    """Render a UTC timestamp as ISO-8601 with a Z suffix."""
    if value is None:
        return "unknown"
    return value.isoformat().replace("+00:00", "Z")


def not_found_message(meeting_name: str, meeting_date: date | None) -> str:
    on_date = f" on {meeting_date.isoformat()}" if meeting_date else ""
    return (
        f'No meeting found matching "{meeting_name}"{on_date}. '
        "Try broadening your search term or checking the date."
    )


def transcript_unavailable_message(meeting: MeetingReference) -> str:
    return (
        f'Meeting "{meeting.subject}" was found ({format_timestamp(meeting.start_date_time)}) '
        "but has no transcript available. "
        "Ensure transcription was enabled during the meeting."
    )


def transcript_header(meeting: MeetingReference, transcript: TranscriptReference) -> str:
    return (
        f"Meeting: {meeting.subject}\n"
        f"Date: {format_timestamp(meeting.start_date_time)}\n"
        f"Transcript URL: {transcript.transcript_content_url or 'unknown'}\n"
        f"Transcript ID: {transcript.id}\n"
        f"Transcript created: {format_timestamp(transcript.created_date_time)}\n"
        "---\n\n"
    )


_AVAILABILITY_LABELS = {
    Availability.AVAILABLE: "Available",
    Availability.NOT_AVAILABLE: "Not available",
    Availability.UNKNOWN: "Unknown",
}


def format_meeting_summaries(
    summaries: list[MeetingSummary], date_filter: date | None = None
) -> str:
    """Numbered plain-text listing of meeting summaries."""
    if not summaries:
        if date_filter:
            return f"No meetings found for {date_filter.isoformat()}."
        return "No recent meetings found."

    blocks = []
    for i, summary in enumerate(summaries, start=1):
        blocks.append(
            f"{i}. **{summary.subject or '(No subject)'}**\n"
            f"   Start: {format_timestamp(summary.start_date_time)}\n"
            f"   End: {format_timestamp(summary.end_date_time)}\n"
            f"   Transcript: {_AVAILABILITY_LABELS[summary.transcript]}\n"
            f"   Recording: {_AVAILABILITY_LABELS[summary.recording]}\n"
            f"   Meeting ID: {summary.meeting_id}"
        )
    return "\n\n".join(blocks)


class TranscriptService:
    """Meeting transcript operations for the API layer.

    Args:
        graph_client: Shared GraphClient (used directly for availability probes).
        finder: MeetingFinder for discovery and resolution.
        locator: TranscriptLocator for transcript enumeration.
        fetcher: ContentFetcher for content download.
    """

    def __init__(
        self,
        graph_client: GraphClient,
        finder: MeetingFinder,
        locator: TranscriptLocator,
        fetcher: ContentFetcher,
    ) -> None:
        self._graph = graph_client
        self._finder = finder
        self._locator = locator
        self._fetcher = fetcher

    @classmethod
    def from_graph_client(
        cls,
        graph_client: GraphClient,
        settings: Settings | None = None,
    ) -> TranscriptService:
        """Assemble the full pipeline around one GraphClient."""
        if settings is not None:
            discovery = CalendarDiscovery(
                graph_client,
                lookback_days=settings.CALENDAR_LOOKBACK_DAYS,
                lookahead_days=settings.CALENDAR_LOOKAHEAD_DAYS,
            )
            concurrency = settings.RESOLVE_CONCURRENCY
        else:
            discovery = CalendarDiscovery(graph_client)
            concurrency = DEFAULT_RESOLVE_CONCURRENCY

        finder = MeetingFinder(
            discovery,
            JoinReferenceResolver(graph_client),
            concurrency=concurrency,
        )
        return cls(
            graph_client,
            finder,
            TranscriptLocator(graph_client),
            ContentFetcher(graph_client),
        )

    # ── Pipeline Operations ──────────────────────────────────────────────

    async def find_meetings_by_name(
        self,
        access_token: str,
        meeting_name: str,
        meeting_date: date | None = None,
    ) -> list[MeetingReference]:
        return await self._finder.find_by_name(access_token, meeting_name, meeting_date)

    async def list_recent_meetings(
        self,
        access_token: str,
        meeting_date: date | None = None,
        limit: int = DEFAULT_RECENT_LIMIT,
    ) -> list[MeetingReference]:
        return await self._finder.list_recent(access_token, meeting_date, clamp_limit(limit))

    async def list_transcripts(
        self, access_token: str, meeting: MeetingReference
    ) -> list[TranscriptReference]:
        return await self._locator.list(access_token, meeting)

    async def list_recordings(
        self, access_token: str, meeting: MeetingReference
    ) -> list[RecordingReference]:
        items = await self._graph.list_recordings(access_token, meeting.id)
        return [
            RecordingReference.from_graph(item, meeting_id=meeting.id)
            for item in items
            if item.get("id")
        ]

    async def download_transcript_content(
        self,
        access_token: str,
        meeting: MeetingReference,
        transcript: TranscriptReference,
    ) -> str:
        return await self._fetcher.download(access_token, meeting, transcript)

    @staticmethod
    def clean_transcript(raw_vtt: str) -> str:
        return clean_vtt_transcript(raw_vtt)

    # ── Composite Operations ─────────────────────────────────────────────

    async def get_meeting_transcript(
        self,
        access_token: str,
        meeting_name: str,
        meeting_date: date | None = None,
    ) -> TranscriptResult:
        """Find a meeting by name and return its cleaned transcript.

        The first (newest) matching meeting is used, and the first transcript
        listed for it.

        Raises:
            GraphError: Transcript listing or download failed.
        """
        meetings = await self.find_meetings_by_name(access_token, meeting_name, meeting_date)
        if not meetings:
            return TranscriptResult(
                outcome=TranscriptOutcome.MEETING_NOT_FOUND,
                search_term=meeting_name,
                date_filter=meeting_date,
                message=not_found_message(meeting_name, meeting_date),
            )

        meeting = meetings[0]
        transcripts = await self.list_transcripts(access_token, meeting)
        transcript = TranscriptLocator.canonical(transcripts)
        if transcript is None:
            logger.info(
                "transcripts.unavailable",
                meeting_id=meeting.id,
                subject=meeting.subject,
            )
            return TranscriptResult(
                outcome=TranscriptOutcome.TRANSCRIPT_UNAVAILABLE,
                search_term=meeting_name,
                date_filter=meeting_date,
                meeting=meeting,
                message=transcript_unavailable_message(meeting),
            )

        raw_vtt = await self.download_transcript_content(access_token, meeting, transcript)
        cleaned = self.clean_transcript(raw_vtt)
        logger.info(
            "transcripts.cleaned",
            meeting_id=meeting.id,
            transcript_id=transcript.id,
            raw_length=len(raw_vtt),
            clean_length=len(cleaned),
        )

        return TranscriptResult(
            outcome=TranscriptOutcome.FOUND,
            search_term=meeting_name,
            date_filter=meeting_date,
            meeting=meeting,
            transcript=transcript,
            content=cleaned,
            message=transcript_header(meeting, transcript) + cleaned,
        )

    async def _probe(
        self, probe: str, meeting_id: str, listing: Awaitable[list]
    ) -> Availability:
        """Fail-soft existence check for transcripts or recordings."""
        try:
            items = await listing
        except GraphError as exc:
            logger.warning(
                "availability.probe_failed",
                probe=probe,
                meeting_id=meeting_id,
                error_kind=type(exc).__name__,
                status_code=exc.status_code,
            )
            return Availability.UNKNOWN
        return Availability.AVAILABLE if items else Availability.NOT_AVAILABLE

    async def _summarize(self, access_token: str, meeting: MeetingReference) -> MeetingSummary:
        transcript, recording = await asyncio.gather(
            self._probe("transcript", meeting.id, self.list_transcripts(access_token, meeting)),
            self._probe("recording", meeting.id, self.list_recordings(access_token, meeting)),
        )
        return MeetingSummary(
            meeting_id=meeting.id,
            subject=meeting.subject,
            start_date_time=meeting.start_date_time,
            end_date_time=meeting.end_date_time,
            transcript=transcript,
            recording=recording,
        )

    async def list_recent_meeting_summaries(
        self,
        access_token: str,
        meeting_date: date | None = None,
        limit: int = DEFAULT_RECENT_LIMIT,
    ) -> list[MeetingSummary]:
        """Recent meetings with availability annotations.

        A meeting whose probe fails is still listed, with availability
        UNKNOWN.
        """
        meetings = await self.list_recent_meetings(access_token, meeting_date, limit)
        return list(
            await asyncio.gather(*(self._summarize(access_token, m) for m in meetings))
        )
