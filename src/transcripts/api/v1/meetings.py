"""REST endpoints for meeting discovery and transcript retrieval.

Every endpoint here requires a Bearer assertion, exchanged on-behalf-of the
caller for a delegated Graph token (see api/deps.py). Graph failures on the
fail-hard paths (transcript listing and download) map to 403/404/502.
"""

from __future__ import annotations

from datetime import date

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from src.transcripts.api.deps import get_graph_token, get_transcript_service
from src.transcripts.meetings.finder import DEFAULT_RECENT_LIMIT, clamp_limit
from src.transcripts.meetings.schemas import (
    MeetingReference,
    MeetingSummary,
    TranscriptReference,
    TranscriptResult,
)
from src.transcripts.meetings.service import TranscriptService, format_meeting_summaries
from src.transcripts.services.graph.client import (
    GraphAccessDeniedError,
    GraphError,
    GraphNotFoundError,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/meetings", tags=["meetings"])


# ── Response Schemas ─────────────────────────────────────────────────────────


class RecentMeetingsResponse(BaseModel):
    """Recent meetings with availability, plus the formatted listing."""

    meetings: list[MeetingSummary] = Field(default_factory=list)
    text: str


class TranscriptContentResponse(BaseModel):
    """Transcript content for an explicit (meeting, transcript) pair."""

    meeting_id: str
    transcript_id: str
    cleaned: bool
    content: str


# ── Helpers ──────────────────────────────────────────────────────────────────


def _graph_http_error(exc: GraphError) -> HTTPException:
    """Map a fail-hard Graph error to an HTTP error response."""
    if isinstance(exc, GraphAccessDeniedError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, GraphNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_502_BAD_GATEWAY
    logger.warning(
        "meetings.graph_error",
        operation=exc.operation,
        status_code=exc.status_code,
        error_kind=type(exc).__name__,
    )
    return HTTPException(status_code=code, detail=f"Error: {exc}")


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.get("/recent", response_model=RecentMeetingsResponse)
async def list_recent_meetings(
    date_filter: date | None = Query(None, alias="date"),
    limit: int = Query(DEFAULT_RECENT_LIMIT),
    graph_token: str = Depends(get_graph_token),
    service: TranscriptService = Depends(get_transcript_service),
) -> RecentMeetingsResponse:
    """List recent online meetings with transcript/recording availability.

    ``limit`` is clamped to 1..50.
    """
    summaries = await service.list_recent_meeting_summaries(
        graph_token, date_filter, clamp_limit(limit)
    )
    return RecentMeetingsResponse(
        meetings=summaries,
        text=format_meeting_summaries(summaries, date_filter),
    )


@router.get("/search", response_model=list[MeetingReference])
async def search_meetings(
    meeting_name: str = Query(..., min_length=1),
    meeting_date: date | None = Query(None),
    graph_token: str = Depends(get_graph_token),
    service: TranscriptService = Depends(get_transcript_service),
) -> list[MeetingReference]:
    """Find resolved meetings whose subject contains ``meeting_name``."""
    return await service.find_meetings_by_name(graph_token, meeting_name, meeting_date)


@router.get("/transcript", response_model=TranscriptResult)
async def get_meeting_transcript(
    meeting_name: str = Query(..., min_length=1),
    meeting_date: date | None = Query(None),
    graph_token: str = Depends(get_graph_token),
    service: TranscriptService = Depends(get_transcript_service),
) -> TranscriptResult:
    """Find a meeting by name and return its cleaned transcript.

    "Meeting not found" and "transcript not available" are normal outcomes
    (200 with ``outcome`` set), not errors.
    """
    try:
        return await service.get_meeting_transcript(graph_token, meeting_name, meeting_date)
    except GraphError as exc:
        raise _graph_http_error(exc) from exc


@router.get("/{meeting_id}/transcripts", response_model=list[TranscriptReference])
async def list_meeting_transcripts(
    meeting_id: str,
    graph_token: str = Depends(get_graph_token),
    service: TranscriptService = Depends(get_transcript_service),
) -> list[TranscriptReference]:
    """List transcripts for a resolved meeting id."""
    try:
        return await service.list_transcripts(graph_token, MeetingReference(id=meeting_id))
    except GraphError as exc:
        raise _graph_http_error(exc) from exc


@router.get(
    "/{meeting_id}/transcripts/{transcript_id}/content",
    response_model=TranscriptContentResponse,
)
async def get_transcript_content(
    meeting_id: str,
    transcript_id: str,
    clean: bool = Query(True),
    graph_token: str = Depends(get_graph_token),
    service: TranscriptService = Depends(get_transcript_service),
) -> TranscriptContentResponse:
    """Download one transcript's VTT content, cleaned unless ``clean=false``."""
    meeting = MeetingReference(id=meeting_id)
    transcript = TranscriptReference(id=transcript_id, meeting_id=meeting_id)
    try:
        raw_vtt = await service.download_transcript_content(graph_token, meeting, transcript)
    except GraphError as exc:
        raise _graph_http_error(exc) from exc

    return TranscriptContentResponse(
        meeting_id=meeting_id,
        transcript_id=transcript_id,
        cleaned=clean,
        content=service.clean_transcript(raw_vtt) if clean else raw_vtt,
    )
