"""Async HTTP client wrapper for the Microsoft Graph REST API.

Implements the four backend operations the transcript pipeline needs:

  1. GET /me/calendarView                                  -> calendar events
  2. GET /me/onlineMeetings?$filter=JoinWebUrl eq '...'    -> meeting by join URL
  3. GET /me/onlineMeetings/{id}/transcripts               -> transcript list
  4. GET /me/onlineMeetings/{id}/transcripts/{tid}/content -> raw VTT

plus /me/onlineMeetings/{id}/recordings for availability probes.

All calls take the delegated Graph token per call; the client itself holds
no credentials and is safe to share across concurrent requests. Transient
failures (429, 5xx, connect errors, timeouts) are retried with tenacity
exponential backoff. Non-2xx responses surface as GraphError subclasses.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.transcripts.core.monitoring import track_graph_call

logger = structlog.get_logger(__name__)

GRAPH_BASE = "https://graph.microsoft.com/v1.0"

# Backend-imposed ceiling on calendarView $top
CALENDAR_MAX_TOP = 100

CALENDAR_SELECT = "id,subject,start,end,isOnlineMeeting,onlineMeeting"

VTT_FORMAT = "text/vtt"


# ── Exceptions ───────────────────────────────────────────────────────────────


class GraphError(Exception):
    """Raised when a Graph request fails.

    Attributes:
        operation: Logical operation name (e.g. "list_transcripts").
        status_code: HTTP status, or None for network-level failures.
        body: Response body text, truncated, when available.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        self.body = body
        status = f" {status_code}" if status_code is not None else ""
        super().__init__(f"Graph API{status} during {operation}: {message}")


class GraphTransportError(GraphError):
    """Network failure, timeout, or unexpected backend status."""


class GraphAccessDeniedError(GraphError):
    """401/403: the delegated user cannot read the requested resource."""


class GraphNotFoundError(GraphError):
    """404: the requested resource does not exist."""


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, (httpx.ConnectError, httpx.TimeoutException)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        return code == 429 or code >= 500
    return False


def _to_graph_error(operation: str, exc: Exception) -> GraphError:
    """Map an httpx exception to the GraphError hierarchy."""
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        body = exc.response.text[:500]
        if code in (401, 403):
            return GraphAccessDeniedError(operation, "access denied", code, body)
        if code == 404:
            return GraphNotFoundError(operation, "not found", code, body)
        return GraphTransportError(operation, body or "request failed", code, body)
    return GraphTransportError(operation, str(exc) or type(exc).__name__)


def _odata_quote(value: str) -> str:
    """Escape a string literal for an OData $filter expression."""
    return value.replace("'", "''")


def _path_segment(value: str) -> str:
    """Percent-encode an id so it stays a single URL path segment."""
    return quote(value, safe="")


class GraphClient:
    """Async client for the Microsoft Graph endpoints used by the pipeline.

    Args:
        base_url: Graph API root (default: v1.0 endpoint).
        timeout_read: Timeout in seconds for JSON reads.
        timeout_content: Timeout in seconds for transcript content downloads.
        max_attempts: Total attempts per request for transient failures.
        retry_backoff: Exponential backoff multiplier in seconds (0 disables waiting).
    """

    def __init__(
        self,
        base_url: str = GRAPH_BASE,
        timeout_read: float = 10.0,
        timeout_content: float = 30.0,
        max_attempts: int = 3,
        retry_backoff: float = 1.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_read = timeout_read
        self._timeout_content = timeout_content
        self._max_attempts = max(1, max_attempts)
        self._retry_backoff = retry_backoff

    def _client(
        self, access_token: str, timeout: float, accept: str = "application/json"
    ) -> httpx.AsyncClient:
        """Create a new httpx client with auth headers and the given timeout."""
        return httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": accept,
                "Prefer": 'outlook.timezone="UTC"',
            },
            timeout=timeout,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._retry_backoff, min=0, max=10),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )

    async def _get(
        self,
        operation: str,
        path: str,
        access_token: str,
        params: dict[str, str] | None = None,
        accept: str = "application/json",
        timeout: float | None = None,
    ) -> httpx.Response:
        """GET a Graph path with retry, raising GraphError on failure."""
        url = f"{self._base_url}{path}"
        async with track_graph_call(operation):
            try:
                async for attempt in self._retrying():
                    with attempt:
                        async with self._client(
                            access_token, timeout or self._timeout_read, accept
                        ) as client:
                            response = await client.get(url, params=params)
                            response.raise_for_status()
                            return response
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                error = _to_graph_error(operation, exc)
                logger.warning(
                    "graph.request_failed",
                    operation=operation,
                    path=path,
                    status_code=error.status_code,
                    error_kind=type(error).__name__,
                )
                raise error from exc
        raise GraphTransportError(operation, "no attempt was made")

    async def _get_json(
        self,
        operation: str,
        path: str,
        access_token: str,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        response = await self._get(operation, path, access_token, params=params)
        try:
            data = response.json()
        except ValueError as exc:
            raise GraphTransportError(operation, "response is not valid JSON") from exc
        return data if isinstance(data, dict) else {}

    # ── Calendar ─────────────────────────────────────────────────────────

    async def query_calendar_window(
        self,
        access_token: str,
        start: str,
        end: str,
        max_count: int,
    ) -> list[dict]:
        """Fetch calendarView events in [start, end], newest first.

        Graph cannot filter on isOnlineMeeting server-side; callers filter.

        Args:
            access_token: Delegated Graph token.
            start: ISO-8601 window start.
            end: ISO-8601 window end.
            max_count: Requested events, capped at 100 by the backend.

        Returns:
            Raw calendar event dicts (possibly fewer than requested).
        """
        params = {
            "startDateTime": start,
            "endDateTime": end,
            "$select": CALENDAR_SELECT,
            "$orderby": "start/dateTime desc",
            "$top": str(max(1, min(max_count, CALENDAR_MAX_TOP))),
        }
        data = await self._get_json(
            "query_calendar_window", "/me/calendarView", access_token, params
        )
        events = data.get("value") or []
        logger.debug(
            "graph.calendar_view",
            start=start,
            end=end,
            event_count=len(events),
        )
        return events

    # ── Online Meetings ──────────────────────────────────────────────────

    async def find_meeting_by_join_url(
        self, access_token: str, join_url: str
    ) -> dict | None:
        """Look up an onlineMeeting by exact JoinWebUrl.

        JoinWebUrl equality is the only server-side filter the endpoint
        supports.

        Returns:
            The first matching meeting dict, or None when nothing matches.
        """
        params = {"$filter": f"JoinWebUrl eq '{_odata_quote(join_url)}'"}
        data = await self._get_json(
            "find_meeting_by_join_url", "/me/onlineMeetings", access_token, params
        )
        meetings = data.get("value") or []
        return meetings[0] if meetings else None

    async def list_transcripts(self, access_token: str, meeting_id: str) -> list[dict]:
        """List transcript metadata for an online meeting."""
        data = await self._get_json(
            "list_transcripts",
            f"/me/onlineMeetings/{_path_segment(meeting_id)}/transcripts",
            access_token,
        )
        return data.get("value") or []

    async def list_recordings(self, access_token: str, meeting_id: str) -> list[dict]:
        """List recording metadata for an online meeting."""
        data = await self._get_json(
            "list_recordings",
            f"/me/onlineMeetings/{_path_segment(meeting_id)}/recordings",
            access_token,
        )
        return data.get("value") or []

    async def download_transcript_content(
        self,
        access_token: str,
        meeting_id: str,
        transcript_id: str,
        fmt: str = VTT_FORMAT,
    ) -> str:
        """Download transcript content in the requested representation.

        The format is always requested explicitly, both as $format and in the
        Accept header, since the endpoint may otherwise default to docx.
        """
        response = await self._get(
            "download_transcript_content",
            f"/me/onlineMeetings/{_path_segment(meeting_id)}"
            f"/transcripts/{_path_segment(transcript_id)}/content",
            access_token,
            params={"$format": fmt},
            accept=fmt,
            timeout=self._timeout_content,
        )
        logger.info(
            "graph.transcript_downloaded",
            meeting_id=meeting_id,
            transcript_id=transcript_id,
            size=len(response.content),
        )
        return response.text
