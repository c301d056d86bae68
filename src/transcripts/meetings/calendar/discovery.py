"""CalendarDiscovery -- bounded calendar-view fetch for online meeting candidates.

Fetches a window of the signed-in user's calendar and converts the raw
events into CalendarEntry objects. Graph cannot filter calendarView on
isOnlineMeeting, so online meetings are picked out locally by the presence
of a join URL.

Discovery is fail-soft: a transport failure logs a diagnostic and yields
an empty list, so the surrounding operation can still report "not found"
instead of erroring. The two cases are distinguishable in the logs
(calendar.discovery_failed vs calendar.discovery_empty).
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog

from src.transcripts.meetings.schemas import CalendarEntry
from src.transcripts.services.graph.client import CALENDAR_MAX_TOP, GraphError

if TYPE_CHECKING:
    from src.transcripts.services.graph.client import GraphClient

logger = structlog.get_logger(__name__)

# ── Constants ────────────────────────────────────────────────────────────────

DEFAULT_LOOKBACK_DAYS = 30
DEFAULT_LOOKAHEAD_DAYS = 7


def _isoformat_utc(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def build_date_range(
    date_filter: date | None = None,
    now: datetime | None = None,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
) -> tuple[str, str]:
    """Compute the calendarView query window.

    Args:
        date_filter: When set, the window covers that whole UTC day.
        now: Reference time for the default window (defaults to current UTC).
        lookback_days: Days before ``now`` for the default window.
        lookahead_days: Days after ``now`` for the default window.

    Returns:
        (start, end) as ISO-8601 UTC strings.
    """
    if date_filter is not None:
        day = date_filter.isoformat()
        return f"{day}T00:00:00Z", f"{day}T23:59:59Z"

    reference = now or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    since = reference - timedelta(days=lookback_days)
    ahead = reference + timedelta(days=lookahead_days)
    return _isoformat_utc(since), _isoformat_utc(ahead)


class CalendarDiscovery:
    """Fetches calendar entries that may represent online meetings.

    Args:
        graph_client: Shared GraphClient.
        lookback_days: Default window reach into the past.
        lookahead_days: Default window reach into the future.
    """

    def __init__(
        self,
        graph_client: GraphClient,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
    ) -> None:
        self._graph = graph_client
        self._lookback_days = lookback_days
        self._lookahead_days = lookahead_days

    def date_range(self, date_filter: date | None = None) -> tuple[str, str]:
        return build_date_range(
            date_filter,
            lookback_days=self._lookback_days,
            lookahead_days=self._lookahead_days,
        )

    async def fetch(
        self,
        access_token: str,
        date_filter: date | None = None,
        max_entries: int = CALENDAR_MAX_TOP,
    ) -> list[CalendarEntry]:
        """Fetch up to min(max_entries, 100) entries, newest start first.

        Callers must tolerate fewer entries than requested.

        Returns:
            Calendar entries in backend order, or an empty list when the
            calendar could not be read.
        """
        start, end = self.date_range(date_filter)
        top = min(max_entries, CALENDAR_MAX_TOP)

        try:
            events = await self._graph.query_calendar_window(
                access_token, start, end, top
            )
        except GraphError as exc:
            logger.warning(
                "calendar.discovery_failed",
                start=start,
                end=end,
                error_kind=type(exc).__name__,
                status_code=exc.status_code,
                error=str(exc),
            )
            return []

        entries = [CalendarEntry.from_graph(event) for event in events]
        if not entries:
            logger.info("calendar.discovery_empty", start=start, end=end)
        else:
            logger.info(
                "calendar.discovery_completed",
                start=start,
                end=end,
                event_count=len(entries),
            )
        return entries

    @staticmethod
    def online_meetings(entries: list[CalendarEntry]) -> list[CalendarEntry]:
        """Keep only entries that carry a join reference."""
        return [entry for entry in entries if entry.has_join_reference]
