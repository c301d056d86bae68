"""MeetingFinder -- name search and recent-meeting discovery.

Combines CalendarDiscovery, local filtering, and JoinReferenceResolver.
Resolution is the expensive step (one or two Graph calls per candidate), so
every cheap filter runs before it:

- find_by_name: subject substring + join URL filter, then resolve only the
  survivors. No survivors means no resolver calls at all.
- list_recent: join URL filter, then resolve in calendar order and stop as
  soon as ``limit`` meetings are resolved.

Candidates are resolved with bounded concurrency. Results keep calendar
order (start time descending) and one candidate failing never cancels or
fails its siblings.
"""

from __future__ import annotations

import asyncio
from datetime import date
from typing import TYPE_CHECKING

import structlog

from src.transcripts.meetings.schemas import (
    CalendarEntry,
    FailureReason,
    MeetingReference,
    Resolution,
)

if TYPE_CHECKING:
    from src.transcripts.meetings.calendar.discovery import CalendarDiscovery
    from src.transcripts.meetings.resolver import JoinReferenceResolver

logger = structlog.get_logger(__name__)

# ── Constants ────────────────────────────────────────────────────────────────

NAME_SEARCH_WINDOW = 100
DEFAULT_RECENT_LIMIT = 10
MAX_RECENT_LIMIT = 50
RECENT_OVERFETCH_FACTOR = 3
DEFAULT_RESOLVE_CONCURRENCY = 4


def clamp_limit(limit: int | None) -> int:
    """Clamp a requested meeting count to [1, MAX_RECENT_LIMIT]."""
    if limit is None:
        return DEFAULT_RECENT_LIMIT
    return max(1, min(int(limit), MAX_RECENT_LIMIT))


def matches_name(entry: CalendarEntry, needle: str) -> bool:
    """Case-insensitive subject substring match on an entry with a join URL."""
    return entry.has_join_reference and needle in entry.subject.lower()


class MeetingFinder:
    """Finds resolved online meetings from the user's calendar.

    Args:
        discovery: CalendarDiscovery for the candidate window.
        resolver: JoinReferenceResolver for candidate resolution.
        concurrency: Maximum resolver calls in flight per request.
    """

    def __init__(
        self,
        discovery: CalendarDiscovery,
        resolver: JoinReferenceResolver,
        concurrency: int = DEFAULT_RESOLVE_CONCURRENCY,
    ) -> None:
        self._discovery = discovery
        self._resolver = resolver
        self._concurrency = max(1, concurrency)

    async def _resolve_all(
        self, access_token: str, entries: list[CalendarEntry]
    ) -> list[Resolution]:
        """Resolve entries concurrently, returning results in input order."""
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _one(entry: CalendarEntry) -> Resolution:
            async with semaphore:
                return await self._resolver.resolve_entry(access_token, entry)

        gathered = await asyncio.gather(
            *(_one(entry) for entry in entries), return_exceptions=True
        )

        results: list[Resolution] = []
        for entry, outcome in zip(entries, gathered):
            if isinstance(outcome, Exception):
                logger.warning(
                    "finder.resolution_crashed",
                    subject=entry.subject,
                    error=str(outcome),
                )
                results.append(Resolution.failed(FailureReason.TRANSPORT_ERROR))
            else:
                results.append(outcome)
        return results

    async def find_by_name(
        self,
        access_token: str,
        name_pattern: str,
        date_filter: date | None = None,
    ) -> list[MeetingReference]:
        """Find meetings whose calendar subject contains ``name_pattern``.

        Args:
            access_token: Delegated Graph token.
            name_pattern: Case-insensitive subject substring.
            date_filter: Restrict the calendar window to this UTC day.

        Returns:
            Resolved meetings in calendar order (newest first).
        """
        entries = await self._discovery.fetch(
            access_token, date_filter, max_entries=NAME_SEARCH_WINDOW
        )

        needle = name_pattern.lower()
        candidates = [entry for entry in entries if matches_name(entry, needle)]

        logger.info(
            "finder.name_matches",
            name_pattern=name_pattern,
            match_count=len(candidates),
            event_count=len(entries),
        )

        if not candidates:
            logger.warning(
                "finder.no_name_match",
                name_pattern=name_pattern,
                date_filter=date_filter.isoformat() if date_filter else None,
                available_subjects=[entry.subject for entry in entries],
            )
            return []

        results = await self._resolve_all(access_token, candidates)
        meetings = [r.meeting for r in results if r.meeting is not None]

        logger.info(
            "finder.name_search_resolved",
            name_pattern=name_pattern,
            resolved_count=len(meetings),
            failed_count=len(candidates) - len(meetings),
        )
        return meetings

    async def list_recent(
        self,
        access_token: str,
        date_filter: date | None = None,
        limit: int = DEFAULT_RECENT_LIMIT,
    ) -> list[MeetingReference]:
        """List up to ``limit`` resolved online meetings, newest first.

        Candidates are resolved in batches no larger than the remaining
        shortfall, so the number of resolver calls tracks ``limit`` rather
        than the size of the calendar window.
        """
        limit = clamp_limit(limit)
        entries = await self._discovery.fetch(
            access_token,
            date_filter,
            max_entries=min(limit * RECENT_OVERFETCH_FACTOR, NAME_SEARCH_WINDOW),
        )
        candidates = self._discovery.online_meetings(entries)

        logger.info(
            "finder.online_candidates",
            candidate_count=len(candidates),
            event_count=len(entries),
        )

        resolved: list[MeetingReference] = []
        position = 0
        while position < len(candidates) and len(resolved) < limit:
            batch_size = min(self._concurrency, limit - len(resolved))
            batch = candidates[position:position + batch_size]
            position += len(batch)

            for result in await self._resolve_all(access_token, batch):
                if result.meeting is not None and len(resolved) < limit:
                    resolved.append(result.meeting)

        logger.info(
            "finder.recent_resolved",
            resolved_count=len(resolved),
            attempted_count=position,
        )
        return resolved
