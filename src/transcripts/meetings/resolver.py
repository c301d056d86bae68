"""JoinReferenceResolver -- calendar join URL to canonical onlineMeeting.

The onlineMeetings endpoint can only be queried by exact JoinWebUrl, and
join URLs are stored inconsistently encoded between the calendar and the
meetings backend. Resolution therefore tries the URL exactly as captured,
then once more percent-decoded if that differs, and stops there.

Resolution never raises. Every failure (transport error, access denied for
a meeting owned by another organization, zero matches) is logged with its
reason and returned as a tagged Resolution so the caller can skip the
candidate and carry on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import unquote

import structlog

from src.transcripts.meetings.schemas import (
    CalendarEntry,
    FailureReason,
    MeetingReference,
    Resolution,
)
from src.transcripts.services.graph.client import (
    GraphAccessDeniedError,
    GraphError,
    GraphNotFoundError,
)

if TYPE_CHECKING:
    from src.transcripts.services.graph.client import GraphClient

logger = structlog.get_logger(__name__)

# Most severe first
_SEVERITY = (
    FailureReason.ACCESS_DENIED,
    FailureReason.TRANSPORT_ERROR,
    FailureReason.NOT_FOUND,
)


def _more_severe(first: Resolution, second: Resolution) -> Resolution:
    """Pick the failed Resolution whose reason ranks higher in _SEVERITY."""

    def rank(result: Resolution) -> int:
        if result.reason in _SEVERITY:
            return _SEVERITY.index(result.reason)
        return len(_SEVERITY)

    return first if rank(first) <= rank(second) else second


class JoinReferenceResolver:
    """Resolves join URLs to MeetingReference objects.

    Args:
        graph_client: Shared GraphClient.
    """

    def __init__(self, graph_client: GraphClient) -> None:
        self._graph = graph_client

    async def _lookup(self, access_token: str, join_url: str) -> Resolution:
        try:
            data = await self._graph.find_meeting_by_join_url(access_token, join_url)
        except GraphAccessDeniedError:
            return Resolution.failed(FailureReason.ACCESS_DENIED)
        except GraphNotFoundError:
            return Resolution.failed(FailureReason.NOT_FOUND)
        except GraphError:
            return Resolution.failed(FailureReason.TRANSPORT_ERROR)

        if not data or not data.get("id"):
            return Resolution.failed(FailureReason.NOT_FOUND)
        return Resolution.found(MeetingReference.from_graph(data))

    async def resolve(self, access_token: str, join_url: str) -> Resolution:
        """Resolve a join URL, falling back to its percent-decoded form once.

        Args:
            access_token: Delegated Graph token.
            join_url: Join URL exactly as captured on the calendar entry.

        Returns:
            Resolution with the first match, or the most severe failure
            reason across both attempts.
        """
        result = await self._lookup(access_token, join_url)
        if result.ok:
            return result

        decoded = unquote(join_url)
        if decoded != join_url:
            decoded_result = await self._lookup(access_token, decoded)
            if decoded_result.ok:
                logger.info("resolver.resolved_decoded", join_url=join_url)
                return decoded_result
            result = _more_severe(result, decoded_result)

        log = logger.warning
        if result.reason is FailureReason.NOT_FOUND:
            log = logger.info
        log(
            "resolver.resolution_failed",
            reason=result.reason.value if result.reason else None,
            join_url=join_url,
        )
        return result

    async def resolve_entry(self, access_token: str, entry: CalendarEntry) -> Resolution:
        """Resolve a calendar entry, keeping the calendar subject.

        The calendar subject is what the user sees, so it replaces whatever
        subject the onlineMeeting object reports (unless it is empty).
        Entries without a join URL cannot be resolved and are rejected
        without a backend call.
        """
        if not entry.join_url:
            return Resolution.failed(FailureReason.NOT_FOUND)

        result = await self.resolve(access_token, entry.join_url)
        if result.meeting is None:
            logger.warning(
                "resolver.entry_unresolved",
                subject=entry.subject,
                reason=result.reason.value if result.reason else None,
            )
            return result

        meeting = result.meeting.model_copy(
            update={"subject": entry.subject or result.meeting.subject}
        )
        return Resolution.found(meeting)
