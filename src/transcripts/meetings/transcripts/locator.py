"""TranscriptLocator -- enumerate transcripts for a resolved meeting.

Fail-hard: if transcripts cannot be listed the request cannot proceed, so
GraphError propagates to the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.transcripts.meetings.schemas import MeetingReference, TranscriptReference

if TYPE_CHECKING:
    from src.transcripts.services.graph.client import GraphClient

logger = structlog.get_logger(__name__)


class TranscriptLocator:
    """Lists TranscriptReference objects for a MeetingReference.

    Args:
        graph_client: Shared GraphClient.
    """

    def __init__(self, graph_client: GraphClient) -> None:
        self._graph = graph_client

    async def list(
        self, access_token: str, meeting: MeetingReference
    ) -> list[TranscriptReference]:
        """List transcripts in backend order, stamped with the meeting id.

        Raises:
            GraphError: The transcript list could not be read.
        """
        items = await self._graph.list_transcripts(access_token, meeting.id)
        transcripts = [
            TranscriptReference.from_graph(item, meeting_id=meeting.id)
            for item in items
            if item.get("id")
        ]
        logger.info(
            "transcripts.listed",
            meeting_id=meeting.id,
            transcript_count=len(transcripts),
        )
        return transcripts

    @staticmethod
    def canonical(transcripts: list[TranscriptReference]) -> TranscriptReference | None:
        """Pick the transcript to use: the first one returned.

        Graph does not document the ordering of this list. Treating the first
        item as the most relevant is an unverified assumption.
        """
        return transcripts[0] if transcripts else None
