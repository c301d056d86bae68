"""ContentFetcher -- download raw transcript text in WebVTT form."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.transcripts.meetings.schemas import MeetingReference, TranscriptReference
from src.transcripts.services.graph.client import VTT_FORMAT

if TYPE_CHECKING:
    from src.transcripts.services.graph.client import GraphClient


class ContentFetcher:
    """Downloads transcript content for a (meeting, transcript) pair.

    Always asks for text/vtt explicitly. Errors propagate; this layer does
    not retry.

    Args:
        graph_client: Shared GraphClient.
    """

    def __init__(self, graph_client: GraphClient) -> None:
        self._graph = graph_client

    async def download(
        self,
        access_token: str,
        meeting: MeetingReference,
        transcript: TranscriptReference,
    ) -> str:
        return await self._graph.download_transcript_content(
            access_token,
            meeting.id,
            transcript.id,
            fmt=VTT_FORMAT,
        )
