"""Transcript normalization endpoint.

Pure text processing: no Graph access and no authentication required.
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, Field

from src.transcripts.meetings.schemas import SpeakerTurn, Utterance
from src.transcripts.meetings.transcripts.vtt import parse_utterances, to_cleaned_transcript

router = APIRouter(prefix="/transcripts", tags=["transcripts"])


class CleanTranscriptRequest(BaseModel):
    """Raw WebVTT content to normalize."""

    content: str
    include_utterances: bool = False


class CleanTranscriptResponse(BaseModel):
    """Cleaned dialogue as text and as structured turns."""

    text: str
    turns: list[SpeakerTurn] = Field(default_factory=list)
    speakers: list[str] = Field(default_factory=list)
    utterances: list[Utterance] | None = None


@router.post("/clean", response_model=CleanTranscriptResponse)
async def clean_transcript(body: CleanTranscriptRequest) -> CleanTranscriptResponse:
    """Strip VTT metadata and merge consecutive same-speaker lines."""
    cleaned = to_cleaned_transcript(body.content)
    return CleanTranscriptResponse(
        text=cleaned.text,
        turns=cleaned.turns,
        speakers=cleaned.speakers,
        utterances=parse_utterances(body.content) if body.include_utterances else None,
    )
