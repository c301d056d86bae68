"""Transcript location, download and WebVTT normalization."""

from src.transcripts.meetings.transcripts.fetcher import ContentFetcher
from src.transcripts.meetings.transcripts.locator import TranscriptLocator
from src.transcripts.meetings.transcripts.vtt import (
    clean_vtt_transcript,
    merge_speaker_lines,
    parse_utterances,
    to_cleaned_transcript,
)

__all__ = [
    "ContentFetcher",
    "TranscriptLocator",
    "clean_vtt_transcript",
    "merge_speaker_lines",
    "parse_utterances",
    "to_cleaned_transcript",
]
