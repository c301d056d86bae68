"""WebVTT transcript normalization.

Strips all WebVTT technical metadata from Teams transcript content and
returns plain speaker-attributed dialogue, one paragraph per speaker turn.

Removed per line:
- "WEBVTT" header line
- NOTE comment blocks (up to the next blank line)
- Cue timing lines ("00:00:00.000 --> 00:00:05.000", with optional settings)
- Cue identifiers (numeric or UUID)
- Markup tags (<v>, <c>, <lang>, ...); <v Name> becomes "Name: "

The header and NOTE keywords match case-sensitively, as WebVTT defines them,
so dialogue such as "Note taker: ..." or a lowercase "webvtt" survives and
re-cleaning cleaned output leaves it unchanged.

Everything here is pure and synchronous. Unparseable lines are dropped
rather than failing the transcript.
"""

from __future__ import annotations

import re
from enum import Enum

from src.transcripts.meetings.schemas import CleanedTranscript, SpeakerTurn, Utterance

# ── Patterns ─────────────────────────────────────────────────────────────────

_HEADER_RE = re.compile(r"^WEBVTT(?:\s|$)")
_NOTE_RE = re.compile(r"^NOTE(?:\s|$)")
_TIMING_RE = re.compile(
    r"^(\d{2}:\d{2}:\d{2}\.\d{3})\s*-->\s*(\d{2}:\d{2}:\d{2}\.\d{3})"
)
_NUMERIC_ID_RE = re.compile(r"^\d+$")
_UUID_ID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}(?:[/-]\d+(?:-\d+)?)?$",
    re.IGNORECASE,
)
_VOICE_OPEN_RE = re.compile(r"<v\s+([^>]+)>", re.IGNORECASE)
_VOICE_CLOSE_RE = re.compile(r"</v>", re.IGNORECASE)
_LANG_RE = re.compile(r"<lang\s+([^>\s]+)\s*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s{2,}")
_SPEAKER_RE = re.compile(r"^([^:]+):\s*(.*)")
_LINE_SPLIT_RE = re.compile(r"\r?\n")


class _State(Enum):
    NORMAL = "normal"
    INSIDE_COMMENT_BLOCK = "inside_comment_block"


# ── Line Cleaning ────────────────────────────────────────────────────────────


def _is_cue_identifier(line: str) -> bool:
    return bool(_NUMERIC_ID_RE.match(line) or _UUID_ID_RE.match(line))


def _clean_dialogue(line: str) -> str:
    """Rewrite voice tags to "Name: " and strip all other markup."""
    cleaned = _VOICE_OPEN_RE.sub(r"\1: ", line)
    cleaned = _VOICE_CLOSE_RE.sub("", cleaned)
    cleaned = _TAG_RE.sub("", cleaned)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def extract_dialogue_lines(raw_vtt: str) -> list[str]:
    """Run the line state machine and return cleaned dialogue lines in order.

    Args:
        raw_vtt: Raw WebVTT text as downloaded.

    Returns:
        Non-empty dialogue lines, voice tags rewritten to "Speaker: text".
    """
    state = _State.NORMAL
    dialogue: list[str] = []

    for line in _LINE_SPLIT_RE.split(raw_vtt or ""):
        trimmed = line.strip()

        if not trimmed:
            state = _State.NORMAL
            continue
        if _HEADER_RE.match(trimmed):
            continue
        if _NOTE_RE.match(trimmed):
            state = _State.INSIDE_COMMENT_BLOCK
            continue
        if state is _State.INSIDE_COMMENT_BLOCK:
            continue
        if _TIMING_RE.match(trimmed):
            continue
        if _is_cue_identifier(trimmed):
            continue

        cleaned = _clean_dialogue(trimmed)
        if cleaned:
            dialogue.append(cleaned)

    return dialogue


# ── Speaker Merge ────────────────────────────────────────────────────────────


def merge_speaker_turns(lines: list[str]) -> list[SpeakerTurn]:
    """Merge consecutive lines from the same speaker into single turns.

    A line without a speaker prefix is appended to the open turn, or kept as
    a standalone unattributed turn when no speaker has been seen yet.
    """
    turns: list[SpeakerTurn] = []
    current_speaker = ""
    current_text = ""

    for line in lines:
        match = _SPEAKER_RE.match(line)
        if match:
            speaker = match.group(1).strip()
            text = match.group(2).strip()
            if speaker == current_speaker:
                current_text = f"{current_text} {text}".strip()
            else:
                if current_speaker:
                    turns.append(SpeakerTurn(speaker=current_speaker, text=current_text))
                current_speaker = speaker
                current_text = text
        elif current_speaker:
            current_text = f"{current_text} {line}".strip()
        else:
            turns.append(SpeakerTurn(speaker=None, text=line))

    if current_speaker:
        turns.append(SpeakerTurn(speaker=current_speaker, text=current_text))

    return turns


def merge_speaker_lines(lines: list[str]) -> str:
    """Merge consecutive same-speaker lines and join the turns with newlines.

    Input:  ["Alice: Hello", "Alice: How are you", "Bob: Fine thanks"]
    Output: "Alice: Hello How are you\\nBob: Fine thanks"
    """
    return "\n".join(turn.render() for turn in merge_speaker_turns(lines))


# ── Public API ───────────────────────────────────────────────────────────────


def clean_vtt_transcript(raw_vtt: str) -> str:
    """Clean raw VTT transcript content into plain speaker dialogue.

    Deterministic, and a no-op on its own output.
    """
    return merge_speaker_lines(extract_dialogue_lines(raw_vtt))


def to_cleaned_transcript(raw_vtt: str) -> CleanedTranscript:
    """Structured variant of clean_vtt_transcript."""
    return CleanedTranscript(turns=merge_speaker_turns(extract_dialogue_lines(raw_vtt)))


def parse_utterances(raw_vtt: str) -> list[Utterance]:
    """Parse each timed cue into an Utterance with speaker, timing and language.

    Payload lines belong to the most recent timing line until the next blank
    line. Payload seen without a preceding timing line is skipped, as are
    NOTE blocks and cues whose payload is empty after tag stripping.
    """
    utterances: list[Utterance] = []
    state = _State.NORMAL
    timing: tuple[str, str] | None = None
    payload: list[str] = []

    def _flush() -> None:
        if timing is None or not payload:
            return
        raw = " ".join(payload)
        speaker_match = _VOICE_OPEN_RE.search(raw)
        lang_match = _LANG_RE.search(raw)
        text = _WHITESPACE_RE.sub(
            " ", _TAG_RE.sub("", _VOICE_CLOSE_RE.sub("", _VOICE_OPEN_RE.sub("", raw)))
        ).strip()
        if not text:
            return
        utterances.append(
            Utterance(
                speaker=speaker_match.group(1).strip() if speaker_match else None,
                start=timing[0],
                end=timing[1],
                language=lang_match.group(1) if lang_match else None,
                text=text,
            )
        )

    for line in _LINE_SPLIT_RE.split(raw_vtt or ""):
        trimmed = line.strip()

        if not trimmed:
            _flush()
            timing, payload = None, []
            state = _State.NORMAL
            continue
        if state is _State.INSIDE_COMMENT_BLOCK:
            continue
        if timing is None:
            if _HEADER_RE.match(trimmed):
                continue
            if _NOTE_RE.match(trimmed):
                state = _State.INSIDE_COMMENT_BLOCK
                continue
            timing_match = _TIMING_RE.match(trimmed)
            if timing_match:
                timing = (timing_match.group(1), timing_match.group(2))
            continue
        payload.append(trimmed)

    _flush()
    return utterances
