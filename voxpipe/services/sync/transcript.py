"""Normalization of remote transcripts into canonical turns.

The voice API has delivered transcripts as a flat string, a bare list of
turn objects, or a ``{"messages": [...]}`` wrapper.  :func:`classify_transcript`
maps a raw payload onto the matching :data:`Transcript` variant and each
variant has its own normalizer.
"""

from __future__ import annotations

from typing import Any, Callable

from voxpipe.models.conversation import (
    FlatTranscript,
    Transcript,
    TranscriptTurn,
    TurnsTranscript,
    WrappedTranscript,
)


def classify_transcript(raw: Any) -> Transcript | None:
    """Return the variant for *raw*, or ``None`` when no shape matches."""
    if isinstance(raw, str):
        return FlatTranscript(text=raw)
    if isinstance(raw, list):
        return TurnsTranscript(turns=[turn for turn in raw if isinstance(turn, dict)])
    if isinstance(raw, dict) and isinstance(raw.get("messages"), list):
        return WrappedTranscript(
            messages=[turn for turn in raw["messages"] if isinstance(turn, dict)]
        )
    return None


def normalize_turn(raw: dict[str, Any]) -> TranscriptTurn:
    """Build one canonical turn from a remote turn object.

    Without an explicit ``role`` the ``is_agent`` flag picks ``"agent"`` or
    ``"user"``.  Text is read from ``text``, then ``message``, then
    ``content``.
    """
    role = raw.get("role") or ("agent" if raw.get("is_agent") else "user")
    message = raw.get("text") or raw.get("message") or raw.get("content") or ""
    offset = raw.get("time_in_call_secs")
    return TranscriptTurn(
        role=str(role),
        message=str(message),
        offset_seconds=float(offset) if isinstance(offset, (int, float)) else None,
    )


def normalize_flat(transcript: FlatTranscript) -> list[TranscriptTurn]:
    if not transcript.text:
        return []
    return [TranscriptTurn(role="system", message=transcript.text)]


def normalize_turns(transcript: TurnsTranscript) -> list[TranscriptTurn]:
    return [normalize_turn(turn) for turn in transcript.turns]


def normalize_wrapped(transcript: WrappedTranscript) -> list[TranscriptTurn]:
    return [normalize_turn(turn) for turn in transcript.messages]


_NORMALIZERS: dict[str, Callable[[Any], list[TranscriptTurn]]] = {
    "flat": normalize_flat,
    "turns": normalize_turns,
    "wrapped": normalize_wrapped,
}


def normalize_transcript(raw: Any) -> list[TranscriptTurn]:
    """Classify and normalize a raw transcript payload in one step."""
    transcript = classify_transcript(raw)
    if transcript is None:
        return []
    return _NORMALIZERS[transcript.kind](transcript)
