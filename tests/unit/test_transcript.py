"""Unit tests for transcript classification and normalization."""

from __future__ import annotations

from voxpipe.models.conversation import FlatTranscript, TurnsTranscript, WrappedTranscript
from voxpipe.services.sync.transcript import (
    classify_transcript,
    normalize_transcript,
    normalize_turn,
)


class TestClassify:
    def test_string_is_flat(self) -> None:
        assert isinstance(classify_transcript("Agent: hi"), FlatTranscript)

    def test_list_is_turns(self) -> None:
        variant = classify_transcript([{"role": "agent"}, "junk", 3])
        assert isinstance(variant, TurnsTranscript)
        assert variant.turns == [{"role": "agent"}]

    def test_messages_wrapper(self) -> None:
        variant = classify_transcript({"messages": [{"role": "user", "text": "hi"}]})
        assert isinstance(variant, WrappedTranscript)
        assert variant.kind == "wrapped"

    def test_unrecognized_shapes(self) -> None:
        assert classify_transcript(None) is None
        assert classify_transcript(42) is None
        assert classify_transcript({"turns": []}) is None


class TestNormalize:
    def test_bare_list(self) -> None:
        turns = normalize_transcript(
            [
                {"role": "agent", "message": "Hello", "time_in_call_secs": 0},
                {"role": "user", "message": "Hi there", "time_in_call_secs": 2.5},
            ]
        )

        assert [(t.role, t.message, t.offset_seconds) for t in turns] == [
            ("agent", "Hello", 0.0),
            ("user", "Hi there", 2.5),
        ]

    def test_wrapped_list(self) -> None:
        turns = normalize_transcript({"messages": [{"role": "user", "content": "Need help"}]})

        assert len(turns) == 1
        assert turns[0].message == "Need help"
        assert turns[0].offset_seconds is None

    def test_flat_string_becomes_single_system_turn(self) -> None:
        turns = normalize_transcript("Agent: hi. User: bye.")

        assert len(turns) == 1
        assert turns[0].role == "system"
        assert turns[0].message == "Agent: hi. User: bye."

    def test_empty_inputs(self) -> None:
        assert normalize_transcript("") == []
        assert normalize_transcript([]) == []
        assert normalize_transcript(None) == []

    def test_role_from_is_agent_flag(self) -> None:
        assert normalize_turn({"is_agent": True, "text": "a"}).role == "agent"
        assert normalize_turn({"is_agent": False, "text": "b"}).role == "user"
        assert normalize_turn({"text": "c"}).role == "user"

    def test_message_field_precedence(self) -> None:
        turn = normalize_turn({"role": "agent", "text": "T", "message": "M", "content": "C"})
        assert turn.message == "T"
        assert normalize_turn({"role": "agent"}).message == ""
