"""Tests for candidate validation."""

from __future__ import annotations

import pytest

from roomsync.core.errors import InvalidPayloadError
from roomsync.core.validation import parse_candidate, validate_candidate
from roomsync.models.enums import EventKind, RejectReason
from roomsync.models.event import CandidateEvent, CodeOutputPayload
from tests.conftest import make_chat, make_code, make_stroke


class TestChatRules:
    def test_text_is_trimmed(self) -> None:
        candidate = validate_candidate(make_chat("  hi  "))
        assert candidate.payload.text == "hi"  # type: ignore[union-attr]

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_text_rejected(self, text: str) -> None:
        with pytest.raises(InvalidPayloadError) as exc_info:
            validate_candidate(make_chat(text))
        assert exc_info.value.reason == RejectReason.INVALID_PAYLOAD

    def test_blank_author_name_rejected(self) -> None:
        with pytest.raises(InvalidPayloadError):
            validate_candidate(make_chat("hi", author_name=" "))


class TestCodeRules:
    def test_supported_language_passes(self) -> None:
        candidate = make_code("x", language="typescript")
        assert validate_candidate(candidate) is candidate

    def test_unsupported_language_rejected(self) -> None:
        with pytest.raises(InvalidPayloadError, match="Unsupported language"):
            validate_candidate(make_code("x", language="cobol"))


class TestStrokeRules:
    def test_valid_stroke_passes(self) -> None:
        candidate = make_stroke("s1", points=[(0.0, 0.0), (1.0, 1.0)])
        assert validate_candidate(candidate) is candidate

    def test_empty_points_rejected(self) -> None:
        with pytest.raises(InvalidPayloadError, match="no points"):
            validate_candidate(make_stroke(points=[]))

    def test_out_of_range_point_rejected(self) -> None:
        with pytest.raises(InvalidPayloadError, match="outside"):
            validate_candidate(make_stroke(points=[(0.5, 1.5)]))

    @pytest.mark.parametrize("width", [0, -1.0, float("nan"), float("inf")])
    def test_bad_width_rejected(self, width: float) -> None:
        with pytest.raises(InvalidPayloadError, match="width"):
            validate_candidate(make_stroke(width=width))

    def test_bad_color_rejected(self) -> None:
        with pytest.raises(InvalidPayloadError, match="color"):
            validate_candidate(make_stroke(color="red"))

    def test_blank_stroke_id_rejected(self) -> None:
        with pytest.raises(InvalidPayloadError, match="Stroke id"):
            validate_candidate(make_stroke(stroke_id=" "))


class TestSystemKinds:
    def test_participants_cannot_submit_code_output(self) -> None:
        candidate = CandidateEvent(payload=CodeOutputPayload(language="python", stdout="pwned"))
        with pytest.raises(InvalidPayloadError, match="cannot be submitted"):
            validate_candidate(candidate)

    def test_system_may_append_code_output(self) -> None:
        candidate = CandidateEvent(payload=CodeOutputPayload(language="python"))
        assert validate_candidate(candidate, system=True) is candidate


class TestParseCandidate:
    def test_parses_wire_data(self) -> None:
        candidate = parse_candidate(
            {"payload": {"kind": "chat_message", "author_name": "A", "text": "hi"}}
        )
        assert candidate.kind == EventKind.CHAT_MESSAGE

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(InvalidPayloadError):
            parse_candidate({"payload": {"kind": "video_call"}})

    def test_missing_fields_rejected(self) -> None:
        with pytest.raises(InvalidPayloadError):
            parse_candidate({"payload": {"kind": "drawing_stroke"}})
