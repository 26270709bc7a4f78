"""Tests for models, config and templates."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from roomsync.core.errors import (
    AuthRejectedError,
    BadPasskeyError,
    CoordinatorTimeoutError,
    InvalidPayloadError,
    RoomAlreadyExistsError,
    RoomClosedError,
    RoomNotFoundError,
    SessionNotFoundError,
)
from roomsync.core.templates import (
    DEFAULT_INSTRUCTIONS,
    FALLBACK_TEMPLATE,
    default_seed,
    language_template,
)
from roomsync.models.config import RoomSyncConfig
from roomsync.models.enums import CodeLanguage, EventKind, RejectReason
from roomsync.models.event import CandidateEvent, RoomEvent
from roomsync.models.room import Room


class TestConfig:
    def test_defaults(self) -> None:
        config = RoomSyncConfig()
        assert config.submit_timeout_seconds == 5.0
        assert config.max_pending_events == 1000
        assert config.idle_timeout_seconds == 300.0
        assert config.max_retained_events is None

    @pytest.mark.parametrize(
        "field,value",
        [
            ("submit_timeout_seconds", 0),
            ("max_pending_events", 0),
            ("max_retained_events", 0),
            ("idle_timeout_seconds", -1),
        ],
    )
    def test_rejects_out_of_range(self, field: str, value: float) -> None:
        with pytest.raises(ValidationError):
            RoomSyncConfig(**{field: value})


class TestEvents:
    def test_payload_discriminated_by_kind(self) -> None:
        candidate = CandidateEvent.model_validate(
            {"payload": {"kind": "code_edit", "language": "python", "full_text": "x"}}
        )
        assert candidate.kind == EventKind.CODE_EDIT

    def test_sequence_must_be_non_negative(self) -> None:
        with pytest.raises(ValidationError):
            RoomEvent(
                sequence=-1,
                room_id="r1",
                author_id="a",
                payload={"kind": "drawing_clear"},  # type: ignore[arg-type]
            )

    def test_round_trips_through_json(self) -> None:
        event = RoomEvent(
            sequence=3,
            room_id="r1",
            author_id="a",
            payload={"kind": "panel_focus", "panel": "code"},  # type: ignore[arg-type]
        )
        assert RoomEvent.model_validate_json(event.model_dump_json()) == event


class TestRoom:
    def test_eviction_deadline(self) -> None:
        now = datetime.now(UTC)
        room = Room(id="r1", passkey="abc", seed=default_seed(), idle_since=now)
        assert room.eviction_deadline == now + timedelta(seconds=300)
        active = room.model_copy(update={"idle_since": None})
        assert active.eviction_deadline is None


class TestTemplates:
    def test_every_language_has_a_template(self) -> None:
        for language in CodeLanguage:
            assert language_template(language) != FALLBACK_TEMPLATE

    def test_unknown_language_falls_back(self) -> None:
        assert language_template("cobol") == FALLBACK_TEMPLATE

    def test_default_seed(self) -> None:
        seed = default_seed()
        assert seed.instructions == DEFAULT_INSTRUCTIONS
        assert seed.language == CodeLanguage.JAVASCRIPT
        assert seed.code == language_template(CodeLanguage.JAVASCRIPT)


class TestErrors:
    @pytest.mark.parametrize(
        "exc_type,reason",
        [
            (InvalidPayloadError, RejectReason.INVALID_PAYLOAD),
            (RoomNotFoundError, RejectReason.ROOM_NOT_FOUND),
            (BadPasskeyError, RejectReason.BAD_PASSKEY),
            (CoordinatorTimeoutError, RejectReason.TIMEOUT),
            (SessionNotFoundError, RejectReason.SESSION_NOT_FOUND),
            (AuthRejectedError, RejectReason.AUTH_REJECTED),
            (RoomAlreadyExistsError, RejectReason.ROOM_EXISTS),
            (RoomClosedError, RejectReason.ROOM_CLOSED),
        ],
    )
    def test_reason(self, exc_type: type[Exception], reason: RejectReason) -> None:
        assert exc_type("x").reason == reason  # type: ignore[attr-defined]
