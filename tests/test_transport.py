"""Tests for the wire protocol and SessionConnection."""

from __future__ import annotations

from typing import Any

import pytest

from roomsync.core.errors import InvalidPayloadError
from roomsync.core.framework import RoomSync
from roomsync.core.validation import parse_candidate
from roomsync.executor.mock import MockCodeExecutor
from roomsync.models.event import CandidateEvent
from roomsync.transport.connection import SessionConnection
from roomsync.transport.protocol import JoinRequest, SubmitRequest, parse_inbound

CHAT = {"payload": {"kind": "chat_message", "author_name": "A", "text": "hi"}}


def _chat() -> CandidateEvent:
    return parse_candidate(CHAT)


class Recorder:
    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def __call__(self, message: dict[str, Any]) -> None:
        self.messages.append(message)

    def of_type(self, type_: str) -> list[dict[str, Any]]:
        return [m for m in self.messages if m["type"] == type_]


async def _joined(sync: RoomSync) -> tuple[SessionConnection, Recorder]:
    await sync.create_room("abc", room_id="r1")
    sent = Recorder()
    conn = SessionConnection(sync, sent)
    await conn.handle({"type": "join", "room_id": "r1", "passkey": "abc", "display_name": "A"})
    return conn, sent


class TestProtocol:
    def test_parse_join(self) -> None:
        msg = parse_inbound(
            {"type": "join", "room_id": "r1", "passkey": "abc", "display_name": "A"}
        )
        assert isinstance(msg, JoinRequest)

    def test_parse_submit_with_nested_event(self) -> None:
        msg = parse_inbound({"type": "submit", "event": CHAT, "request_id": "q1"})
        assert isinstance(msg, SubmitRequest)
        assert msg.event.payload.text == "hi"  # type: ignore[union-attr]

    @pytest.mark.parametrize(
        "data",
        [
            {"type": "teleport"},
            {"type": "ack", "sequence": -1},
            {"type": "submit", "event": {"payload": {"kind": "chat_message"}}},
        ],
    )
    def test_malformed_rejected(self, data: dict[str, Any]) -> None:
        with pytest.raises(InvalidPayloadError):
            parse_inbound(data)


class TestSessionConnection:
    async def test_join_sends_snapshot(self, sync: RoomSync) -> None:
        conn, sent = await _joined(sync)
        (joined,) = sent.of_type("joined")
        assert joined["session_id"] == conn.session_id
        assert joined["room_id"] == "r1"
        assert joined["initial_events"] == []
        assert joined["base_state"]["last_sequence"] == -1
        await conn.close()

    async def test_submit_is_accepted_and_pushed(self, sync: RoomSync, advance) -> None:
        conn, sent = await _joined(sync)

        await conn.handle({"type": "submit", "event": CHAT, "request_id": "q1"})
        await advance()

        assert sent.of_type("accepted") == [
            {"type": "accepted", "request_id": "q1", "sequence": 0}
        ]
        (pushed,) = sent.of_type("event")
        assert pushed["event"]["sequence"] == 0
        assert pushed["event"]["payload"]["kind"] == "chat_message"
        await conn.close()

    async def test_bad_passkey(self, sync: RoomSync) -> None:
        await sync.create_room("abc", room_id="r1")
        sent = Recorder()
        conn = SessionConnection(sync, sent)
        await conn.handle(
            {"type": "join", "room_id": "r1", "passkey": "wrong", "display_name": "B"}
        )
        assert [m["code"] for m in sent.of_type("error")] == ["bad_passkey"]
        assert not conn.joined

    async def test_submit_before_join(self, sync: RoomSync) -> None:
        sent = Recorder()
        conn = SessionConnection(sync, sent)
        await conn.handle({"type": "submit", "event": CHAT, "request_id": "q9"})
        (error,) = sent.of_type("error")
        assert error["code"] == "session_not_found"
        assert error["request_id"] == "q9"

    async def test_invalid_payload_reported(self, sync: RoomSync) -> None:
        conn, sent = await _joined(sync)
        blank = {"payload": {"kind": "chat_message", "author_name": "A", "text": "  "}}
        await conn.handle({"type": "submit", "event": blank, "request_id": "q2"})
        (error,) = sent.of_type("error")
        assert error["code"] == "invalid_payload"
        assert error["request_id"] == "q2"
        assert sync.events("r1") == []
        await conn.close()

    async def test_join_twice_rejected(self, sync: RoomSync) -> None:
        conn, sent = await _joined(sync)
        await conn.handle({"type": "join", "room_id": "r1", "passkey": "abc", "display_name": "A"})
        assert [m["code"] for m in sent.of_type("error")] == ["invalid_payload"]
        assert sync.coordinator("r1").participant_count == 1
        await conn.close()

    async def test_ack(self, sync: RoomSync) -> None:
        conn, sent = await _joined(sync)
        await conn.handle({"type": "submit", "event": CHAT})
        await conn.handle({"type": "ack", "sequence": 0})
        assert conn.session_id is not None
        assert sync.get_session(conn.session_id).last_acked_sequence == 0
        assert sent.of_type("error") == []
        await conn.close()

    async def test_resync_sends_fresh_snapshot(self, sync: RoomSync, advance) -> None:
        conn, sent = await _joined(sync)
        await sync.submit_to_room("r1", "bot", _chat())
        await advance()
        assert conn.session_id is not None

        session = sync.get_session(conn.session_id)
        session.subscription.force_resync("test")
        await advance(10)

        types = [m["type"] for m in sent.messages]
        assert types == ["joined", "event", "resync", "joined"]
        assert [e["sequence"] for e in sent.messages[-1]["initial_events"]] == [0]

        await sync.submit_to_room("r1", "bot", _chat())
        await advance()
        assert sent.messages[-1]["type"] == "event"
        assert sent.messages[-1]["event"]["sequence"] == 1
        await conn.close()

    async def test_run_code(self, advance) -> None:
        sync = RoomSync(executor=MockCodeExecutor(["ok\n"]))
        conn, sent = await _joined(sync)

        await conn.handle({"type": "run_code", "request_id": "run1"})
        await advance(10)

        assert sent.of_type("accepted") == [
            {"type": "accepted", "request_id": "run1", "sequence": None}
        ]
        (pushed,) = sent.of_type("event")
        assert pushed["event"]["payload"]["kind"] == "code_output"
        assert pushed["event"]["payload"]["stdout"] == "ok\n"
        await sync.close()

    async def test_leave(self, sync: RoomSync) -> None:
        conn, _ = await _joined(sync)
        await conn.handle({"type": "leave"})
        assert not conn.joined
        assert sync.coordinator("r1").participant_count == 0
        # Closing again is harmless
        await conn.close()

    async def test_send_failure_leaves_room(self, sync: RoomSync, advance) -> None:
        class Disconnecting(Recorder):
            async def __call__(self, message: dict[str, Any]) -> None:
                if message["type"] == "event":
                    raise ConnectionResetError("client went away")
                await super().__call__(message)

        await sync.create_room("abc", room_id="r1")
        sent = Disconnecting()
        conn = SessionConnection(sync, sent)
        await conn.handle({"type": "join", "room_id": "r1", "passkey": "abc", "display_name": "A"})
        assert sync.coordinator("r1").participant_count == 1

        await sync.submit_to_room("r1", "bot", _chat())
        await advance(10)

        assert not conn.joined
        assert sync.coordinator("r1").participant_count == 0
        assert sync.get_room("r1").idle_since is not None
