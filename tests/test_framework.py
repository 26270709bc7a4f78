"""End-to-end tests for the RoomSync facade."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from roomsync.core.errors import (
    BadPasskeyError,
    CoordinatorTimeoutError,
    RoomNotFoundError,
    SessionNotFoundError,
)
from roomsync.core.framework import RoomSync
from roomsync.core.locks import InMemoryLockManager
from roomsync.core.projectors import replay
from roomsync.executor.mock import MockCodeExecutor
from roomsync.models.config import RoomSyncConfig
from roomsync.models.delivery import JoinResult
from roomsync.models.enums import EventKind
from roomsync.models.framework_event import FrameworkEvent
from roomsync.models.projection import RoomState
from roomsync.responder.mock import MockChatResponder
from tests.conftest import make_chat, make_code, make_stroke


async def _take(result: JoinResult, n: int) -> list[Any]:
    stream = result.session.events()
    return [await asyncio.wait_for(anext(stream), 1.0) for _ in range(n)]


def _view(result: JoinResult, live: list[Any]) -> RoomState:
    state = replay(result.initial_events, result.base_state.room_id, state=result.base_state)
    return replay(live, state.room_id, state=state)


class TestInterviewScenario:
    async def test_two_participants_see_same_chat(self, sync: RoomSync) -> None:
        await sync.create_room("abc", room_id="r1")

        a = await sync.join("r1", "abc", "A")
        hi = await sync.submit(a.session_id, make_chat("hi", author_name="A"))
        b = await sync.join("r1", "abc", "B")
        hello = await sync.submit(b.session_id, make_chat("hello", author_name="B"))

        assert hi.sequence == 0
        assert hello.sequence == 1
        view_a = _view(a, await _take(a, 2))
        view_b = _view(b, await _take(b, 1))
        assert view_a.chat.texts == ["hi", "hello"]
        assert view_b.chat.texts == ["hi", "hello"]
        assert view_a == view_b == sync.snapshot("r1")

    async def test_stroke_retry(self, sync: RoomSync) -> None:
        await sync.create_room("abc", room_id="r1")
        a = await sync.join("r1", "abc", "A")

        first = await sync.submit(a.session_id, make_stroke("s1"))
        retry = await sync.submit(a.session_id, make_stroke("s1"))

        assert first == retry
        assert len(sync.events("r1")) == 1

    async def test_wrong_passkey(self, sync: RoomSync) -> None:
        await sync.create_room("abc", room_id="r1")
        a = await sync.join("r1", "abc", "A")
        await sync.submit(a.session_id, make_chat("hi"))

        with pytest.raises(BadPasskeyError):
            await sync.join("r1", "wrong", "B")

        assert len(sync.events("r1")) == 1
        assert sync.coordinator("r1").participant_count == 1

    async def test_authors_are_session_identities(self, sync: RoomSync) -> None:
        await sync.create_room("abc", room_id="r1")
        a = await sync.join("r1", "abc", "A")
        event = await sync.submit(a.session_id, make_chat("hi"))
        assert event.author_id == a.session.author_id


class TestSessions:
    async def test_unknown_session(self, sync: RoomSync) -> None:
        with pytest.raises(SessionNotFoundError):
            await sync.submit("nope", make_chat("hi"))

    async def test_submit_after_eviction(self, sync: RoomSync) -> None:
        await sync.create_room("abc", room_id="r1")
        a = await sync.join("r1", "abc", "A")
        await sync.evict_room("r1")
        with pytest.raises((RoomNotFoundError, SessionNotFoundError)):
            await sync.submit(a.session_id, make_chat("hi"))

    async def test_submit_to_room_without_session(self, sync: RoomSync) -> None:
        await sync.create_room("abc", room_id="r1")
        event = await sync.submit_to_room("r1", "bot", make_chat("welcome"))
        assert event.author_id == "bot"
        with pytest.raises(RoomNotFoundError):
            await sync.submit_to_room("r2", "bot", make_chat("welcome"))

    async def test_ack_and_resync(self) -> None:
        sync = RoomSync(RoomSyncConfig(max_pending_events=1))
        await sync.create_room("abc", room_id="r1")
        a = await sync.join("r1", "abc", "A")
        await sync.submit_to_room("r1", "bot", make_chat("m0"))
        await sync.submit_to_room("r1", "bot", make_chat("m1"))

        fresh = await sync.resync(a.session_id)

        assert len(fresh.initial_events) == 2
        assert await sync.ack(a.session_id, 1) == 1
        assert sync.get_session(a.session_id).last_acked_sequence == 1
        await sync.close()

    async def test_subscribe_without_session(self, sync: RoomSync) -> None:
        await sync.create_room("abc", room_id="r1")
        await sync.submit_to_room("r1", "bot", make_chat("m0"))
        stream = sync.subscribe("r1", 0)
        first = await asyncio.wait_for(anext(stream), 1.0)
        await stream.aclose()  # type: ignore[attr-defined]
        assert first.sequence == 0


class TestCollaborators:
    async def test_run_code(self) -> None:
        sync = RoomSync(executor=MockCodeExecutor(["42\n"]))
        await sync.create_room("abc", room_id="r1")
        a = await sync.join("r1", "abc", "A")
        await sync.submit(a.session_id, make_code("print(42)"))

        output = await sync.run_code(a.session_id)

        assert output.kind == EventKind.CODE_OUTPUT
        assert sync.snapshot("r1").output.stdout == "42\n"  # type: ignore[union-attr]
        await sync.close()

    async def test_responder_reply_reaches_participants(self) -> None:
        sync = RoomSync(responder=MockChatResponder(["Why?"]))
        await sync.create_room("abc", room_id="r1")
        a = await sync.join("r1", "abc", "A")
        await sync.submit(a.session_id, make_chat("I'd use recursion"))

        delivered = await _take(a, 2)

        assert [e.payload.text for e in delivered] == ["I'd use recursion", "Why?"]
        await sync.close()


class TestConcurrency:
    async def test_rooms_do_not_block_each_other(self) -> None:
        locks = InMemoryLockManager()
        sync = RoomSync(RoomSyncConfig(submit_timeout_seconds=0.05), lock_manager=locks)
        await sync.create_room("abc", room_id="r1")
        await sync.create_room("abc", room_id="r2")

        async with locks.locked("r1"):
            event = await sync.submit_to_room("r2", "bot", make_chat("free"))
            with pytest.raises(CoordinatorTimeoutError):
                await sync.submit_to_room("r1", "bot", make_chat("blocked"))

        assert event.sequence == 0
        assert sync.events("r1") == []
        await sync.close()


class TestFrameworkEvents:
    async def test_lifecycle_events(self, sync: RoomSync) -> None:
        seen: list[FrameworkEvent] = []

        for event_type in ("room_created", "participant_joined", "participant_left"):

            @sync.on(event_type)
            async def record(fe: FrameworkEvent) -> None:
                seen.append(fe)

        await sync.create_room("abc", room_id="r1")
        a = await sync.join("r1", "abc", "A")
        await sync.leave(a.session_id)

        assert [e.type for e in seen] == ["room_created", "participant_joined", "participant_left"]
        assert all(e.room_id == "r1" for e in seen)
        assert seen[1].data["display_name"] == "A"

    async def test_event_appended(self, sync: RoomSync) -> None:
        sequences: list[int | None] = []

        @sync.on("event_appended")
        async def on_append(fe: FrameworkEvent) -> None:
            sequences.append(fe.sequence)

        await sync.create_room("abc", room_id="r1")
        await sync.submit_to_room("r1", "bot", make_chat("a"))
        await sync.submit_to_room("r1", "bot", make_chat("a", idempotency_key="k"))
        await sync.submit_to_room("r1", "bot", make_chat("a", idempotency_key="k"))
        assert sequences == [0, 1]

    async def test_handler_errors_are_contained(self, sync: RoomSync) -> None:
        @sync.on("room_created")
        async def broken(fe: FrameworkEvent) -> None:
            raise RuntimeError("boom")

        room = await sync.create_room("abc", room_id="r1")
        assert room.id == "r1"


class TestEviction:
    async def test_background_sweeper(self) -> None:
        config = RoomSyncConfig(idle_timeout_seconds=0.01, sweep_interval_seconds=0.01)
        sync = RoomSync(config)
        evicted: list[str | None] = []

        @sync.on("room_evicted")
        async def on_evicted(fe: FrameworkEvent) -> None:
            evicted.append(fe.room_id)

        await sync.create_room("abc", room_id="r1")
        await sync.start()
        await asyncio.sleep(0.1)

        assert evicted == ["r1"]
        with pytest.raises(RoomNotFoundError):
            sync.get_room("r1")
        await sync.close()

    async def test_close_is_idempotent(self) -> None:
        sync = RoomSync()
        await sync.start()
        await sync.close()
        await sync.close()
        assert sync.list_rooms() == []

    async def test_context_manager(self) -> None:
        async with RoomSync() as sync:
            await sync.create_room("abc", room_id="r1")
            assert [r.id for r in sync.list_rooms()] == ["r1"]
        assert sync.list_rooms() == []
