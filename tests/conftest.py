"""Shared test fixtures and helpers."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Coroutine
from datetime import UTC, datetime
from typing import Any

import pytest

from roomsync.core.framework import RoomSync
from roomsync.core.locks import InMemoryLockManager
from roomsync.core.templates import default_seed
from roomsync.models.config import RoomSyncConfig
from roomsync.models.enums import CodeLanguage, Panel
from roomsync.models.event import (
    CandidateEvent,
    ChatMessagePayload,
    CodeEditPayload,
    DrawingClearPayload,
    DrawingStrokePayload,
    InstructionEditPayload,
    PanelFocusPayload,
    Point,
    RoomEvent,
)
from roomsync.models.room import Room


@pytest.fixture
def advance() -> Callable[[int], Coroutine[Any, Any, None]]:
    """Yield control to let pending tasks run without real delay.

    ::

        await advance()       # 5 yields (default)
        await advance(20)     # more yields for chained background tasks
    """

    async def _advance(n: int = 5) -> None:
        for _ in range(n):
            await asyncio.sleep(0)

    return _advance


@pytest.fixture
def config() -> RoomSyncConfig:
    return RoomSyncConfig()


@pytest.fixture
def lock_manager() -> InMemoryLockManager:
    return InMemoryLockManager()


@pytest.fixture
async def sync(config: RoomSyncConfig) -> AsyncIterator[RoomSync]:
    rs = RoomSync(config)
    yield rs
    await rs.close()


@pytest.fixture
def room() -> Room:
    now = datetime.now(UTC)
    return Room(id="r1", passkey="abc", seed=default_seed(), created_at=now, idle_since=now)


def make_chat(
    text: str = "hello", author_name: str = "Alice", **kwargs: Any
) -> CandidateEvent:
    return CandidateEvent(
        payload=ChatMessagePayload(author_name=author_name, text=text), **kwargs
    )


def make_code(
    full_text: str = "print(1)", language: str = CodeLanguage.PYTHON, **kwargs: Any
) -> CandidateEvent:
    return CandidateEvent(
        payload=CodeEditPayload(language=language, full_text=full_text), **kwargs
    )


def make_instructions(full_text: str = "Reverse a list.", **kwargs: Any) -> CandidateEvent:
    return CandidateEvent(payload=InstructionEditPayload(full_text=full_text), **kwargs)


def make_stroke(
    stroke_id: str = "s1",
    points: list[tuple[float, float]] | None = None,
    color: str = "#ff0000",
    width: float = 2.0,
    **kwargs: Any,
) -> CandidateEvent:
    pts = points if points is not None else [(0.1, 0.1), (0.5, 0.5)]
    return CandidateEvent(
        payload=DrawingStrokePayload(
            stroke_id=stroke_id,
            points=[Point(x=x, y=y) for x, y in pts],
            color=color,
            width=width,
        ),
        **kwargs,
    )


def make_clear(reason: str | None = None) -> CandidateEvent:
    return CandidateEvent(payload=DrawingClearPayload(reason=reason))


def make_focus(panel: Panel = Panel.CODE) -> CandidateEvent:
    return CandidateEvent(payload=PanelFocusPayload(panel=panel))


def make_event(
    sequence: int,
    candidate: CandidateEvent | None = None,
    room_id: str = "r1",
    author_id: str = "alice",
) -> RoomEvent:
    """Build a sequenced event directly, bypassing the coordinator."""
    candidate = candidate or make_chat()
    return RoomEvent(
        sequence=sequence,
        room_id=room_id,
        author_id=author_id,
        payload=candidate.payload,
        client_timestamp=candidate.client_timestamp,
        idempotency_key=candidate.idempotency_key,
    )
