"""RoomSync - entry point tying rooms, sessions and collaborators together."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime
from typing import Any

from roomsync.auth.base import AuthGate
from roomsync.core.coordinator import SessionCoordinator
from roomsync.core.errors import RoomClosedError, RoomNotFoundError
from roomsync.core.locks import InMemoryLockManager, RoomLockManager
from roomsync.core.registry import RoomRegistry
from roomsync.core.session import ParticipantSession
from roomsync.executor.base import CodeExecutor
from roomsync.models.config import RoomSyncConfig
from roomsync.models.delivery import Delivery, JoinResult
from roomsync.models.enums import CodeLanguage
from roomsync.models.event import CandidateEvent, RoomEvent
from roomsync.models.framework_event import FrameworkEvent
from roomsync.models.projection import RoomState
from roomsync.models.room import Room
from roomsync.responder.base import ChatResponder
from roomsync.telemetry.base import NoopTelemetryProvider, TelemetryProvider

logger = logging.getLogger("roomsync.framework")

FrameworkEventHandler = Callable[[FrameworkEvent], Awaitable[None]]


class RoomSync:
    """Central coordinator for interview rooms.

    Owns the ``RoomRegistry`` and routes session-level calls to the owning
    room's ``SessionCoordinator``.
    """

    def __init__(
        self,
        config: RoomSyncConfig | None = None,
        *,
        lock_manager: RoomLockManager | None = None,
        auth_gate: AuthGate | None = None,
        executor: CodeExecutor | None = None,
        responder: ChatResponder | None = None,
        telemetry: TelemetryProvider | None = None,
    ) -> None:
        """Initialise RoomSync.

        Args:
            config: Timeouts, buffer sizes and retention. Defaults to
                ``RoomSyncConfig()``.
            lock_manager: Per-room locking backend. Defaults to
                ``InMemoryLockManager``.
            auth_gate: Identity check run on every join after the passkey
                matches. Defaults to ``DefaultAuthGate``.
            executor: Optional sandbox used by :meth:`run_code`.
            responder: Optional automated chat partner. Its replies are
                appended as ordinary chat events.
            telemetry: Span and metric sink. Defaults to
                ``NoopTelemetryProvider``.
        """
        self._config = config or RoomSyncConfig()
        self._lock_manager = lock_manager or InMemoryLockManager(self._config.max_locks)
        self._telemetry = telemetry or NoopTelemetryProvider()
        self._event_handlers: list[tuple[str, FrameworkEventHandler]] = []
        self._registry = RoomRegistry(
            config=self._config,
            lock_manager=self._lock_manager,
            auth_gate=auth_gate,
            executor=executor,
            responder=responder,
            telemetry=self._telemetry,
            emit=self._emit_framework_event,
        )
        self._sweeper: asyncio.Task[None] | None = None

    @property
    def config(self) -> RoomSyncConfig:
        return self._config

    @property
    def registry(self) -> RoomRegistry:
        return self._registry

    @property
    def telemetry(self) -> TelemetryProvider:
        return self._telemetry

    # -- Lifecycle --

    async def start(self) -> None:
        """Launch the background idle-room sweeper."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.create_task(self._sweep_loop(), name="roomsync-sweeper")

    async def close(self) -> None:
        """Stop the sweeper and close every room."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        await self._registry.close()

    async def __aenter__(self) -> RoomSync:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def _sweep_loop(self) -> None:
        interval = self._config.sweep_interval_seconds
        while True:
            await asyncio.sleep(interval)
            try:
                await self.evict_idle_rooms()
            except Exception:
                logger.exception("Idle room sweep failed")

    # -- Rooms --

    async def create_room(
        self,
        passkey: str | None = None,
        *,
        room_id: str | None = None,
        instructions: str | None = None,
        language: str = CodeLanguage.JAVASCRIPT,
        metadata: dict[str, Any] | None = None,
    ) -> Room:
        """Create a room. A passkey is generated when *passkey* is ``None``."""
        room = self._registry.create_room(
            passkey,
            room_id=room_id,
            instructions=instructions,
            language=language,
            metadata=metadata,
        )
        await self._emit_framework_event(
            FrameworkEvent(type="room_created", room_id=room.id, data={"language": language})
        )
        return room

    def get_room(self, room_id: str) -> Room:
        return self._registry.get(room_id).room

    def list_rooms(self) -> list[Room]:
        return self._registry.list_rooms()

    def coordinator(self, room_id: str) -> SessionCoordinator:
        return self._registry.get(room_id)

    async def evict_idle_rooms(self, now: datetime | None = None) -> list[str]:
        """Evict rooms empty past their grace window; returns their ids."""
        evicted = await self._registry.evict_idle_rooms(now)
        for room_id in evicted:
            await self._emit_framework_event(
                FrameworkEvent(type="room_evicted", room_id=room_id, data={"reason": "idle"})
            )
        return evicted

    async def evict_room(self, room_id: str) -> None:
        await self._registry.evict(room_id)
        await self._emit_framework_event(
            FrameworkEvent(type="room_evicted", room_id=room_id, data={"reason": "explicit"})
        )

    # -- Sessions --

    async def join(self, room_id: str, passkey: str, display_name: str) -> JoinResult:
        """Join a room by id and passkey.

        Returns the session plus everything needed to build the panels:
        ``base_state`` folded with ``initial_events``.
        """
        return await self._registry.join(room_id, passkey, display_name)

    async def leave(self, session_id: str) -> None:
        await self._registry.leave(session_id)

    def get_session(self, session_id: str) -> ParticipantSession:
        return self._registry.for_session(session_id).get_session(session_id)

    async def submit(self, session_id: str, candidate: CandidateEvent) -> RoomEvent:
        """Submit an action on behalf of a joined participant."""
        coordinator = self._registry.for_session(session_id)
        session = coordinator.get_session(session_id)
        try:
            return await coordinator.submit(session.author_id, candidate)
        except RoomClosedError as exc:
            raise RoomNotFoundError(f"Room {coordinator.room_id} not found") from exc

    async def submit_to_room(
        self, room_id: str, author_id: str, candidate: CandidateEvent
    ) -> RoomEvent:
        """Submit an action without a session, e.g. from a server-side bot."""
        coordinator = self._registry.get(room_id)
        try:
            return await coordinator.submit(author_id, candidate)
        except RoomClosedError as exc:
            raise RoomNotFoundError(f"Room {room_id} not found") from exc

    async def ack(self, session_id: str, sequence: int) -> int:
        return await self._registry.for_session(session_id).ack(session_id, sequence)

    async def resync(self, session_id: str) -> JoinResult:
        """Replace a lagging session's stream with a fresh full replay."""
        return await self._registry.for_session(session_id).resync(session_id)

    def run_code(self, session_id: str) -> asyncio.Task[RoomEvent]:
        """Run the room's current code; the output arrives as a ``code_output`` event."""
        coordinator = self._registry.for_session(session_id)
        return coordinator.run_code(coordinator.get_session(session_id).author_id)

    # -- Reads --

    def subscribe(self, room_id: str, from_sequence: int = 0) -> AsyncIterator[Delivery]:
        """Replay-then-live stream of a room, usable without a session.

        Raises ``RoomNotFoundError`` immediately for an unknown room.
        """
        return self._registry.get(room_id).subscribe(from_sequence)

    def snapshot(self, room_id: str) -> RoomState:
        return self._registry.get(room_id).snapshot()

    def events(self, room_id: str, from_sequence: int = 0) -> list[RoomEvent]:
        """Retained log entries with sequence >= *from_sequence*."""
        return list(self._registry.get(room_id).log.read_from(from_sequence))

    # -- Framework events --

    def on(self, event_type: str) -> Callable[..., Any]:
        """Decorator to register a framework event handler filtered by type."""

        def decorator(fn: FrameworkEventHandler) -> FrameworkEventHandler:
            self._event_handlers.append((event_type, fn))
            return fn

        return decorator

    async def _emit_framework_event(self, fw_event: FrameworkEvent) -> None:
        for filter_type, handler in self._event_handlers:
            if filter_type == fw_event.type:
                try:
                    await handler(fw_event)
                except Exception:
                    logger.exception(
                        "Framework event handler failed",
                        extra={"event_type": fw_event.type, "room_id": fw_event.room_id},
                    )
