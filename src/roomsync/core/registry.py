"""RoomRegistry: room lifecycle and the passkey join gate."""

from __future__ import annotations

import hmac
import logging
import secrets
import string
from datetime import UTC, datetime
from typing import Any

from roomsync.auth.base import AuthGate, DefaultAuthGate
from roomsync.core.coordinator import FrameworkEmitter, SessionCoordinator
from roomsync.core.errors import (
    AuthRejectedError,
    BadPasskeyError,
    InvalidPayloadError,
    RoomAlreadyExistsError,
    RoomClosedError,
    RoomNotFoundError,
    SessionNotFoundError,
)
from roomsync.core.locks import InMemoryLockManager, RoomLockManager
from roomsync.core.templates import default_seed
from roomsync.core.validation import SUPPORTED_LANGUAGES
from roomsync.executor.base import CodeExecutor
from roomsync.models.config import RoomSyncConfig
from roomsync.models.delivery import JoinResult
from roomsync.models.enums import CodeLanguage, RoomStatus
from roomsync.models.room import Room
from roomsync.responder.base import ChatResponder
from roomsync.telemetry.base import (
    Attr,
    NoopTelemetryProvider,
    SpanKind,
    TelemetryProvider,
)

logger = logging.getLogger("roomsync.registry")

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_room_id() -> str:
    return "room-" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(8))


def generate_passkey() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(12))


def passkeys_match(expected: str, supplied: str) -> bool:
    """Constant-time passkey comparison."""
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


class RoomRegistry:
    """Maps room ids to their ``SessionCoordinator``.

    Rooms are created explicitly and destroyed only by explicit eviction
    after staying empty for the configured grace window; a participant who
    rejoins inside the window finds the room intact.
    """

    def __init__(
        self,
        *,
        config: RoomSyncConfig | None = None,
        lock_manager: RoomLockManager | None = None,
        auth_gate: AuthGate | None = None,
        executor: CodeExecutor | None = None,
        responder: ChatResponder | None = None,
        telemetry: TelemetryProvider | None = None,
        emit: FrameworkEmitter | None = None,
    ) -> None:
        self._config = config or RoomSyncConfig()
        self._lock_manager = lock_manager or InMemoryLockManager(self._config.max_locks)
        self._auth_gate = auth_gate or DefaultAuthGate()
        self._executor = executor
        self._responder = responder
        self._telemetry = telemetry or NoopTelemetryProvider()
        self._emit = emit
        self._rooms: dict[str, SessionCoordinator] = {}
        self._session_rooms: dict[str, str] = {}

    @property
    def config(self) -> RoomSyncConfig:
        return self._config

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    def list_rooms(self) -> list[Room]:
        return [c.room for c in self._rooms.values()]

    def get(self, room_id: str) -> SessionCoordinator:
        coordinator = self._rooms.get(room_id)
        if coordinator is None or coordinator.closed:
            raise RoomNotFoundError(f"Room {room_id} not found")
        return coordinator

    def for_session(self, session_id: str) -> SessionCoordinator:
        room_id = self._session_rooms.get(session_id)
        if room_id is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        try:
            return self.get(room_id)
        except RoomNotFoundError:
            self._session_rooms.pop(session_id, None)
            raise

    def create_room(
        self,
        passkey: str | None = None,
        *,
        room_id: str | None = None,
        instructions: str | None = None,
        language: str = CodeLanguage.JAVASCRIPT,
        metadata: dict[str, Any] | None = None,
    ) -> Room:
        """Create a room; generates the id and passkey when not supplied.

        A new room counts as idle until someone joins. Raises
        ``InvalidPayloadError`` for an unsupported *language*.
        """
        if language not in SUPPORTED_LANGUAGES:
            raise InvalidPayloadError(f"Unsupported language: {language}")
        if room_id is None:
            room_id = generate_room_id()
            while room_id in self._rooms:
                room_id = generate_room_id()
        elif room_id in self._rooms:
            raise RoomAlreadyExistsError(f"Room {room_id} already exists")

        now = datetime.now(UTC)
        room = Room(
            id=room_id,
            passkey=passkey if passkey is not None else generate_passkey(),
            seed=default_seed(instructions, language),
            status=RoomStatus.IDLE,
            created_at=now,
            idle_since=now,
            idle_timeout_seconds=self._config.idle_timeout_seconds,
            metadata=metadata or {},
        )
        self._rooms[room_id] = SessionCoordinator(
            room,
            lock_manager=self._lock_manager,
            config=self._config,
            telemetry=self._telemetry,
            executor=self._executor,
            responder=self._responder,
            emit=self._emit,
        )
        logger.info("Created room %s", room_id, extra={"room_id": room_id})
        return room

    async def join(self, room_id: str, passkey: str, display_name: str) -> JoinResult:
        """Admit a participant.

        Raises:
            RoomNotFoundError: Unknown or evicted room.
            BadPasskeyError: Passkey mismatch. Nothing is recorded.
            AuthRejectedError: The auth gate refused the participant.
        """
        with self._telemetry.span(SpanKind.REGISTRY_JOIN, "registry.join", room_id=room_id) as sid:
            coordinator = self.get(room_id)
            if not passkeys_match(coordinator.room.passkey, passkey):
                logger.warning("Bad passkey for room %s", room_id, extra={"room_id": room_id})
                raise BadPasskeyError(f"Invalid passkey for room {room_id}")

            verdict = await self._auth_gate.authorize(room_id, display_name)
            if not verdict.allowed:
                logger.warning(
                    "Auth gate rejected %r: %s",
                    display_name,
                    verdict.reason,
                    extra={"room_id": room_id},
                )
                raise AuthRejectedError(verdict.reason or "Participant rejected")

            try:
                result = await coordinator.join(
                    verdict.display_name or display_name, author_id=verdict.identity_id
                )
            except RoomClosedError as exc:
                raise RoomNotFoundError(f"Room {room_id} not found") from exc
            self._session_rooms[result.session_id] = room_id
            self._telemetry.set_attribute(sid, Attr.SESSION_ID, result.session_id)
        return result

    async def leave(self, session_id: str) -> None:
        coordinator = self.for_session(session_id)
        try:
            await coordinator.leave(session_id)
        finally:
            self._session_rooms.pop(session_id, None)

    async def evict_idle_rooms(self, now: datetime | None = None) -> list[str]:
        """Evict every room that has been empty past its grace window.

        This is the only operation that destroys an EventLog.
        """
        now = now or datetime.now(UTC)
        evicted: list[str] = []
        with self._telemetry.span(SpanKind.REGISTRY_EVICT, "registry.evict") as sid:
            for room_id, coordinator in list(self._rooms.items()):
                if await coordinator.evict_if_idle(now):
                    self._forget(room_id)
                    evicted.append(room_id)
                    logger.info("Evicted idle room %s", room_id, extra={"room_id": room_id})
            self._telemetry.set_attribute(sid, Attr.EVICTED_COUNT, len(evicted))
        return evicted

    async def evict(self, room_id: str) -> None:
        """Evict a room immediately, closing any live sessions."""
        coordinator = self.get(room_id)
        await coordinator.close()
        self._forget(room_id)
        logger.info("Evicted room %s", room_id, extra={"room_id": room_id})

    async def close(self) -> None:
        for room_id, coordinator in list(self._rooms.items()):
            await coordinator.close()
            self._forget(room_id)

    def _forget(self, room_id: str) -> None:
        self._rooms.pop(room_id, None)
        stale = [sid for sid, rid in self._session_rooms.items() if rid == room_id]
        for sid in stale:
            del self._session_rooms[sid]
        if isinstance(self._lock_manager, InMemoryLockManager):
            self._lock_manager.discard(room_id)
