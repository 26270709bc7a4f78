"""SessionCoordinator: the single authority over one room's event stream."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable, Coroutine
from datetime import UTC, datetime
from typing import Any, TypeVar
from uuid import uuid4

from roomsync.core.errors import (
    CoordinatorTimeoutError,
    ExecutorNotConfiguredError,
    InvalidPayloadError,
    RoomClosedError,
    RoomSyncError,
    SessionNotFoundError,
)
from roomsync.core.event_log import EventLog
from roomsync.core.locks import RoomLockManager
from roomsync.core.projectors import project_room
from roomsync.core.session import ParticipantSession, Subscription
from roomsync.core.validation import validate_candidate
from roomsync.executor.base import CodeExecutor
from roomsync.models.config import RoomSyncConfig
from roomsync.models.delivery import Delivery, ExecutionResult, JoinResult, Resync
from roomsync.models.enums import CodeLanguage, EventKind, RoomStatus
from roomsync.models.event import (
    CandidateEvent,
    ChatMessagePayload,
    CodeOutputPayload,
    RoomEvent,
)
from roomsync.models.framework_event import FrameworkEvent
from roomsync.models.participant import Participant
from roomsync.models.projection import DocumentState, RoomState
from roomsync.models.room import Room
from roomsync.responder.base import ChatResponder
from roomsync.telemetry.base import (
    Attr,
    NoopTelemetryProvider,
    SpanKind,
    TelemetryProvider,
)

logger = logging.getLogger("roomsync.coordinator")
_T = TypeVar("_T")

EXECUTOR_AUTHOR_ID = "system:executor"
SYSTEM_AUTHOR_PREFIX = "system:"

FrameworkEmitter = Callable[[FrameworkEvent], Coroutine[Any, Any, None]]


class SessionCoordinator:
    """Owns one room's EventLog and fans its events out to subscribers.

    Every append, join, leave and eviction runs under the room's lock from
    the ``RoomLockManager``; that single serialization point is what gives
    the room its total order. Different rooms use different locks and run
    concurrently.

    Collaborators (``CodeExecutor``, ``ChatResponder``) run in background
    tasks outside the lock and feed their results back through the same
    append path, so automated output is ordered like any participant action.
    """

    def __init__(
        self,
        room: Room,
        *,
        lock_manager: RoomLockManager,
        config: RoomSyncConfig | None = None,
        telemetry: TelemetryProvider | None = None,
        executor: CodeExecutor | None = None,
        responder: ChatResponder | None = None,
        emit: FrameworkEmitter | None = None,
    ) -> None:
        self._room = room
        self._lock_manager = lock_manager
        self._config = config or RoomSyncConfig()
        self._telemetry = telemetry or NoopTelemetryProvider()
        self._executor = executor
        self._responder = responder
        self._emitter = emit
        self._log = EventLog(room.id, room.seed)
        # Cached projection; the log stays the source of truth
        self._state = self._log.base_state
        self._sessions: dict[str, ParticipantSession] = {}
        self._subscriptions: set[Subscription] = set()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    # -- Properties --

    @property
    def room_id(self) -> str:
        return self._room.id

    @property
    def room(self) -> Room:
        return self._room

    @property
    def log(self) -> EventLog:
        return self._log

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def participant_count(self) -> int:
        return len(self._sessions)

    @property
    def sessions(self) -> list[ParticipantSession]:
        return list(self._sessions.values())

    def get_session(self, session_id: str) -> ParticipantSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(
                f"Session {session_id} not found in room {self.room_id}"
            )
        return session

    def snapshot(self) -> RoomState:
        """Latest projection of every panel."""
        return self._state

    # -- Submission --

    async def submit(self, author_id: str, candidate: CandidateEvent) -> RoomEvent:
        """Validate, sequence and broadcast a participant action.

        A stroke whose ``stroke_id`` (or any candidate whose
        ``idempotency_key``) was already appended returns the original event
        and leaves the log unchanged.

        Raises:
            InvalidPayloadError: The payload breaks a per-kind rule.
            CoordinatorTimeoutError: The room lock was not acquired within
                ``submit_timeout_seconds``. Safe to retry.
            RoomClosedError: The room has been evicted.
        """
        self._ensure_open()
        started = time.monotonic()
        with self._telemetry.span(
            SpanKind.COORDINATOR_SUBMIT,
            "coordinator.submit",
            room_id=self.room_id,
            attributes={Attr.EVENT_KIND: str(candidate.kind)},
        ) as span_id:
            try:
                candidate = validate_candidate(candidate)
            except InvalidPayloadError as exc:
                logger.info(
                    "Rejected %s from %s: %s",
                    candidate.kind,
                    author_id,
                    exc,
                    extra={"room_id": self.room_id},
                )
                await self._emit(
                    "submission_rejected",
                    data={"author_id": author_id, "kind": str(candidate.kind), "error": str(exc)},
                )
                raise
            event, duplicate = await self._append(author_id, candidate)
            self._telemetry.set_attribute(span_id, Attr.EVENT_SEQUENCE, event.sequence)
            self._telemetry.set_attribute(span_id, Attr.EVENT_DUPLICATE, duplicate)

        self._telemetry.record_metric(
            "roomsync.submit.duration_ms",
            (time.monotonic() - started) * 1000,
            unit="ms",
            attributes={Attr.ROOM_ID: self.room_id, Attr.EVENT_KIND: str(event.kind)},
        )
        if not duplicate:
            await self._emit("event_appended", sequence=event.sequence)
            self._after_append(event)
        return event

    async def _append(self, author_id: str, candidate: CandidateEvent) -> tuple[RoomEvent, bool]:
        async with self._lock_manager.locked(
            self.room_id, timeout=self._config.submit_timeout_seconds
        ):
            self._ensure_open()
            existing = self._log.find_duplicate(candidate)
            if existing is not None:
                logger.debug(
                    "Duplicate %s from %s resolved to event %d",
                    candidate.kind,
                    author_id,
                    existing.sequence,
                    extra={"room_id": self.room_id},
                )
                return existing, True
            event = self._log.append(candidate, author_id)
            self._state = project_room(self._state, event)
            self._broadcast(event)
            self._compact()
        logger.debug(
            "Appended %s #%d by %s",
            event.kind,
            event.sequence,
            author_id,
            extra={"room_id": self.room_id},
        )
        return event, False

    def _broadcast(self, event: RoomEvent) -> None:
        for session in self._sessions.values():
            if not session.subscription.offer(event):
                self._force_resync(session.subscription, session.session_id)
        for sub in self._subscriptions:
            if not sub.offer(event):
                self._force_resync(sub, None)

    def _force_resync(self, sub: Subscription, session_id: str | None) -> None:
        reason = f"subscriber fell more than {self._config.max_pending_events} events behind"
        sub.force_resync(reason, self._log.first_sequence)
        logger.warning(
            "Forcing resync for %s: %s",
            session_id or "subscriber",
            reason,
            extra={"room_id": self.room_id},
        )
        self._spawn(
            self._emit("participant_resync", session_id=session_id, data={"reason": reason})
        )

    def _compact(self) -> None:
        """Drop history every reader is past, keeping ``max_retained_events``."""
        limit = self._config.max_retained_events
        if limit is None:
            return
        head = self._log.next_sequence
        low = head
        for session in self._sessions.values():
            low = min(low, session.last_acked_sequence + 1)
        for sub in self._subscriptions:
            low = min(low, sub.position)
        cutoff = min(low, head - limit)
        removed = self._log.compact(cutoff)
        if removed:
            logger.debug(
                "Compacted %d events, log now starts at %d",
                removed,
                self._log.first_sequence,
                extra={"room_id": self.room_id},
            )

    # -- Participants --

    async def join(self, display_name: str, *, author_id: str | None = None) -> JoinResult:
        """Register a participant and return the state needed to catch up.

        Live delivery through ``session.events()`` starts right after the
        last event in ``initial_events``.
        """
        session_id = uuid4().hex
        async with self._lock_manager.locked(
            self.room_id, timeout=self._config.subscribe_timeout_seconds
        ):
            self._ensure_open()
            participant = Participant(
                session_id=session_id, room_id=self.room_id, display_name=display_name
            )
            session = ParticipantSession(
                participant,
                author_id or session_id,
                self._new_subscription(self._log.next_sequence),
            )
            self._sessions[session_id] = session
            self._room = self._room.model_copy(
                update={"idle_since": None, "status": RoomStatus.ACTIVE}
            )
            result = JoinResult(
                session=session,
                base_state=self._log.base_state,
                initial_events=list(self._log.read_from(self._log.first_sequence)),
            )
        logger.info(
            "Participant %s joined as %s",
            display_name,
            session_id,
            extra={"room_id": self.room_id},
        )
        await self._emit(
            "participant_joined", session_id=session_id, data={"display_name": display_name}
        )
        return result

    async def leave(self, session_id: str) -> None:
        """Close a participant's session. The room goes idle when empty."""
        async with self._lock_manager.locked(
            self.room_id, timeout=self._config.submit_timeout_seconds
        ):
            session = self._sessions.pop(session_id, None)
            if session is None:
                raise SessionNotFoundError(
                    f"Session {session_id} not found in room {self.room_id}"
                )
            session.close()
            if not self._sessions:
                self._room = self._room.model_copy(
                    update={"idle_since": datetime.now(UTC), "status": RoomStatus.IDLE}
                )
            self._compact()
        logger.info(
            "Participant %s left, %d remaining",
            session_id,
            len(self._sessions),
            extra={"room_id": self.room_id},
        )
        await self._emit("participant_left", session_id=session_id)

    async def ack(self, session_id: str, sequence: int) -> int:
        """Advance a participant's watermark; returns the watermark."""
        session = self.get_session(session_id)
        if sequence >= self._log.next_sequence:
            raise InvalidPayloadError(
                f"Cannot acknowledge {sequence}; room head is {self._log.next_sequence - 1}"
            )
        if session.ack(sequence) and self._config.max_retained_events is not None:
            async with self._lock_manager.locked(
                self.room_id, timeout=self._config.submit_timeout_seconds
            ):
                self._compact()
        return session.last_acked_sequence

    async def resync(self, session_id: str) -> JoinResult:
        """Give a session a fresh live stream plus a full replay."""
        async with self._lock_manager.locked(
            self.room_id, timeout=self._config.subscribe_timeout_seconds
        ):
            self._ensure_open()
            session = self.get_session(session_id)
            session.replace_subscription(self._new_subscription(self._log.next_sequence))
            result = JoinResult(
                session=session,
                base_state=self._log.base_state,
                initial_events=list(self._log.read_from(self._log.first_sequence)),
            )
        logger.info("Session %s resynchronized", session_id, extra={"room_id": self.room_id})
        return result

    # -- Catch-up --

    async def subscribe(self, from_sequence: int = 0) -> AsyncIterator[Delivery]:
        """Replay from *from_sequence* with no gaps or duplicates, then go live.

        The lock is held only while registering, never while the consumer
        reads, so a slow or cancelled consumer cannot stall the room.
        """
        if from_sequence < 0:
            raise ValueError("from_sequence must be >= 0")
        self._ensure_open()
        with self._telemetry.span(
            SpanKind.COORDINATOR_SUBSCRIBE,
            "coordinator.subscribe",
            room_id=self.room_id,
            attributes={Attr.FROM_SEQUENCE: from_sequence},
        ):
            async with self._lock_manager.locked(
                self.room_id, timeout=self._config.subscribe_timeout_seconds
            ):
                self._ensure_open()
                first = self._log.first_sequence
                sub: Subscription | None = None
                if from_sequence >= first:
                    backlog = self._log.read_from(from_sequence)
                    sub = self._new_subscription(from_sequence)
                    self._subscriptions.add(sub)

        if sub is None:
            yield Resync(room_id=self.room_id, reason="history compacted", first_sequence=first)
            return
        try:
            for event in backlog:
                if sub.needs_resync or sub.closed:
                    break
                sub.position = event.sequence + 1
                yield event
            async for item in sub.stream():
                yield item
        finally:
            self._subscriptions.discard(sub)
            sub.close()

    # -- Collaborators --

    def run_code(self, requested_by: str) -> asyncio.Task[RoomEvent]:
        """Run the current code document in the background.

        Returns the task; its result is the ``code_output`` event appended
        once execution finishes. Callers may ignore it.
        """
        self._ensure_open()
        if self._executor is None:
            raise ExecutorNotConfiguredError("No code executor configured")
        logger.info(
            "Code run requested by %s", requested_by, extra={"room_id": self.room_id}
        )
        return self._spawn(self._execute(self._executor, self._state.code))

    async def _execute(self, executor: CodeExecutor, code: DocumentState) -> RoomEvent:
        language = code.language or CodeLanguage.JAVASCRIPT
        timeout = self._config.executor_timeout_seconds
        with self._telemetry.span(
            SpanKind.EXECUTOR_RUN,
            "executor.run",
            room_id=self.room_id,
            attributes={Attr.EXECUTOR_NAME: executor.name},
        ) as span_id:
            try:
                async with asyncio.timeout(timeout):
                    result = await executor.execute(language, code.text)
            except TimeoutError:
                logger.warning(
                    "Execution timed out after %.1fs", timeout, extra={"room_id": self.room_id}
                )
                result = ExecutionResult(
                    stderr=f"Execution timed out after {timeout}s", exit_status=124
                )
            except Exception as exc:
                logger.exception("Code executor failed", extra={"room_id": self.room_id})
                result = ExecutionResult(stderr=str(exc), exit_status=1)
            self._telemetry.set_attribute(span_id, Attr.EXECUTOR_EXIT_STATUS, result.exit_status)

        candidate = validate_candidate(
            CandidateEvent(
                payload=CodeOutputPayload(
                    language=language,
                    stdout=result.stdout,
                    stderr=result.stderr,
                    exit_status=result.exit_status,
                    source_sequence=code.sequence,
                )
            ),
            system=True,
        )
        event, _ = await self._append(EXECUTOR_AUTHOR_ID, candidate)
        await self._emit("event_appended", sequence=event.sequence)
        return event

    def _after_append(self, event: RoomEvent) -> None:
        responder = self._responder
        if responder is None or event.kind != EventKind.CHAT_MESSAGE:
            return
        if event.author_id == responder.author_id or event.author_id.startswith(
            SYSTEM_AUTHOR_PREFIX
        ):
            return
        self._spawn(self._respond(responder, event))

    async def _respond(self, responder: ChatResponder, event: RoomEvent) -> None:
        try:
            reply = await responder.respond(event, self._state)
        except Exception:
            logger.exception("Chat responder failed", extra={"room_id": self.room_id})
            return
        if not reply or not reply.strip() or self._closed:
            return
        candidate = CandidateEvent(
            payload=ChatMessagePayload(author_name=responder.display_name, text=reply)
        )
        try:
            await self.submit(responder.author_id, candidate)
        except RoomSyncError as exc:
            logger.warning(
                "Dropped responder reply: %s", exc, extra={"room_id": self.room_id}
            )

    # -- Lifecycle --

    async def evict_if_idle(self, now: datetime | None = None) -> bool:
        """Close the room if it has been empty past its grace window.

        A room whose lock stays busy past the submit timeout is left for the
        next sweep.
        """
        now = now or datetime.now(UTC)
        try:
            async with self._lock_manager.locked(
                self.room_id, timeout=self._config.submit_timeout_seconds
            ):
                deadline = self._room.eviction_deadline
                if self._closed or self._sessions or deadline is None or deadline > now:
                    return False
                self._close_locked()
        except CoordinatorTimeoutError:
            logger.info("Room busy, eviction deferred", extra={"room_id": self.room_id})
            return False
        await self._finish_tasks()
        return True

    async def close(self) -> None:
        """Close every session and subscription and discard the log."""
        async with self._lock_manager.locked(self.room_id):
            if self._closed:
                return
            self._close_locked()
        await self._finish_tasks()

    def _close_locked(self) -> None:
        self._closed = True
        self._room = self._room.model_copy(update={"status": RoomStatus.EVICTED})
        for session in self._sessions.values():
            session.close()
        for sub in self._subscriptions:
            sub.close()
        self._sessions.clear()
        self._subscriptions.clear()
        self._log = EventLog(self.room_id, self._room.seed)
        self._state = self._log.base_state
        for task in self._tasks:
            task.cancel()
        logger.info("Room closed", extra={"room_id": self.room_id})

    async def _finish_tasks(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def drain(self) -> None:
        """Wait for background executor and responder tasks to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -- Internal helpers --

    def _new_subscription(self, position: int) -> Subscription:
        return Subscription(self.room_id, position, self._config.max_pending_events)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RoomClosedError(f"Room {self.room_id} is closed")

    def _spawn(self, coro: Coroutine[Any, Any, _T]) -> asyncio.Task[_T]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        if isinstance(exc, RoomSyncError):
            logger.warning(
                "Background task gave up: %s", exc, extra={"room_id": self.room_id}
            )
        else:
            logger.error(
                "Background task failed: %r", exc, extra={"room_id": self.room_id}
            )

    async def _emit(
        self,
        event_type: str,
        *,
        session_id: str | None = None,
        sequence: int | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        if self._emitter is None:
            return
        await self._emitter(
            FrameworkEvent(
                type=event_type,
                room_id=self.room_id,
                session_id=session_id,
                sequence=sequence,
                data=data or {},
            )
        )
