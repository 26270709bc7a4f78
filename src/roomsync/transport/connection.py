"""Binds one client connection to a participant session."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from roomsync.core.errors import (
    InvalidPayloadError,
    RoomNotFoundError,
    RoomSyncError,
    SessionNotFoundError,
)
from roomsync.core.framework import RoomSync
from roomsync.models.delivery import JoinResult, Resync
from roomsync.transport.protocol import (
    AcceptedMessage,
    AckRequest,
    ErrorMessage,
    EventMessage,
    JoinedMessage,
    JoinRequest,
    LeaveRequest,
    OutboundMessage,
    ResyncMessage,
    RunCodeRequest,
    SubmitRequest,
    parse_inbound,
)

logger = logging.getLogger("roomsync.transport")

SendFn = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]


class SessionConnection:
    """Speaks the envelope protocol for a single client.

    The host application feeds decoded inbound JSON objects to
    :meth:`handle` and supplies ``send_fn`` for outbound ones. Live events are
    pushed by a pump task started on join. When the session is dropped into
    resync the pump sends a ``resync`` envelope followed by a fresh ``joined``
    envelope and keeps going.
    """

    def __init__(self, sync: RoomSync, send_fn: SendFn) -> None:
        self._sync = sync
        self._send_fn = send_fn
        self._session_id: str | None = None
        self._room_id: str | None = None
        self._pump: asyncio.Task[None] | None = None

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def joined(self) -> bool:
        return self._session_id is not None

    async def handle(self, message: dict[str, Any]) -> None:
        """Dispatch one inbound envelope. Failures are reported as ``error``."""
        request_id = message.get("request_id") if isinstance(message, dict) else None
        try:
            request = parse_inbound(message)
            match request:
                case JoinRequest():
                    await self._join(request)
                case SubmitRequest():
                    event = await self._sync.submit(self._require_session(), request.event)
                    await self._send(
                        AcceptedMessage(request_id=request.request_id, sequence=event.sequence)
                    )
                case AckRequest():
                    await self._sync.ack(self._require_session(), request.sequence)
                case RunCodeRequest():
                    self._sync.run_code(self._require_session())
                    await self._send(AcceptedMessage(request_id=request.request_id))
                case LeaveRequest():
                    await self.close()
        except RoomSyncError as exc:
            logger.info(
                "Request rejected (%s): %s",
                exc.reason,
                exc,
                extra={"room_id": self._room_id},
            )
            await self._send(
                ErrorMessage(code=exc.reason, message=str(exc), request_id=request_id)
            )

    async def close(self) -> None:
        """Stop the pump and leave the room if still joined."""
        session_id, self._session_id = self._session_id, None
        if self._pump is not None and self._pump is not asyncio.current_task():
            self._pump.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._pump
        self._pump = None
        if session_id is None:
            return
        try:
            await self._sync.leave(session_id)
        except (SessionNotFoundError, RoomNotFoundError):
            logger.debug("Session %s already gone", session_id, extra={"room_id": self._room_id})

    async def _join(self, request: JoinRequest) -> None:
        if self._session_id is not None:
            raise InvalidPayloadError("Connection has already joined a room")
        result = await self._sync.join(request.room_id, request.passkey, request.display_name)
        self._session_id = result.session_id
        self._room_id = request.room_id
        await self._send_joined(result)
        self._pump = asyncio.create_task(self._pump_events(result))

    async def _pump_events(self, result: JoinResult) -> None:
        try:
            await self._forward(result)
        except Exception:
            logger.exception("Event pump stopped", extra={"room_id": self._room_id})
            # The client is unreachable; release its place in the room
            await self.close()

    async def _forward(self, result: JoinResult) -> None:
        session = result.session
        while True:
            async for item in session.events():
                if isinstance(item, Resync):
                    await self._send(
                        ResyncMessage(
                            room_id=item.room_id,
                            reason=item.reason,
                            first_sequence=item.first_sequence,
                        )
                    )
                    break
                await self._send(EventMessage(event=item))
            else:
                return
            try:
                result = await self._sync.resync(session.session_id)
            except RoomSyncError as exc:
                logger.warning(
                    "Resync of %s failed: %s",
                    session.session_id,
                    exc,
                    extra={"room_id": self._room_id},
                )
                return
            await self._send_joined(result)

    async def _send_joined(self, result: JoinResult) -> None:
        await self._send(
            JoinedMessage(
                session_id=result.session_id,
                room_id=result.session.room_id,
                base_state=result.base_state,
                initial_events=result.initial_events,
            )
        )

    async def _send(self, message: OutboundMessage) -> None:
        await self._send_fn(message.model_dump(mode="json"))

    def _require_session(self) -> str:
        if self._session_id is None:
            raise SessionNotFoundError("Connection has not joined a room")
        return self._session_id
