"""Per-connection delivery handles."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator

from roomsync.models.delivery import Delivery, Resync
from roomsync.models.enums import SessionStatus
from roomsync.models.event import RoomEvent
from roomsync.models.participant import Participant

logger = logging.getLogger("roomsync.session")


class Subscription:
    """Bounded live buffer fed by the coordinator.

    The coordinator calls :meth:`offer` while holding the room lock, so
    events arrive here in sequence order. A consumer that lets more than
    ``max_pending`` events pile up is dropped into resync: the buffer is
    discarded and the stream ends with a single :class:`Resync`.

    ``position`` is the next sequence the consumer still needs. The
    coordinator never compacts history at or beyond it.
    """

    def __init__(self, room_id: str, position: int, max_pending: int) -> None:
        self.room_id = room_id
        self.position = position
        self._max_pending = max_pending
        self._buffer: deque[RoomEvent] = deque()
        self._wakeup = asyncio.Event()
        self._resync_reason: str | None = None
        self._resync_first = 0
        self._closed = False

    @property
    def pending(self) -> int:
        return len(self._buffer)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def needs_resync(self) -> bool:
        return self._resync_reason is not None

    def offer(self, event: RoomEvent) -> bool:
        """Queue *event* for delivery.

        Returns ``False`` if the buffer is full; the caller then decides how
        to resync the consumer.
        """
        if self._closed or self._resync_reason is not None:
            return True
        if self._buffer and event.sequence <= self._buffer[-1].sequence:
            return True
        if len(self._buffer) >= self._max_pending:
            return False
        self._buffer.append(event)
        self._wakeup.set()
        return True

    def force_resync(self, reason: str, first_sequence: int = 0) -> None:
        self._buffer.clear()
        self._resync_reason = reason
        self._resync_first = first_sequence
        self._wakeup.set()

    def close(self) -> None:
        self._closed = True
        self._buffer.clear()
        self._wakeup.set()

    async def stream(self) -> AsyncIterator[Delivery]:
        """Yield buffered events, then wait for more.

        Ends after yielding a ``Resync`` or when the subscription is closed.
        """
        while True:
            if self._buffer:
                event = self._buffer.popleft()
                if event.sequence < self.position:
                    continue
                self.position = event.sequence + 1
                yield event
                continue
            if self._resync_reason is not None:
                yield Resync(
                    room_id=self.room_id,
                    reason=self._resync_reason,
                    first_sequence=self._resync_first,
                )
                return
            if self._closed:
                return
            self._wakeup.clear()
            await self._wakeup.wait()


class ParticipantSession:
    """One joined user's connection to a room.

    Holds the participant record (with its acknowledgement watermark) and
    the live subscription. Log entries are never copied here beyond what the
    delivery buffer needs.
    """

    def __init__(
        self,
        participant: Participant,
        author_id: str,
        subscription: Subscription,
    ) -> None:
        self._participant = participant
        self._author_id = author_id
        self._subscription = subscription
        self._status = SessionStatus.LIVE

    @property
    def session_id(self) -> str:
        return self._participant.session_id

    @property
    def room_id(self) -> str:
        return self._participant.room_id

    @property
    def display_name(self) -> str:
        return self._participant.display_name

    @property
    def author_id(self) -> str:
        return self._author_id

    @property
    def participant(self) -> Participant:
        return self._participant.model_copy()

    @property
    def last_acked_sequence(self) -> int:
        return self._participant.last_acked_sequence

    @property
    def status(self) -> SessionStatus:
        if self._status == SessionStatus.LIVE and self._subscription.needs_resync:
            return SessionStatus.RESYNC
        return self._status

    @property
    def subscription(self) -> Subscription:
        return self._subscription

    def ack(self, sequence: int) -> bool:
        """Advance the watermark. Lower or equal values are ignored.

        Returns ``True`` if the watermark moved.
        """
        if sequence <= self._participant.last_acked_sequence:
            return False
        self._participant = self._participant.model_copy(
            update={"last_acked_sequence": sequence}
        )
        return True

    def replace_subscription(self, subscription: Subscription) -> None:
        self._subscription.close()
        self._subscription = subscription
        self._status = SessionStatus.LIVE

    def close(self) -> None:
        self._status = SessionStatus.CLOSED
        self._subscription.close()
        logger.debug(
            "Session %s closed", self.session_id, extra={"room_id": self.room_id}
        )

    async def events(self) -> AsyncIterator[Delivery]:
        """Live events in ascending sequence order.

        Ends after a ``Resync`` signal or when the session closes. After a
        resync, obtain a fresh stream via ``RoomSync.resync``.
        """
        async for item in self._subscription.stream():
            yield item
