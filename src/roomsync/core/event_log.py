"""Append-only, gapless event log for a single room."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime

from roomsync.core.projectors import replay
from roomsync.models.event import CandidateEvent, DrawingStrokePayload, RoomEvent
from roomsync.models.projection import RoomState
from roomsync.models.room import RoomSeed


class HistoryCompactedError(LookupError):
    """The requested sequence has been folded into the base snapshot."""

    def __init__(self, requested: int, first_sequence: int) -> None:
        self.requested = requested
        self.first_sequence = first_sequence
        super().__init__(
            f"Sequence {requested} was compacted; log now starts at {first_sequence}"
        )


class EventLog:
    """Strictly ordered sequence of room events.

    Sequence numbers start at 0 and are assigned here and only here.
    ``append`` contains no ``await`` so it is atomic within the event loop;
    callers still serialize appends per room so that dedup checks and the
    append happen under one critical section.

    Events may be compacted away from the front once every reader is past
    them. Compacted events are folded into :attr:`base_state`, so
    ``base_state`` plus :meth:`read_from` (``first_sequence``) always
    reproduces the full history's state.
    """

    def __init__(self, room_id: str, seed: RoomSeed | None = None) -> None:
        self._room_id = room_id
        self._events: list[RoomEvent] = []
        self._first_sequence = 0
        self._base_state = RoomState.initial(room_id, seed)
        self._strokes: dict[str, RoomEvent] = {}
        self._idempotency: dict[str, RoomEvent] = {}

    @property
    def room_id(self) -> str:
        return self._room_id

    @property
    def first_sequence(self) -> int:
        """Lowest sequence still held in the log."""
        return self._first_sequence

    @property
    def next_sequence(self) -> int:
        """Sequence the next append will receive."""
        return self._first_sequence + len(self._events)

    @property
    def event_count(self) -> int:
        """Total events ever appended, including compacted ones."""
        return self.next_sequence

    @property
    def base_state(self) -> RoomState:
        """Projection of every compacted event."""
        return self._base_state

    def __len__(self) -> int:
        return len(self._events)

    def find_duplicate(self, candidate: CandidateEvent) -> RoomEvent | None:
        """Return the already-appended event *candidate* would duplicate."""
        payload = candidate.payload
        if isinstance(payload, DrawingStrokePayload):
            existing = self._strokes.get(payload.stroke_id)
            if existing is not None:
                return existing
        if candidate.idempotency_key:
            return self._idempotency.get(candidate.idempotency_key)
        return None

    def append(
        self, candidate: CandidateEvent, author_id: str, *, now: datetime | None = None
    ) -> RoomEvent:
        """Assign the next sequence to *candidate* and store it."""
        event = RoomEvent(
            sequence=self.next_sequence,
            room_id=self._room_id,
            author_id=author_id,
            payload=candidate.payload,
            client_timestamp=candidate.client_timestamp,
            server_timestamp=now or datetime.now(UTC),
            idempotency_key=candidate.idempotency_key,
        )
        self._events.append(event)
        if isinstance(event.payload, DrawingStrokePayload):
            self._strokes[event.payload.stroke_id] = event
        if event.idempotency_key:
            self._idempotency[event.idempotency_key] = event
        return event

    def get(self, sequence: int) -> RoomEvent:
        if sequence < self._first_sequence:
            raise HistoryCompactedError(sequence, self._first_sequence)
        index = sequence - self._first_sequence
        if index >= len(self._events):
            raise IndexError(f"No event {sequence} in room {self._room_id}")
        return self._events[index]

    def read_from(self, sequence: int = 0) -> Iterator[RoomEvent]:
        """Yield events with sequence >= *sequence* that exist right now.

        The iterator is bounded by the head at call time; call again to pick
        up newer events. Raises ``HistoryCompactedError`` if *sequence* has
        been compacted.
        """
        if sequence < 0:
            raise ValueError("sequence must be >= 0")
        if sequence < self._first_sequence:
            raise HistoryCompactedError(sequence, self._first_sequence)
        return self._iter_range(sequence, self.next_sequence)

    def _iter_range(self, start: int, stop: int) -> Iterator[RoomEvent]:
        for seq in range(start, stop):
            yield self.get(seq)

    def compact(self, before: int) -> int:
        """Fold every event with sequence < *before* into the base state.

        Returns the number of events removed. Dedup indexes are kept so a
        retried stroke or keyed submission still resolves to its original
        event.
        """
        count = min(before, self.next_sequence) - self._first_sequence
        if count <= 0:
            return 0
        dropped = self._events[:count]
        self._base_state = replay(dropped, self._room_id, state=self._base_state)
        del self._events[:count]
        self._first_sequence += count
        return count

    def snapshot(self) -> RoomState:
        """Current projection: base state plus every retained event."""
        return replay(self._events, self._room_id, state=self._base_state)
