"""Delivery and join result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field

from roomsync.models.event import RoomEvent

if TYPE_CHECKING:
    from roomsync.core.session import ParticipantSession
    from roomsync.models.projection import RoomState


class Resync(BaseModel):
    """Signal telling a subscriber to discard local state and replay.

    ``first_sequence`` is the lowest sequence still held by the log; when
    history has been compacted the subscriber rebuilds from
    ``coordinator.snapshot()`` instead of from sequence 0.
    """

    type: Literal["resync"] = "resync"
    room_id: str
    reason: str
    first_sequence: int = Field(default=0, ge=0)


Delivery = RoomEvent | Resync


@dataclass
class JoinResult:
    """Returned by a successful join.

    ``base_state`` is the room's projection before ``initial_events``;
    folding ``initial_events`` onto it yields the current panel state.
    """

    session: ParticipantSession
    base_state: RoomState
    initial_events: list[RoomEvent] = field(default_factory=list)

    @property
    def session_id(self) -> str:
        return self.session.session_id


class ExecutionResult(BaseModel):
    """Output of a ``CodeExecutor`` run."""

    stdout: str = ""
    stderr: str = ""
    exit_status: int = 0
