"""Envelope models for the participant wire protocol.

Every envelope is a JSON object discriminated by ``type``. Framing
(WebSocket, SSE, long-poll) is left to the host application.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from roomsync.core.errors import InvalidPayloadError
from roomsync.models.enums import RejectReason
from roomsync.models.event import CandidateEvent, RoomEvent
from roomsync.models.projection import RoomState

# -- Inbound ------------------------------------------------------------------


class JoinRequest(BaseModel):
    type: Literal["join"] = "join"
    room_id: str
    passkey: str
    display_name: str


class SubmitRequest(BaseModel):
    """Propose an action. ``request_id`` is echoed in the reply."""

    type: Literal["submit"] = "submit"
    event: CandidateEvent
    request_id: str | None = None


class AckRequest(BaseModel):
    type: Literal["ack"] = "ack"
    sequence: int = Field(ge=0)


class RunCodeRequest(BaseModel):
    type: Literal["run_code"] = "run_code"
    request_id: str | None = None


class LeaveRequest(BaseModel):
    type: Literal["leave"] = "leave"


InboundMessage = Annotated[
    JoinRequest | SubmitRequest | AckRequest | RunCodeRequest | LeaveRequest,
    Field(discriminator="type"),
]

_inbound_adapter: TypeAdapter[Any] = TypeAdapter(InboundMessage)


def parse_inbound(data: dict[str, Any]) -> InboundMessage:
    """Parse a raw inbound envelope.

    Raises ``InvalidPayloadError`` for unknown types or malformed fields.
    """
    try:
        return _inbound_adapter.validate_python(data)
    except ValidationError as exc:
        raise InvalidPayloadError(f"Malformed message: {exc.error_count()} error(s)") from exc


# -- Outbound -----------------------------------------------------------------


class JoinedMessage(BaseModel):
    """Sent after join and after every resync.

    Clients rebuild their panels from ``base_state`` plus ``initial_events``.
    """

    type: Literal["joined"] = "joined"
    session_id: str
    room_id: str
    base_state: RoomState
    initial_events: list[RoomEvent] = Field(default_factory=list)


class EventMessage(BaseModel):
    type: Literal["event"] = "event"
    event: RoomEvent


class ResyncMessage(BaseModel):
    type: Literal["resync"] = "resync"
    room_id: str
    reason: str
    first_sequence: int = 0


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    code: RejectReason
    message: str
    request_id: str | None = None


class AcceptedMessage(BaseModel):
    """Acknowledges a submit or run request.

    ``sequence`` is the assigned event sequence for submits and ``None`` for
    code runs, whose output arrives later as a ``code_output`` event.
    """

    type: Literal["accepted"] = "accepted"
    request_id: str | None = None
    sequence: int | None = None


OutboundMessage = JoinedMessage | EventMessage | ResyncMessage | ErrorMessage | AcceptedMessage
