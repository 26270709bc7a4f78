"""Event and payload models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from roomsync.models.enums import CodeLanguage, EventKind, Panel


class ChatMessagePayload(BaseModel):
    """A chat line posted by a participant."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[EventKind.CHAT_MESSAGE] = EventKind.CHAT_MESSAGE
    author_name: str
    text: str


class InstructionEditPayload(BaseModel):
    """Whole-document replacement of the instructions board."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[EventKind.INSTRUCTION_EDIT] = EventKind.INSTRUCTION_EDIT
    full_text: str


class CodeEditPayload(BaseModel):
    """Whole-document replacement of the shared code editor."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[EventKind.CODE_EDIT] = EventKind.CODE_EDIT
    language: str = CodeLanguage.JAVASCRIPT
    full_text: str


class Point(BaseModel):
    """Canvas-normalized coordinate."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class DrawingStrokePayload(BaseModel):
    """One freehand stroke. ``stroke_id`` is generated by the client."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[EventKind.DRAWING_STROKE] = EventKind.DRAWING_STROKE
    stroke_id: str
    points: tuple[Point, ...]
    color: str = "#000000"
    width: float = 2.0


class DrawingClearPayload(BaseModel):
    """Erase every stroke appended before this event."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[EventKind.DRAWING_CLEAR] = EventKind.DRAWING_CLEAR
    reason: str | None = None


class PanelFocusPayload(BaseModel):
    """A participant switched the panel they are looking at."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[EventKind.PANEL_FOCUS] = EventKind.PANEL_FOCUS
    panel: Panel


class CodeOutputPayload(BaseModel):
    """Result of running the shared code through a ``CodeExecutor``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[EventKind.CODE_OUTPUT] = EventKind.CODE_OUTPUT
    language: str
    stdout: str = ""
    stderr: str = ""
    exit_status: int = 0
    source_sequence: int | None = None


EventPayload = Annotated[
    ChatMessagePayload
    | InstructionEditPayload
    | CodeEditPayload
    | DrawingStrokePayload
    | DrawingClearPayload
    | PanelFocusPayload
    | CodeOutputPayload,
    Field(discriminator="kind"),
]


class CandidateEvent(BaseModel):
    """An action proposed by a participant, not yet sequenced."""

    payload: EventPayload
    client_timestamp: datetime | None = None
    idempotency_key: str | None = None

    @property
    def kind(self) -> EventKind:
        return self.payload.kind


class RoomEvent(BaseModel):
    """An immutable, sequence-numbered fact in a room's log.

    ``sequence`` is the sole ordering key; timestamps are informational.
    """

    model_config = ConfigDict(frozen=True)

    sequence: int = Field(ge=0)
    room_id: str
    author_id: str
    payload: EventPayload
    client_timestamp: datetime | None = None
    server_timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    idempotency_key: str | None = None

    @property
    def kind(self) -> EventKind:
        return self.payload.kind
