"""Panel view-state models produced by the projectors."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from roomsync.models.enums import Panel
from roomsync.models.event import CodeOutputPayload, DrawingStrokePayload
from roomsync.models.room import RoomSeed


class ChatLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    sequence: int
    author_id: str
    author_name: str
    text: str
    server_timestamp: datetime


class ChatState(BaseModel):
    """Chat history in sequence order."""

    model_config = ConfigDict(frozen=True)

    messages: tuple[ChatLine, ...] = ()

    @property
    def texts(self) -> list[str]:
        return [m.text for m in self.messages]


class DocumentState(BaseModel):
    """A last-writer-wins document (code editor or instructions board).

    ``sequence`` is ``None`` while the document still holds the room seed.
    """

    model_config = ConfigDict(frozen=True)

    text: str = ""
    language: str | None = None
    sequence: int | None = None
    author_id: str | None = None


class StrokeRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    sequence: int
    author_id: str
    stroke: DrawingStrokePayload


class DrawingState(BaseModel):
    """Strokes with distinct ids, oldest first, since the last clear."""

    model_config = ConfigDict(frozen=True)

    strokes: tuple[StrokeRecord, ...] = ()
    cleared_at: int | None = None
    seen_stroke_ids: frozenset[str] = Field(default=frozenset(), exclude=True)

    @property
    def stroke_ids(self) -> list[str]:
        return [r.stroke.stroke_id for r in self.strokes]


class RoomState(BaseModel):
    """Every panel's state after folding a log prefix."""

    model_config = ConfigDict(frozen=True)

    room_id: str
    last_sequence: int = Field(default=-1, ge=-1)
    chat: ChatState = Field(default_factory=ChatState)
    instructions: DocumentState = Field(default_factory=DocumentState)
    code: DocumentState = Field(default_factory=DocumentState)
    drawing: DrawingState = Field(default_factory=DrawingState)
    focus: dict[str, Panel] = Field(default_factory=dict)
    output: CodeOutputPayload | None = None

    @classmethod
    def initial(cls, room_id: str, seed: RoomSeed | None = None) -> RoomState:
        """State before any event, optionally starting from a room seed."""
        if seed is None:
            return cls(room_id=room_id)
        return cls(
            room_id=room_id,
            instructions=DocumentState(text=seed.instructions),
            code=DocumentState(text=seed.code, language=seed.language),
        )
