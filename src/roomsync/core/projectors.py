"""Pure folds from room events to panel state.

Each projector has the shape ``(prior_state, event) -> new_state`` and never
mutates its input, so replaying a log prefix from the same starting state
always yields the same result.
"""

from __future__ import annotations

from collections.abc import Iterable

from roomsync.models.event import (
    ChatMessagePayload,
    CodeEditPayload,
    CodeOutputPayload,
    DrawingClearPayload,
    DrawingStrokePayload,
    InstructionEditPayload,
    PanelFocusPayload,
    RoomEvent,
)
from roomsync.models.projection import (
    ChatLine,
    ChatState,
    DocumentState,
    DrawingState,
    RoomState,
    StrokeRecord,
)
from roomsync.models.room import RoomSeed


def project_chat(state: ChatState, event: RoomEvent) -> ChatState:
    payload = event.payload
    if not isinstance(payload, ChatMessagePayload):
        return state
    line = ChatLine(
        sequence=event.sequence,
        author_id=event.author_id,
        author_name=payload.author_name,
        text=payload.text,
        server_timestamp=event.server_timestamp,
    )
    return state.model_copy(update={"messages": (*state.messages, line)})


def project_document(state: DocumentState, event: RoomEvent) -> DocumentState:
    """Last-writer-wins: the event's full text replaces the document."""
    payload = event.payload
    if isinstance(payload, CodeEditPayload):
        language: str | None = payload.language
    elif isinstance(payload, InstructionEditPayload):
        language = None
    else:
        return state
    return DocumentState(
        text=payload.full_text,
        language=language,
        sequence=event.sequence,
        author_id=event.author_id,
    )


def project_drawing(state: DrawingState, event: RoomEvent) -> DrawingState:
    payload = event.payload
    if isinstance(payload, DrawingClearPayload):
        return DrawingState(cleared_at=event.sequence)
    if not isinstance(payload, DrawingStrokePayload):
        return state
    if payload.stroke_id in state.seen_stroke_ids:
        return state
    record = StrokeRecord(sequence=event.sequence, author_id=event.author_id, stroke=payload)
    return state.model_copy(
        update={
            "strokes": (*state.strokes, record),
            "seen_stroke_ids": state.seen_stroke_ids | {payload.stroke_id},
        }
    )


def project_room(state: RoomState, event: RoomEvent) -> RoomState:
    """Fold one event into every panel.

    Events at or below ``state.last_sequence`` are ignored, so re-delivery
    is harmless. A gap in sequence numbers raises ``ValueError``.
    """
    if event.sequence <= state.last_sequence:
        return state
    if event.sequence != state.last_sequence + 1:
        raise ValueError(
            f"Event {event.sequence} does not follow {state.last_sequence} in room {state.room_id}"
        )

    update: dict[str, object] = {"last_sequence": event.sequence}
    match event.payload:
        case ChatMessagePayload():
            update["chat"] = project_chat(state.chat, event)
        case CodeEditPayload():
            update["code"] = project_document(state.code, event)
        case InstructionEditPayload():
            update["instructions"] = project_document(state.instructions, event)
        case DrawingStrokePayload() | DrawingClearPayload():
            update["drawing"] = project_drawing(state.drawing, event)
        case PanelFocusPayload(panel=panel):
            update["focus"] = {**state.focus, event.author_id: panel}
        case CodeOutputPayload() as output:
            update["output"] = output
    return state.model_copy(update=update)


def replay(
    events: Iterable[RoomEvent],
    room_id: str,
    *,
    seed: RoomSeed | None = None,
    state: RoomState | None = None,
) -> RoomState:
    """Fold *events* in order, starting from *state* or the room's initial state."""
    current = state if state is not None else RoomState.initial(room_id, seed)
    for event in events:
        current = project_room(current, event)
    return current
