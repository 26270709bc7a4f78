"""All string enums for RoomSync."""

from __future__ import annotations

from enum import StrEnum, unique


@unique
class EventKind(StrEnum):
    CHAT_MESSAGE = "chat_message"
    INSTRUCTION_EDIT = "instruction_edit"
    CODE_EDIT = "code_edit"
    DRAWING_STROKE = "drawing_stroke"
    DRAWING_CLEAR = "drawing_clear"
    PANEL_FOCUS = "panel_focus"
    # Injected by the coordinator, never proposed by participants
    CODE_OUTPUT = "code_output"


@unique
class Panel(StrEnum):
    CHAT = "chat"
    INSTRUCTIONS = "instructions"
    CODE = "code"
    DRAWING = "drawing"


@unique
class CodeLanguage(StrEnum):
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    PYTHON = "python"
    JAVA = "java"
    CPP = "cpp"
    HTML = "html"
    CSS = "css"


@unique
class RejectReason(StrEnum):
    INVALID_PAYLOAD = "invalid_payload"
    ROOM_NOT_FOUND = "room_not_found"
    BAD_PASSKEY = "bad_passkey"
    TIMEOUT = "timeout"
    SESSION_NOT_FOUND = "session_not_found"
    AUTH_REJECTED = "auth_rejected"
    ROOM_EXISTS = "room_exists"
    ROOM_CLOSED = "room_closed"
    EXECUTOR_UNAVAILABLE = "executor_unavailable"


@unique
class SessionStatus(StrEnum):
    LIVE = "live"
    RESYNC = "resync"
    CLOSED = "closed"


@unique
class RoomStatus(StrEnum):
    ACTIVE = "active"
    IDLE = "idle"
    EVICTED = "evicted"
