"""RoomSync - ordered, convergent state for collaborative interview rooms."""

from roomsync._version import __version__
from roomsync.auth import AuthGate, AuthVerdict, DefaultAuthGate, MockAuthGate
from roomsync.core.coordinator import EXECUTOR_AUTHOR_ID, SessionCoordinator
from roomsync.core.errors import (
    AuthRejectedError,
    BadPasskeyError,
    CoordinatorTimeoutError,
    ExecutorNotConfiguredError,
    InvalidPayloadError,
    RoomAlreadyExistsError,
    RoomClosedError,
    RoomNotFoundError,
    RoomSyncError,
    SessionNotFoundError,
)
from roomsync.core.event_log import EventLog, HistoryCompactedError
from roomsync.core.framework import FrameworkEventHandler, RoomSync
from roomsync.core.locks import InMemoryLockManager, RoomLockManager
from roomsync.core.projectors import (
    project_chat,
    project_document,
    project_drawing,
    project_room,
    replay,
)
from roomsync.core.registry import RoomRegistry
from roomsync.core.session import ParticipantSession, Subscription
from roomsync.core.templates import default_seed, language_template
from roomsync.executor import CodeExecutor, MockCodeExecutor
from roomsync.models.config import RoomSyncConfig
from roomsync.models.delivery import Delivery, ExecutionResult, JoinResult, Resync
from roomsync.models.enums import (
    CodeLanguage,
    EventKind,
    Panel,
    RejectReason,
    RoomStatus,
    SessionStatus,
)
from roomsync.models.event import (
    CandidateEvent,
    ChatMessagePayload,
    CodeEditPayload,
    CodeOutputPayload,
    DrawingClearPayload,
    DrawingStrokePayload,
    EventPayload,
    InstructionEditPayload,
    PanelFocusPayload,
    Point,
    RoomEvent,
)
from roomsync.models.framework_event import FrameworkEvent
from roomsync.models.participant import Participant
from roomsync.models.projection import (
    ChatLine,
    ChatState,
    DocumentState,
    DrawingState,
    RoomState,
    StrokeRecord,
)
from roomsync.models.room import Room, RoomSeed
from roomsync.responder import ChatResponder, MockChatResponder
from roomsync.telemetry import (
    MockTelemetryProvider,
    NoopTelemetryProvider,
    TelemetryProvider,
)
from roomsync.transport import SessionConnection

__all__ = [
    "__version__",
    # Core
    "RoomSync",
    "RoomRegistry",
    "SessionCoordinator",
    "ParticipantSession",
    "Subscription",
    "EventLog",
    "FrameworkEventHandler",
    "EXECUTOR_AUTHOR_ID",
    # Locks
    "RoomLockManager",
    "InMemoryLockManager",
    # Projectors
    "project_chat",
    "project_document",
    "project_drawing",
    "project_room",
    "replay",
    "default_seed",
    "language_template",
    # Errors
    "RoomSyncError",
    "InvalidPayloadError",
    "RoomNotFoundError",
    "BadPasskeyError",
    "CoordinatorTimeoutError",
    "SessionNotFoundError",
    "AuthRejectedError",
    "RoomAlreadyExistsError",
    "RoomClosedError",
    "ExecutorNotConfiguredError",
    "HistoryCompactedError",
    # Models
    "RoomSyncConfig",
    "Room",
    "RoomSeed",
    "Participant",
    "CandidateEvent",
    "RoomEvent",
    "EventPayload",
    "ChatMessagePayload",
    "InstructionEditPayload",
    "CodeEditPayload",
    "DrawingStrokePayload",
    "DrawingClearPayload",
    "PanelFocusPayload",
    "CodeOutputPayload",
    "Point",
    "Resync",
    "Delivery",
    "JoinResult",
    "ExecutionResult",
    "FrameworkEvent",
    "RoomState",
    "ChatState",
    "ChatLine",
    "DocumentState",
    "DrawingState",
    "StrokeRecord",
    # Enums
    "EventKind",
    "Panel",
    "CodeLanguage",
    "RejectReason",
    "SessionStatus",
    "RoomStatus",
    # Collaborators
    "AuthGate",
    "AuthVerdict",
    "DefaultAuthGate",
    "MockAuthGate",
    "CodeExecutor",
    "MockCodeExecutor",
    "ChatResponder",
    "MockChatResponder",
    # Telemetry
    "TelemetryProvider",
    "NoopTelemetryProvider",
    "MockTelemetryProvider",
    # Transport
    "SessionConnection",
]
