"""Exception hierarchy for RoomSync.

Every error carries a :class:`RejectReason` so transports can report it
without inspecting the exception type. None of them leave room state changed.
"""

from __future__ import annotations

from roomsync.models.enums import RejectReason


class RoomSyncError(Exception):
    """Base exception for all RoomSync errors."""

    reason: RejectReason = RejectReason.INVALID_PAYLOAD


class InvalidPayloadError(RoomSyncError, ValueError):
    """Malformed or empty content; the action is rejected."""

    reason = RejectReason.INVALID_PAYLOAD


class RoomNotFoundError(RoomSyncError):
    """Room does not exist (or was evicted)."""

    reason = RejectReason.ROOM_NOT_FOUND


class BadPasskeyError(RoomSyncError):
    """Passkey does not match the room's."""

    reason = RejectReason.BAD_PASSKEY


class CoordinatorTimeoutError(RoomSyncError):
    """The room's serialization point was not reached in time. Safe to retry."""

    reason = RejectReason.TIMEOUT


class SessionNotFoundError(RoomSyncError):
    """No live participant session with that id."""

    reason = RejectReason.SESSION_NOT_FOUND


class AuthRejectedError(RoomSyncError):
    """The auth gate refused the participant."""

    reason = RejectReason.AUTH_REJECTED


class RoomAlreadyExistsError(RoomSyncError):
    """A room with the requested id already exists."""

    reason = RejectReason.ROOM_EXISTS


class RoomClosedError(RoomSyncError):
    """The room's coordinator has been closed."""

    reason = RejectReason.ROOM_CLOSED


class ExecutorNotConfiguredError(RoomSyncError):
    """A code run was requested but no ``CodeExecutor`` is configured."""

    reason = RejectReason.EXECUTOR_UNAVAILABLE
