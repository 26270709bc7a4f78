"""Abstract base class for join-time authorization."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel


class AuthVerdict(BaseModel):
    """Outcome of an ``AuthGate`` check.

    ``identity_id``, when set, becomes the participant's author id; otherwise
    the session id is used.
    """

    allowed: bool
    identity_id: str | None = None
    display_name: str | None = None
    reason: str | None = None


class AuthGate(ABC):
    """Validates a participant's identity before they join a room.

    The coordinator trusts the verdict; passkey checks happen separately.
    """

    @abstractmethod
    async def authorize(self, room_id: str, display_name: str) -> AuthVerdict:
        """Decide whether *display_name* may join *room_id*."""
        ...


class DefaultAuthGate(AuthGate):
    """Accepts any non-blank display name, trimmed."""

    async def authorize(self, room_id: str, display_name: str) -> AuthVerdict:
        name = display_name.strip()
        if not name:
            return AuthVerdict(allowed=False, reason="Display name is required")
        return AuthVerdict(allowed=True, display_name=name)
