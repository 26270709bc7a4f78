"""Mock auth gate for testing."""

from __future__ import annotations

from roomsync.auth.base import AuthGate, AuthVerdict


class MockAuthGate(AuthGate):
    """Rejects names in ``denied`` and maps names to fixed identity ids."""

    def __init__(
        self,
        denied: set[str] | None = None,
        identities: dict[str, str] | None = None,
    ) -> None:
        self._denied = denied or set()
        self._identities = identities or {}
        self.calls: list[tuple[str, str]] = []

    async def authorize(self, room_id: str, display_name: str) -> AuthVerdict:
        self.calls.append((room_id, display_name))
        if display_name in self._denied:
            return AuthVerdict(allowed=False, reason=f"{display_name} is not allowed")
        return AuthVerdict(allowed=True, identity_id=self._identities.get(display_name))
