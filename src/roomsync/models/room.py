"""Room model."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, Field

from roomsync.models.enums import CodeLanguage, RoomStatus


class RoomSeed(BaseModel):
    """Deterministic starting content for a room's panels.

    Projections start from the seed rather than from empty documents, so
    replaying the log from sequence 0 on top of it always reproduces the
    same state.
    """

    instructions: str
    language: str = CodeLanguage.JAVASCRIPT
    code: str


class Room(BaseModel):
    """A passkey-gated collaboration room."""

    id: str
    passkey: str = Field(repr=False)
    status: RoomStatus = RoomStatus.ACTIVE
    seed: RoomSeed
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    idle_since: datetime | None = None
    idle_timeout_seconds: float = Field(default=300.0, gt=0)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def eviction_deadline(self) -> datetime | None:
        """When this room becomes eligible for eviction, if it is idle."""
        if self.idle_since is None:
            return None
        return self.idle_since + timedelta(seconds=self.idle_timeout_seconds)
