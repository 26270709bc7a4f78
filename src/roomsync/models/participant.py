"""Participant model."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class Participant(BaseModel):
    """A joined user. Holds a watermark, never a copy of the log."""

    session_id: str
    room_id: str
    display_name: str
    last_acked_sequence: int = Field(default=-1, ge=-1)
    joined_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
