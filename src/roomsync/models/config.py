"""Runtime configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RoomSyncConfig(BaseModel):
    """Tunables shared by the registry, coordinators and sessions.

    Attributes:
        submit_timeout_seconds: How long a submission may wait for the
            room's serialization point before failing with a timeout.
        subscribe_timeout_seconds: Same bound for the registration step of
            a catch-up subscription.
        max_pending_events: Per-session buffer size. A subscriber that
            falls further behind is forced into resync.
        idle_timeout_seconds: Grace window before an empty room is evicted.
        sweep_interval_seconds: Period of the background eviction sweep.
        max_retained_events: Keep at most this many acknowledged events in
            a room's log, folding older ones into the base snapshot.
            ``None`` keeps everything.
        max_locks: Upper bound on cached per-room locks.
        executor_timeout_seconds: Bound on a single code execution.
    """

    submit_timeout_seconds: float = Field(default=5.0, gt=0)
    subscribe_timeout_seconds: float = Field(default=5.0, gt=0)
    max_pending_events: int = Field(default=1000, ge=1)
    idle_timeout_seconds: float = Field(default=300.0, gt=0)
    sweep_interval_seconds: float = Field(default=30.0, gt=0)
    max_retained_events: int | None = Field(default=None, ge=1)
    max_locks: int = Field(default=1024, ge=1)
    executor_timeout_seconds: float = Field(default=10.0, gt=0)
