"""Per-room async locking with LRU eviction."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from roomsync.core.errors import CoordinatorTimeoutError


class RoomLockManager(ABC):
    """Abstract base for the per-room serialization point.

    Every state mutation for a room (append, join, leave, eviction) runs
    inside ``locked(room_id)``. Different rooms never share a lock.

    The library ships with ``InMemoryLockManager`` for single-process
    deployments. Implementations are *not* reentrant: tasks spawned while
    the lock is held must not try to take it again before it is released.
    """

    @abstractmethod
    @asynccontextmanager
    async def locked(self, room_id: str, *, timeout: float | None = None) -> AsyncIterator[None]:
        """Acquire an exclusive lock for *room_id*.

        Raises ``CoordinatorTimeoutError`` if it cannot be acquired within
        *timeout* seconds.
        """
        yield  # pragma: no cover


class InMemoryLockManager(RoomLockManager):
    """In-process per-room asyncio locks with LRU eviction.

    A waiter cancelled while queued for the lock leaves the queue without
    ever holding it, so a disconnecting participant cannot stall others.
    """

    def __init__(self, max_locks: int = 1024) -> None:
        self._locks: OrderedDict[str, asyncio.Lock] = OrderedDict()
        self._refcounts: dict[str, int] = {}
        self._max_locks = max_locks

    def _get_lock(self, room_id: str) -> asyncio.Lock:
        if room_id in self._locks:
            self._locks.move_to_end(room_id)
            self._refcounts[room_id] = self._refcounts.get(room_id, 0) + 1
            return self._locks[room_id]

        lock = asyncio.Lock()
        self._locks[room_id] = lock
        self._refcounts[room_id] = 1
        self._evict()
        return lock

    def _release_ref(self, room_id: str) -> None:
        count = self._refcounts.get(room_id, 0) - 1
        if count <= 0:
            self._refcounts.pop(room_id, None)
        else:
            self._refcounts[room_id] = count

    def _evict(self) -> None:
        if len(self._locks) <= self._max_locks:
            return
        to_remove: list[str] = []
        for key, lock in self._locks.items():
            if len(self._locks) - len(to_remove) <= self._max_locks:
                break
            if not lock.locked() and self._refcounts.get(key, 0) <= 0:
                to_remove.append(key)
        for key in to_remove:
            self._locks.pop(key)
            self._refcounts.pop(key, None)

    def discard(self, room_id: str) -> None:
        """Forget the lock of an evicted room if nobody is using it."""
        lock = self._locks.get(room_id)
        if lock is not None and not lock.locked() and self._refcounts.get(room_id, 0) <= 0:
            self._locks.pop(room_id)
            self._refcounts.pop(room_id, None)

    @asynccontextmanager
    async def locked(self, room_id: str, *, timeout: float | None = None) -> AsyncIterator[None]:
        lock = self._get_lock(room_id)
        try:
            try:
                async with asyncio.timeout(timeout):
                    await lock.acquire()
            except TimeoutError as exc:
                raise CoordinatorTimeoutError(
                    f"Timed out after {timeout}s waiting for room {room_id}"
                ) from exc
            try:
                yield
            finally:
                lock.release()
        finally:
            self._release_ref(room_id)

    @property
    def size(self) -> int:
        """Return the number of cached locks."""
        return len(self._locks)
