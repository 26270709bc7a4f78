"""Mock chat responder for testing."""

from __future__ import annotations

import asyncio

from roomsync.models.event import RoomEvent
from roomsync.models.projection import RoomState
from roomsync.responder.base import ChatResponder

DEFAULT_REPLIES = [
    "That's an interesting point!",
    "Can you elaborate on that?",
    "I see what you mean.",
    "Good question! Let me think about that.",
    "That makes sense.",
]


class MockChatResponder(ChatResponder):
    """Round-robin canned replies."""

    def __init__(
        self,
        replies: list[str] | None = None,
        *,
        delay: float = 0.0,
        display_name: str = "Interviewer",
    ) -> None:
        self.replies = replies or list(DEFAULT_REPLIES)
        self.display_name = display_name
        self.calls: list[RoomEvent] = []
        self._delay = delay
        self._index = 0

    async def respond(self, event: RoomEvent, state: RoomState) -> str | None:
        self.calls.append(event)
        if self._delay:
            await asyncio.sleep(self._delay)
        reply = self.replies[self._index % len(self.replies)]
        self._index += 1
        return reply
