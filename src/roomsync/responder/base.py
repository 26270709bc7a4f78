"""Abstract base class for automated chat partners."""

from __future__ import annotations

from abc import ABC, abstractmethod

from roomsync.models.event import RoomEvent
from roomsync.models.projection import RoomState


class ChatResponder(ABC):
    """Produces automated replies to chat messages.

    Replies are appended as ordinary ``chat_message`` events under the
    responder's author id, so they take part in the room's total order.
    """

    author_id: str = "system:responder"
    display_name: str = "Interviewer"

    @abstractmethod
    async def respond(self, event: RoomEvent, state: RoomState) -> str | None:
        """Return reply text for *event*, or ``None`` to stay silent."""
        ...
