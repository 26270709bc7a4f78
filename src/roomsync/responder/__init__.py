"""Automated chat partners."""

from roomsync.responder.base import ChatResponder
from roomsync.responder.mock import DEFAULT_REPLIES, MockChatResponder

__all__ = ["DEFAULT_REPLIES", "ChatResponder", "MockChatResponder"]
