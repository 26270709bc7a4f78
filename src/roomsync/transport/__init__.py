"""Wire protocol and connection adapter."""

from roomsync.transport.connection import SendFn, SessionConnection
from roomsync.transport.protocol import (
    AcceptedMessage,
    AckRequest,
    ErrorMessage,
    EventMessage,
    InboundMessage,
    JoinedMessage,
    JoinRequest,
    LeaveRequest,
    OutboundMessage,
    ResyncMessage,
    RunCodeRequest,
    SubmitRequest,
    parse_inbound,
)

__all__ = [
    "AcceptedMessage",
    "AckRequest",
    "ErrorMessage",
    "EventMessage",
    "InboundMessage",
    "JoinRequest",
    "JoinedMessage",
    "LeaveRequest",
    "OutboundMessage",
    "ResyncMessage",
    "RunCodeRequest",
    "SendFn",
    "SessionConnection",
    "SubmitRequest",
    "parse_inbound",
]
