"""
Chat Room Package

This package provides an in-process chat room registry: rooms with ordered
memberships, pluggable transport adapters, and the operations that drive
them from a command loop or a WebSocket server.
"""

from .errors import ChatRoomError, ValidationError, TransportError, InternalError
from .message import Message
from .formatters import MessageFormatter, PlainTextFormatter, HtmlFormatter, get_formatter
from .transport import (
    Transport,
    TransportKind,
    DirectTransport,
    FramedTransport,
    create_transport,
    register_transport,
)
from .member import Member, ConsoleMember, InboxMember
from .room import Room
from .room_group import RoomGroup
from .registry import RoomRegistry, get_registry
from .operations import (
    Operation,
    CreateRoomOperation,
    JoinRoomOperation,
    LeaveRoomOperation,
    SendMessageOperation,
    ReceiveMessageOperation,
    ShutdownOperation,
    WrappedOperation,
    wrap,
    audit_logged,
)
from .results import OperationResult
from .config import Settings, load_settings
from .dispatcher import CommandDispatcher

__all__ = [
    # Errors
    "ChatRoomError",
    "ValidationError",
    "TransportError",
    "InternalError",
    # Messages
    "Message",
    "MessageFormatter",
    "PlainTextFormatter",
    "HtmlFormatter",
    "get_formatter",
    # Transports
    "Transport",
    "TransportKind",
    "DirectTransport",
    "FramedTransport",
    "create_transport",
    "register_transport",
    # Rooms
    "Member",
    "ConsoleMember",
    "InboxMember",
    "Room",
    "RoomGroup",
    "RoomRegistry",
    "get_registry",
    # Operations
    "Operation",
    "CreateRoomOperation",
    "JoinRoomOperation",
    "LeaveRoomOperation",
    "SendMessageOperation",
    "ReceiveMessageOperation",
    "ShutdownOperation",
    "WrappedOperation",
    "wrap",
    "audit_logged",
    "OperationResult",
    "Settings",
    "load_settings",
    "CommandDispatcher",
]
