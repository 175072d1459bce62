"""
Error Types for the Chat Room Registry

Operations raise these exceptions; the command dispatcher is the only place
that catches them and turns them into operation results.
"""


class ChatRoomError(Exception):
    """
    Base class for all chat room errors.

    Attributes:
        error_code: Stable code reported to clients (e.g., VALIDATION_ERROR)
        room_id: ID of the room related to the error, if any
    """

    error_code = "CHAT_ROOM_ERROR"

    def __init__(self, message: str, room_id: str = None):
        super().__init__(message)
        self.message = message
        self.room_id = room_id


class ValidationError(ChatRoomError):
    """Malformed or empty user input. Recoverable."""

    error_code = "VALIDATION_ERROR"


class TransportError(ChatRoomError):
    """A transport adapter failed to send or receive. Recoverable."""

    error_code = "TRANSPORT_ERROR"


class InternalError(ChatRoomError):
    """An invariant was violated. Indicates a programming defect."""

    error_code = "INTERNAL_ERROR"
