"""
Room Members

A member is anything that can receive a message delivered by a room.
Rooms hold member objects and call deliver() on each of them during a
broadcast. Membership within a room is keyed by member name.
"""

import sys
import threading
from typing import List, Optional, TextIO

from .errors import ValidationError
from .message import Message
from .utils.validation import validate_name


class Member:
    """
    Base class for room members.

    Attributes:
        name: The member's display name
    """

    def __init__(self, name: str):
        is_valid, error = validate_name(name)
        if not is_valid:
            raise ValidationError(error)
        self.name = name

    def deliver(self, message: Message) -> None:
        """
        Receive a message broadcast to a room this member belongs to.

        Args:
            message: The delivered message; message.room_id names the room
        """
        raise NotImplementedError("Subclasses must implement deliver()")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class ConsoleMember(Member):
    """Prints each delivered message as a line on a text stream."""

    def __init__(self, name: str, stream: Optional[TextIO] = None):
        super().__init__(name)
        self._stream = stream

    def deliver(self, message: Message) -> None:
        stream = self._stream if self._stream is not None else sys.stdout
        stream.write(
            f"{self.name} received a new message in "
            f"{message.room_id}: {message.content}\n"
        )
        stream.flush()


class InboxMember(Member):
    """Collects delivered messages in memory."""

    def __init__(self, name: str):
        super().__init__(name)
        self._messages: List[Message] = []
        self._lock = threading.Lock()

    def deliver(self, message: Message) -> None:
        with self._lock:
            self._messages.append(message)

    @property
    def messages(self) -> List[Message]:
        """Snapshot of delivered messages, oldest first."""
        with self._lock:
            return list(self._messages)

    @property
    def contents(self) -> List[str]:
        """Content of each delivered message, oldest first."""
        return [message.content for message in self.messages]
