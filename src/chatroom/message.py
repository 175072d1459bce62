"""
Chat Message Value Type

Messages are immutable. Use clone() to derive an independent copy with
some fields changed.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Message:
    """
    A chat message.

    Attributes:
        content: Message text
        room_id: ID of the room the message belongs to, if known
        sender: Username of the sender, if known
        timestamp: ISO 8601 timestamp when the message was created
    """

    content: str
    room_id: Optional[str] = None
    sender: Optional[str] = None
    timestamp: str = field(default_factory=_now)

    def clone(self, **changes) -> "Message":
        """
        Create an independent copy of this message.

        Args:
            **changes: Field values to override in the copy

        Returns:
            A new Message instance
        """
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "content": self.content,
            "room_id": self.room_id,
            "sender": self.sender,
            "timestamp": self.timestamp,
        }
