"""
Chat Room

A room owns an ordered set of members and the transport adapter it was
created with. Broadcasting sends content through the transport first and
only then delivers it to the members that were present when the broadcast
started.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Union

from .errors import ValidationError
from .member import Member
from .message import Message
from .transport import Transport
from .utils.validation import validate_room_id

logger = logging.getLogger(__name__)


class Room:
    """
    A named chat room.

    Membership is keyed by member name and keeps insertion order, so
    deliveries always happen in the order members joined. All membership
    access goes through a per-room lock.

    Attributes:
        room_id: Unique identifier for the room
        transport: Transport adapter bound at creation time
    """

    def __init__(self, room_id: str, transport: Transport):
        """
        Initialize the room.

        Args:
            room_id: Unique identifier for the room
            transport: Transport adapter owned by this room

        Raises:
            ValidationError: If room_id is empty
        """
        is_valid, error = validate_room_id(room_id)
        if not is_valid:
            raise ValidationError(error)
        self._room_id = room_id
        self._transport = transport
        self._members: Dict[str, Member] = {}
        self._lock = threading.Lock()

    @property
    def room_id(self) -> str:
        return self._room_id

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def members(self) -> List[Member]:
        """Snapshot of current members in join order."""
        with self._lock:
            return list(self._members.values())

    @property
    def member_count(self) -> int:
        with self._lock:
            return len(self._members)

    def member_names(self) -> List[str]:
        """Names of current members in join order."""
        with self._lock:
            return list(self._members)

    def has_member(self, name: str) -> bool:
        with self._lock:
            return name in self._members

    def add_member(self, member: Member) -> bool:
        """
        Add a member to the room.

        Args:
            member: The member to add

        Returns:
            True if the member was added, False if a member with the same
            name was already present
        """
        with self._lock:
            if member.name in self._members:
                added = False
            else:
                self._members[member.name] = member
                added = True

        if added:
            logger.info(f"{member.name} has joined {self._room_id}")
        else:
            logger.debug(
                f"{member.name} is already a member of {self._room_id}"
            )
        return added

    def remove_member(self, member: Union[Member, str]) -> bool:
        """
        Remove a member from the room.

        Args:
            member: The member, or its name

        Returns:
            True if the member was removed, False if it was not present
        """
        name = member if isinstance(member, str) else member.name
        with self._lock:
            removed = self._members.pop(name, None) is not None

        if removed:
            logger.info(f"{name} has left {self._room_id}")
        return removed

    def discard_member(self, member: Member) -> bool:
        """
        Remove a member only if it is the exact object held by the room.

        A different member registered under the same name is left in place.

        Args:
            member: The member object to remove

        Returns:
            True if the member was removed
        """
        with self._lock:
            removed = self._members.get(member.name) is member
            if removed:
                del self._members[member.name]

        if removed:
            logger.info(f"{member.name} has left {self._room_id}")
        return removed

    def broadcast(self, content: str, sender: Optional[str] = None) -> int:
        """
        Send content through the transport, then deliver it to members.

        Membership is captured at the start of the call. Members that join
        afterwards do not receive this message; members that leave
        afterwards still do.

        Args:
            content: Message content
            sender: Username of the sender, if known

        Returns:
            Number of members the message was delivered to

        Raises:
            TransportError: If the transport fails to send; in that case
                no member receives the message
        """
        with self._lock:
            recipients = list(self._members.values())

        self._transport.send(content, self._room_id)

        message = Message(content=content, room_id=self._room_id, sender=sender)
        delivered = 0
        for member in recipients:
            try:
                member.deliver(message)
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Failed to deliver message to {member.name} "
                    f"in {self._room_id}: {e}"
                )

        logger.debug(
            f"Broadcast in {self._room_id} delivered to "
            f"{delivered}/{len(recipients)} members"
        )
        return delivered

    def receive(self, timeout: float = 0.0) -> Optional[Message]:
        """
        Poll the room's transport for an inbound message.

        Args:
            timeout: Maximum seconds to wait; 0 returns immediately

        Returns:
            The next inbound Message, or None
        """
        message = self._transport.receive(self._room_id, timeout=timeout)
        if message is not None:
            logger.info(
                f"Message received in {self._room_id}: {message.content}"
            )
        return message

    def to_dict(self) -> Dict[str, Any]:
        """Convert room to dictionary for serialization."""
        names = self.member_names()
        return {
            "room_id": self._room_id,
            "transport": self._transport.kind.value,
            "member_count": len(names),
            "members": names,
        }

    def __repr__(self) -> str:
        return (
            f"Room(room_id={self._room_id!r}, "
            f"transport={self._transport.kind.value!r})"
        )
