"""
Room Groups

A room group applies membership changes and broadcasts to several rooms at
once, in the order the rooms were added to the group.
"""

import logging
from typing import Dict, List, Union

from .member import Member
from .room import Room

logger = logging.getLogger(__name__)


class RoomGroup:
    """
    A named collection of rooms treated as one.

    Attributes:
        name: Name of the group
    """

    def __init__(self, name: str):
        self.name = name
        self._rooms: Dict[str, Room] = {}

    @property
    def rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def add_room(self, room: Room) -> bool:
        """Add a room. Returns False if it is already in the group."""
        if room.room_id in self._rooms:
            return False
        self._rooms[room.room_id] = room
        logger.info(f"Added room {room.room_id} to group {self.name}")
        return True

    def remove_room(self, room: Union[Room, str]) -> bool:
        """Remove a room. Removing an absent room is a no-op."""
        room_id = room if isinstance(room, str) else room.room_id
        removed = self._rooms.pop(room_id, None) is not None
        if removed:
            logger.info(f"Removed room {room_id} from group {self.name}")
        return removed

    def add_member(self, member: Member) -> int:
        """
        Add a member to every room in the group.

        Returns:
            Number of rooms the member was newly added to
        """
        return sum(1 for room in self.rooms if room.add_member(member))

    def remove_member(self, member: Union[Member, str]) -> int:
        """
        Remove a member from every room in the group.

        Returns:
            Number of rooms the member was removed from
        """
        return sum(1 for room in self.rooms if room.remove_member(member))

    def broadcast(self, content: str, sender: str = None) -> int:
        """
        Broadcast content in every room of the group.

        A transport failure in one room propagates; rooms earlier in the
        group have already broadcast by then.

        Returns:
            Total number of deliveries across all rooms
        """
        return sum(room.broadcast(content, sender=sender) for room in self.rooms)
