"""
Room Registry

Maps room IDs to Room instances. Rooms are created on first use and are
never removed, so a room ID resolves to the same Room for the lifetime of
the process.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from .errors import InternalError, ValidationError
from .room import Room
from .transport import Transport
from .utils.validation import validate_room_id

logger = logging.getLogger(__name__)


class RoomRegistry:
    """
    Thread-safe get-or-create store of rooms.

    The registry lock only guards the room table. Each room has its own
    lock for membership, so unrelated rooms never contend.
    """

    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()
        logger.info("RoomRegistry initialized")

    def resolve(
        self, room_id: str, transport_factory: Callable[[], Transport]
    ) -> Room:
        """
        Get a room, creating it if it does not exist yet.

        The transport factory is only called when the room is created, and
        at most once per room ID even under concurrent first access.

        Args:
            room_id: ID of the room
            transport_factory: Builds the transport for a new room

        Returns:
            The Room registered under room_id

        Raises:
            ValidationError: If room_id is empty
        """
        room, _ = self.resolve_with_status(room_id, transport_factory)
        return room

    def resolve_with_status(
        self, room_id: str, transport_factory: Callable[[], Transport]
    ) -> Tuple[Room, bool]:
        """
        Same as resolve(), also reporting whether the room was created.

        Returns:
            tuple: (room, created)
        """
        is_valid, error = validate_room_id(room_id)
        if not is_valid:
            raise ValidationError(error, room_id=room_id)

        with self._lock:
            room = self._rooms.get(room_id)
            if room is not None:
                return room, False

            transport = transport_factory()
            if transport is None:
                raise InternalError(
                    f"Transport factory returned nothing for room {room_id}",
                    room_id=room_id,
                )
            room = Room(room_id, transport)
            self._rooms[room_id] = room

        logger.info(
            f"Chat room {room_id} created "
            f"(transport: {transport.kind.value})"
        )
        return room, True

    def get(self, room_id: str) -> Optional[Room]:
        """
        Get a room by its ID without creating it.

        Returns:
            The Room if found, None otherwise
        """
        with self._lock:
            return self._rooms.get(room_id)

    def exists(self, room_id: str) -> bool:
        return self.get(room_id) is not None

    def list_rooms(self) -> List[Room]:
        """All rooms in creation order."""
        with self._lock:
            return list(self._rooms.values())

    def __contains__(self, room_id: str) -> bool:
        return self.exists(room_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)


_registry: Optional[RoomRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> RoomRegistry:
    """
    Return the process-wide room registry, creating it on first use.
    """
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = RoomRegistry()
    return _registry
