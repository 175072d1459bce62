"""
Transport Adapters

A transport adapter is the boundary between a room and the mechanism that
carries its messages. Rooms only ever call send() and receive(), so any
adapter can be bound to any room.

Two adapters are provided:
    - DirectTransport: emits the raw content
    - FramedTransport: wraps content in a sequenced JSON frame

Adapters are selected by TransportKind through create_transport().
"""

import json
import logging
import queue
import sys
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, TextIO

from .errors import TransportError, ValidationError
from .message import Message

logger = logging.getLogger(__name__)


class TransportKind(Enum):
    """Tags identifying the available transport adapters."""

    DIRECT = "direct"
    FRAMED = "framed"

    @classmethod
    def parse(cls, value) -> "TransportKind":
        """
        Parse a transport kind, case-insensitively.

        Args:
            value: A TransportKind or its string value

        Returns:
            The matching TransportKind

        Raises:
            ValidationError: If the value names no known transport
        """
        if isinstance(value, cls):
            return value
        key = value.strip().lower() if isinstance(value, str) else ""
        for kind in cls:
            if kind.value == key:
                return kind
        raise ValidationError(
            f"Unknown transport '{value}' "
            f"(expected one of: {', '.join(k.value for k in cls)})"
        )


class Transport:
    """
    Base class for transport adapters.

    Subclasses define how content is encoded into a wire payload, how that
    payload is rendered on the output stream, and how inbound payloads are
    decoded back into messages.

    Attributes:
        kind: The TransportKind this adapter implements
        loopback: If True, every sent payload is queued back as inbound
        sent_count: Number of successful sends
    """

    kind: TransportKind = None

    def __init__(self, stream: Optional[TextIO] = None, loopback: bool = False):
        """
        Initialize the transport.

        Args:
            stream: Output stream for emitted payloads (defaults to stdout)
            loopback: Queue each sent payload for receive() on the same room
        """
        self._stream = stream
        self.loopback = loopback
        self.sent_count = 0
        self._closed = False
        # Serializes writes so a single send is never interleaved
        self._lock = threading.Lock()
        self._inbound: Dict[str, "queue.Queue[str]"] = {}
        self._inbound_lock = threading.Lock()

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, content: str, room_id: str) -> None:
        """
        Emit content for a room.

        Args:
            content: Message content
            room_id: ID of the room the content belongs to

        Raises:
            TransportError: If the transport is closed or the write fails
        """
        with self._lock:
            if self._closed:
                raise TransportError(
                    f"{self.kind.value} transport is closed", room_id=room_id
                )
            payload = self._encode(content, room_id)
            try:
                self.stream.write(self._render(payload, room_id) + "\n")
                self.stream.flush()
            except (OSError, ValueError) as e:
                raise TransportError(
                    f"Failed to send via {self.kind.value}: {e}",
                    room_id=room_id,
                ) from e
            self.sent_count += 1

        logger.debug(f"Sent payload via {self.kind.value} to room {room_id}")

        if self.loopback:
            self.feed(room_id, payload)

    def receive(self, room_id: str, timeout: float = 0.0) -> Optional[Message]:
        """
        Poll for an inbound message.

        Args:
            room_id: ID of the room to poll
            timeout: Maximum seconds to wait; 0 returns immediately

        Returns:
            The next inbound Message, or None if nothing arrived in time

        Raises:
            TransportError: If the transport is closed or the payload
                is malformed
        """
        if self._closed:
            raise TransportError(
                f"{self.kind.value} transport is closed", room_id=room_id
            )

        inbox = self._inbox(room_id)
        try:
            if timeout and timeout > 0:
                payload = inbox.get(timeout=timeout)
            else:
                payload = inbox.get_nowait()
        except queue.Empty:
            return None

        logger.debug(f"Received payload via {self.kind.value} from {room_id}")
        return self._decode(payload, room_id)

    def feed(self, room_id: str, payload: str) -> None:
        """
        Queue an inbound wire payload for a room.

        Args:
            room_id: ID of the room the payload is addressed to
            payload: Payload in this transport's wire format
        """
        self._inbox(room_id).put(payload)

    def close(self) -> None:
        """
        Close the transport. Later sends and receives fail.

        Waits for an in-flight send to finish writing.
        """
        with self._lock:
            self._closed = True
        logger.debug(f"Closed {self.kind.value} transport")

    def _inbox(self, room_id: str) -> "queue.Queue[str]":
        with self._inbound_lock:
            if room_id not in self._inbound:
                self._inbound[room_id] = queue.Queue()
            return self._inbound[room_id]

    def _encode(self, content: str, room_id: str) -> str:
        raise NotImplementedError("Subclasses must implement _encode()")

    def _render(self, payload: str, room_id: str) -> str:
        raise NotImplementedError("Subclasses must implement _render()")

    def _decode(self, payload: str, room_id: str) -> Message:
        raise NotImplementedError("Subclasses must implement _decode()")


class DirectTransport(Transport):
    """Sends content as-is."""

    kind = TransportKind.DIRECT

    def _encode(self, content: str, room_id: str) -> str:
        return content

    def _render(self, payload: str, room_id: str) -> str:
        return f"Sending via direct: [{room_id}] {payload}"

    def _decode(self, payload: str, room_id: str) -> Message:
        return Message(content=payload, room_id=room_id)


class FramedTransport(Transport):
    """
    Wraps content in a JSON frame.

    Frame format:
        {
            "type": "new_message",
            "data": {
                "room_id": "...",
                "content": "...",
                "sequence_number": 1,
                "timestamp": "..."
            }
        }

    Sequence numbers are assigned per room, starting at 1.
    """

    kind = TransportKind.FRAMED
    FRAME_TYPE = "new_message"

    def __init__(self, stream: Optional[TextIO] = None, loopback: bool = False):
        super().__init__(stream=stream, loopback=loopback)
        self._sequences: Dict[str, int] = {}

    def _encode(self, content: str, room_id: str) -> str:
        # Called with the send lock held
        sequence_number = self._sequences.get(room_id, 0) + 1
        self._sequences[room_id] = sequence_number
        return json.dumps(
            {
                "type": self.FRAME_TYPE,
                "data": {
                    "room_id": room_id,
                    "content": content,
                    "sequence_number": sequence_number,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            }
        )

    def _render(self, payload: str, room_id: str) -> str:
        return f"Sending via framed: {payload}"

    def _decode(self, payload: str, room_id: str) -> Message:
        try:
            frame = json.loads(payload)
        except json.JSONDecodeError as e:
            raise TransportError(
                f"Malformed frame received in room {room_id}: {e}",
                room_id=room_id,
            ) from e

        if not isinstance(frame, dict):
            frame = {}
        data = frame.get("data")
        if (
            frame.get("type") != self.FRAME_TYPE
            or not isinstance(data, dict)
            or not isinstance(data.get("content"), str)
        ):
            raise TransportError(
                f"Unexpected frame received in room {room_id}",
                room_id=room_id,
            )

        fields: Dict[str, Any] = {
            "content": data["content"],
            "room_id": data.get("room_id") or room_id,
        }
        if data.get("timestamp"):
            fields["timestamp"] = data["timestamp"]
        return Message(**fields)

    def last_sequence_number(self, room_id: str) -> int:
        """Return the last sequence number sent to a room (0 if none)."""
        with self._lock:
            return self._sequences.get(room_id, 0)


TransportFactory = Callable[..., Transport]

_TRANSPORT_FACTORIES: Dict[TransportKind, TransportFactory] = {
    TransportKind.DIRECT: DirectTransport,
    TransportKind.FRAMED: FramedTransport,
}


def register_transport(
    kind, factory: TransportFactory
) -> Optional[TransportFactory]:
    """
    Register the factory used to build transports of a given kind.

    Args:
        kind: TransportKind or its string value
        factory: Callable accepting the keyword arguments of
                 create_transport() and returning a Transport

    Returns:
        The previously registered factory, if any
    """
    kind = TransportKind.parse(kind)
    previous = _TRANSPORT_FACTORIES.get(kind)
    _TRANSPORT_FACTORIES[kind] = factory
    logger.info(f"Registered transport factory for '{kind.value}'")
    return previous


def create_transport(
    kind, stream: Optional[TextIO] = None, loopback: bool = False
) -> Transport:
    """
    Build a transport adapter.

    Args:
        kind: TransportKind or its string value
        stream: Output stream for the adapter (defaults to stdout)
        loopback: Queue sent payloads back as inbound

    Returns:
        A new Transport instance

    Raises:
        ValidationError: If the kind is unknown
    """
    kind = TransportKind.parse(kind)
    return _TRANSPORT_FACTORIES[kind](stream=stream, loopback=loopback)
