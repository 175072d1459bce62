"""
Chat Operations

Each operation is bound to its parameters when it is built and does its
work when execute() is called. execute() validates the parameters first,
so an invalid operation never touches the registry.

Operations return a dictionary of result data on success and raise a
ChatRoomError subclass on failure. Cross-cutting behavior such as audit
logging is added with wrap(), which never changes the inner result.
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional

from .errors import ValidationError
from .formatters import MessageFormatter, PlainTextFormatter
from .member import ConsoleMember, Member
from .registry import RoomRegistry
from .transport import Transport, TransportKind, create_transport
from .utils.validation import (
    validate_message_content,
    validate_name,
    validate_room_id,
)

logger = logging.getLogger(__name__)

OperationData = Dict[str, Any]
TransportBuilder = Callable[[TransportKind], Transport]
MemberFactory = Callable[[str], Member]


def _require(check, value, room_id: Optional[str] = None) -> None:
    is_valid, error = check(value)
    if not is_valid:
        raise ValidationError(error, room_id=room_id)


class Operation:
    """
    Base class for operations.

    Attributes:
        name: Command name of the operation
        room_id: ID of the room the operation targets, if any
    """

    name = "operation"
    room_id: Optional[str] = None

    def validate(self) -> None:
        """Raise ValidationError if the parameters are invalid."""

    def run(self) -> OperationData:
        raise NotImplementedError("Subclasses must implement run()")

    def execute(self) -> OperationData:
        """
        Validate the parameters and perform the operation.

        Returns:
            Operation-specific result data

        Raises:
            ValidationError: If the parameters are invalid
            TransportError: If a transport adapter fails
        """
        self.validate()
        return self.run()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(room_id={self.room_id!r})"


class _RoomOperation(Operation):
    """Shared setup for operations that may create their room."""

    def __init__(
        self,
        registry: RoomRegistry,
        room_id: str,
        default_transport: TransportKind = TransportKind.DIRECT,
        transport_builder: TransportBuilder = create_transport,
    ):
        self.registry = registry
        self.room_id = room_id
        self.default_transport = default_transport
        self.transport_builder = transport_builder

    def _resolve(self, kind: TransportKind):
        return self.registry.resolve_with_status(
            self.room_id, lambda: self.transport_builder(kind)
        )


class CreateRoomOperation(_RoomOperation):
    """
    Create a room bound to a transport.

    Creating a room that already exists is a no-op; the existing room keeps
    its original transport.
    """

    name = "create"

    def __init__(
        self,
        registry: RoomRegistry,
        room_id: str,
        transport_kind=None,
        default_transport: TransportKind = TransportKind.DIRECT,
        transport_builder: TransportBuilder = create_transport,
    ):
        super().__init__(registry, room_id, default_transport, transport_builder)
        self.transport_kind = transport_kind
        self._kind: Optional[TransportKind] = None

    def validate(self) -> None:
        _require(validate_room_id, self.room_id)
        kind = self.transport_kind
        if kind is None or (isinstance(kind, str) and not kind.strip()):
            self._kind = self.default_transport
        elif isinstance(kind, (str, TransportKind)):
            self._kind = TransportKind.parse(kind)
        else:
            raise ValidationError(
                f"Unknown transport '{self.transport_kind}'",
                room_id=self.room_id,
            )

    def run(self) -> OperationData:
        room, created = self._resolve(self._kind)
        bound = room.transport.kind
        if not created and bound != self._kind:
            logger.info(
                f"Chat room {self.room_id} already exists with transport "
                f"{bound.value}; ignoring requested {self._kind.value}"
            )
        return {
            "room_id": self.room_id,
            "created": created,
            "transport": bound.value,
        }


class JoinRoomOperation(_RoomOperation):
    """Add a member to a room, creating the room if needed."""

    name = "join"

    def __init__(
        self,
        registry: RoomRegistry,
        room_id: str,
        username: str,
        member_factory: MemberFactory = ConsoleMember,
        default_transport: TransportKind = TransportKind.DIRECT,
        transport_builder: TransportBuilder = create_transport,
    ):
        super().__init__(registry, room_id, default_transport, transport_builder)
        self.username = username
        self.member_factory = member_factory

    def validate(self) -> None:
        _require(validate_room_id, self.room_id)
        _require(validate_name, self.username, self.room_id)

    def run(self) -> OperationData:
        room, created = self._resolve(self.default_transport)
        added = room.add_member(self.member_factory(self.username))
        return {
            "room_id": self.room_id,
            "username": self.username,
            "added": added,
            "created": created,
            "member_count": room.member_count,
        }


class LeaveRoomOperation(Operation):
    """Remove a member from a room. Never creates the room."""

    name = "leave"

    def __init__(self, registry: RoomRegistry, room_id: str, username: str):
        self.registry = registry
        self.room_id = room_id
        self.username = username

    def validate(self) -> None:
        _require(validate_room_id, self.room_id)
        _require(validate_name, self.username, self.room_id)

    def run(self) -> OperationData:
        room = self.registry.get(self.room_id)
        removed = room.remove_member(self.username) if room else False
        return {
            "room_id": self.room_id,
            "username": self.username,
            "removed": removed,
        }


class SendMessageOperation(_RoomOperation):
    """
    Format content and broadcast it in a room, creating the room if needed.
    """

    name = "send"

    def __init__(
        self,
        registry: RoomRegistry,
        room_id: str,
        content: str,
        sender: Optional[str] = None,
        formatter: Optional[MessageFormatter] = None,
        default_transport: TransportKind = TransportKind.DIRECT,
        transport_builder: TransportBuilder = create_transport,
    ):
        super().__init__(registry, room_id, default_transport, transport_builder)
        self.content = content
        self.sender = sender
        self.formatter = formatter or PlainTextFormatter()

    def validate(self) -> None:
        _require(validate_room_id, self.room_id)
        _require(validate_message_content, self.content, self.room_id)

    def run(self) -> OperationData:
        content = self.formatter.format(self.content)
        room, created = self._resolve(self.default_transport)
        delivered = room.broadcast(content, sender=self.sender)
        return {
            "room_id": self.room_id,
            "content": content,
            "delivered": delivered,
            "created": created,
        }


class ReceiveMessageOperation(Operation):
    """Poll a room's transport for an inbound message. Never creates the room."""

    name = "receive"

    def __init__(self, registry: RoomRegistry, room_id: str, timeout: float = 0.0):
        self.registry = registry
        self.room_id = room_id
        self.timeout = timeout

    def validate(self) -> None:
        _require(validate_room_id, self.room_id)

    def run(self) -> OperationData:
        room = self.registry.get(self.room_id)
        message = room.receive(timeout=self.timeout) if room else None
        return {
            "room_id": self.room_id,
            "message": message.to_dict() if message else None,
        }


class ShutdownOperation(Operation):
    """Signal the operation loop to stop."""

    name = "exit"

    def __init__(self, stop_event: threading.Event):
        self.stop_event = stop_event

    def run(self) -> OperationData:
        self.stop_event.set()
        logger.info("Exiting the application.")
        return {"stopped": True}


BeforeHook = Callable[[Operation], None]
AfterHook = Callable[[Operation, Optional[OperationData], Optional[Exception]], None]


class WrappedOperation(Operation):
    """
    An operation with hooks around another operation's execution.

    The inner result is returned, and the inner exception re-raised,
    unchanged. A failing hook is logged and does not affect the outcome.
    """

    def __init__(
        self,
        inner: Operation,
        before: Optional[BeforeHook] = None,
        after: Optional[AfterHook] = None,
    ):
        self.inner = inner
        self._before = before
        self._after = after

    @property
    def name(self) -> str:
        return self.inner.name

    @property
    def room_id(self) -> Optional[str]:
        return self.inner.room_id

    def execute(self) -> OperationData:
        self._call_hook(self._before, self.inner)
        try:
            result = self.inner.execute()
        except Exception as e:
            self._call_hook(self._after, self.inner, None, e)
            raise
        self._call_hook(self._after, self.inner, result, None)
        return result

    def _call_hook(self, hook, *args) -> None:
        if hook is None:
            return
        try:
            hook(*args)
        except Exception as e:
            logger.error(f"Hook {hook!r} failed for {self.name}: {e}")

    def __repr__(self) -> str:
        return f"WrappedOperation({self.inner!r})"


def wrap(
    operation: Operation,
    before: Optional[BeforeHook] = None,
    after: Optional[AfterHook] = None,
) -> WrappedOperation:
    """
    Wrap an operation with hooks that run before and after it.

    Args:
        operation: The operation to wrap (may itself be wrapped)
        before: Called with the inner operation before it runs
        after: Called with (operation, result, error) after it runs;
               exactly one of result and error is None

    Returns:
        A WrappedOperation with the same name and outcome
    """
    return WrappedOperation(operation, before=before, after=after)


def audit_logged(
    operation: Operation, audit_logger: Optional[logging.Logger] = None
) -> WrappedOperation:
    """
    Wrap an operation so its start and outcome are logged at INFO.

    Args:
        operation: The operation to wrap
        audit_logger: Logger to write to (defaults to this module's logger)

    Returns:
        The wrapped operation
    """
    log = audit_logger or logger

    def _before(op: Operation) -> None:
        target = f" on {op.room_id}" if op.room_id else ""
        log.info(f"Executing {op.name}{target}")

    def _after(op: Operation, result, error) -> None:
        if error is not None:
            log.info(f"{op.name} failed: {error}")
        else:
            log.info(f"{op.name} completed: {result}")

    return wrap(operation, before=_before, after=_after)
