"""
Command Dispatcher

Turns a command name and its fields into an operation, runs it, and
reports the outcome as an OperationResult. This is the dispatch boundary:
no exception raised by an operation escapes dispatch().

Supported commands:
    - create: room_id, transport (optional)
    - join: room_id, username
    - leave: room_id, username
    - send: room_id, content, username (optional sender)
    - receive: room_id, timeout (optional)
    - exit: no fields
"""

import logging
import threading
from typing import Any, Dict, Optional, TextIO

from .config import Settings
from .errors import ChatRoomError, InternalError, TransportError, ValidationError
from .formatters import MessageFormatter, get_formatter
from .member import ConsoleMember
from .operations import (
    CreateRoomOperation,
    JoinRoomOperation,
    LeaveRoomOperation,
    MemberFactory,
    Operation,
    ReceiveMessageOperation,
    SendMessageOperation,
    ShutdownOperation,
    audit_logged,
)
from .registry import RoomRegistry, get_registry
from .results import OperationResult
from .transport import Transport, TransportKind, create_transport

logger = logging.getLogger(__name__)

COMMANDS = ("create", "join", "leave", "send", "receive", "exit")
COMMAND_ALIASES = {"shutdown": "exit", "quit": "exit"}


class CommandDispatcher:
    """
    Dispatches commands against a room registry.

    Attributes:
        registry: The room registry commands operate on
        settings: Runtime settings
        stop_event: Set once an exit command has run
    """

    def __init__(
        self,
        registry: Optional[RoomRegistry] = None,
        settings: Optional[Settings] = None,
        member_factory: Optional[MemberFactory] = None,
        formatter: Optional[MessageFormatter] = None,
        transport_stream: Optional[TextIO] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            registry: Room registry (defaults to the process-wide registry)
            settings: Runtime settings (defaults to Settings())
            member_factory: Builds a member from a username for join
                            (defaults to ConsoleMember)
            formatter: Formatter for sent content (defaults to the one
                       named in settings)
            transport_stream: Output stream for transports of new rooms
            stop_event: Event set by the exit command
        """
        self.registry = registry if registry is not None else get_registry()
        self.settings = settings or Settings()
        self.member_factory = member_factory or ConsoleMember
        self.formatter = formatter or get_formatter(self.settings.formatter)
        self.transport_stream = transport_stream
        self.stop_event = stop_event or threading.Event()

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    def _build_transport(self, kind: TransportKind) -> Transport:
        return create_transport(
            kind, stream=self.transport_stream, loopback=self.settings.loopback
        )

    def build_operation(
        self, command: str, fields: Optional[Dict[str, Any]] = None
    ) -> Operation:
        """
        Build the audit-logged operation for a command.

        Args:
            command: Command name, case-insensitive
            fields: Command fields

        Returns:
            The operation, not yet executed

        Raises:
            ValidationError: If the command is unknown or fields is not
                a dictionary
        """
        name = _normalize_command(command)
        if fields is None:
            fields = {}
        if not isinstance(fields, dict):
            raise ValidationError("Command fields must be an object")

        room_id = fields.get("room_id")
        common = {
            "default_transport": self.settings.default_transport,
            "transport_builder": self._build_transport,
        }

        if name == "create":
            operation = CreateRoomOperation(
                self.registry, room_id, fields.get("transport"), **common
            )
        elif name == "join":
            operation = JoinRoomOperation(
                self.registry,
                room_id,
                fields.get("username"),
                member_factory=self.member_factory,
                **common,
            )
        elif name == "leave":
            operation = LeaveRoomOperation(
                self.registry, room_id, fields.get("username")
            )
        elif name == "send":
            operation = SendMessageOperation(
                self.registry,
                room_id,
                fields.get("content"),
                sender=fields.get("username"),
                formatter=self.formatter,
                **common,
            )
        elif name == "receive":
            operation = ReceiveMessageOperation(
                self.registry,
                room_id,
                timeout=_parse_timeout(
                    fields.get("timeout"), self.settings.receive_timeout
                ),
            )
        else:
            operation = ShutdownOperation(self.stop_event)

        return audit_logged(operation)

    def dispatch(
        self, command: str, fields: Optional[Dict[str, Any]] = None
    ) -> OperationResult:
        """
        Run a command and report its outcome.

        Args:
            command: Command name, case-insensitive
            fields: Command fields

        Returns:
            OperationResult; ok is False for any failure
        """
        op = command.strip().lower() if isinstance(command, str) else ""
        op = COMMAND_ALIASES.get(op, op)
        room_id = fields.get("room_id") if isinstance(fields, dict) else None
        if not isinstance(room_id, str):
            room_id = None

        try:
            operation = self.build_operation(command, fields)
            data = operation.execute()
        except ValidationError as e:
            logger.warning(f"Invalid {op or 'command'}: {e.message}")
            return OperationResult.failure(op, e, room_id)
        except TransportError as e:
            logger.error(f"Transport failure during {op}: {e.message}")
            return OperationResult.failure(op, e, room_id)
        except ChatRoomError as e:
            logger.critical(f"Internal error during {op}: {e}", exc_info=True)
            return OperationResult.failure(
                op, InternalError(e.message, room_id=e.room_id), room_id
            )
        except Exception as e:
            logger.critical(f"An error occurred during {op}: {e}", exc_info=True)
            return OperationResult.failure(
                op, InternalError(str(e) or type(e).__name__), room_id
            )

        return OperationResult.success(op, data, room_id)


def _normalize_command(command: str) -> str:
    name = command.strip().lower() if isinstance(command, str) else ""
    name = COMMAND_ALIASES.get(name, name)
    if name not in COMMANDS:
        raise ValidationError(
            f"Invalid command '{command}' "
            f"(expected one of: {', '.join(COMMANDS)})"
        )
    return name


def _parse_timeout(value, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Timeout must be a number, got '{value}'")
    if timeout < 0:
        raise ValidationError("Timeout cannot be negative")
    return timeout
