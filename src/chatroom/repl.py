"""
Line-Oriented Command Loop

Reads one command per line and hands it to a CommandDispatcher:

    create <room_id> [direct|framed]
    join <room_id> <username>
    leave <room_id> <username>
    send <room_id> <message text...>
    receive <room_id>
    help
    exit

Missing arguments are passed on as empty fields so the dispatcher reports
them like any other invalid input. End of input behaves like exit.
"""

import logging
import sys
from typing import Any, Dict, Optional, TextIO, Tuple

from .dispatcher import CommandDispatcher
from .results import OperationResult

logger = logging.getLogger(__name__)

PROMPT = "Enter command (create/join/leave/send/receive/exit): "

HELP_TEXT = """Commands:
  create <room_id> [direct|framed]   Create a room bound to a transport
  join <room_id> <username>          Join a room
  leave <room_id> <username>         Leave a room
  send <room_id> <message>           Send a message to a room
  receive <room_id>                  Poll a room's transport for a message
  help                               Show this help
  exit                               Quit
"""


def parse_command(line: str) -> Optional[Tuple[str, Dict[str, Any]]]:
    """
    Split a command line into a command name and its fields.

    Args:
        line: One line of input

    Returns:
        tuple: (command, fields), or None for a blank line
    """
    stripped = line.strip()
    if not stripped:
        return None

    # Any run of whitespace separates fields
    parts = stripped.split(None, 1)
    command = parts[0].lower()
    rest = parts[1] if len(parts) > 1 else ""

    if command == "send":
        fields = rest.split(None, 1)
        room_id = fields[0] if fields else ""
        content = fields[1].strip() if len(fields) > 1 else ""
        return command, {"room_id": room_id, "content": content}

    args = rest.split()
    args += [""] * (2 - len(args))

    if command == "create":
        return command, {"room_id": args[0], "transport": args[1]}
    if command in ("join", "leave"):
        return command, {"room_id": args[0], "username": args[1]}
    if command == "receive":
        return command, {"room_id": args[0]}
    return command, {}


def format_result(result: OperationResult) -> str:
    """
    Render an operation result as a single line for the operator.

    Args:
        result: The result to render

    Returns:
        "OK ..." on success, "ERROR [<code>] <message>" on failure
    """
    if not result.ok:
        return f"ERROR [{result.error_code}] {result.error}"

    data = result.data
    if result.op == "create":
        state = "created" if data["created"] else "already exists"
        return (
            f"OK Chat room {data['room_id']} {state} "
            f"(transport: {data['transport']})"
        )
    if result.op == "join":
        if not data["added"]:
            return f"OK {data['username']} is already in {data['room_id']}"
        return (
            f"OK {data['username']} joined {data['room_id']} "
            f"(members: {data['member_count']})"
        )
    if result.op == "leave":
        if not data["removed"]:
            return f"OK {data['username']} was not in {data['room_id']}"
        return f"OK {data['username']} left {data['room_id']}"
    if result.op == "send":
        return (
            f"OK Message sent to {data['room_id']} "
            f"(delivered to {data['delivered']} members)"
        )
    if result.op == "receive":
        message = data["message"]
        if message is None:
            return f"OK No messages waiting in {data['room_id']}"
        return f"OK Message received in {data['room_id']}: {message['content']}"
    return "OK Goodbye"


def run_repl(
    dispatcher: CommandDispatcher,
    input_stream: Optional[TextIO] = None,
    output_stream: Optional[TextIO] = None,
    prompt: Optional[str] = None,
) -> int:
    """
    Run the command loop until exit or end of input.

    Args:
        dispatcher: Dispatcher that executes commands
        input_stream: Source of command lines (defaults to stdin)
        output_stream: Destination for results (defaults to stdout)
        prompt: Prompt written before each read, if any

    Returns:
        Process exit code (always 0)
    """
    input_stream = input_stream or sys.stdin
    output_stream = output_stream or sys.stdout

    while not dispatcher.stopped:
        if prompt:
            output_stream.write(prompt)
            output_stream.flush()

        line = input_stream.readline()
        if not line:
            logger.info("End of input reached")
            dispatcher.dispatch("exit")
            break

        parsed = parse_command(line)
        if parsed is None:
            continue

        command, fields = parsed
        if command == "help":
            output_stream.write(HELP_TEXT)
            continue

        result = dispatcher.dispatch(command, fields)
        output_stream.write(format_result(result) + "\n")
        output_stream.flush()

    return 0
