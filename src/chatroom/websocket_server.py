"""
WebSocket Command Server

Lets network clients drive chat operations concurrently against the shared
room registry. Each text frame is a JSON command:

    {"type": "join", "data": {"room_id": "general", "username": "alice"}}

and is answered with:

    {"type": "operation_result", "data": {...OperationResult...}}

Members that joined over a connection receive new_message frames on that
connection. When a connection closes, its members leave every room they
joined. An exit command closes only the connection that sent it.
"""

import asyncio
import json
import logging
import threading
from collections import deque
from typing import Any, Deque, Dict, Optional, Tuple

import websockets
import websockets.exceptions

from .config import Settings
from .dispatcher import CommandDispatcher
from .member import Member
from .message import Message
from .registry import RoomRegistry, get_registry
from .results import OperationResult

logger = logging.getLogger(__name__)


class WebSocketMember(Member):
    """A member whose deliveries are queued for a client connection."""

    def __init__(self, name: str, session: "ClientSession"):
        super().__init__(name)
        self.session = session

    def deliver(self, message: Message) -> None:
        self.session.notify(
            {
                "type": "new_message",
                "data": {
                    "room_id": message.room_id,
                    "username": self.name,
                    "content": message.content,
                    "sender": message.sender,
                    "timestamp": message.timestamp,
                },
            }
        )


class ClientSession:
    """
    State for one client connection.

    Deliveries may happen on any thread. They are appended to the outbox
    and the connection's writer task is woken on the event loop.

    Attributes:
        websocket: The client connection
        dispatcher: Dispatcher bound to this connection
        memberships: Members joined over this connection, keyed by
            (room_id, username)
    """

    def __init__(
        self,
        websocket,
        registry: RoomRegistry,
        settings: Settings,
    ):
        self.websocket = websocket
        self.loop = asyncio.get_running_loop()
        self.outbox: Deque[str] = deque()
        self.memberships: Dict[Tuple[str, str], WebSocketMember] = {}
        self._created: Dict[str, WebSocketMember] = {}
        self.closed = False
        self._wakeup = asyncio.Event()
        self.dispatcher = CommandDispatcher(
            registry=registry,
            settings=settings,
            member_factory=self._make_member,
            stop_event=threading.Event(),
        )

    def _make_member(self, name: str) -> WebSocketMember:
        member = WebSocketMember(name, self)
        self._created[name] = member
        return member

    def notify(self, frame: Dict[str, Any]) -> None:
        """Queue a frame for the client. Safe to call from any thread."""
        if self.closed:
            return
        self.outbox.append(json.dumps(frame))
        self.loop.call_soon_threadsafe(self._wakeup.set)

    def track(self, result: OperationResult) -> None:
        """Record membership changes made by a successful result."""
        if not result.ok:
            return
        data = result.data
        if result.op == "join" and data.get("added"):
            member = self._created.get(data["username"])
            if member is not None:
                self.memberships[(data["room_id"], data["username"])] = member
        elif result.op == "leave" and data.get("removed"):
            self.memberships.pop((data["room_id"], data["username"]), None)

    async def flush(self) -> None:
        """Send every queued frame to the client."""
        while self.outbox:
            payload = self.outbox.popleft()
            try:
                await self.websocket.send(payload)
            except websockets.exceptions.ConnectionClosed:
                logger.debug("Connection closed while flushing outbox")
                self.outbox.clear()
                return

    async def run_writer(self) -> None:
        """Flush the outbox whenever new frames are queued."""
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            await self.flush()


class ChatWebSocketServer:
    """
    WebSocket server exposing the chat operations.

    All connections share one room registry.
    """

    def __init__(
        self,
        registry: Optional[RoomRegistry] = None,
        settings: Optional[Settings] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
    ):
        """
        Initialize the WebSocket server.

        Args:
            registry: Room registry (defaults to the process-wide registry)
            settings: Runtime settings
            host: Host address to bind to (defaults to settings.ws_host)
            port: Port to listen on (defaults to settings.ws_port)
        """
        self.registry = registry if registry is not None else get_registry()
        self.settings = settings or Settings()
        self.host = host or self.settings.ws_host
        self.port = port or self.settings.ws_port
        self.server = None
        self._sessions: Dict[Any, ClientSession] = {}

    async def start(self):
        """Start the WebSocket server."""
        self.server = await websockets.serve(
            self.handle_client, self.host, self.port
        )
        logger.info(f"WebSocket server started on ws://{self.host}:{self.port}")

    async def stop(self):
        """Stop the WebSocket server."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            logger.info("WebSocket server stopped")

    def open_session(self, websocket) -> ClientSession:
        """Create and register the session for a connection."""
        session = ClientSession(websocket, self.registry, self.settings)
        self._sessions[websocket] = session
        return session

    def get_session(self, websocket) -> Optional[ClientSession]:
        return self._sessions.get(websocket)

    def close_session(self, websocket) -> None:
        """
        Drop a connection's session and remove its members from rooms.

        Only the member objects this connection joined are removed. A member
        with the same name joined by another connection stays.

        Args:
            websocket: The WebSocket connection
        """
        session = self._sessions.pop(websocket, None)
        if session is None:
            return
        session.closed = True
        for (room_id, _), member in sorted(session.memberships.items()):
            room = self.registry.get(room_id)
            if room is not None:
                room.discard_member(member)
        session.memberships.clear()

    async def handle_client(self, websocket):
        """
        Handle a client connection.

        Args:
            websocket: The WebSocket connection
        """
        session = self.open_session(websocket)
        client_id = id(websocket)
        logger.info(f"Client {client_id} connected")
        writer = asyncio.create_task(session.run_writer())

        try:
            async for raw in websocket:
                await self.process_message(websocket, raw)
                if session.dispatcher.stopped:
                    break
        except websockets.exceptions.ConnectionClosed:
            logger.info(f"Client {client_id} connection closed")
        finally:
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass
            self.close_session(websocket)
            logger.info(f"Client {client_id} disconnected")

    async def process_message(self, websocket, raw):
        """
        Process one command frame from a client.

        Args:
            websocket: The WebSocket connection
            raw: Raw frame text
        """
        session = self.get_session(websocket) or self.open_session(websocket)

        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            await self._send_error(
                websocket, "INVALID_JSON", "Message must be valid JSON."
            )
            return

        if not isinstance(message, dict):
            await self._send_error(
                websocket, "INVALID_MESSAGE", "Message must be a JSON object."
            )
            return

        # Dispatch off the event loop so a bounded receive never stalls
        # other connections
        result = await asyncio.to_thread(
            session.dispatcher.dispatch,
            message.get("type"),
            message.get("data", {}),
        )
        session.track(result)
        await session.flush()
        await websocket.send(
            json.dumps({"type": "operation_result", "data": result.to_dict()})
        )

    async def _send_error(self, websocket, code, message):
        """
        Unified error response format
        """
        logger.warning(f"Error {code}: {message}")

        payload = {
            "type": "error",
            "data": {"error_code": code, "message": message},
        }
        await websocket.send(json.dumps(payload))
