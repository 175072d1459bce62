"""
Tests for Chat Operations

Tests for each operation and for the wrap() combinator, including:
- Validation before any registry access
- Idempotent room creation and auto-creation on join/send
- Wrappers preserving results and errors exactly
"""

import io
import logging
import threading

import pytest

from chatroom import (
    CreateRoomOperation,
    HtmlFormatter,
    InboxMember,
    JoinRoomOperation,
    LeaveRoomOperation,
    ReceiveMessageOperation,
    RoomRegistry,
    SendMessageOperation,
    ShutdownOperation,
    TransportError,
    TransportKind,
    ValidationError,
    audit_logged,
    create_transport,
    wrap,
)
from chatroom.transport import DirectTransport


class FailingTransport(DirectTransport):
    """Transport whose sends always fail."""

    def send(self, content, room_id):
        raise TransportError("link down", room_id=room_id)


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def builder():
    """Transport builder writing to an in-memory stream."""
    stream = io.StringIO()

    def build(kind):
        return create_transport(kind, stream=stream)

    build.stream = stream
    return build


# CreateRoomOperation Tests


def test_create_room(registry, builder):
    """Test creating a room with an explicit transport."""
    result = CreateRoomOperation(
        registry, "room1", "framed", transport_builder=builder
    ).execute()

    assert result == {"room_id": "room1", "created": True, "transport": "framed"}
    assert registry.get("room1").transport.kind is TransportKind.FRAMED


def test_create_room_uses_default_transport_when_kind_missing(registry, builder):
    """Test that a blank kind falls back to the default."""
    result = CreateRoomOperation(
        registry,
        "room1",
        "  ",
        default_transport=TransportKind.FRAMED,
        transport_builder=builder,
    ).execute()

    assert result["transport"] == "framed"


def test_create_room_twice_keeps_first_transport(registry, builder):
    """Test that a second create is a no-op."""
    CreateRoomOperation(registry, "room1", "direct", transport_builder=builder).execute()
    result = CreateRoomOperation(
        registry, "room1", "framed", transport_builder=builder
    ).execute()

    assert result == {"room_id": "room1", "created": False, "transport": "direct"}
    assert len(registry) == 1


@pytest.mark.parametrize("room_id", ["", "   ", None])
def test_create_room_rejects_empty_room_id(registry, builder, room_id):
    """Test that empty room IDs are rejected before creating anything."""
    with pytest.raises(ValidationError):
        CreateRoomOperation(registry, room_id, "direct", transport_builder=builder).execute()

    assert len(registry) == 0


@pytest.mark.parametrize("kind", ["carrier-pigeon", 42])
def test_create_room_rejects_unknown_transport(registry, builder, kind):
    """Test that unknown transports are rejected."""
    with pytest.raises(ValidationError):
        CreateRoomOperation(registry, "room1", kind, transport_builder=builder).execute()

    assert len(registry) == 0


# JoinRoomOperation Tests


def test_join_room_auto_creates_with_default_transport(registry, builder):
    """Test that joining a missing room creates it."""
    result = JoinRoomOperation(
        registry, "room1", "alice", member_factory=InboxMember,
        transport_builder=builder,
    ).execute()

    assert result == {
        "room_id": "room1",
        "username": "alice",
        "added": True,
        "created": True,
        "member_count": 1,
    }
    assert registry.get("room1").transport.kind is TransportKind.DIRECT


def test_join_room_twice_does_not_duplicate(registry, builder):
    """Test that a repeated join keeps one membership."""
    for _ in range(2):
        result = JoinRoomOperation(
            registry, "room1", "alice", member_factory=InboxMember,
            transport_builder=builder,
        ).execute()

    assert result["added"] is False
    assert result["member_count"] == 1


@pytest.mark.parametrize("room_id,username", [("", "alice"), ("room1", ""), ("", "")])
def test_join_room_rejects_empty_fields(registry, builder, room_id, username):
    """Test that join validates both fields and creates nothing."""
    factory_calls = []

    def factory(name):
        factory_calls.append(name)
        return InboxMember(name)

    with pytest.raises(ValidationError):
        JoinRoomOperation(
            registry, room_id, username, member_factory=factory,
            transport_builder=builder,
        ).execute()

    assert len(registry) == 0
    assert factory_calls == []


# LeaveRoomOperation Tests


def test_leave_room(registry, builder):
    """Test leaving a room."""
    JoinRoomOperation(
        registry, "room1", "alice", member_factory=InboxMember,
        transport_builder=builder,
    ).execute()

    result = LeaveRoomOperation(registry, "room1", "alice").execute()

    assert result == {"room_id": "room1", "username": "alice", "removed": True}
    assert registry.get("room1").member_count == 0


def test_leave_missing_room_does_not_create_it(registry):
    """Test that leave never creates rooms."""
    result = LeaveRoomOperation(registry, "nowhere", "alice").execute()

    assert result["removed"] is False
    assert "nowhere" not in registry


# SendMessageOperation Tests


def test_send_message_broadcasts_to_members(registry, builder):
    """Test that send delivers to every member."""
    members = {}

    def factory(name):
        members[name] = InboxMember(name)
        return members[name]

    for name in ["alice", "bob"]:
        JoinRoomOperation(
            registry, "room1", name, member_factory=factory,
            transport_builder=builder,
        ).execute()

    result = SendMessageOperation(
        registry, "room1", "hi", sender="alice", transport_builder=builder
    ).execute()

    assert result == {
        "room_id": "room1",
        "content": "hi",
        "delivered": 2,
        "created": False,
    }
    assert members["alice"].contents == ["hi"]
    assert members["bob"].contents == ["hi"]


def test_send_message_applies_formatter(registry, builder):
    """Test that the formatter transforms content before broadcast."""
    result = SendMessageOperation(
        registry, "room1", "<b>hi</b>", formatter=HtmlFormatter(),
        transport_builder=builder,
    ).execute()

    assert result["content"] == "<html><body>&lt;b&gt;hi&lt;/b&gt;</body></html>"
    assert result["content"] in builder.stream.getvalue()


def test_send_message_to_missing_room_auto_creates(registry, builder):
    """Test the default-room policy for send."""
    result = SendMessageOperation(
        registry, "nonexistent", "hi", transport_builder=builder
    ).execute()

    assert result["created"] is True
    assert result["delivered"] == 0
    assert registry.get("nonexistent").transport.sent_count == 1


@pytest.mark.parametrize("content", ["", None, "x" * 5001])
def test_send_message_rejects_invalid_content(registry, builder, content):
    """Test that empty or oversized content is rejected."""
    with pytest.raises(ValidationError):
        SendMessageOperation(
            registry, "room1", content, transport_builder=builder
        ).execute()

    assert len(registry) == 0


def test_send_message_propagates_transport_error(registry):
    """Test that transport failures reach the caller."""
    with pytest.raises(TransportError):
        SendMessageOperation(
            registry, "room1", "hi",
            transport_builder=lambda kind: FailingTransport(),
        ).execute()


# ReceiveMessageOperation Tests


def test_receive_message(registry):
    """Test polling a room's transport."""
    room = registry.resolve(
        "room1", lambda: DirectTransport(stream=io.StringIO(), loopback=True)
    )
    room.broadcast("echo")

    result = ReceiveMessageOperation(registry, "room1").execute()

    assert result["room_id"] == "room1"
    assert result["message"]["content"] == "echo"
    assert ReceiveMessageOperation(registry, "room1").execute()["message"] is None


def test_receive_from_missing_room_returns_nothing(registry):
    """Test that receive never creates rooms."""
    result = ReceiveMessageOperation(registry, "nowhere").execute()

    assert result == {"room_id": "nowhere", "message": None}
    assert len(registry) == 0


# ShutdownOperation Tests


def test_shutdown_sets_stop_event():
    """Test that shutdown signals the loop."""
    stop_event = threading.Event()
    result = ShutdownOperation(stop_event).execute()

    assert result == {"stopped": True}
    assert stop_event.is_set()


# wrap() Tests


def test_wrap_runs_hooks_around_operation(registry, builder):
    """Test hook order and arguments on success."""
    events = []
    inner = CreateRoomOperation(registry, "room1", "direct", transport_builder=builder)

    wrapped = wrap(
        inner,
        before=lambda op: events.append(("before", op.name, "room1" in registry)),
        after=lambda op, result, error: events.append(("after", result, error)),
    )
    result = wrapped.execute()

    assert wrapped.name == "create"
    assert wrapped.room_id == "room1"
    assert events == [
        ("before", "create", False),
        ("after", result, None),
    ]
    assert result == {"room_id": "room1", "created": True, "transport": "direct"}


def test_wrap_reraises_inner_error_unchanged(registry, builder):
    """Test that wrappers see and re-raise the inner exception."""
    seen = []
    inner = JoinRoomOperation(registry, "", "alice", transport_builder=builder)
    wrapped = wrap(inner, after=lambda op, result, error: seen.append((result, error)))

    with pytest.raises(ValidationError) as exc_info:
        wrapped.execute()

    assert seen == [(None, exc_info.value)]


def test_wrap_ignores_failing_hooks(registry, builder):
    """Test that a broken hook cannot change the outcome."""

    def explode(*args):
        raise RuntimeError("hook bug")

    wrapped = wrap(
        CreateRoomOperation(registry, "room1", "direct", transport_builder=builder),
        before=explode,
        after=explode,
    )

    assert wrapped.execute()["created"] is True


def test_wrappers_compose(registry, builder):
    """Test that wrapping a wrapped operation nests the hooks."""
    events = []
    inner = CreateRoomOperation(registry, "room1", "direct", transport_builder=builder)
    wrapped = wrap(
        wrap(
            inner,
            before=lambda op: events.append("inner-before"),
            after=lambda op, r, e: events.append("inner-after"),
        ),
        before=lambda op: events.append("outer-before"),
        after=lambda op, r, e: events.append("outer-after"),
    )

    wrapped.execute()

    assert events == ["outer-before", "inner-before", "inner-after", "outer-after"]
    assert wrapped.name == "create"
    assert len(registry) == 1


def test_audit_logged_logs_start_and_outcome(registry, builder, caplog):
    """Test the audit-log wrapper."""
    audit = logging.getLogger("test.audit")
    wrapped = audit_logged(
        SendMessageOperation(registry, "room1", "hi", transport_builder=builder),
        audit_logger=audit,
    )

    with caplog.at_level(logging.INFO, logger="test.audit"):
        result = wrapped.execute()

    assert result["delivered"] == 0
    messages = [r.getMessage() for r in caplog.records if r.name == "test.audit"]
    assert messages[0] == "Executing send on room1"
    assert messages[1].startswith("send completed")


def test_audit_logged_logs_failure(registry, builder, caplog):
    """Test that failures are logged and still raised."""
    audit = logging.getLogger("test.audit")
    wrapped = audit_logged(
        SendMessageOperation(registry, "room1", "", transport_builder=builder),
        audit_logger=audit,
    )

    with caplog.at_level(logging.INFO, logger="test.audit"):
        with pytest.raises(ValidationError):
            wrapped.execute()

    messages = [r.getMessage() for r in caplog.records if r.name == "test.audit"]
    assert messages[-1] == "send failed: Message content cannot be empty"
