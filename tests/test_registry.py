"""
Tests for the Room Registry

Tests for get-or-create semantics, the process-wide singleton, and
atomic room creation under concurrent first access.
"""

import io
import threading

import pytest

from chatroom import (
    DirectTransport,
    FramedTransport,
    InternalError,
    RoomRegistry,
    ValidationError,
    get_registry,
)


@pytest.fixture
def registry():
    return RoomRegistry()


def direct():
    return DirectTransport(stream=io.StringIO())


def test_resolve_creates_room_once(registry):
    """Test that the same ID always resolves to the same room."""
    first = registry.resolve("room1", direct)
    second = registry.resolve("room1", direct)

    assert first is second
    assert len(registry) == 1
    assert "room1" in registry


def test_resolve_ignores_factory_for_existing_room(registry):
    """Test that the first creator's transport wins."""
    calls = []

    def framed():
        calls.append("framed")
        return FramedTransport(stream=io.StringIO())

    room = registry.resolve("room1", direct)
    again = registry.resolve("room1", framed)

    assert again is room
    assert isinstance(again.transport, DirectTransport)
    assert calls == []


def test_resolve_with_status_reports_creation(registry):
    """Test the created flag."""
    _, created = registry.resolve_with_status("room1", direct)
    _, created_again = registry.resolve_with_status("room1", direct)

    assert created is True
    assert created_again is False


def test_resolve_rejects_empty_room_id(registry):
    """Test that empty IDs never create rooms."""
    with pytest.raises(ValidationError):
        registry.resolve("", direct)

    assert len(registry) == 0


def test_resolve_rejects_factory_returning_nothing(registry):
    """Test that a broken factory is reported as an internal error."""
    with pytest.raises(InternalError):
        registry.resolve("room1", lambda: None)

    assert not registry.exists("room1")


def test_get_does_not_create(registry):
    """Test that get() only looks up."""
    assert registry.get("missing") is None
    assert len(registry) == 0


def test_list_rooms_in_creation_order(registry):
    """Test that rooms are listed in creation order."""
    for room_id in ["b", "a", "c"]:
        registry.resolve(room_id, direct)

    assert [room.room_id for room in registry.list_rooms()] == ["b", "a", "c"]


def test_rooms_have_independent_locks(registry):
    """Test that holding one room's lock does not block another room."""
    room1 = registry.resolve("room1", direct)
    room2 = registry.resolve("room2", direct)

    with room1._lock:
        finished = threading.Event()

        def touch_other_room():
            room2.member_names()
            finished.set()

        thread = threading.Thread(target=touch_other_room)
        thread.start()
        assert finished.wait(timeout=2.0)
        thread.join()


def test_concurrent_first_resolve_creates_exactly_one_room(registry):
    """Test that racing first access creates one room and calls the factory once."""
    callers = 16
    barrier = threading.Barrier(callers)
    factory_calls = []
    factory_lock = threading.Lock()
    rooms = []

    def factory():
        with factory_lock:
            factory_calls.append(1)
        return direct()

    def resolve():
        barrier.wait()
        rooms.append(registry.resolve("shared", factory))

    threads = [threading.Thread(target=resolve) for _ in range(callers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(rooms) == callers
    assert all(room is rooms[0] for room in rooms)
    assert len(factory_calls) == 1
    assert len(registry) == 1


def test_get_registry_is_a_singleton():
    """Test that the process-wide registry is created once."""
    assert get_registry() is get_registry()


def test_get_registry_concurrent_first_use():
    """Test that concurrent callers all see the same registry."""
    seen = []
    barrier = threading.Barrier(8)

    def fetch():
        barrier.wait()
        seen.append(get_registry())

    threads = [threading.Thread(target=fetch) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert all(registry is seen[0] for registry in seen)
