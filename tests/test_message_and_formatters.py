"""
Tests for Messages and Formatters
"""

import dataclasses

import pytest

from chatroom import (
    HtmlFormatter,
    Message,
    PlainTextFormatter,
    ValidationError,
    get_formatter,
)


# Message Tests


def test_message_defaults():
    """Test that only content is required."""
    message = Message(content="hi")
    assert message.room_id is None
    assert message.sender is None
    assert message.timestamp


def test_message_is_immutable():
    """Test that messages cannot be mutated."""
    message = Message(content="hi")
    with pytest.raises(dataclasses.FrozenInstanceError):
        message.content = "changed"


def test_clone_produces_independent_copy():
    """Test the prototype operation."""
    original = Message(content="hi", room_id="room1", sender="alice")

    copy = original.clone()
    edited = original.clone(content="bye")

    assert copy == original
    assert copy is not original
    assert edited.content == "bye"
    assert edited.room_id == "room1"
    assert original.content == "hi"


def test_message_to_dict():
    """Test message serialization."""
    message = Message(content="hi", room_id="room1", sender="alice", timestamp="t")
    assert message.to_dict() == {
        "content": "hi",
        "room_id": "room1",
        "sender": "alice",
        "timestamp": "t",
    }


# Formatter Tests


def test_plain_formatter_passes_through():
    assert PlainTextFormatter().format("<b>hi</b>") == "<b>hi</b>"


def test_html_formatter_wraps_and_escapes():
    assert (
        HtmlFormatter().format("a & b")
        == "<html><body>a &amp; b</body></html>"
    )


def test_get_formatter():
    """Test formatter lookup by name."""
    assert isinstance(get_formatter("plain"), PlainTextFormatter)
    assert isinstance(get_formatter("HTML"), HtmlFormatter)
    assert isinstance(get_formatter(None), PlainTextFormatter)


def test_get_formatter_rejects_unknown():
    with pytest.raises(ValidationError):
        get_formatter("markdown")
