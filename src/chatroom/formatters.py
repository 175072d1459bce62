"""
Message Formatters

Formatters transform message content before it is distributed to a room.
"""

import html
from typing import Dict, Type

from .errors import ValidationError


class MessageFormatter:
    """Base class for message formatters."""

    name = "base"

    def format(self, content: str) -> str:
        raise NotImplementedError("Subclasses must implement format()")


class PlainTextFormatter(MessageFormatter):
    """Passes content through unchanged."""

    name = "plain"

    def format(self, content: str) -> str:
        return content


class HtmlFormatter(MessageFormatter):
    """Wraps content in a minimal HTML document."""

    name = "html"

    def format(self, content: str) -> str:
        return f"<html><body>{html.escape(content)}</body></html>"


FORMATTERS: Dict[str, Type[MessageFormatter]] = {
    PlainTextFormatter.name: PlainTextFormatter,
    HtmlFormatter.name: HtmlFormatter,
}


def get_formatter(name: str) -> MessageFormatter:
    """
    Look up a formatter by name.

    Args:
        name: Formatter name ("plain" or "html"), case-insensitive

    Returns:
        A formatter instance

    Raises:
        ValidationError: If no formatter has that name
    """
    key = (name or PlainTextFormatter.name).strip().lower()
    formatter_cls = FORMATTERS.get(key)
    if formatter_cls is None:
        raise ValidationError(
            f"Unknown formatter '{name}' "
            f"(expected one of: {', '.join(sorted(FORMATTERS))})"
        )
    return formatter_cls()
