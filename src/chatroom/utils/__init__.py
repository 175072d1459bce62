"""
Utilities for the Chat Room Registry

This module contains utility functions for validating user input.
"""

from .validation import (
    MAX_MESSAGE_LENGTH,
    validate_message_content,
    validate_name,
    validate_room_id,
)

__all__ = [
    "MAX_MESSAGE_LENGTH",
    "validate_message_content",
    "validate_name",
    "validate_room_id",
]
