"""
Validation Utilities

Contains utility functions for validating room IDs, member names and
message content.
"""

from typing import Optional, Tuple

# Message validation constants
MAX_MESSAGE_LENGTH = 5000


def _is_blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_room_id(room_id: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a room ID.

    Args:
        room_id: The room ID to validate

    Returns:
        tuple: (is_valid, error_message)
    """
    if _is_blank(room_id):
        return False, "Room ID cannot be empty"
    return True, None


def validate_name(name: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a member display name.

    Args:
        name: The username to validate

    Returns:
        tuple: (is_valid, error_message)
    """
    if _is_blank(name):
        return False, "Username cannot be empty"
    return True, None


def validate_message_content(content: str) -> Tuple[bool, Optional[str]]:
    """
    Validate message content.

    Args:
        content: The message content to validate

    Returns:
        tuple: (is_valid, error_message)
            - is_valid: True if content is valid, False otherwise
            - error_message: Error message if invalid, None if valid
    """
    if not content or not isinstance(content, str):
        return False, "Message content cannot be empty"

    if len(content) > MAX_MESSAGE_LENGTH:
        return (
            False,
            f"Message content too long (max {MAX_MESSAGE_LENGTH} characters)",
        )

    return True, None
