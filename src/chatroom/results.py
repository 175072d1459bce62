"""
Operation Results

Every command handled by the dispatcher produces exactly one
OperationResult, whether it succeeded or failed.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from .errors import ChatRoomError


@dataclass
class OperationResult:
    """
    Outcome of a dispatched command.

    Attributes:
        ok: Whether the operation succeeded
        op: Command name (e.g., "send")
        room_id: ID of the targeted room, if any
        data: Operation-specific payload on success
        error: Error message if ok is False
        error_code: Error code if ok is False (e.g., VALIDATION_ERROR)
    """

    ok: bool
    op: str
    room_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def success(
        cls, op: str, data: Dict[str, Any], room_id: Optional[str] = None
    ) -> "OperationResult":
        return cls(ok=True, op=op, room_id=room_id, data=data)

    @classmethod
    def failure(
        cls, op: str, error: ChatRoomError, room_id: Optional[str] = None
    ) -> "OperationResult":
        return cls(
            ok=False,
            op=op,
            room_id=error.room_id or room_id,
            error=error.message,
            error_code=error.error_code,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)
