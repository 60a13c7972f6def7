"""
Audit Entry for OpGuard.

One immutable record per inspected or executed operation.
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any


UNKNOWN_SESSION = "unknown"


def utc_timestamp() -> str:
    """Current UTC instant in ISO-8601 form."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class AuditEntry:
    """A single audit record."""

    operation: str
    details: Any
    user_confirmed: bool = False
    session_id: str = UNKNOWN_SESSION
    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AuditEntry":
        return cls(
            operation=data["operation"],
            details=data.get("details"),
            user_confirmed=bool(data.get("user_confirmed", False)),
            session_id=data.get("session_id") or UNKNOWN_SESSION,
            timestamp=data["timestamp"],
        )
