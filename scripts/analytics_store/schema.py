"""
Row schemas for the analytics store.

Defines dataclasses for tool-call records and session rows with
dictionary conversion helpers.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
from datetime import datetime, timezone


TOOL_CALL_STATUSES = ("success", "error", "timeout")


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO-8601 string (or pass through a datetime) as aware UTC."""
    if value is None or isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class ToolCallRecord:
    """A single recorded tool invocation."""
    id: str
    tool_name: str
    duration_ms: float
    status: str  # "success", "error", "timeout"
    timestamp: datetime
    session_id: str
    error_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "tool_name": self.tool_name,
            "duration_ms": self.duration_ms,
            "status": self.status,
            "error_type": self.error_type,
            "timestamp": self.timestamp.isoformat(),
            "session_id": self.session_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolCallRecord":
        """Build a record from a stored dictionary."""
        return cls(
            id=data["id"],
            tool_name=data["tool_name"],
            duration_ms=data["duration_ms"],
            status=data["status"],
            error_type=data.get("error_type"),
            timestamp=parse_timestamp(data["timestamp"]),
            session_id=data["session_id"],
        )


@dataclass
class SessionRecord:
    """Session row: start/end markers plus the final tool count."""
    id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    tool_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "tool_count": self.tool_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionRecord":
        """Build a session row from a stored dictionary."""
        return cls(
            id=data["id"],
            started_at=parse_timestamp(data["started_at"]),
            ended_at=parse_timestamp(data.get("ended_at")),
            tool_count=data.get("tool_count", 0),
        )
