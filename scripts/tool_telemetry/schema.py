"""
Input and settings schemas for the telemetry pipeline.

Record types live in analytics_store.schema and are re-exported here.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from analytics_store.schema import (
    TOOL_CALL_STATUSES,
    SessionRecord,
    ToolCallRecord,
    utc_now,
)

from .errors import ConfigError


DEFAULT_BATCH_SIZE = 50
DEFAULT_FLUSH_INTERVAL_MS = 5000


@dataclass(frozen=True)
class ToolCallMetadata:
    """What a caller knows about one tool invocation."""
    tool_name: str
    duration_ms: float
    status: str  # "success", "error", "timeout"
    session_id: str
    error_type: Optional[str] = None

    def __post_init__(self):
        if self.status not in TOOL_CALL_STATUSES:
            raise ValueError(
                f"status must be one of {TOOL_CALL_STATUSES}, got {self.status!r}"
            )

    def to_record(self) -> ToolCallRecord:
        """Stamp with a fresh id and the current UTC time."""
        return ToolCallRecord(
            id=str(uuid.uuid4()),
            tool_name=self.tool_name,
            duration_ms=self.duration_ms,
            status=self.status,
            error_type=self.error_type,
            timestamp=utc_now(),
            session_id=self.session_id,
        )


@dataclass(frozen=True)
class TelemetrySettings:
    """Flush policy: size threshold and timer interval."""
    batch_size: int = DEFAULT_BATCH_SIZE
    flush_interval_ms: int = DEFAULT_FLUSH_INTERVAL_MS

    def __post_init__(self):
        for name in ("batch_size", "flush_interval_ms"):
            value = getattr(self, name)
            # bool is an int subclass; reject it explicitly
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")

    @property
    def flush_interval_sec(self) -> float:
        return self.flush_interval_ms / 1000.0

    @classmethod
    def from_config(cls, cfg) -> "TelemetrySettings":
        """
        Build settings from an AnalyticsConfig.

        Args:
            cfg: Configuration object with dot-notation ``get``

        Returns:
            Validated TelemetrySettings
        """
        return cls(
            batch_size=cfg.get('telemetry.batch_size', DEFAULT_BATCH_SIZE),
            flush_interval_ms=cfg.get('telemetry.flush_interval_ms', DEFAULT_FLUSH_INTERVAL_MS),
        )


__all__ = [
    'TOOL_CALL_STATUSES',
    'SessionRecord',
    'ToolCallRecord',
    'ToolCallMetadata',
    'TelemetrySettings',
    'DEFAULT_BATCH_SIZE',
    'DEFAULT_FLUSH_INTERVAL_MS',
]
