"""
Typed failures of the telemetry pipeline.

These are delivered to a TelemetryObserver rather than raised to
callers; only ConfigError is raised, from settings validation.
"""

from typing import List

from analytics_store.schema import ToolCallRecord


class TelemetryError(Exception):
    """Base class for telemetry failures."""


class FlushError(TelemetryError):
    """A batch could not be written; the batch was requeued."""

    def __init__(self, batch: List[ToolCallRecord], cause: BaseException):
        self.batch = list(batch)
        self.cause = cause
        super().__init__(f"Failed to flush {len(self.batch)} tool calls: {cause}")


class SessionError(TelemetryError):
    """A session marker could not be persisted."""

    def __init__(self, session_id: str, cause: BaseException, operation: str = "start"):
        self.session_id = session_id
        self.cause = cause
        self.operation = operation  # "start" or "end"
        super().__init__(f"Failed to {operation} session {session_id}: {cause}")


class ConfigError(TelemetryError, ValueError):
    """Invalid telemetry settings."""
