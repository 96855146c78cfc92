"""
Analytics store contract.

Every store persists session rows and batches of tool-call records.
Implementations must tolerate duplicate delivery: the telemetry pipeline
retries failed batches, so the same record id can arrive more than once.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from .schema import SessionRecord, ToolCallRecord


class StoreError(Exception):
    """Raised when a store operation cannot be completed."""


class AnalyticsStore(ABC):
    """Abstract durable store for telemetry data."""

    @abstractmethod
    async def insert_session_record(self, session: SessionRecord) -> None:
        """Persist a newly started session."""

    @abstractmethod
    async def update_session_record(self, session_id: str, fields: Dict[str, Any]) -> None:
        """Apply a partial update (e.g. ended_at, tool_count) to a session."""

    @abstractmethod
    async def insert_tool_call_batch(self, records: List[ToolCallRecord]) -> None:
        """Persist a batch of tool-call records as one unit."""

    def close(self) -> None:
        """Release underlying resources."""
