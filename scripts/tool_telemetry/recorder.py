"""
Ingestion entry point for tool-call telemetry.
"""

import sys
from typing import Mapping, Optional, Union

from analytics_store.schema import ToolCallRecord

from .batch_writer import BatchWriter
from .schema import ToolCallMetadata
from .sessions import SessionCounters, SessionTracker


class ToolCallRecorder:
    """
    Turns tool-call metadata into buffered records and applies the
    flush policy: flush at batch_size, otherwise make sure a timer is armed.
    """

    def __init__(self, writer: BatchWriter, sessions: SessionTracker):
        self.writer = writer
        self.sessions = sessions

    @property
    def counters(self) -> SessionCounters:
        return self.sessions.counters

    async def record(
        self,
        metadata: Union[ToolCallMetadata, Mapping]
    ) -> Optional[ToolCallRecord]:
        """
        Record one tool call. Never raises.

        Args:
            metadata: ToolCallMetadata, or a mapping of its fields

        Returns:
            The buffered record, or None if the metadata was unusable
        """
        try:
            if not isinstance(metadata, ToolCallMetadata):
                metadata = ToolCallMetadata(**metadata)
            record = metadata.to_record()
        except (TypeError, ValueError) as e:
            print(f"Warning: Dropping invalid tool-call metadata: {e}", file=sys.stderr)
            return None

        size = self.writer.append(record)
        self.sessions.count_call(record.session_id)

        if size >= self.writer.settings.batch_size:
            await self.writer.flush()
        else:
            self.writer.arm_timer()

        return record
