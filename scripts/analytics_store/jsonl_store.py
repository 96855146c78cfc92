"""
Append-only JSONL analytics store.

Writes session operations to ``sessions.jsonl`` and tool calls to
``tool_calls.jsonl``. Readers fold the session log into rows and drop
repeated tool-call ids, which makes the store safe under retried batches.
"""

from pathlib import Path
from datetime import datetime
from typing import Any, Dict, List

from .base import AnalyticsStore, StoreError
from .jsonl_utils import JSONLReader, JSONLWriter
from .schema import SessionRecord, ToolCallRecord, utc_now


class JSONLAnalyticsStore(AnalyticsStore):
    """Analytics store writing JSON lines under one directory."""

    def __init__(self, directory: Path):
        """
        Initialize store.

        Args:
            directory: Directory holding sessions.jsonl and tool_calls.jsonl
        """
        self.directory = Path(directory).expanduser()
        try:
            self.sessions_writer = JSONLWriter(self.directory / "sessions.jsonl")
            self.tool_calls_writer = JSONLWriter(self.directory / "tool_calls.jsonl")
        except OSError as e:
            raise StoreError(f"Failed to prepare JSONL store at {self.directory}: {e}") from e

    @property
    def sessions_path(self) -> Path:
        return self.sessions_writer.path

    @property
    def tool_calls_path(self) -> Path:
        return self.tool_calls_writer.path

    async def insert_session_record(self, session: SessionRecord) -> None:
        entry = {"op": "insert", "logged_at": utc_now().isoformat(), **session.to_dict()}
        try:
            self.sessions_writer.append(entry)
        except (OSError, TypeError, ValueError) as e:
            raise StoreError(f"Failed to insert session {session.id}: {e}") from e

    async def update_session_record(self, session_id: str, fields: Dict[str, Any]) -> None:
        entry = {"op": "update", "id": session_id, "logged_at": utc_now().isoformat()}
        for key, value in fields.items():
            entry[key] = value.isoformat() if isinstance(value, datetime) else value
        try:
            self.sessions_writer.append(entry)
        except (OSError, TypeError, ValueError) as e:
            raise StoreError(f"Failed to update session {session_id}: {e}") from e

    async def insert_tool_call_batch(self, records: List[ToolCallRecord]) -> None:
        try:
            self.tool_calls_writer.append_batch([r.to_dict() for r in records])
        except (OSError, TypeError, ValueError) as e:
            raise StoreError(f"Failed to insert {len(records)} tool calls: {e}") from e

    def load_sessions(self) -> Dict[str, SessionRecord]:
        """
        Fold the session log into rows.

        Updates for sessions without an insert (e.g. a start that failed
        to persist) are ignored, matching an UPDATE that matches no row.

        Returns:
            Mapping of session id to SessionRecord
        """
        rows: Dict[str, Dict[str, Any]] = {}
        for entry in JSONLReader.read_log(self.sessions_path):
            session_id = entry.get("id")
            op = entry.get("op")
            if op == "insert" and session_id not in rows:
                rows[session_id] = entry
            elif op == "update" and session_id in rows:
                rows[session_id].update(
                    {k: v for k, v in entry.items() if k not in ("op", "id", "logged_at")}
                )

        return {session_id: SessionRecord.from_dict(row) for session_id, row in rows.items()}

    def load_tool_calls(self) -> List[ToolCallRecord]:
        """Stored tool calls in write order, first occurrence of each id."""
        seen = set()
        records = []
        for entry in JSONLReader.read_log(self.tool_calls_path):
            if entry.get("id") in seen:
                continue
            seen.add(entry.get("id"))
            records.append(ToolCallRecord.from_dict(entry))
        return records
