"""
SQLite-backed analytics store.

Stores sessions and tool calls in a local database (WAL journal mode),
applies schema migrations tracked through ``PRAGMA user_version`` and
exposes a lazily created process-wide instance.
"""

import sqlite3
from pathlib import Path
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .base import AnalyticsStore, StoreError
from .config import config
from .schema import SessionRecord, ToolCallRecord, parse_timestamp


# (version, script) pairs applied in order
MIGRATIONS = [
    (1, """
        CREATE TABLE IF NOT EXISTS sessions (
            id TEXT PRIMARY KEY NOT NULL,
            started_at TEXT NOT NULL,
            ended_at TEXT,
            tool_count INTEGER NOT NULL DEFAULT 0
        );

        CREATE TABLE IF NOT EXISTS tool_calls (
            id TEXT PRIMARY KEY NOT NULL,
            tool_name TEXT NOT NULL,
            duration_ms REAL NOT NULL,
            status TEXT NOT NULL CHECK (status IN ('success', 'error', 'timeout')),
            error_type TEXT,
            timestamp TEXT NOT NULL,
            session_id TEXT NOT NULL REFERENCES sessions(id)
        );

        CREATE INDEX IF NOT EXISTS tool_name_idx ON tool_calls (tool_name);
        CREATE INDEX IF NOT EXISTS timestamp_idx ON tool_calls (timestamp);
        CREATE INDEX IF NOT EXISTS timestamp_tool_name_idx
            ON tool_calls (timestamp, tool_name);
    """),
]

SCHEMA_VERSION = MIGRATIONS[-1][0]

SESSION_COLUMNS = ("started_at", "ended_at", "tool_count")


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Fixed-width UTC ISO string so stored timestamps sort lexically."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class SQLiteAnalyticsStore(AnalyticsStore):
    """
    Analytics store backed by a single SQLite database file.

    The async methods call sqlite3 directly and block the event loop for
    the length of each write. Stores doing slower I/O should hand the work
    to asyncio.to_thread() or use an async driver.
    """

    def __init__(self, db_path: Path):
        """
        Open (and migrate) the database.

        Args:
            db_path: Path to the database file; parent directories are created

        Raises:
            StoreError: If the database cannot be opened or migrated
        """
        self.db_path = Path(db_path).expanduser()
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode = WAL;")
            self._migrate()
        except (OSError, sqlite3.Error) as e:
            raise StoreError(f"Failed to open analytics database {self.db_path}: {e}") from e

    def _migrate(self):
        current = self._conn.execute("PRAGMA user_version;").fetchone()[0]
        for version, script in MIGRATIONS:
            if version <= current:
                continue
            self._conn.executescript(script)
            self._conn.execute(f"PRAGMA user_version = {version};")
            self._conn.commit()

    @property
    def schema_version(self) -> int:
        return self._conn.execute("PRAGMA user_version;").fetchone()[0]

    async def insert_session_record(self, session: SessionRecord) -> None:
        try:
            with self._conn:
                self._conn.execute(
                    "INSERT OR IGNORE INTO sessions (id, started_at, ended_at, tool_count) "
                    "VALUES (?, ?, ?, ?)",
                    (
                        session.id,
                        _format_timestamp(session.started_at),
                        _format_timestamp(session.ended_at),
                        session.tool_count,
                    ),
                )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to insert session {session.id}: {e}") from e

    async def update_session_record(self, session_id: str, fields: Dict[str, Any]) -> None:
        unknown = set(fields) - set(SESSION_COLUMNS)
        if unknown:
            raise StoreError(f"Unknown session fields: {sorted(unknown)}")
        if not fields:
            return

        values = []
        for column in fields:
            value = fields[column]
            if isinstance(value, datetime):
                value = _format_timestamp(value)
            values.append(value)

        assignments = ", ".join(f"{column} = ?" for column in fields)
        try:
            with self._conn:
                self._conn.execute(
                    f"UPDATE sessions SET {assignments} WHERE id = ?",
                    (*values, session_id),
                )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to update session {session_id}: {e}") from e

    async def insert_tool_call_batch(self, records: List[ToolCallRecord]) -> None:
        if not records:
            return

        rows = [
            (
                r.id,
                r.tool_name,
                r.duration_ms,
                r.status,
                r.error_type,
                _format_timestamp(r.timestamp),
                r.session_id,
            )
            for r in records
        ]
        try:
            # One transaction per batch; retried ids are ignored
            with self._conn:
                self._conn.executemany(
                    "INSERT OR IGNORE INTO tool_calls "
                    "(id, tool_name, duration_ms, status, error_type, timestamp, session_id) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    rows,
                )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to insert {len(records)} tool calls: {e}") from e

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        """Load a session row, or None if it does not exist."""
        row = self._conn.execute(
            "SELECT id, started_at, ended_at, tool_count FROM sessions WHERE id = ?",
            (session_id,),
        ).fetchone()
        if row is None:
            return None
        return SessionRecord(
            id=row["id"],
            started_at=parse_timestamp(row["started_at"]),
            ended_at=parse_timestamp(row["ended_at"]),
            tool_count=row["tool_count"],
        )

    def count_sessions(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM sessions").fetchone()[0]

    def count_tool_calls(self, session_id: Optional[str] = None) -> int:
        """Count stored tool calls, optionally for one session."""
        if session_id is None:
            row = self._conn.execute("SELECT COUNT(*) FROM tool_calls").fetchone()
        else:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM tool_calls WHERE session_id = ?", (session_id,)
            ).fetchone()
        return row[0]

    def list_tool_calls(self, session_id: Optional[str] = None) -> List[ToolCallRecord]:
        """Stored tool calls in timestamp order."""
        query = (
            "SELECT id, tool_name, duration_ms, status, error_type, timestamp, session_id "
            "FROM tool_calls"
        )
        params = ()
        if session_id is not None:
            query += " WHERE session_id = ?"
            params = (session_id,)
        query += " ORDER BY timestamp, rowid"
        return [ToolCallRecord.from_dict(dict(row)) for row in self._conn.execute(query, params)]

    def tool_call_summary(self, since: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Aggregate tool calls per tool.

        Args:
            since: Only include calls at or after this time

        Returns:
            Dictionary with totals and a per-tool breakdown
        """
        where = ""
        params = ()
        if since is not None:
            where = "WHERE timestamp >= ?"
            params = (_format_timestamp(since),)

        rows = self._conn.execute(
            f"""
            SELECT tool_name,
                   COUNT(*) AS calls,
                   SUM(CASE WHEN status = 'error' THEN 1 ELSE 0 END) AS errors,
                   SUM(CASE WHEN status = 'timeout' THEN 1 ELSE 0 END) AS timeouts,
                   AVG(duration_ms) AS avg_duration_ms
            FROM tool_calls
            {where}
            GROUP BY tool_name
            ORDER BY calls DESC, tool_name
            """,
            params,
        ).fetchall()

        tools = [dict(row) for row in rows]
        total = sum(t["calls"] for t in tools)
        errors = sum(t["errors"] for t in tools)
        timeouts = sum(t["timeouts"] for t in tools)

        return {
            "total_calls": total,
            "error_rate": errors / total if total else 0.0,
            "timeout_rate": timeouts / total if total else 0.0,
            "tools": tools,
        }

    def close(self) -> None:
        try:
            self._conn.close()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to close analytics database: {e}") from e


_store_instance: Optional[SQLiteAnalyticsStore] = None


def default_db_path() -> Path:
    """Configured database location, expanded against the current HOME."""
    return Path(config.get('store.db_path', '~/.devflow/analytics.db')).expanduser()


def get_analytics_store(db_path: Optional[Path] = None) -> SQLiteAnalyticsStore:
    """
    Get the shared SQLite store, creating it on first access.

    Nothing is created on import; the database file appears only when
    this function is first called.

    Args:
        db_path: Database location (defaults to ``store.db_path``)

    Returns:
        The process-wide SQLiteAnalyticsStore
    """
    global _store_instance
    if _store_instance is None:
        _store_instance = SQLiteAnalyticsStore(db_path or default_db_path())
    return _store_instance


def close_analytics_store() -> None:
    """Close and reset the shared store; the next access reopens it."""
    global _store_instance
    if _store_instance is not None:
        store, _store_instance = _store_instance, None
        store.close()
