"""
Telemetry service facade.

Wires recorder, batch writer, session tracker and shutdown coordinator
around one store, and tracks the session the running service is in.

Usage:
    async with create_telemetry_service() as telemetry:
        session_id = await telemetry.start_session()
        await telemetry.record_tool_call(ToolCallMetadata(
            tool_name="read_file",
            duration_ms=12.5,
            status="success",
            session_id=session_id,
        ))
        await telemetry.end_session()
"""

import asyncio
from typing import Mapping, Optional, Set, Union

from analytics_store.base import AnalyticsStore
from analytics_store.config import config
from analytics_store.jsonl_store import JSONLAnalyticsStore
from analytics_store.schema import ToolCallRecord
from analytics_store.sqlite_store import get_analytics_store

from .batch_writer import BatchWriter
from .context import get_current_session_id, new_session_id
from .errors import ConfigError
from .observer import StderrObserver, TelemetryObserver
from .recorder import ToolCallRecorder
from .schema import TelemetrySettings, ToolCallMetadata
from .sessions import SessionCounters, SessionTracker
from .shutdown import ShutdownCoordinator


class TelemetryService:
    """One telemetry pipeline bound to one store."""

    def __init__(
        self,
        store: AnalyticsStore,
        settings: Optional[TelemetrySettings] = None,
        observer: Optional[TelemetryObserver] = None,
        enabled: bool = True
    ):
        """
        Initialize service.

        Args:
            store: Analytics store receiving sessions and batches
            settings: Flush policy (defaults: 50 records / 5000 ms)
            observer: Failure and progress sink (defaults to stderr)
            enabled: When False, nothing is recorded or persisted
        """
        self.store = store
        self.settings = settings or TelemetrySettings()
        self.observer = observer or StderrObserver()
        self.enabled = enabled

        self.counters = SessionCounters()
        self.writer = BatchWriter(store, self.settings, self.observer)
        self.sessions = SessionTracker(store, self.counters, self.observer)
        self.recorder = ToolCallRecorder(self.writer, self.sessions)
        self.shutdown_coordinator = ShutdownCoordinator(self.writer, self.observer)

        self.current_session_id: Optional[str] = None
        self._record_tasks: Set[asyncio.Task] = set()

    async def record_tool_call(
        self,
        metadata: Union[ToolCallMetadata, Mapping]
    ) -> Optional[ToolCallRecord]:
        """Record a tool call; returns None when disabled or invalid."""
        if not self.enabled:
            return None
        return await self.recorder.record(metadata)

    def spawn_record(self, metadata: Union[ToolCallMetadata, Mapping]) -> Optional[asyncio.Task]:
        """
        Record a tool call in the background.

        The task is tracked so shutdown() waits for it.

        Returns:
            The scheduled task, or None when disabled
        """
        if not self.enabled:
            return None

        task = asyncio.get_running_loop().create_task(self.recorder.record(metadata))
        self._record_tasks.add(task)
        task.add_done_callback(self._record_tasks.discard)
        return task

    async def start_session(self, session_id: Optional[str] = None) -> str:
        """
        Start a session and make it current.

        Args:
            session_id: Explicit id; defaults to DEVFLOW_SESSION_ID or a new UUID

        Returns:
            The session id
        """
        session_id = session_id or get_current_session_id() or new_session_id()
        self.current_session_id = session_id
        if self.enabled:
            await self.sessions.start_session(session_id)
        return session_id

    async def end_session(self, session_id: Optional[str] = None) -> int:
        """
        End a session (the current one by default).

        Returns:
            Final tool count of the session
        """
        session_id = session_id or self.current_session_id
        if session_id is None:
            return 0
        if session_id == self.current_session_id:
            self.current_session_id = None
        if not self.enabled:
            return 0
        return await self.sessions.end_session(session_id)

    async def flush(self) -> int:
        return await self.writer.flush()

    async def shutdown(self) -> int:
        """
        Wait for background recordings, then run the final flush.

        Returns:
            Number of records left unflushed
        """
        while self._record_tasks:
            await asyncio.gather(*list(self._record_tasks), return_exceptions=True)
        return await self.shutdown_coordinator.shutdown()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()


def create_store(cfg=None) -> AnalyticsStore:
    """
    Open the store selected by ``store.backend``.

    Raises:
        ConfigError: For an unknown backend
        StoreError: If the store cannot be opened
    """
    cfg = cfg or config
    backend = cfg.get('store.backend', 'sqlite')

    if backend == 'sqlite':
        return get_analytics_store()
    if backend == 'jsonl':
        return JSONLAnalyticsStore(cfg.get('store.jsonl_dir', '~/.devflow/analytics'))
    raise ConfigError(f"Unknown analytics store backend: {backend!r}")


def create_telemetry_service(
    observer: Optional[TelemetryObserver] = None,
    cfg=None
) -> TelemetryService:
    """
    Build a TelemetryService from configuration.

    Args:
        observer: Observer override (defaults to StderrObserver honoring
            ``telemetry.verbose``)
        cfg: Configuration object (defaults to the shared config)

    Returns:
        Configured TelemetryService
    """
    cfg = cfg or config
    settings = TelemetrySettings.from_config(cfg)
    if observer is None:
        observer = StderrObserver(verbose=bool(cfg.get('telemetry.verbose', False)))

    return TelemetryService(
        create_store(cfg),
        settings=settings,
        observer=observer,
        enabled=cfg.is_enabled('telemetry'),
    )
