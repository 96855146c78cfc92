"""
Buffered batch writer for tool-call records.

Accumulates records in memory and writes them to the analytics store
when:
- The buffer reaches batch_size (the recorder calls flush())
- The one-shot flush timer fires
- flush() is called explicitly (e.g. on shutdown)

Flushes are serialized by a lock: only one batch is ever detached and in
flight at a time. A batch the store rejects is put back at the head of
the buffer, ahead of anything recorded while the write was pending.
"""

import asyncio
from typing import List, Optional, Set

from analytics_store.base import AnalyticsStore
from analytics_store.schema import ToolCallRecord

from .errors import FlushError
from .observer import TelemetryObserver, notify
from .schema import TelemetrySettings


class BatchWriter:
    """Owns the pending buffer, the flush timer and the flush lock."""

    def __init__(
        self,
        store: AnalyticsStore,
        settings: Optional[TelemetrySettings] = None,
        observer: Optional[TelemetryObserver] = None
    ):
        """
        Initialize batched writer.

        Args:
            store: Destination for flushed batches
            settings: Batch size and flush interval
            observer: Receives flush counts and failures
        """
        self.store = store
        self.settings = settings or TelemetrySettings()
        self.observer = observer or TelemetryObserver()
        self._buffer: List[ToolCallRecord] = []
        self._timer: Optional[asyncio.TimerHandle] = None
        self._lock = asyncio.Lock()
        self._flush_tasks: Set[asyncio.Task] = set()
        self.closed = False

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def pending(self) -> List[ToolCallRecord]:
        """Snapshot of buffered records, oldest first."""
        return list(self._buffer)

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    @property
    def flushing(self) -> bool:
        return self._lock.locked()

    def append(self, record: ToolCallRecord) -> int:
        """
        Add a record to the buffer.

        Args:
            record: Record to buffer

        Returns:
            Buffer length after the append
        """
        self._buffer.append(record)
        return len(self._buffer)

    def arm_timer(self) -> bool:
        """
        Arm the one-shot flush timer unless one is already pending.

        Must be called from a running event loop. A closed writer never
        arms a timer.

        Returns:
            True if a new timer was armed
        """
        if self._timer is not None or self.closed:
            return False

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.settings.flush_interval_sec, self._on_timer)
        return True

    def cancel_timer(self):
        """Cancel the pending flush timer, if any."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def close(self):
        """
        Stop timer-driven flushing.

        Cancels the pending timer. Timer flushes that fired but have not
        reached the store yet return without writing. Explicit flush()
        calls still write.
        """
        self.closed = True
        self.cancel_timer()

    def _on_timer(self):
        # Clear the handle before flushing so records arriving mid-flush
        # arm a fresh timer instead of relying on this one.
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._flush_on_timer())
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)

    async def _flush_on_timer(self) -> int:
        async with self._lock:
            if self.closed:
                return 0
            batch = await self._write_buffer()
        return self._report(batch)

    async def flush(self) -> int:
        """
        Write the buffered records to the store as one batch.

        Never raises on store failure: the batch is requeued at the head
        of the buffer and a FlushError is sent to the observer.

        Returns:
            Number of records written (0 if empty or failed)
        """
        async with self._lock:
            batch = await self._write_buffer()
        return self._report(batch)

    async def _write_buffer(self) -> Optional[List[ToolCallRecord]]:
        """Detach the buffer and write it; caller holds the lock."""
        if not self._buffer:
            return None

        batch = self._buffer
        self._buffer = []
        self.cancel_timer()

        try:
            await self.store.insert_tool_call_batch(batch)
        except asyncio.CancelledError:
            self._buffer[:0] = batch
            raise
        except Exception as e:
            self._buffer[:0] = batch
            notify(self.observer, "on_flush_error", FlushError(batch, e))
            return None

        return batch

    def _report(self, batch: Optional[List[ToolCallRecord]]) -> int:
        if not batch:
            return 0
        notify(self.observer, "on_flushed", len(batch))
        return len(batch)

    async def wait_idle(self):
        """Wait for timer-triggered flushes that are still running."""
        while self._flush_tasks:
            await asyncio.gather(*list(self._flush_tasks), return_exceptions=True)
