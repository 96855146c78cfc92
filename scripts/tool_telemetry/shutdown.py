"""
Final flush before process exit.

Buffered records live only in memory: whatever is still buffered when the
process exits without calling shutdown() is lost.
"""

from typing import Optional

from .batch_writer import BatchWriter
from .observer import TelemetryObserver, notify


class ShutdownCoordinator:
    """Runs exactly one final flush attempt."""

    def __init__(self, writer: BatchWriter, observer: Optional[TelemetryObserver] = None):
        self.writer = writer
        self.observer = observer or TelemetryObserver()
        self.completed = False

    async def shutdown(self) -> int:
        """
        Stop the timer, let timer flushes already writing finish, then
        flush what is left.

        Timer flushes that fired but have not reached the store are
        dropped, so the final flush is the only store attempt made here.
        A failed final flush is reported to the observer, not raised.
        Calling shutdown() again does nothing.

        Returns:
            Number of records still buffered afterwards
        """
        if self.completed:
            return len(self.writer)
        self.completed = True

        self.writer.close()
        await self.writer.wait_idle()
        await self.writer.flush()

        remaining = len(self.writer)
        notify(self.observer, "on_shutdown", remaining)
        return remaining
