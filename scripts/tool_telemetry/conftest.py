"""
Shared fakes for telemetry pipeline tests.
"""

import asyncio

import pytest

from analytics_store.base import AnalyticsStore, StoreError
from tool_telemetry.observer import TelemetryObserver


class FakeStore(AnalyticsStore):
    """
    In-memory store that can be told to fail or to stall.

    Set `entered` to an asyncio.Event to learn when a batch write starts,
    and `gate` to hold batch writes until the event is set.
    """

    def __init__(self):
        self.batches = []
        self.batch_attempts = 0
        self.fail_batches = 0
        self.batch_delay = 0.0
        self.entered = None
        self.gate = None
        self.in_flight = 0
        self.max_in_flight = 0
        self.sessions = {}
        self.session_updates = []
        self.fail_session_insert = False
        self.fail_session_update = False

    async def insert_session_record(self, session):
        if self.fail_session_insert:
            raise StoreError("sessions table unavailable")
        self.sessions[session.id] = session

    async def update_session_record(self, session_id, fields):
        if self.fail_session_update:
            raise StoreError("sessions table unavailable")
        self.session_updates.append((session_id, dict(fields)))

    async def insert_tool_call_batch(self, records):
        self.batch_attempts += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.entered is not None:
                self.entered.set()
            if self.gate is not None:
                await self.gate.wait()
            if self.batch_delay:
                await asyncio.sleep(self.batch_delay)
            if self.fail_batches:
                self.fail_batches -= 1
                raise StoreError("database is locked")
            self.batches.append(list(records))
        finally:
            self.in_flight -= 1

    @property
    def written(self):
        return [r for batch in self.batches for r in batch]


class RecordingObserver(TelemetryObserver):
    """Keeps every observation for assertions."""

    def __init__(self):
        self.flushed = []
        self.flush_errors = []
        self.started = []
        self.ended = []
        self.session_errors = []
        self.shutdowns = []

    def on_flushed(self, count):
        self.flushed.append(count)

    def on_flush_error(self, error):
        self.flush_errors.append(error)

    def on_session_started(self, session_id, persisted):
        self.started.append((session_id, persisted))

    def on_session_ended(self, session_id, tool_count):
        self.ended.append((session_id, tool_count))

    def on_session_error(self, error):
        self.session_errors.append(error)

    def on_shutdown(self, remaining):
        self.shutdowns.append(remaining)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def observer():
    return RecordingObserver()
