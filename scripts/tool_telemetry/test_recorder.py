#!/usr/bin/env python3
"""
Tests for the tool-call recorder.

Tests the flush policy (size threshold vs. timer), session counting and
that recording never fails.
"""

import asyncio

from tool_telemetry.batch_writer import BatchWriter
from tool_telemetry.recorder import ToolCallRecorder
from tool_telemetry.schema import TelemetrySettings, ToolCallMetadata
from tool_telemetry.sessions import SessionCounters, SessionTracker


def make_recorder(store, observer, **settings):
    writer = BatchWriter(store, TelemetrySettings(**settings), observer)
    return ToolCallRecorder(writer, SessionTracker(store, SessionCounters(), observer))


def metadata(tool_name="grep", session_id="session-1", status="success", **extra):
    return ToolCallMetadata(
        tool_name=tool_name,
        duration_ms=12.5,
        status=status,
        session_id=session_id,
        **extra
    )


def test_record_stamps_id_and_timestamp(store, observer):
    async def scenario():
        recorder = make_recorder(store, observer)
        record = await recorder.record(metadata(status="error", error_type="ValueError"))
        recorder.writer.cancel_timer()
        return record

    record = asyncio.run(scenario())

    assert record.id
    assert record.timestamp.tzinfo is not None
    assert record.tool_name == "grep"
    assert record.status == "error"
    assert record.error_type == "ValueError"


def test_below_batch_size_waits_for_timer(store, observer):
    """N < batch_size records are flushed once, by the timer."""
    async def scenario():
        recorder = make_recorder(store, observer, batch_size=5, flush_interval_ms=60)
        records = [await recorder.record(metadata(f"tool-{i}")) for i in range(3)]

        assert recorder.writer.timer_armed
        await asyncio.sleep(0.02)
        assert store.batch_attempts == 0

        await asyncio.sleep(0.1)
        await recorder.writer.wait_idle()
        return recorder, records

    recorder, records = asyncio.run(scenario())

    assert store.batches == [records]
    assert len(recorder.writer) == 0
    assert not recorder.writer.timer_armed


def test_batch_size_triggers_immediate_flush(store, observer):
    async def scenario():
        recorder = make_recorder(store, observer)
        records = [await recorder.record(metadata(f"tool-{i}")) for i in range(50)]
        return recorder, records

    recorder, records = asyncio.run(scenario())

    assert len(store.batches) == 1
    assert store.batches[0] == records
    assert len(recorder.writer) == 0
    assert not recorder.writer.timer_armed


def test_session_counters_incremented(store, observer):
    async def scenario():
        recorder = make_recorder(store, observer)
        for _ in range(3):
            await recorder.record(metadata(session_id="a"))
        await recorder.record(metadata(session_id="b"))
        recorder.writer.cancel_timer()
        return recorder.counters

    counters = asyncio.run(scenario())

    assert counters.snapshot() == {"a": 3, "b": 1}


def test_accepts_mapping_metadata(store, observer):
    async def scenario():
        recorder = make_recorder(store, observer)
        record = await recorder.record({
            "tool_name": "search",
            "duration_ms": 3,
            "status": "timeout",
            "session_id": "s",
        })
        recorder.writer.cancel_timer()
        return record

    record = asyncio.run(scenario())

    assert record.tool_name == "search"
    assert record.status == "timeout"


def test_invalid_metadata_is_dropped_without_raising(store, observer, capsys):
    async def scenario():
        recorder = make_recorder(store, observer)
        bad_status = await recorder.record({
            "tool_name": "grep", "duration_ms": 1, "status": "crashed", "session_id": "s",
        })
        missing_field = await recorder.record({"tool_name": "grep"})
        return recorder, bad_status, missing_field

    recorder, bad_status, missing_field = asyncio.run(scenario())

    assert bad_status is None
    assert missing_field is None
    assert len(recorder.writer) == 0
    assert not recorder.writer.timer_armed
    assert "Dropping invalid tool-call metadata" in capsys.readouterr().err


def test_failed_flush_retried_on_next_size_trigger(store, observer):
    store.fail_batches = 1

    async def scenario():
        recorder = make_recorder(store, observer, batch_size=2, flush_interval_ms=10000)
        a = await recorder.record(metadata("a"))
        b = await recorder.record(metadata("b"))
        pending = recorder.writer.pending

        c = await recorder.record(metadata("c"))
        return recorder, pending, [a, b, c]

    recorder, pending, (a, b, c) = asyncio.run(scenario())

    assert pending == [a, b]
    assert store.batches == [[a, b, c]]
    assert len(observer.flush_errors) == 1
    assert len(recorder.writer) == 0


def test_calls_for_ended_session_buffered_but_not_counted(store, observer):
    async def scenario():
        recorder = make_recorder(store, observer)
        await recorder.sessions.start_session("a")
        await recorder.record(metadata(session_id="a"))
        await recorder.sessions.end_session("a")
        late = await recorder.record(metadata(session_id="a"))
        recorder.writer.cancel_timer()
        return recorder, late

    recorder, late = asyncio.run(scenario())

    assert late is not None
    assert len(recorder.writer) == 2
    assert recorder.counters.snapshot() == {}
    assert observer.ended == [("a", 1)]
