#!/usr/bin/env python3
"""
Tests for the shutdown coordinator.
"""

import asyncio

from tool_telemetry.batch_writer import BatchWriter
from tool_telemetry.schema import TelemetrySettings, ToolCallMetadata
from tool_telemetry.shutdown import ShutdownCoordinator


def buffered_writer(store, observer, count):
    writer = BatchWriter(store, TelemetrySettings(flush_interval_ms=10000), observer)
    for i in range(count):
        writer.append(ToolCallMetadata(
            tool_name=f"tool-{i}",
            duration_ms=1.0,
            status="success",
            session_id="s1",
        ).to_record())
    return writer


def test_shutdown_flushes_once_and_clears_timer(store, observer):
    async def scenario():
        writer = buffered_writer(store, observer, 3)
        writer.arm_timer()
        coordinator = ShutdownCoordinator(writer, observer)
        remaining = await coordinator.shutdown()
        return writer, remaining

    writer, remaining = asyncio.run(scenario())

    assert remaining == 0
    assert store.batch_attempts == 1
    assert len(store.batches[0]) == 3
    assert not writer.timer_armed
    assert observer.shutdowns == [0]


def test_shutdown_failure_is_reported_not_raised(store, observer):
    store.fail_batches = 1

    async def scenario():
        writer = buffered_writer(store, observer, 2)
        return await ShutdownCoordinator(writer, observer).shutdown()

    assert asyncio.run(scenario()) == 2
    assert store.batch_attempts == 1
    assert len(observer.flush_errors) == 1
    assert observer.shutdowns == [2]


def test_second_shutdown_is_noop(store, observer):
    async def scenario():
        writer = buffered_writer(store, observer, 1)
        coordinator = ShutdownCoordinator(writer, observer)
        await coordinator.shutdown()
        return await coordinator.shutdown()

    assert asyncio.run(scenario()) == 0
    assert store.batch_attempts == 1
    assert observer.shutdowns == [0]


def test_shutdown_waits_for_in_flight_flush(store, observer):
    store.batch_delay = 0.03

    async def scenario():
        writer = buffered_writer(store, observer, 1)
        in_flight = asyncio.create_task(writer.flush())
        await asyncio.sleep(0)
        writer.append(ToolCallMetadata(
            tool_name="late", duration_ms=1.0, status="success", session_id="s1",
        ).to_record())
        remaining = await ShutdownCoordinator(writer, observer).shutdown()
        await in_flight
        return remaining

    assert asyncio.run(scenario()) == 0
    assert store.max_in_flight == 1
    assert [r.tool_name for r in store.written] == ["tool-0", "late"]


def test_fired_timer_flush_does_not_add_an_attempt(store, observer):
    """A timer that fired just before shutdown leaves one store attempt."""
    store.fail_batches = 5

    async def scenario():
        writer = buffered_writer(store, observer, 1)
        writer.arm_timer()
        # Timer fires; its flush task is scheduled but has not run yet
        writer._on_timer()
        remaining = await ShutdownCoordinator(writer, observer).shutdown()
        return writer, remaining

    writer, remaining = asyncio.run(scenario())

    assert remaining == 1
    assert store.batch_attempts == 1
    assert len(observer.flush_errors) == 1
    assert not writer.timer_armed
    assert observer.shutdowns == [1]


def test_timer_flush_already_writing_completes_first(store, observer):
    store.batch_delay = 0.02

    async def scenario():
        writer = buffered_writer(store, observer, 1)
        writer.arm_timer()
        writer._on_timer()
        await asyncio.sleep(0)
        assert writer.flushing
        writer.append(ToolCallMetadata(
            tool_name="late", duration_ms=1.0, status="success", session_id="s1",
        ).to_record())
        return await ShutdownCoordinator(writer, observer).shutdown()

    assert asyncio.run(scenario()) == 0
    assert [[r.tool_name for r in batch] for batch in store.batches] == [["tool-0"], ["late"]]
    assert store.max_in_flight == 1


def test_records_after_shutdown_arm_no_timer(store, observer):
    async def scenario():
        writer = buffered_writer(store, observer, 0)
        await ShutdownCoordinator(writer, observer).shutdown()
        writer.append(ToolCallMetadata(
            tool_name="after", duration_ms=1.0, status="success", session_id="s1",
        ).to_record())
        return writer, writer.arm_timer()

    writer, armed = asyncio.run(scenario())

    assert armed is False
    assert not writer.timer_armed
    assert len(writer) == 1
    assert store.batch_attempts == 0
