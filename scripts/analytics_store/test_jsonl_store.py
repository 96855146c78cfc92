#!/usr/bin/env python3
"""
Tests for the JSONL analytics store and JSONL utilities.
"""

import asyncio
import json
import uuid
from datetime import datetime, timezone

from analytics_store.jsonl_store import JSONLAnalyticsStore
from analytics_store.jsonl_utils import JSONLReader, JSONLWriter
from analytics_store.schema import SessionRecord, ToolCallRecord


def make_call(tool_name):
    return ToolCallRecord(
        id=str(uuid.uuid4()),
        tool_name=tool_name,
        duration_ms=2.5,
        status="success",
        timestamp=datetime.now(timezone.utc),
        session_id="s1",
    )


def test_sessions_fold_inserts_and_updates(tmp_path):
    store = JSONLAnalyticsStore(tmp_path)
    started = datetime(2026, 10, 18, 8, 0, tzinfo=timezone.utc)
    ended = datetime(2026, 10, 18, 8, 30, tzinfo=timezone.utc)

    async def scenario():
        await store.insert_session_record(SessionRecord(id="s1", started_at=started))
        await store.update_session_record("s1", {"ended_at": ended, "tool_count": 2})
        # Update without a matching insert changes nothing
        await store.update_session_record("ghost", {"tool_count": 9})

    asyncio.run(scenario())

    sessions = store.load_sessions()
    assert list(sessions) == ["s1"]
    assert sessions["s1"].started_at == started
    assert sessions["s1"].ended_at == ended
    assert sessions["s1"].tool_count == 2


def test_tool_calls_deduplicated_on_read(tmp_path):
    store = JSONLAnalyticsStore(tmp_path)
    batch = [make_call("grep"), make_call("read_file")]

    async def scenario():
        await store.insert_tool_call_batch(batch)
        await store.insert_tool_call_batch(batch)

    asyncio.run(scenario())

    with open(store.tool_calls_path) as f:
        assert sum(1 for _ in f) == 4
    assert store.load_tool_calls() == batch


def test_reader_skips_malformed_lines(tmp_path, capsys):
    path = tmp_path / "log.jsonl"
    writer = JSONLWriter(path)
    writer.append({"n": 1})
    with open(path, "a") as f:
        f.write("{not json\n\n")
    writer.append_batch([{"n": 2}, {"n": 3}])

    entries = JSONLReader.read_log(path)
    assert [e["n"] for e in entries] == [1, 2, 3]
    assert "Malformed JSON" in capsys.readouterr().err

    odd = JSONLReader.read_log(path, filter_fn=lambda e: e["n"] % 2 == 1)
    assert [e["n"] for e in odd] == [1, 3]


def test_reader_missing_file(tmp_path):
    assert JSONLReader.read_log(tmp_path / "missing.jsonl") == []


def test_writer_batch_written_as_lines(tmp_path):
    path = tmp_path / "nested" / "log.jsonl"
    JSONLWriter(path).append_batch([{"a": 1}, {"b": datetime(2026, 1, 1)}])

    lines = path.read_text().splitlines()
    assert json.loads(lines[0]) == {"a": 1}
    assert json.loads(lines[1]) == {"b": "2026-01-01 00:00:00"}
