"""
Analytics storage for tool-call telemetry.

This package provides the durable side of the telemetry pipeline:
- base: AnalyticsStore contract and StoreError
- schema: ToolCallRecord and SessionRecord rows
- sqlite_store: SQLite store with migrations and a lazy shared instance
- jsonl_store: append-only JSONL store
- config: Unified configuration management
"""

from .base import AnalyticsStore, StoreError
from .schema import SessionRecord, ToolCallRecord, TOOL_CALL_STATUSES
from .sqlite_store import (
    SQLiteAnalyticsStore,
    get_analytics_store,
    close_analytics_store,
)
from .jsonl_store import JSONLAnalyticsStore
from .jsonl_utils import JSONLReader, JSONLWriter
from .config import AnalyticsConfig, config

__all__ = [
    'AnalyticsStore',
    'StoreError',
    'SessionRecord',
    'ToolCallRecord',
    'TOOL_CALL_STATUSES',
    'SQLiteAnalyticsStore',
    'get_analytics_store',
    'close_analytics_store',
    'JSONLAnalyticsStore',
    'JSONLReader',
    'JSONLWriter',
    'AnalyticsConfig',
    'config',
]

__version__ = '1.0.0'
