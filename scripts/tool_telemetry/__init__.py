"""
Tool-call telemetry pipeline.

Records tool invocations, buffers them in memory and flushes them to an
analytics store on a size threshold or after a bounded interval, with
requeue on failure and session bookkeeping.
"""

from .schema import (
    ToolCallMetadata,
    ToolCallRecord,
    SessionRecord,
    TelemetrySettings,
)
from .errors import TelemetryError, FlushError, SessionError, ConfigError
from .observer import TelemetryObserver, StderrObserver
from .batch_writer import BatchWriter
from .sessions import SessionState, SessionCounters, SessionTracker
from .recorder import ToolCallRecorder
from .shutdown import ShutdownCoordinator
from .service import TelemetryService, create_telemetry_service, create_store
from .tool_wrapper import (
    ToolDefinition,
    instrument,
    wrap_tool,
    wrap_tool_registrar,
    traced_tool,
)
from .context import get_current_session_id, new_session_id

__all__ = [
    # Schemas
    'ToolCallMetadata',
    'ToolCallRecord',
    'SessionRecord',
    'TelemetrySettings',
    # Errors
    'TelemetryError',
    'FlushError',
    'SessionError',
    'ConfigError',
    # Pipeline
    'TelemetryObserver',
    'StderrObserver',
    'BatchWriter',
    'SessionState',
    'SessionCounters',
    'SessionTracker',
    'ToolCallRecorder',
    'ShutdownCoordinator',
    'TelemetryService',
    'create_telemetry_service',
    'create_store',
    # Tool wrapper
    'ToolDefinition',
    'instrument',
    'wrap_tool',
    'wrap_tool_registrar',
    'traced_tool',
    # Context
    'get_current_session_id',
    'new_session_id',
]

__version__ = '1.0.0'
