"""
Tool instrumentation.

Wraps tool callables so each execution is timed and recorded in the
background. The tool's result and exceptions pass through untouched.
"""

import asyncio
import dataclasses
import functools
import inspect
import sys
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .schema import ToolCallMetadata


@dataclass
class ToolDefinition:
    """A registrable tool."""
    name: str
    description: str
    parameters: Any
    execute: Callable[..., Any]


def _record(telemetry, tool_name: str, started: float, status: str,
            session_id: str, error_type: Optional[str] = None):
    duration_ms = (time.perf_counter() - started) * 1000.0
    telemetry.spawn_record(ToolCallMetadata(
        tool_name=tool_name,
        duration_ms=duration_ms,
        status=status,
        error_type=error_type,
        session_id=session_id,
    ))


def instrument(telemetry, tool_name: str, func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Wrap a sync or async callable with telemetry.

    Args:
        telemetry: TelemetryService recording the calls
        tool_name: Name stored with each record
        func: Callable to wrap

    Returns:
        Async callable with the same arguments and result
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        session_id = telemetry.current_session_id
        if session_id is None or not telemetry.enabled:
            if session_id is None and telemetry.enabled:
                print(f"Warning: No active session for tool {tool_name} telemetry",
                      file=sys.stderr)
            result = func(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            return result

        started = time.perf_counter()
        try:
            result = func(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
        except (asyncio.TimeoutError, TimeoutError) as e:
            _record(telemetry, tool_name, started, "timeout", session_id, type(e).__name__)
            raise
        except Exception as e:
            _record(telemetry, tool_name, started, "error", session_id, type(e).__name__)
            raise

        _record(telemetry, tool_name, started, "success", session_id)
        return result

    return wrapper


def wrap_tool(telemetry, tool: ToolDefinition) -> ToolDefinition:
    """Return a copy of the tool whose execute is instrumented."""
    return dataclasses.replace(tool, execute=instrument(telemetry, tool.name, tool.execute))


def wrap_tool_registrar(
    add_tool: Callable[[ToolDefinition], Any],
    telemetry
) -> Callable[[ToolDefinition], Any]:
    """
    Wrap a tool registration function so every registered tool is instrumented.

    Args:
        add_tool: Original registration function
        telemetry: TelemetryService recording the calls

    Returns:
        Registration function with the same signature
    """
    def register(tool: ToolDefinition):
        return add_tool(wrap_tool(telemetry, tool))

    return register


def traced_tool(telemetry, name: Optional[str] = None):
    """Decorator form of instrument(); the tool name defaults to the function name."""
    def decorator(func):
        return instrument(telemetry, name or func.__name__, func)
    return decorator
