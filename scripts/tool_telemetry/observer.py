"""
Observation channel for the telemetry pipeline.

Components never raise failures to their callers; they report them to a
TelemetryObserver. StderrObserver is the default sink and prints warnings
the same way the rest of the analytics tooling does.
"""

import sys

from .errors import FlushError, SessionError


class TelemetryObserver:
    """Receives pipeline observations. All hooks default to no-ops."""

    def on_flushed(self, count: int):
        pass

    def on_flush_error(self, error: FlushError):
        pass

    def on_session_started(self, session_id: str, persisted: bool):
        pass

    def on_session_ended(self, session_id: str, tool_count: int):
        pass

    def on_session_error(self, error: SessionError):
        pass

    def on_shutdown(self, remaining: int):
        pass


class StderrObserver(TelemetryObserver):
    """Print failures (and, when verbose, progress) to stderr."""

    def __init__(self, verbose: bool = False, stream=None):
        self.verbose = verbose
        self.stream = stream

    def _print(self, message: str):
        print(message, file=self.stream or sys.stderr)

    def on_flushed(self, count: int):
        if self.verbose:
            self._print(f"Flushed {count} tool calls")

    def on_flush_error(self, error: FlushError):
        self._print(f"Warning: {error} (requeued)")

    def on_session_started(self, session_id: str, persisted: bool):
        if self.verbose:
            suffix = "" if persisted else " (not persisted)"
            self._print(f"Session {session_id} started{suffix}")

    def on_session_ended(self, session_id: str, tool_count: int):
        if self.verbose:
            self._print(f"Session {session_id} ended with {tool_count} tool calls")

    def on_session_error(self, error: SessionError):
        self._print(f"Warning: {error}")

    def on_shutdown(self, remaining: int):
        if remaining:
            self._print(f"Warning: Telemetry shut down with {remaining} unflushed tool calls")
        elif self.verbose:
            self._print("Telemetry shutdown complete")


def notify(observer: TelemetryObserver, hook: str, *args):
    """
    Call an observer hook, containing any exception it raises.

    Args:
        observer: Observer to notify
        hook: Hook method name (e.g. "on_flushed")
        *args: Hook arguments
    """
    try:
        getattr(observer, hook)(*args)
    except Exception as e:
        print(f"Warning: Telemetry observer {hook} failed: {e}", file=sys.stderr)
