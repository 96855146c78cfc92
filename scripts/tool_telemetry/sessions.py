"""
Session lifecycle tracking.

A session moves NOT_STARTED -> STARTED -> ENDED and never leaves ENDED.
Start and end markers are persisted to the store; failures are reported
to the observer and the session carries on unpersisted ("degraded").

Only live sessions are held in memory. Ended session ids are remembered
in a bounded history so late records and repeated end calls are ignored.
"""

from collections import OrderedDict
from enum import Enum
from typing import Dict, Optional, Set

from analytics_store.base import AnalyticsStore
from analytics_store.schema import SessionRecord, utc_now

from .errors import SessionError
from .observer import TelemetryObserver, notify


DEFAULT_ENDED_HISTORY = 1000


class SessionState(Enum):
    NOT_STARTED = "not_started"
    STARTED = "started"
    ENDED = "ended"


class SessionCounters:
    """Live per-session tool-call counts."""

    def __init__(self):
        self._counts: Dict[str, int] = {}

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._counts

    def __len__(self) -> int:
        return len(self._counts)

    def increment(self, session_id: str) -> int:
        self._counts[session_id] = self._counts.get(session_id, 0) + 1
        return self._counts[session_id]

    def get(self, session_id: str) -> int:
        return self._counts.get(session_id, 0)

    def close(self, session_id: str) -> int:
        """Remove the entry and return its final count."""
        return self._counts.pop(session_id, 0)

    def snapshot(self) -> Dict[str, int]:
        return dict(self._counts)


class SessionTracker:
    """Persists session markers and owns the session state machine."""

    def __init__(
        self,
        store: AnalyticsStore,
        counters: SessionCounters,
        observer: Optional[TelemetryObserver] = None,
        ended_history: int = DEFAULT_ENDED_HISTORY
    ):
        """
        Initialize tracker.

        Args:
            store: Receives session start and end markers
            counters: Live tool-call counts, shared with the recorder
            observer: Receives session events and failures
            ended_history: How many ended session ids to remember
        """
        self.store = store
        self.counters = counters
        self.observer = observer or TelemetryObserver()
        self.ended_history = ended_history
        self._started: Set[str] = set()
        self._degraded: Set[str] = set()
        self._ended: "OrderedDict[str, None]" = OrderedDict()

    def state(self, session_id: str) -> SessionState:
        if session_id in self._started:
            return SessionState.STARTED
        if session_id in self._ended:
            return SessionState.ENDED
        return SessionState.NOT_STARTED

    def is_degraded(self, session_id: str) -> bool:
        """True if a live session's start marker was never persisted."""
        return session_id in self._degraded

    def count_call(self, session_id: str) -> int:
        """
        Count one tool call for a session.

        Calls for ended sessions are not counted.

        Returns:
            The session's count so far (0 if not counted)
        """
        if session_id in self._ended:
            return 0
        return self.counters.increment(session_id)

    async def start_session(self, session_id: str) -> bool:
        """
        Start a session and persist its row.

        The session is STARTED even if the insert fails; there is no retry.

        Args:
            session_id: Session to start

        Returns:
            True if the session row was persisted
        """
        if self.state(session_id) is not SessionState.NOT_STARTED:
            return False

        self._started.add(session_id)
        session = SessionRecord(id=session_id, started_at=utc_now(), tool_count=0)

        try:
            await self.store.insert_session_record(session)
        except Exception as e:
            self._degraded.add(session_id)
            notify(self.observer, "on_session_error", SessionError(session_id, e, "start"))
            notify(self.observer, "on_session_started", session_id, False)
            return False

        notify(self.observer, "on_session_started", session_id, True)
        return True

    async def end_session(self, session_id: str) -> int:
        """
        End a session, persisting its end time and final tool count.

        The in-memory counter is dropped whether or not the update succeeds.
        Unknown and already-ended sessions are a no-op.

        Args:
            session_id: Session to end

        Returns:
            Final tool count (0 for a no-op)
        """
        state = self.state(session_id)
        if state is SessionState.ENDED:
            return 0
        if state is SessionState.NOT_STARTED and session_id not in self.counters:
            return 0

        self._mark_ended(session_id)
        tool_count = self.counters.close(session_id)

        try:
            await self.store.update_session_record(
                session_id,
                {"ended_at": utc_now(), "tool_count": tool_count},
            )
        except Exception as e:
            notify(self.observer, "on_session_error", SessionError(session_id, e, "end"))

        notify(self.observer, "on_session_ended", session_id, tool_count)
        return tool_count

    def _mark_ended(self, session_id: str):
        self._started.discard(session_id)
        self._degraded.discard(session_id)
        self._ended[session_id] = None
        while len(self._ended) > self.ended_history:
            self._ended.popitem(last=False)
