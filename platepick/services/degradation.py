"""Failure tracking for fallback paths.

One tracker is constructed per process (see `deps.get_tracker`) and passed to
whatever needs to record or inspect degradations.
"""

import threading
from collections import Counter, deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

SCORING_FALLBACK = "scoring_fallback"
SNAPSHOT_FALLBACK = "snapshot_fallback"


@dataclass(frozen=True)
class DegradationEvent:
    kind: str
    detail: str
    user_id: Optional[int]
    at: datetime


class DegradationTracker:
    def __init__(self, max_events: int = 500):
        self._events: deque[DegradationEvent] = deque(maxlen=max_events)
        self._counts: Counter = Counter()
        self._lock = threading.Lock()

    def record(self, kind: str, detail: str = "", user_id: Optional[int] = None) -> DegradationEvent:
        event = DegradationEvent(kind=kind, detail=detail, user_id=user_id, at=datetime.now(timezone.utc))
        with self._lock:
            self._events.append(event)
            self._counts[kind] += 1
        return event

    def count(self, kind: Optional[str] = None) -> int:
        with self._lock:
            if kind is None:
                return sum(self._counts.values())
            return self._counts[kind]

    def recent(self, limit: int = 50) -> list[DegradationEvent]:
        with self._lock:
            return list(self._events)[-limit:]

    def reset(self) -> None:
        with self._lock:
            self._events.clear()
            self._counts.clear()
