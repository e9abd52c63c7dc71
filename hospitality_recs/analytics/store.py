from __future__ import annotations

import threading
import time
from collections import deque
from typing import Any


class EventLog:
    """Most recent request events of one engine; the oldest drop off first."""

    def __init__(self, maxlen: int = 10_000) -> None:
        self._lock = threading.Lock()
        self._events: deque[dict[str, Any]] = deque(maxlen=maxlen)

    def __len__(self) -> int:
        return len(self._events)

    def record(self, event_type: str, data: dict[str, Any]) -> None:
        with self._lock:
            self._events.append({
                "type": event_type,
                "timestamp": time.time(),
                **data,
            })

    def events(self) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._events)
