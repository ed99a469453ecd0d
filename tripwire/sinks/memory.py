from __future__ import annotations

import threading
from collections import deque
from typing import Deque, List, Optional

from tripwire_rules import DataAccessRecord, SecurityEvent

from .base import SecurityEventSink

DEFAULT_MAX_HISTORY = 1000  # cheap cap so this never explodes in a long-running process


class InMemorySecurityEventSink(SecurityEventSink):
    """
    Thread-safe in-process ring of recent events.

    Operational/debug facility and test double, NOT durable storage.
    """

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY) -> None:
        self._lock = threading.Lock()
        self._events: Deque[SecurityEvent] = deque(maxlen=max_history)
        self._access: Deque[DataAccessRecord] = deque(maxlen=max_history)

    def emit(self, event: SecurityEvent) -> None:
        with self._lock:
            self._events.append(event)

    def emit_data_access(self, record: DataAccessRecord) -> None:
        with self._lock:
            self._access.append(record)

    def events(self, category: Optional[str] = None) -> List[SecurityEvent]:
        with self._lock:
            items = list(self._events)
        if category is not None:
            items = [e for e in items if e.category == category]
        return items

    def data_access(self) -> List[DataAccessRecord]:
        with self._lock:
            return list(self._access)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
            self._access.clear()
