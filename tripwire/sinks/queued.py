from __future__ import annotations

import queue
import threading
import time
from typing import Any, Optional, Tuple

from loguru import logger

from tripwire.metrics import EVENTS_DROPPED, SINK_ERRORS
from tripwire_rules import DataAccessRecord, SecurityEvent

from .base import SecurityEventSink

_STOP = object()


class QueuedSecurityEventSink(SecurityEventSink):
    """
    Bounded, non-blocking handoff in front of a slower sink.

    The request path only ever does put_nowait(); a daemon worker drains the
    queue into the delegate. When the queue is full the event is dropped and
    counted, so a stalled backend can never hold a request hostage.
    """

    def __init__(self, delegate: SecurityEventSink, maxsize: int = 1000) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self.delegate = delegate
        self._q: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self._closed = False
        self._worker = threading.Thread(target=self._run, name="tripwire-sink", daemon=True)
        self._worker.start()

    @property
    def maxsize(self) -> int:
        return self._q.maxsize

    # -----------------------------
    # Producer side
    # -----------------------------

    def _offer(self, item: Tuple[str, Any]) -> bool:
        if self._closed:
            EVENTS_DROPPED.inc()
            return False
        try:
            self._q.put_nowait(item)
            return True
        except queue.Full:
            EVENTS_DROPPED.inc()
            logger.warning("security sink queue full, dropping {}", item[0])
            return False

    def emit(self, event: SecurityEvent) -> None:
        self._offer(("event", event))

    def emit_data_access(self, record: DataAccessRecord) -> None:
        self._offer(("access", record))

    # -----------------------------
    # Worker side
    # -----------------------------

    def _run(self) -> None:
        while True:
            item = self._q.get()
            try:
                if item is _STOP:
                    return
                kind, payload = item
                if kind == "event":
                    self.delegate.emit(payload)
                else:
                    self.delegate.emit_data_access(payload)
            except Exception:
                SINK_ERRORS.inc()
                logger.opt(exception=True).error("security sink delegate failed")
            finally:
                self._q.task_done()

    def flush(self, timeout: float = 5.0) -> bool:
        """Wait until everything queued so far reached the delegate."""
        deadline = time.monotonic() + timeout
        with self._q.all_tasks_done:
            while self._q.unfinished_tasks:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._q.all_tasks_done.wait(remaining)
        return True

    def close(self, timeout: Optional[float] = 5.0) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._q.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.warning("security sink queue still full on close, worker left running")
            return
        self._worker.join(timeout)
        self.delegate.close()
