from __future__ import annotations

from typing import Optional

from tripwire.config import TripwireConfig

from .base import SecurityEventSink
from .logging_sink import LoggingSecurityEventSink
from .memory import InMemorySecurityEventSink
from .queued import QueuedSecurityEventSink


# SQL writes block; they never run on the request path.
DEFAULT_SQL_QUEUE_SIZE = 1000


def build_sink(config: TripwireConfig) -> SecurityEventSink:
    """
    Sink from config:
      TW_SINK=log|sql|memory, wrapped in a bounded queue when TW_SINK_QUEUE_SIZE > 0.
      sql is always queued (DEFAULT_SQL_QUEUE_SIZE when no size is configured).
    """
    sink: SecurityEventSink
    queue_size = config.sink_queue_size
    if config.sink == "sql":
        from tripwire.db import get_engine
        from .sql import SqlSecurityEventSink

        sink = SqlSecurityEventSink(get_engine(config.db_url or None))
        if queue_size <= 0:
            queue_size = DEFAULT_SQL_QUEUE_SIZE
    elif config.sink == "memory":
        sink = InMemorySecurityEventSink()
    else:
        sink = LoggingSecurityEventSink()

    if queue_size > 0:
        sink = QueuedSecurityEventSink(sink, maxsize=queue_size)
    return sink


def unwrap(sink: Optional[SecurityEventSink]) -> Optional[SecurityEventSink]:
    while isinstance(sink, QueuedSecurityEventSink):
        sink = sink.delegate
    return sink


__all__ = [
    "SecurityEventSink",
    "LoggingSecurityEventSink",
    "InMemorySecurityEventSink",
    "QueuedSecurityEventSink",
    "DEFAULT_SQL_QUEUE_SIZE",
    "build_sink",
    "unwrap",
]
