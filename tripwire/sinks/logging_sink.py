from __future__ import annotations

from loguru import logger

from tripwire_rules import DataAccessRecord, SecurityEvent, Severity

from .base import SecurityEventSink


class LoggingSecurityEventSink(SecurityEventSink):
    """
    Default sink: one structured loguru record per event.

    With configure_logging() in place each record is a JSON line carrying the
    event under extra.security_event, ready for a log shipper.
    """

    def __init__(self, name: str = "tripwire.security") -> None:
        self._log = logger.bind(channel=name)

    def emit(self, event: SecurityEvent) -> None:
        level = "WARNING" if event.severity is Severity.HIGH else "INFO"
        self._log.bind(security_event=event.model_dump(mode="json")).log(
            level,
            "security event {} [{}] {}",
            event.category,
            event.severity.value,
            event.detail,
        )

    def emit_data_access(self, record: DataAccessRecord) -> None:
        self._log.bind(data_access=record.model_dump(mode="json")).info(
            "sensitive area access user={} area={} {} {} status={}",
            record.user_id,
            record.area,
            record.method,
            record.path,
            record.status_code,
        )
