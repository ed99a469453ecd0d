from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Union

from tripwire_rules import (
    DataAccessRecord,
    EventCategory,
    RequestSnapshot,
    SecurityEvent,
    Severity,
)

CategoryLike = Union[EventCategory, str]


def _category(value: CategoryLike) -> str:
    return value.value if isinstance(value, EventCategory) else str(value)


class SecurityEventSink(ABC):
    """
    Consumer of security events.

    The three public entry points build immutable models and delegate to
    emit()/emit_data_access(). Implementations must tolerate concurrent
    calls from many in-flight requests. What happens to an event afterwards
    (storage, dedup, alerting) is entirely the sink's business.
    """

    def on_suspicious_activity(
        self,
        snapshot: RequestSnapshot,
        category: CategoryLike,
        detail: str,
        matched_value: Optional[str] = None,
        severity: Severity = Severity.HIGH,
    ) -> SecurityEvent:
        event = SecurityEvent(
            category=_category(category),
            severity=severity,
            detail=detail,
            request_path=snapshot.path,
            http_method=snapshot.method,
            client_ip=snapshot.client_ip,
            user_agent=snapshot.user_agent,
            user_id=snapshot.user_id,
            matched_value=matched_value,
        )
        self.emit(event)
        return event

    def on_suspicious_activity_detached(
        self,
        category: CategoryLike,
        detail: str,
        field: Optional[str],
        severity: Severity,
        *,
        path: str,
        method: str,
        client_ip: str,
        user_agent: Optional[str],
        user_id: Optional[str] = None,
        matched_value: Optional[str] = None,
    ) -> SecurityEvent:
        """Variant for callers that already pulled the request context apart (body scan)."""
        event = SecurityEvent(
            category=_category(category),
            severity=severity,
            detail=detail,
            request_path=path,
            http_method=method,
            client_ip=client_ip,
            user_agent=user_agent,
            user_id=user_id,
            field=field,
            matched_value=matched_value,
        )
        self.emit(event)
        return event

    def log_data_access(
        self,
        user_id: str,
        area: str,
        path: str,
        method: str,
        status_code: Optional[int] = None,
    ) -> DataAccessRecord:
        record = DataAccessRecord(
            user_id=user_id,
            area=area,
            path=path,
            method=method,
            status_code=status_code,
        )
        self.emit_data_access(record)
        return record

    @abstractmethod
    def emit(self, event: SecurityEvent) -> None:
        raise NotImplementedError

    @abstractmethod
    def emit_data_access(self, record: DataAccessRecord) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return None
