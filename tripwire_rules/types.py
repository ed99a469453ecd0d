from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Core enums -------------------------------------------------------------

class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {Severity.LOW: 0, Severity.MEDIUM: 1, Severity.HIGH: 2}


class EventCategory(str, Enum):
    MALICIOUS_URL_PATTERN = "MaliciousUrlPattern"
    SECURITY_SCANNER_USER_AGENT = "SecurityScannerUserAgent"
    SUSPICIOUS_AUTOMATION_USER_AGENT = "SuspiciousAutomationUserAgent"
    MISSING_USER_AGENT = "MissingUserAgent"
    XSS_PATTERN_DETECTION = "XSSPatternDetection"
    SQL_INJECTION_PATTERN_DETECTION = "SQLInjectionPatternDetection"
    SECURITY_EXCEPTION = "SecurityException"
    SLOW_REQUEST = "SlowRequest"
    SENSITIVE_AREA_ACCESS = "SensitiveAreaAccess"


# --- Request context --------------------------------------------------------

@dataclass(frozen=True)
class RequestSnapshot:
    """
    Immutable capture of the request fields detectors and sinks need.

    Events are always built from a snapshot, never from the live request,
    so nothing downstream of detection can touch the HTTP exchange.
    """

    path: str
    method: str
    query: str = ""
    client_ip: str = "unknown"
    user_agent: Optional[str] = None
    user_id: Optional[str] = None

    def with_user(self, user_id: Optional[str]) -> "RequestSnapshot":
        if user_id == self.user_id:
            return self
        return replace(self, user_id=user_id)


@dataclass(frozen=True)
class Finding:
    category: EventCategory
    severity: Severity
    detail: str
    matched_value: Optional[str] = None
    field: Optional[str] = None


# --- Sink payloads ----------------------------------------------------------

class SecurityEvent(BaseModel):
    """
    One emitted security signal.

    timestamp is capture time (when the event object is built), not request
    start, so duration-based events never carry a skewed clock.
    """

    category: str = Field(..., min_length=1)
    severity: Severity
    detail: str = ""

    request_path: Optional[str] = None
    http_method: Optional[str] = None
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
    user_id: Optional[str] = None

    matched_value: Optional[str] = None
    field: Optional[str] = None

    timestamp: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True}

    def fingerprint(self) -> tuple:
        """Identity of the event without its capture time."""
        return (
            self.category,
            self.severity.value,
            self.detail,
            self.request_path,
            self.http_method,
            self.client_ip,
            self.user_agent,
            self.user_id,
            self.matched_value,
            self.field,
        )


class DataAccessRecord(BaseModel):
    user_id: str
    area: str
    path: str
    method: str
    status_code: Optional[int] = None
    category: str = EventCategory.SENSITIVE_AREA_ACCESS.value
    timestamp: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True}


__all__ = [
    "Severity",
    "EventCategory",
    "RequestSnapshot",
    "Finding",
    "SecurityEvent",
    "DataAccessRecord",
    "utcnow",
]
