# tripwire/db_models.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


class SecurityEventRecord(Base):
    __tablename__ = "security_events"

    id = Column(Integer, primary_key=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    # capture time of the event itself (not the row insert)
    event_ts = Column(DateTime(timezone=True), nullable=False, index=True)

    category = Column(String(64), nullable=False, index=True)
    severity = Column(String(16), nullable=False, index=True)
    detail = Column(Text, nullable=True)

    request_path = Column(Text, nullable=True)
    http_method = Column(String(16), nullable=True)
    client_ip = Column(String(128), nullable=True, index=True)
    user_agent = Column(Text, nullable=True)
    user_id = Column(String(256), nullable=True, index=True)

    matched_value = Column(Text, nullable=True)
    field = Column(String(256), nullable=True)


class DataAccessAuditRecord(Base):
    __tablename__ = "data_access_audit"

    id = Column(Integer, primary_key=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    event_ts = Column(DateTime(timezone=True), nullable=False, index=True)
    user_id = Column(String(256), nullable=False, index=True)
    area = Column(String(64), nullable=False)
    path = Column(Text, nullable=False)
    method = Column(String(16), nullable=False)
    status_code = Column(Integer, nullable=True)
