# tripwire/sinks/sql.py
from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from tripwire.db import get_engine
from tripwire.db_models import DataAccessAuditRecord, SecurityEventRecord
from tripwire_rules import DataAccessRecord, SecurityEvent

from .base import SecurityEventSink


class SqlSecurityEventSink(SecurityEventSink):
    """
    Persists events into security_events / data_access_audit.

    One short transaction per write; sessions are never shared between
    threads, so concurrent requests are safe as long as the engine is.
    """

    def __init__(self, engine: Optional[Engine] = None) -> None:
        self.engine = engine or get_engine()
        self._Session = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def emit(self, event: SecurityEvent) -> None:
        started = time.time()
        row = SecurityEventRecord(
            event_ts=event.timestamp,
            category=event.category,
            severity=event.severity.value,
            detail=event.detail,
            request_path=event.request_path,
            http_method=event.http_method,
            client_ip=event.client_ip,
            user_agent=event.user_agent,
            user_id=event.user_id,
            matched_value=event.matched_value,
            field=event.field,
        )
        try:
            with self._Session.begin() as db:
                db.add(row)
        except Exception:
            logger.opt(exception=True).error(
                "FAILED to persist security event category={} path={}",
                event.category,
                event.request_path,
            )
            raise
        logger.debug(
            "persisted security event category={} in {}ms",
            event.category,
            int((time.time() - started) * 1000),
        )

    def emit_data_access(self, record: DataAccessRecord) -> None:
        row = DataAccessAuditRecord(
            event_ts=record.timestamp,
            user_id=record.user_id,
            area=record.area,
            path=record.path,
            method=record.method,
            status_code=record.status_code,
        )
        try:
            with self._Session.begin() as db:
                db.add(row)
        except Exception:
            logger.opt(exception=True).error(
                "FAILED to persist data access user={} path={}", record.user_id, record.path
            )
            raise

    def recent_events(self, *, category: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        """Most recent first."""
        stmt = select(SecurityEventRecord)
        if category is not None:
            stmt = stmt.where(SecurityEventRecord.category == category)
        stmt = stmt.order_by(SecurityEventRecord.id.desc()).limit(limit)
        with self._Session() as db:
            rows = db.execute(stmt).scalars().all()
            return [
                {
                    "category": r.category,
                    "severity": r.severity,
                    "detail": r.detail,
                    "request_path": r.request_path,
                    "http_method": r.http_method,
                    "client_ip": r.client_ip,
                    "user_agent": r.user_agent,
                    "user_id": r.user_id,
                    "matched_value": r.matched_value,
                    "field": r.field,
                }
                for r in rows
            ]

    def recent_data_access(self, *, limit: int = 50) -> List[Dict[str, Any]]:
        stmt = select(DataAccessAuditRecord).order_by(DataAccessAuditRecord.id.desc()).limit(limit)
        with self._Session() as db:
            rows = db.execute(stmt).scalars().all()
            return [
                {
                    "user_id": r.user_id,
                    "area": r.area,
                    "path": r.path,
                    "method": r.method,
                    "status_code": r.status_code,
                }
                for r in rows
            ]

    def close(self) -> None:
        self.engine.dispose()
