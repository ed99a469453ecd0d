# tripwire/db.py
from __future__ import annotations

import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from tripwire.config.paths import ensure_runtime_dirs
from tripwire.db_models import Base


_ENGINE: Optional[Engine] = None


def _sqlite_url() -> str:
    return f"sqlite:///{(ensure_runtime_dirs() / 'tripwire.sqlite3').as_posix()}"


def _db_url() -> str:
    url = os.getenv("TW_DB_URL")
    if url:
        return url
    return _sqlite_url()


def make_engine(url: str) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, future=True, pool_pre_ping=True, connect_args=connect_args)
    Base.metadata.create_all(bind=engine)
    return engine


def get_engine(url: Optional[str] = None) -> Engine:
    """Process-wide engine for TW_DB_URL (or sqlite under TW_STATE_DIR); explicit url bypasses the cache."""
    global _ENGINE
    if url:
        return make_engine(url)
    if _ENGINE is None:
        _ENGINE = make_engine(_db_url())
    return _ENGINE


def reset_engine() -> None:
    global _ENGINE
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
