from __future__ import annotations

import os
import sys
from typing import Optional

from loguru import logger

DEFAULT_LOG_LEVEL = "INFO"


def _resolve_level(level: Optional[str]) -> str:
    name = (level or os.getenv("TW_LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
    try:
        logger.level(name)
    except ValueError:
        return DEFAULT_LOG_LEVEL
    return name


def configure_logging(level: Optional[str] = None) -> str:
    """
    Route all tripwire logs to stdout as one JSON object per line.

    level comes from TripwireConfig.log_level (TW_LOG_LEVEL); an unknown level
    name falls back to INFO instead of failing startup. Security events and
    audit records travel in record["extra"] (logger.bind), so they land in the
    JSON next to time/level/message. Returns the level actually applied.
    """
    applied = _resolve_level(level)
    logger.remove()
    logger.add(
        sys.stdout,
        level=applied,
        serialize=True,
        backtrace=False,
        diagnose=False,
    )
    if level and applied != level.strip().upper():
        logger.warning("unknown log level {!r}, using {}", level, applied)
    return applied
