from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from tripwire_rules import (
    DEFAULT_HEALTH_PATHS,
    DEFAULT_REGISTRY,
    DEFAULT_SENSITIVE_PATHS,
    DEFAULT_SLOW_REQUEST_SECONDS,
    DetectionPolicy,
)

# Anything path-related comes from tripwire.config.paths (one source of truth).
from .paths import STATE_DIR

SINK_BACKENDS = ("log", "sql", "memory")


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_csv(name: str, default: Tuple[str, ...] = ()) -> Tuple[str, ...]:
    v = os.getenv(name)
    if v is None:
        return tuple(default)
    return tuple(s.strip() for s in v.split(",") if s.strip())


@dataclass(frozen=True)
class TripwireConfig:
    enabled: bool = True

    slow_request_threshold_s: float = DEFAULT_SLOW_REQUEST_SECONDS
    sensitive_paths: Tuple[str, ...] = DEFAULT_SENSITIVE_PATHS
    health_paths: Tuple[str, ...] = DEFAULT_HEALTH_PATHS

    form_scan_enabled: bool = True
    max_form_bytes: int = 1024 * 1024

    # "log" | "sql" | "memory"
    sink: str = "log"
    # > 0 puts a bounded queue between the request path and the sink
    sink_queue_size: int = 0

    db_url: str = ""
    state_dir: Path = STATE_DIR
    log_level: str = "INFO"

    ua_allow_extra: Tuple[str, ...] = ()
    ua_scanner_extra: Tuple[str, ...] = ()
    ua_automation_extra: Tuple[str, ...] = ()

    def policy(self) -> DetectionPolicy:
        registry = DEFAULT_REGISTRY
        if self.ua_allow_extra or self.ua_scanner_extra or self.ua_automation_extra:
            registry = registry.extend(
                ua_allow=self.ua_allow_extra,
                ua_scanner=self.ua_scanner_extra,
                ua_automation=self.ua_automation_extra,
            )
        return DetectionPolicy(
            registry=registry,
            health_paths=self.health_paths,
            sensitive_paths=self.sensitive_paths,
            slow_request_threshold_s=self.slow_request_threshold_s,
        )


def load_config() -> TripwireConfig:
    enabled = _env_bool("TW_ENABLED", True)

    slow = _env_float("TW_SLOW_REQUEST_SECONDS", DEFAULT_SLOW_REQUEST_SECONDS)
    sensitive = _env_csv("TW_SENSITIVE_PATHS", DEFAULT_SENSITIVE_PATHS)
    health = _env_csv("TW_HEALTH_PATHS", DEFAULT_HEALTH_PATHS)

    form_scan = _env_bool("TW_FORM_SCAN_ENABLED", True)
    max_form = _env_int("TW_MAX_FORM_BYTES", 1024 * 1024)

    sink = os.getenv("TW_SINK", "log").strip().lower()
    queue_size = _env_int("TW_SINK_QUEUE_SIZE", 0)

    db_url = os.getenv("TW_DB_URL", "").strip()
    log_level = os.getenv("TW_LOG_LEVEL", "INFO").strip().upper() or "INFO"

    if slow <= 0:
        slow = DEFAULT_SLOW_REQUEST_SECONDS
    if max_form < 0:
        max_form = 0
    if sink not in SINK_BACKENDS:
        sink = "log"
    if queue_size < 0:
        queue_size = 0

    return TripwireConfig(
        enabled=enabled,
        slow_request_threshold_s=slow,
        sensitive_paths=sensitive,
        health_paths=health,
        form_scan_enabled=form_scan,
        max_form_bytes=max_form,
        sink=sink,
        sink_queue_size=queue_size,
        db_url=db_url,
        state_dir=STATE_DIR,
        log_level=log_level,
        ua_allow_extra=_env_csv("TW_UA_ALLOW"),
        ua_scanner_extra=_env_csv("TW_UA_SCANNER"),
        ua_automation_extra=_env_csv("TW_UA_AUTOMATION"),
    )
