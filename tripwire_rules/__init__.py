# tripwire_rules/__init__.py
from __future__ import annotations

from .checks import (
    DEFAULT_SENSITIVE_PATHS,
    DEFAULT_SLOW_REQUEST_SECONDS,
    PRE_CHECKS,
    DetectionPolicy,
    check_slow_request,
    check_url,
    check_user_agent,
    run_pre_checks,
    sensitive_area,
)
from .exceptions import (
    DEFAULT_CLASSIFIER,
    ArgumentError,
    ExceptionClassifier,
    ExceptionRule,
    InvalidOperationError,
    SecurityError,
    UnauthorizedAccessError,
    classify_exception,
)
from .sanitize import prevent_log_injection
from .signatures import (
    DEFAULT_REGISTRY,
    MatchResult,
    PatternRegistry,
    Signature,
    build_default_registry,
    match_body_threat,
    match_body_threats,
    match_url_threat,
)
from .types import (
    DataAccessRecord,
    EventCategory,
    Finding,
    RequestSnapshot,
    SecurityEvent,
    Severity,
)
from .user_agent import DEFAULT_HEALTH_PATHS, Classification, UserAgentTier, classify_user_agent

__all__ = [
    # types
    "Severity",
    "EventCategory",
    "RequestSnapshot",
    "Finding",
    "SecurityEvent",
    "DataAccessRecord",
    # registries
    "Signature",
    "MatchResult",
    "PatternRegistry",
    "DEFAULT_REGISTRY",
    "build_default_registry",
    "match_url_threat",
    "match_body_threat",
    "match_body_threats",
    # user agents
    "UserAgentTier",
    "Classification",
    "classify_user_agent",
    "DEFAULT_HEALTH_PATHS",
    # exceptions
    "SecurityError",
    "UnauthorizedAccessError",
    "InvalidOperationError",
    "ArgumentError",
    "ExceptionRule",
    "ExceptionClassifier",
    "DEFAULT_CLASSIFIER",
    "classify_exception",
    # stages
    "DetectionPolicy",
    "PRE_CHECKS",
    "DEFAULT_SENSITIVE_PATHS",
    "DEFAULT_SLOW_REQUEST_SECONDS",
    "check_url",
    "check_user_agent",
    "check_slow_request",
    "run_pre_checks",
    "sensitive_area",
    "prevent_log_injection",
]
