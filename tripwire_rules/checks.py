from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from .exceptions import DEFAULT_CLASSIFIER, ExceptionClassifier
from .sanitize import prevent_log_injection
from .signatures import DEFAULT_REGISTRY, PatternRegistry, match_url_threat
from .types import EventCategory, Finding, RequestSnapshot, Severity
from .user_agent import DEFAULT_HEALTH_PATHS, classify_user_agent, path_in

DEFAULT_SENSITIVE_PATHS: Tuple[str, ...] = (
    "/admin",
    "/account",
    "/profile",
    "/settings",
    "/api",
    "/dashboard",
)

DEFAULT_SLOW_REQUEST_SECONDS = 10.0


@dataclass(frozen=True)
class DetectionPolicy:
    """Everything the pure checks need, frozen and shared across requests."""

    registry: PatternRegistry = DEFAULT_REGISTRY
    health_paths: Tuple[str, ...] = DEFAULT_HEALTH_PATHS
    sensitive_paths: Tuple[str, ...] = DEFAULT_SENSITIVE_PATHS
    slow_request_threshold_s: float = DEFAULT_SLOW_REQUEST_SECONDS
    classifier: ExceptionClassifier = DEFAULT_CLASSIFIER


PreCheck = Callable[[RequestSnapshot, DetectionPolicy], List[Finding]]


def check_url(snapshot: RequestSnapshot, policy: DetectionPolicy) -> List[Finding]:
    m = match_url_threat(snapshot.path, snapshot.query, policy.registry)
    if not m:
        return []
    return [
        Finding(
            category=EventCategory.MALICIOUS_URL_PATTERN,
            severity=Severity.HIGH,
            detail=f"Suspicious pattern '{m.signature}' ({m.family}) detected in request",
            matched_value=m.signature,
        )
    ]


def check_user_agent(snapshot: RequestSnapshot, policy: DetectionPolicy) -> List[Finding]:
    c = classify_user_agent(snapshot.user_agent, snapshot.path, policy.registry, policy.health_paths)
    return [c.finding] if c.finding is not None else []


# Order matters: events are emitted in this order.
PRE_CHECKS: Tuple[PreCheck, ...] = (check_url, check_user_agent)


StageErrorHandler = Callable[[PreCheck, Exception], None]


def run_pre_checks(
    snapshot: RequestSnapshot,
    policy: DetectionPolicy,
    stages: Iterable[PreCheck] = PRE_CHECKS,
    on_error: Optional[StageErrorHandler] = None,
) -> List[Finding]:
    """
    Run stages in order and concatenate their findings.

    With on_error set, a stage that raises is reported there and skipped, and
    the remaining stages still run; without it the error propagates.
    """
    findings: List[Finding] = []
    for stage in stages:
        try:
            findings.extend(stage(snapshot, policy))
        except Exception as exc:
            if on_error is None:
                raise
            on_error(stage, exc)
    return findings


def check_slow_request(
    elapsed_s: float, snapshot: RequestSnapshot, policy: DetectionPolicy
) -> Optional[Finding]:
    if elapsed_s <= policy.slow_request_threshold_s:
        return None
    return Finding(
        category=EventCategory.SLOW_REQUEST,
        severity=Severity.MEDIUM,
        detail=f"Request to {prevent_log_injection(snapshot.path, max_len=256)} took {elapsed_s:.2f} seconds",
    )


def sensitive_area(path: str, policy: DetectionPolicy) -> Optional[str]:
    """Area tag ("admin", "api", ...) when path falls under a sensitive prefix."""
    prefix = path_in(path, policy.sensitive_paths)
    if prefix is None:
        return None
    return prefix.strip("/") or prefix
