from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .sanitize import prevent_log_injection
from .signatures import DEFAULT_REGISTRY, PatternRegistry, match_user_agent
from .types import EventCategory, Finding, Severity

DEFAULT_HEALTH_PATHS: tuple[str, ...] = (
    "/health",
    "/healthcheck",
    "/ping",
    "/status",
    "/ready",
    "/metrics",
    # k8s-style liveness and readiness
    "/health/live",
    "/health/ready",
    "/healthz",
    "/readyz",
    "/livez",
)


class UserAgentTier(str, Enum):
    LEGITIMATE = "legitimate"
    SCANNER = "scanner"
    AUTOMATION = "automation"
    MISSING = "missing"
    EXEMPT = "exempt"
    ORDINARY = "ordinary"


@dataclass(frozen=True)
class Classification:
    tier: UserAgentTier
    finding: Optional[Finding] = None
    signature: Optional[str] = None


def path_in(path: str, prefixes: Iterable[str]) -> Optional[str]:
    """Return the first prefix equal to path or owning it as a parent segment."""
    p = path or ""
    for prefix in prefixes:
        base = prefix.rstrip("/")
        if not base:
            continue
        if p.lower() == base.lower() or p.lower().startswith(base.lower() + "/"):
            return prefix
    return None


def classify_user_agent(
    header: Optional[str],
    path: str,
    registry: PatternRegistry = DEFAULT_REGISTRY,
    exempt_paths: Iterable[str] = DEFAULT_HEALTH_PATHS,
) -> Classification:
    """
    Tiered classification, first hit wins:

      1. absent header on a health/readiness path -> exempt, no event
      2. absent header                             -> MissingUserAgent (low)
      3. allowlist (crawlers, previews, monitors)  -> legitimate, no event
      4. security tooling                          -> SecurityScannerUserAgent (high)
      5. generic automation                        -> SuspiciousAutomationUserAgent (medium)
      6. anything else                             -> ordinary, no event
    """
    ua = (header or "").strip()

    if not ua:
        if path_in(path, exempt_paths):
            return Classification(tier=UserAgentTier.EXEMPT)
        return Classification(
            tier=UserAgentTier.MISSING,
            finding=Finding(
                category=EventCategory.MISSING_USER_AGENT,
                severity=Severity.LOW,
                detail="Request without a User-Agent header",
            ),
        )

    allowed = match_user_agent(registry.ua_allow, ua)
    if allowed is not None:
        return Classification(tier=UserAgentTier.LEGITIMATE, signature=allowed.name)

    scanner = match_user_agent(registry.ua_scanner, ua)
    if scanner is not None:
        return Classification(
            tier=UserAgentTier.SCANNER,
            signature=scanner.name,
            finding=Finding(
                category=EventCategory.SECURITY_SCANNER_USER_AGENT,
                severity=Severity.HIGH,
                detail=f"Security tooling user agent '{scanner.name}': {prevent_log_injection(ua, max_len=256)}",
                matched_value=scanner.name,
            ),
        )

    automation = match_user_agent(registry.ua_automation, ua)
    if automation is not None:
        return Classification(
            tier=UserAgentTier.AUTOMATION,
            signature=automation.name,
            finding=Finding(
                category=EventCategory.SUSPICIOUS_AUTOMATION_USER_AGENT,
                severity=Severity.MEDIUM,
                detail=f"Automated client user agent '{automation.name}': {prevent_log_injection(ua, max_len=256)}",
                matched_value=automation.name,
            ),
        )

    return Classification(tier=UserAgentTier.ORDINARY)
