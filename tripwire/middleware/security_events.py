from __future__ import annotations

from typing import Iterable, List, Optional

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from tripwire.config import TripwireConfig, load_config
from tripwire.metrics import (
    DATA_ACCESS_RECORDS,
    REQUEST_LATENCY_SECONDS,
    SECURITY_EVENTS,
    SINK_ERRORS,
)
from tripwire.request_context import PrincipalResolver, resolve_principal, safe_principal, snapshot
from tripwire.sinks import SecurityEventSink, build_sink
from tripwire.telemetry import Clock, RequestTimer
from tripwire_rules import (
    PRE_CHECKS,
    DetectionPolicy,
    Finding,
    RequestSnapshot,
    check_slow_request,
    run_pre_checks,
    sensitive_area,
)
from tripwire_rules.checks import PreCheck

from .form_scanner import FormBodyScanner


class SecurityEventMiddleware(BaseHTTPMiddleware):
    """
    Passive request inspector. Per request:

      pre-checks   URL/query signatures, user-agent tier
      body         form field XSS/SQLi (state-changing form posts only)
      invoke       call_next, timed
      post-checks  slow request, sensitive-area audit (always, even on error)
      on error     security-relevant exception kinds are reported, then the
                   exception is re-raised untouched

    Middleware MUST stay transparent: it never blocks, rewrites or delays a
    response on account of what it found, and sink trouble never reaches the
    client.
    """

    def __init__(
        self,
        app: ASGIApp,
        sink: Optional[SecurityEventSink] = None,
        config: Optional[TripwireConfig] = None,
        principal_resolver: Optional[PrincipalResolver] = None,
        policy: Optional[DetectionPolicy] = None,
        pre_checks: Iterable[PreCheck] = PRE_CHECKS,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(app)
        self.config = config or load_config()
        self.policy = policy or self.config.policy()
        self.sink = sink if sink is not None else build_sink(self.config)
        self.principal_resolver = principal_resolver or resolve_principal
        self.pre_checks = tuple(pre_checks)
        self.clock = clock
        self.form_scanner: Optional[FormBodyScanner] = (
            FormBodyScanner(self.policy, self.config.max_form_bytes)
            if self.config.form_scan_enabled
            else None
        )

    # -----------------------------
    # Emission (isolated from the request)
    # -----------------------------

    def _emit(self, snap: RequestSnapshot, finding: Finding) -> None:
        try:
            self.sink.on_suspicious_activity(
                snap,
                finding.category,
                finding.detail,
                finding.matched_value,
                finding.severity,
            )
            SECURITY_EVENTS.labels(category=finding.category.value, severity=finding.severity.value).inc()
        except Exception:
            SINK_ERRORS.inc()
            logger.opt(exception=True).error(
                "security sink failed category={} path={}", finding.category.value, snap.path
            )

    def _emit_detached(self, snap: RequestSnapshot, finding: Finding) -> None:
        try:
            self.sink.on_suspicious_activity_detached(
                finding.category,
                finding.detail,
                finding.field,
                finding.severity,
                path=snap.path,
                method=snap.method,
                client_ip=snap.client_ip,
                user_agent=snap.user_agent,
                user_id=snap.user_id,
                matched_value=finding.matched_value,
            )
            SECURITY_EVENTS.labels(category=finding.category.value, severity=finding.severity.value).inc()
        except Exception:
            SINK_ERRORS.inc()
            logger.opt(exception=True).error(
                "security sink failed category={} path={}", finding.category.value, snap.path
            )

    def _log_data_access(self, user_id: str, area: str, snap: RequestSnapshot, status: Optional[int]) -> None:
        try:
            self.sink.log_data_access(user_id, area, snap.path, snap.method, status)
            DATA_ACCESS_RECORDS.labels(area=area).inc()
        except Exception:
            SINK_ERRORS.inc()
            logger.opt(exception=True).error("security sink failed data_access path={}", snap.path)

    # -----------------------------
    # Stages
    # -----------------------------

    def _pre_check(self, snap: RequestSnapshot) -> List[Finding]:
        def failed(stage: PreCheck, exc: Exception) -> None:
            logger.opt(exception=exc).error(
                "pre-check {} failed path={}", getattr(stage, "__name__", stage), snap.path
            )

        return run_pre_checks(snap, self.policy, self.pre_checks, on_error=failed)

    async def _scan_body(self, request: Request, snap: RequestSnapshot) -> None:
        if self.form_scanner is None or not self.form_scanner.applies(request):
            return
        try:
            findings = await self.form_scanner.scan(request)
        except Exception:
            logger.opt(exception=True).warning("form scan failed path={}", snap.path)
            return
        for f in findings:
            self._emit_detached(snap, f)

    def _classify(self, snap: RequestSnapshot, exc: Exception) -> None:
        try:
            finding = self.policy.classifier.classify(exc)
        except Exception:
            logger.opt(exception=True).error("exception classifier failed path={}", snap.path)
            return
        if finding is None:
            logger.debug("passing through {} path={}", type(exc).__name__, snap.path)
            return
        logger.warning("security-related exception {} path={}", type(exc).__name__, snap.path)
        self._emit(snap, finding)

    def _post_check(self, snap: RequestSnapshot, elapsed_s: float, status: Optional[int]) -> None:
        try:
            REQUEST_LATENCY_SECONDS.observe(elapsed_s)

            slow = check_slow_request(elapsed_s, snap, self.policy)
            if slow is not None:
                self._emit(snap, slow)

            area = sensitive_area(snap.path, self.policy)
            if area is not None and snap.user_id:
                self._log_data_access(snap.user_id, area, snap, status)
        except Exception:
            logger.opt(exception=True).error("post-check failed path={}", snap.path)

    def _refresh_principal(self, request: Request, snap: RequestSnapshot) -> RequestSnapshot:
        # auth may only have been resolved downstream of this middleware
        uid = safe_principal(request, self.principal_resolver)
        return snap.with_user(uid or snap.user_id)

    # -----------------------------
    # Dispatch
    # -----------------------------

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self.config.enabled:
            return await call_next(request)

        snap = snapshot(request, self.principal_resolver)

        for finding in self._pre_check(snap):
            self._emit(snap, finding)

        await self._scan_body(request, snap)

        timer = RequestTimer(self.clock)
        status: Optional[int] = None
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        except Exception as exc:
            timer.stop()
            snap = self._refresh_principal(request, snap)
            self._classify(snap, exc)
            raise
        finally:
            # also runs on cancellation; must never raise over the request outcome
            elapsed = timer.stop()
            self._post_check(self._refresh_principal(request, snap), elapsed, status)
