from __future__ import annotations

from typing import List

from loguru import logger
from starlette.requests import ClientDisconnect, Request

from tripwire.metrics import FORM_SCAN_SKIPPED
from tripwire_rules import (
    DetectionPolicy,
    EventCategory,
    Finding,
    Severity,
    match_body_threats,
    prevent_log_injection,
)

STATE_CHANGING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

_DETAIL = {
    EventCategory.XSS_PATTERN_DETECTION: "XSS pattern detected in field {}",
    EventCategory.SQL_INJECTION_PATTERN_DETECTION: "SQL injection pattern detected in field {}",
}


def is_form_request(request: Request) -> bool:
    if request.method.upper() not in STATE_CHANGING_METHODS:
        return False
    ctype = (request.headers.get("content-type") or "").split(";", 1)[0].strip().lower()
    return ctype in FORM_CONTENT_TYPES


class FormBodyScanner:
    """
    Scans form field values of state-changing requests for XSS / SQLi.

    Buffer-and-rewind: the body is read once with request.body(). Starlette
    keeps it on the request and replays it to the downstream app, and the
    form is parsed from that cached copy, so the handler sees the exact bytes
    the client sent.
    """

    def __init__(self, policy: DetectionPolicy, max_bytes: int = 1024 * 1024) -> None:
        self.policy = policy
        self.max_bytes = max_bytes

    def applies(self, request: Request) -> bool:
        return is_form_request(request)

    def _skip(self, reason: str, request: Request) -> List[Finding]:
        FORM_SCAN_SKIPPED.labels(reason=reason).inc()
        logger.debug("form scan skipped reason={} path={}", reason, request.url.path)
        return []

    async def scan(self, request: Request) -> List[Finding]:
        declared = (request.headers.get("content-length") or "").strip()
        if declared.isdigit() and int(declared) > self.max_bytes:
            return self._skip("too_large", request)

        try:
            body = await request.body()
        except ClientDisconnect:
            return self._skip("client_disconnect", request)

        if not body:
            return []
        if len(body) > self.max_bytes:
            return self._skip("too_large", request)

        try:
            form = await request.form()
        except Exception:
            logger.opt(exception=True).warning(
                "unparseable form body path={}", prevent_log_injection(request.url.path)
            )
            return self._skip("parse_error", request)

        findings: List[Finding] = []
        try:
            for name, value in form.multi_items():
                if not isinstance(value, str):
                    continue
                findings.extend(self._scan_field(name, value))
        finally:
            await form.close()
        return findings

    def _scan_field(self, name: str, value: str) -> List[Finding]:
        out: List[Finding] = []
        field = prevent_log_injection(name, max_len=128)
        for hit in match_body_threats(value, self.policy.registry):
            out.append(
                Finding(
                    category=hit.category,
                    severity=Severity.HIGH,
                    detail=_DETAIL[hit.category].format(field),
                    matched_value=hit.signature,
                    field=field,
                )
            )
        return out
