from dataclasses import replace

import pytest

from tripwire.db import get_engine, reset_engine
from tripwire_rules import (
    DetectionPolicy,
    EventCategory,
    RequestSnapshot,
    Severity,
    check_slow_request,
    check_user_agent,
    run_pre_checks,
    sensitive_area,
)

POLICY = DetectionPolicy()


def test_severity_is_ordered():
    assert Severity.LOW < Severity.MEDIUM < Severity.HIGH
    assert max([Severity.MEDIUM, Severity.HIGH, Severity.LOW]) is Severity.HIGH


def test_pre_checks_run_in_order():
    snap = RequestSnapshot(path="/search", method="GET", query="q=../../x", user_agent="nikto/2.5")
    findings = run_pre_checks(snap, POLICY)
    assert [f.category for f in findings] == [
        EventCategory.MALICIOUS_URL_PATTERN,
        EventCategory.SECURITY_SCANNER_USER_AGENT,
    ]
    assert findings[0].detail == "Suspicious pattern '../' (path_traversal) detected in request"


def test_pre_checks_on_clean_request():
    snap = RequestSnapshot(path="/", method="GET", user_agent="Mozilla/5.0 (Windows NT 10.0) Firefox/121.0")
    assert run_pre_checks(snap, POLICY) == []


def _broken(snapshot, policy):
    raise RuntimeError("stage exploded")


def test_failing_stage_is_reported_and_later_stages_still_run():
    snap = RequestSnapshot(path="/", method="GET", user_agent="sqlmap/1.7")
    failed = []
    findings = run_pre_checks(
        snap, POLICY, (_broken, check_user_agent), on_error=lambda stage, exc: failed.append((stage, str(exc)))
    )
    assert failed == [(_broken, "stage exploded")]
    assert [f.category for f in findings] == [EventCategory.SECURITY_SCANNER_USER_AGENT]


def test_failing_stage_propagates_without_handler():
    snap = RequestSnapshot(path="/", method="GET")
    with pytest.raises(RuntimeError, match="stage exploded"):
        run_pre_checks(snap, POLICY, (_broken,))


def test_slow_request_is_strictly_over_threshold():
    snap = RequestSnapshot(path="/reports", method="GET")
    assert check_slow_request(10.0, snap, POLICY) is None
    f = check_slow_request(10.01, snap, POLICY)
    assert f.category == EventCategory.SLOW_REQUEST
    assert f.severity == Severity.MEDIUM
    assert f.detail == "Request to /reports took 10.01 seconds"

    fast = replace(POLICY, slow_request_threshold_s=0.5)
    assert check_slow_request(0.75, snap, fast) is not None


def test_sensitive_area_tags():
    assert sensitive_area("/admin", POLICY) == "admin"
    assert sensitive_area("/Admin/users/7", POLICY) == "admin"
    assert sensitive_area("/api/v1/orders", POLICY) == "api"
    assert sensitive_area("/settings/", POLICY) == "settings"
    assert sensitive_area("/apiary", POLICY) is None
    assert sensitive_area("/", POLICY) is None

    custom = replace(POLICY, sensitive_paths=("/billing/invoices",))
    assert sensitive_area("/billing/invoices/9", custom) == "billing/invoices"


def test_engine_is_cached_until_reset():
    reset_engine()
    a = get_engine()
    assert get_engine() is a
    reset_engine()
    b = get_engine()
    assert b is not a
    reset_engine()
