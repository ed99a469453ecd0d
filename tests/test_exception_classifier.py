import asyncio

import pytest

from tripwire_rules import (
    DEFAULT_CLASSIFIER,
    ArgumentError,
    EventCategory,
    ExceptionRule,
    InvalidOperationError,
    SecurityError,
    Severity,
    UnauthorizedAccessError,
    classify_exception,
)


@pytest.mark.parametrize(
    "exc,name",
    [
        (SecurityError("x"), "SecurityError"),
        (UnauthorizedAccessError("x"), "UnauthorizedAccessError"),
        (PermissionError("x"), "PermissionError"),
        (InvalidOperationError("x"), "InvalidOperationError"),
    ],
)
def test_security_relevant_kinds(exc, name):
    f = classify_exception(exc)
    assert f is not None
    assert f.category == EventCategory.SECURITY_EXCEPTION
    assert f.severity == Severity.HIGH
    assert f.detail == f"Security-related exception occurred: {name}"
    assert f.matched_value == name


def test_subclasses_are_covered():
    class TokenRevoked(SecurityError):
        pass

    f = classify_exception(TokenRevoked())
    assert f is not None
    assert f.matched_value == "TokenRevoked"


@pytest.mark.parametrize(
    "exc",
    [ArgumentError("x"), ValueError("x"), RuntimeError("x"), KeyError("x"), ZeroDivisionError()],
)
def test_other_kinds_are_not_classified(exc):
    assert classify_exception(exc) is None


def test_cancellation_is_never_classified():
    assert classify_exception(asyncio.CancelledError()) is None
    assert classify_exception(KeyboardInterrupt()) is None


def test_extend_adds_rules_without_touching_default():
    clf = DEFAULT_CLASSIFIER.extend(ExceptionRule(LookupError, EventCategory.SECURITY_EXCEPTION, Severity.MEDIUM))
    f = clf.classify(KeyError("tenant"))
    assert f.severity == Severity.MEDIUM
    assert DEFAULT_CLASSIFIER.classify(KeyError("tenant")) is None


def test_invalid_operation_matches_exact_type_only():
    class StaleVersion(InvalidOperationError):
        pass

    assert classify_exception(StaleVersion("x")) is None
    assert classify_exception(InvalidOperationError("x")) is not None


def test_exact_rule_ignores_subclasses():
    rule = ExceptionRule(LookupError, EventCategory.SECURITY_EXCEPTION, exact=True)
    assert rule.matches(LookupError("x"))
    assert not rule.matches(KeyError("x"))
