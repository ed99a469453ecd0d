from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Type

from .sanitize import prevent_log_injection
from .types import EventCategory, Finding, Severity


class SecurityError(Exception):
    """A security policy was violated while handling the request."""


class UnauthorizedAccessError(PermissionError):
    """The caller reached something it is not allowed to touch."""


class InvalidOperationError(RuntimeError):
    """An operation was attempted in a state that does not allow it."""


class ArgumentError(ValueError):
    """Bad input to an operation. Never treated as security-relevant."""


@dataclass(frozen=True)
class ExceptionRule:
    kind: Type[BaseException]
    category: EventCategory
    severity: Severity = Severity.HIGH
    # match the type itself, not subclasses
    exact: bool = False

    def matches(self, exc: BaseException) -> bool:
        if self.exact:
            return type(exc) is self.kind
        return isinstance(exc, self.kind)


DEFAULT_RULES: Tuple[ExceptionRule, ...] = (
    ExceptionRule(SecurityError, EventCategory.SECURITY_EXCEPTION),
    ExceptionRule(UnauthorizedAccessError, EventCategory.SECURITY_EXCEPTION),
    ExceptionRule(PermissionError, EventCategory.SECURITY_EXCEPTION),
    ExceptionRule(InvalidOperationError, EventCategory.SECURITY_EXCEPTION, exact=True),
)


@dataclass(frozen=True)
class ExceptionClassifier:
    """
    Closed, ordered set of exception kinds that count as security signals.

    Anything not covered (ValueError/ArgumentError included) classifies to
    None. InvalidOperationError matches by exact type only; the other kinds
    also cover their subclasses. Only Exception subclasses are considered;
    cancellation and other BaseExceptions are never classified.
    """

    rules: Tuple[ExceptionRule, ...] = DEFAULT_RULES

    def extend(self, *rules: ExceptionRule) -> "ExceptionClassifier":
        return ExceptionClassifier(rules=self.rules + tuple(rules))

    def rule_for(self, exc: BaseException) -> Optional[ExceptionRule]:
        if not isinstance(exc, Exception):
            return None
        for rule in self.rules:
            if rule.matches(exc):
                return rule
        return None

    def classify(self, exc: BaseException) -> Optional[Finding]:
        rule = self.rule_for(exc)
        if rule is None:
            return None
        kind = prevent_log_injection(type(exc).__name__, max_len=128)
        return Finding(
            category=rule.category,
            severity=rule.severity,
            detail=f"Security-related exception occurred: {kind}",
            matched_value=kind,
        )


DEFAULT_CLASSIFIER = ExceptionClassifier()


def classify_exception(
    exc: BaseException, classifier: ExceptionClassifier = DEFAULT_CLASSIFIER
) -> Optional[Finding]:
    return classifier.classify(exc)
