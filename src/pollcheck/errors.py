"""Error taxonomy for assertion evaluation and result bookkeeping."""

from __future__ import annotations


class PollcheckError(Exception):
    """Base class for errors that end up in the result ledger.

    The three counting flags are ``None`` when unset, which the report
    coordinator treats differently from an explicit ``False``:

    Attributes:
        increment_error_count: Count this error in the totals (unset counts).
        increment_errors_no: Explicitly never count this error.
        detailed_logging: Append a stack trace to the error log (unset logs).
    """

    def __init__(
        self,
        message: str = "",
        *,
        increment_error_count: bool | None = None,
        increment_errors_no: bool | None = None,
        detailed_logging: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.increment_error_count = increment_error_count
        self.increment_errors_no = increment_errors_no
        self.detailed_logging = detailed_logging


class AssertionFailure(PollcheckError):
    """A predicate evaluated false (or negated-true) after exhausting retries."""

    def __init__(
        self,
        message: str = "",
        *,
        expected: str | None = None,
        actual: object = None,
        elapsed_ms: int = 0,
        **flags: bool | None,
    ) -> None:
        super().__init__(message, **flags)
        self.expected = expected
        self.actual = actual
        self.elapsed_ms = elapsed_ms


class AssertionTimeout(AssertionFailure):
    """The poll budget ran out before the condition was met."""


class TargetNotFound(AssertionFailure):
    """The remote lookup could not resolve a target at all."""


class TestError(PollcheckError):
    """Infrastructure error (connection refused, session gone) rather than a failed expectation."""

    __test__ = False


class RemoteCheckError(TestError):
    """The remote check itself failed; never retried as an assertion failure."""
