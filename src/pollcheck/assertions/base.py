"""Base data structures for the assertion system."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from pollcheck.errors import AssertionFailure, AssertionTimeout, TargetNotFound

if TYPE_CHECKING:
    from pollcheck.assertions.policies import AssertionPolicy


class _NotFound:
    """Signal returned by a remote check when the target cannot be located."""

    _instance: _NotFound | None = None

    def __new__(cls) -> _NotFound:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_FOUND"

    def __bool__(self) -> bool:
        return False


NOT_FOUND = _NotFound()


class AssertionState(str, Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    RETRY_SCHEDULED = "retry_scheduled"
    PASSED = "passed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {AssertionState.PASSED, AssertionState.FAILED, AssertionState.TIMED_OUT}
)


@dataclass
class Assertion:
    """A single bounded check of an observed value against a policy.

    Attributes:
        target: Opaque handle of the remote entity, ``None`` if it was not found.
        policy: Comparator and expected value.
        negate: Invert whether "condition holds" counts as a pass.
        timeout_ms: Retry budget; ``None`` falls back to the engine settings.
        poll_interval_ms: Delay between polls; ``None`` falls back to the
            engine settings.
        description: Human label of the target, e.g. a CSS selector.
        subject: What is being inspected, used in messages; ``None`` falls
            back to the engine settings.
    """

    target: Any
    policy: AssertionPolicy
    negate: bool = False
    timeout_ms: int | None = None
    poll_interval_ms: int | None = None
    description: str = ""
    subject: str | None = None
    state: AssertionState = AssertionState.PENDING
    elapsed_ms: int = 0
    retries: int = 0
    actual: Any = None
    message_parts: list[str] = field(default_factory=list)

    @property
    def expected_phrase(self) -> str:
        phrase = self.policy.describe()
        return f"not {phrase}" if self.negate else phrase


@dataclass(frozen=True)
class AssertionOutcome:
    """Terminal result of evaluating one assertion."""

    passed: bool
    timed_out: bool
    elapsed_ms: int
    message_parts: tuple[str, ...]
    state: AssertionState
    not_found: bool = False
    retries: int = 0
    actual: Any = None
    expected: str = ""

    @property
    def message(self) -> str:
        return "".join(self.message_parts)

    def to_failure(self) -> AssertionFailure | None:
        """Build the error recorded for a failed outcome, ``None`` if it passed."""
        if self.passed:
            return None

        if self.not_found:
            cls: type[AssertionFailure] = TargetNotFound
        elif self.timed_out:
            cls = AssertionTimeout
        else:
            cls = AssertionFailure

        return cls(
            self.message,
            expected=self.expected,
            actual=self.actual,
            elapsed_ms=self.elapsed_ms,
        )
