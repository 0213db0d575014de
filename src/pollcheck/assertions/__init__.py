"""Assertion system for polling remotely observed state."""

from pollcheck.assertions.base import (
    NOT_FOUND,
    Assertion,
    AssertionOutcome,
    AssertionState,
)
from pollcheck.assertions.engine import AssertionEngine
from pollcheck.assertions.policies import (
    AssertionPolicy,
    ContainsPolicy,
    EqualsPolicy,
    MatchPolicy,
    get_policy,
)

__all__ = [
    "NOT_FOUND",
    "Assertion",
    "AssertionEngine",
    "AssertionOutcome",
    "AssertionPolicy",
    "AssertionState",
    "ContainsPolicy",
    "EqualsPolicy",
    "MatchPolicy",
    "get_policy",
]
