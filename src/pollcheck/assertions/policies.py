"""Predicate kinds (equals, contains, match) composed into the poll loop."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class AssertionPolicy(Protocol):
    """Comparator plus expected value, applied to each observed value."""

    verb: str

    def matches(self, actual: Any) -> bool: ...

    def describe(self) -> str: ...


@dataclass(frozen=True)
class EqualsPolicy:
    expected: Any
    verb: str = "equal"

    def matches(self, actual: Any) -> bool:
        return actual == self.expected

    def describe(self) -> str:
        return f"{self.verb} '{self.expected}'"


@dataclass(frozen=True)
class ContainsPolicy:
    expected: str
    verb: str = "contain"

    def matches(self, actual: Any) -> bool:
        if actual is None:
            return False
        return self.expected in str(actual)

    def describe(self) -> str:
        return f"{self.verb} '{self.expected}'"


@dataclass(frozen=True)
class MatchPolicy:
    """Regex search, same semantics as ``re.search`` on the observed text."""

    pattern: str | re.Pattern[str]
    verb: str = "match"

    @property
    def expected(self) -> str:
        if isinstance(self.pattern, re.Pattern):
            return self.pattern.pattern
        return self.pattern

    def matches(self, actual: Any) -> bool:
        if actual is None:
            return False
        return re.search(self.pattern, str(actual)) is not None

    def describe(self) -> str:
        return f"{self.verb} '{self.expected}'"


_POLICIES: dict[str, type] = {
    "equals": EqualsPolicy,
    "equal": EqualsPolicy,
    "contains": ContainsPolicy,
    "contain": ContainsPolicy,
    "match": MatchPolicy,
    "matches": MatchPolicy,
}


def get_policy(comparator: str, expected: Any) -> AssertionPolicy:
    """Build a policy from its comparator name.

    Raises ValueError for unknown comparators.
    """
    try:
        cls = _POLICIES[comparator]
    except KeyError:
        raise ValueError(f"Unknown comparator: '{comparator}'") from None
    return cls(expected)
