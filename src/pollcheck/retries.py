"""Whole-test retry bookkeeping consulted before counting a failure."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class RetryRegistry(Protocol):
    def should_retry_test(self, name: str) -> bool: ...


class SuiteRetries:
    """Tracks how many times each test has been retried.

    The suite scheduler owns the writes (``increment_test_retries_count``);
    reporters only ask ``should_retry_test``.
    """

    def __init__(self, retries: int = 0):
        if retries < 0:
            raise ValueError(f"retries must be >= 0, got {retries}")
        self.retries = retries
        self.test_retries_count: dict[str, int] = {}

    def increment_test_retries_count(self, name: str) -> int:
        self.test_retries_count[name] = self.test_retries_count.get(name, 0) + 1
        return self.test_retries_count[name]

    def should_retry_test(self, name: str) -> bool:
        if self.retries == 0:
            return False
        return self.test_retries_count.get(name, 0) < self.retries
