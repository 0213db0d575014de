"""In-memory record of assertion outcomes and counts for one test run."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class TestCase:
    module: str
    test_name: str
    group: str = ""

    __test__ = False

    @property
    def key(self) -> str:
        return f"{self.module}/{self.test_name}"


@dataclass(frozen=True)
class RunContext:
    """The test case being run plus per-context output overrides."""

    test_case: TestCase
    unit_tests_mode: bool | None = None


@dataclass(frozen=True)
class AssertionRecord:
    """One entry of the assertion audit log."""

    message: str
    failure: bool = False
    stack_trace: str = ""
    full_msg: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "failure": self.failure,
            "stackTrace": self.stack_trace,
            "fullMsg": self.full_msg or self.message,
        }


@dataclass
class TestResult:
    """Counts and logs of a single test case."""

    test_case: TestCase
    passed: int = 0
    failed: int = 0
    errors: int = 0
    skipped: int = 0
    last_error: BaseException | None = None
    assertions: list[AssertionRecord] = field(default_factory=list)
    screenshots: list[str] = field(default_factory=list)
    elapsed_ms: int = 0
    started_at: float = 0.0

    __test__ = False

    @property
    def tests(self) -> int:
        return len(self.assertions)


def _has_activity(result: TestResult) -> bool:
    return bool(
        result.passed
        or result.failed
        or result.errors
        or result.skipped
        or result.assertions
        or result.screenshots
        or result.last_error is not None
    )


def _error_to_dict(err: BaseException | None) -> dict[str, str] | None:
    if err is None:
        return None
    return {"name": type(err).__name__, "message": str(err)}


@dataclass(frozen=True)
class TestExport:
    test_name: str
    module: str
    group: str
    passed: int
    failed: int
    errors: int
    skipped: int
    assertions: tuple[AssertionRecord, ...]
    screenshots: tuple[str, ...]
    last_error: BaseException | None
    elapsed_ms: int

    __test__ = False

    @property
    def tests(self) -> int:
        return len(self.assertions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "testName": self.test_name,
            "module": self.module,
            "group": self.group,
            "passed": self.passed,
            "failed": self.failed,
            "errors": self.errors,
            "skipped": self.skipped,
            "tests": self.tests,
            "assertions": [a.to_dict() for a in self.assertions],
            "screenshots": list(self.screenshots),
            "lastError": _error_to_dict(self.last_error),
            "elapsedMs": self.elapsed_ms,
        }


@dataclass(frozen=True)
class ExportSnapshot:
    """Immutable view of a finished (or in-progress) run."""

    modules: Mapping[str, TestExport]
    error_messages: tuple[str, ...]
    total_elapsed_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "modules": {key: t.to_dict() for key, t in self.modules.items()},
            "errorMessages": list(self.error_messages),
            "totalElapsedMs": self.total_elapsed_ms,
        }


class ResultLedger:
    """Single writer of all TestResults of a run.

    Exactly one result is current at any time; ``set_current_test`` is the
    only way to switch. Counters may be suppressed by the caller, the
    ``assertions`` and ``screenshots`` logs never are.
    """

    def __init__(
        self,
        initial_test: TestCase,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self._results: dict[str, TestResult] = {}
        self.error_messages: list[str] = []
        self.total_elapsed_ms = 0
        self._suite_started_at = clock()
        self._current = self._result_for(initial_test)

    def _result_for(self, test_case: TestCase) -> TestResult:
        result = self._results.get(test_case.key)
        if result is None:
            result = TestResult(test_case=test_case, started_at=self._clock())
            self._results[test_case.key] = result
        return result

    @property
    def current_test(self) -> TestCase:
        return self._current.test_case

    @property
    def current_result(self) -> TestResult:
        return self._current

    @property
    def results(self) -> Mapping[str, TestResult]:
        return MappingProxyType(self._results)

    @property
    def current_test_case_passed(self) -> bool:
        return self._current.failed == 0 and self._current.errors == 0

    def tests_passed(self) -> bool:
        return all(r.failed == 0 and r.errors == 0 for r in self._results.values())

    def set_current_test(self, test_case: TestCase) -> TestResult:
        self._current = self._result_for(test_case)
        self._current.started_at = self._clock()
        return self._current

    def increment_passed_count(self) -> ResultLedger:
        self._current.passed += 1
        return self

    def increment_failed_count(self, should_count: bool = True) -> ResultLedger:
        if should_count:
            self._current.failed += 1
        return self

    def increment_error_count(self, should_count: bool = True) -> ResultLedger:
        if should_count:
            self._current.errors += 1
        return self

    def increment_skipped_count(self) -> ResultLedger:
        self._current.skipped += 1
        return self

    def subtract_passed_count(self, count: int) -> ResultLedger:
        """Discount earlier passed assertions, e.g. after a failing hook."""
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        self._current.passed = max(0, self._current.passed - count)
        return self

    def set_last_error(self, err: BaseException) -> ResultLedger:
        self._current.last_error = err
        return self

    def log_assertion(self, record: AssertionRecord) -> ResultLedger:
        self._current.assertions.append(record)
        return self

    def log_screenshot_file(
        self, file_name: str, test_case: TestCase | None = None
    ) -> ResultLedger:
        """Append to the current result, or to ``test_case``'s if given.

        Screenshots complete asynchronously, so the test that requested one
        may no longer be current when it is logged.
        """
        result = self._current if test_case is None else self._result_for(test_case)
        result.screenshots.append(file_name)
        return self

    def add_error_message(self, message: str) -> ResultLedger:
        self.error_messages.append(message)
        return self

    def set_elapsed_time(self) -> int:
        elapsed = int(round((self._clock() - self._current.started_at) * 1000))
        self._current.elapsed_ms = elapsed
        return elapsed

    def set_total_elapsed_time(self) -> int:
        self.total_elapsed_ms = int(round((self._clock() - self._suite_started_at) * 1000))
        return self.total_elapsed_ms

    def export(self) -> ExportSnapshot:
        modules = {
            key: TestExport(
                test_name=r.test_case.test_name,
                module=r.test_case.module,
                group=r.test_case.group,
                passed=r.passed,
                failed=r.failed,
                errors=r.errors,
                skipped=r.skipped,
                assertions=tuple(r.assertions),
                screenshots=tuple(r.screenshots),
                last_error=r.last_error,
                elapsed_ms=r.elapsed_ms,
            )
            for key, r in self._results.items()
            if r.test_case.test_name or _has_activity(r)
        }
        return ExportSnapshot(
            modules=MappingProxyType(modules),
            error_messages=tuple(self.error_messages),
            total_elapsed_ms=self.total_elapsed_ms,
        )
