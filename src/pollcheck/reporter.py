"""Routes assertion outcomes and test lifecycle events into the result ledger."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import typer

from pollcheck.assertions.base import AssertionOutcome
from pollcheck.config import Settings, is_child_process, worker_label
from pollcheck.formatting import (
    error_to_stack_trace,
    format_elapsed_time,
    summarize_counts,
)
from pollcheck.ledger import (
    AssertionRecord,
    ExportSnapshot,
    ResultLedger,
    RunContext,
    TestCase,
    TestResult,
)
from pollcheck.retries import RetryRegistry
from pollcheck.screenshots import NullScreenshotService, ScreenshotService, get_file_name

SYMBOL_OK = "✔"
SYMBOL_FAIL = "✖"


def _green(text: Any) -> str:
    return typer.style(str(text), fg=typer.colors.GREEN)


def _red(text: Any) -> str:
    return typer.style(str(text), fg=typer.colors.RED)


@dataclass(frozen=True)
class CurrentTest:
    name: str
    module: str
    group: str
    results: TestResult


class ReportCoordinator:
    """Decides what an outcome counts for and records it.

    Holds a reference to the ledger (the coordinator is its only writer) and
    a read-only view of the suite retries. Counting decisions never raise.
    """

    def __init__(
        self,
        settings: Settings,
        ledger: ResultLedger,
        suite_retries: RetryRegistry | None = None,
        screenshot_service: ScreenshotService | None = None,
        suite_name: str = "",
        logger: logging.Logger | None = None,
    ):
        self.settings = settings
        self.ledger = ledger
        self.suite_retries = suite_retries
        self.screenshot_service = screenshot_service or NullScreenshotService()
        self.suite_name = suite_name
        self.current_context: RunContext | None = None
        self.logger = logger or logging.getLogger(__name__)

    @property
    def current_test(self) -> CurrentTest:
        test_case = self.ledger.current_test
        return CurrentTest(
            name=test_case.test_name,
            module=test_case.module,
            group=test_case.group,
            results=self.ledger.current_result,
        )

    @property
    def unit_tests_mode(self) -> bool:
        if self.current_context and self.current_context.unit_tests_mode is not None:
            return self.current_context.unit_tests_mode
        return self.settings.unit_tests_mode

    @property
    def current_test_case_passed(self) -> bool:
        return self.ledger.current_test_case_passed

    @property
    def all_tests_passed(self) -> bool:
        return self.ledger.tests_passed()

    def should_increment_total_count(self, err: BaseException) -> bool:
        increment_error_count = getattr(err, "increment_error_count", None)
        increment_total_count = increment_error_count is None or bool(increment_error_count)

        should_retry_testcase = self.suite_retries is not None and self.suite_retries.should_retry_test(
            self.current_test.name
        )

        if getattr(err, "increment_errors_no", None) or should_retry_testcase:
            increment_total_count = False

        return increment_total_count

    def set_current_test(self, test_case: TestCase, context: RunContext | None = None) -> None:
        self.current_context = context
        self.ledger.set_current_test(test_case)

    def set_elapsed_time(self) -> int:
        return self.ledger.set_elapsed_time()

    def test_suite_finished(self) -> int:
        return self.ledger.set_total_elapsed_time()

    def export_results(self) -> ExportSnapshot:
        return self.ledger.export()

    # ------------------------------------------------------------------
    # Results logging
    # ------------------------------------------------------------------

    def log_assert_result(self, record: AssertionRecord) -> None:
        self.ledger.log_assertion(record)

    def register_passed(self, message: str) -> None:
        self.logger.info(f"{SYMBOL_OK} {message}")
        self.ledger.increment_passed_count()

    def register_failed(self, err: BaseException) -> None:
        """Log the failed assertion, then count it unless suppressed.

        The assertion log entry is written even when the count is suppressed.
        """
        self.log_assert_result(
            AssertionRecord(
                message=str(err),
                failure=True,
                stack_trace=error_to_stack_trace(err),
            )
        )
        should_count = self.should_increment_total_count(err)
        self.ledger.set_last_error(err).increment_failed_count(should_count)

    def register_test_error(self, err: BaseException) -> None:
        self.logger.error(f"{type(err).__name__}: {err}")

        should_count = self.should_increment_total_count(err)
        # errors slated for a later attempt (e.g. connection refused) are not logged in detail now
        detailed_logging = getattr(err, "detailed_logging", None)
        if should_count and (detailed_logging is None or detailed_logging):
            self.ledger.add_error_message(error_to_stack_trace(err))

        self.ledger.set_last_error(err).increment_error_count(should_count)

    def register_skipped(self, message: str = "") -> None:
        if message:
            self.logger.info(f"skipped: {message}")
        self.ledger.increment_skipped_count()

    def record_outcome(self, outcome: AssertionOutcome) -> asyncio.Task | None:
        """Log an assertion outcome, then count it.

        Returns the failure screenshot task when one was started.
        """
        failure = outcome.to_failure()
        if failure is None:
            self.log_assert_result(AssertionRecord(message=outcome.message))
            self.register_passed(outcome.message)
            return None

        self.register_failed(failure)
        return self.save_failure_screenshot(is_error=False)

    def reset_current_test_passed_count(self) -> None:
        """Subtract the passed assertions of the current test from the totals."""
        self.ledger.subtract_passed_count(self.ledger.current_result.passed)

    # ------------------------------------------------------------------
    # Console output
    # ------------------------------------------------------------------

    def get_failure_message(self) -> str:
        result = self.ledger.current_result
        return summarize_counts(result.failed, result.errors, result.passed, result.skipped)

    def print_test_result(self) -> None:
        ok = self.ledger.current_test_case_passed
        result = self.ledger.current_result
        elapsed_ms = result.elapsed_ms

        child_process = is_child_process()
        if child_process or not self.settings.detailed_output or self.unit_tests_mode:
            self.print_simplified_test_result(ok, elapsed_ms, child_process)
            return

        if ok and result.passed > 0:
            typer.echo(
                f"\n{_green('OK.')} {_green(result.passed)} assertions passed. "
                f"({format_elapsed_time(elapsed_ms, True)})"
            )
        elif ok and result.passed == 0:
            if self.settings.start_session:
                typer.echo(_green("No assertions ran.\n"))
        else:
            typer.echo(
                f"\n{_red('FAILED:')} {self.get_failure_message()} "
                f"({format_elapsed_time(elapsed_ms, True)})"
            )

    def print_simplified_test_result(
        self, ok: bool, elapsed_ms: int, child_process: bool
    ) -> None:
        line = [_green(SYMBOL_OK) if ok else _red(SYMBOL_FAIL)]
        if not self.unit_tests_mode:
            if child_process:
                line.append(
                    typer.style(worker_label(), fg=typer.colors.WHITE, bg=typer.colors.BLACK)
                )
            line.append(typer.style(f"[{self.suite_name}]", fg=typer.colors.CYAN))

        test_name = self.ledger.current_test.test_name
        line.append(test_name if ok else _red(test_name))

        if elapsed_ms > 20:
            line.append(
                typer.style(
                    f"({format_elapsed_time(elapsed_ms, True)})", fg=typer.colors.YELLOW
                )
            )

        typer.echo(" ".join(line))
        if ok:
            return

        results = self.ledger.current_result
        if self.unit_tests_mode and results.last_error is not None:
            typer.echo(error_to_stack_trace(results.last_error), err=True)
        else:
            self.print_assertions(results)

    @staticmethod
    def print_assertions(result: TestResult) -> None:
        for record in result.assertions:
            if record.failure:
                lines = [record.full_msg or record.message]
                if record.stack_trace:
                    lines.append(record.stack_trace)
                typer.echo("\n".join(lines), err=True)

    # ------------------------------------------------------------------
    # Screenshots
    # ------------------------------------------------------------------

    @property
    def should_take_failure_screenshot(self) -> bool:
        screenshots = self.settings.screenshots
        return not self.unit_tests_mode and screenshots.enabled and screenshots.on_failure

    def save_failure_screenshot(self, is_error: bool) -> asyncio.Task | None:
        """Start capturing a failure screenshot without waiting for it.

        The file reference is logged on the requesting test once the service
        completes. Await the returned task when ordering with cleanup matters.

        Returns ``None`` when screenshots are off for this test. Called
        outside a running event loop, nothing can be captured: the skip is
        logged as a warning and appended to the ledger's error messages.
        """
        if not self.should_take_failure_screenshot:
            return None

        current = self.current_test
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            message = (
                f"Failure screenshot for {current.module}/{current.name} skipped: "
                "no running event loop"
            )
            self.logger.warning(message)
            self.ledger.add_error_message(message)
            return None

        prefix = f"{current.module}/{current.name}-test-{current.results.tests}"
        file_name = get_file_name(prefix, is_error, self.settings.screenshots.path)

        return loop.create_task(
            self._capture_screenshot(file_name, self.ledger.current_test)
        )

    async def _capture_screenshot(self, file_name: str, test_case: TestCase) -> str | None:
        try:
            saved = await self.screenshot_service.save(file_name)
        except Exception as e:
            self.logger.error(f"Failed to save screenshot {file_name}: {e}")
            return None

        if saved:
            self.ledger.log_screenshot_file(saved, test_case=test_case)
            self.logger.debug(f"Saved screenshot {saved}")
        return saved
