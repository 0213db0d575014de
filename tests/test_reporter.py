"""Tests for counting, suppression and screenshot handling in ReportCoordinator."""

from __future__ import annotations

import asyncio

import pytest

from pollcheck.assertions import Assertion, AssertionEngine, EqualsPolicy
from pollcheck.config import ScreenshotSettings, Settings
from pollcheck.errors import AssertionFailure, RemoteCheckError, TestError
from pollcheck.ledger import AssertionRecord, ResultLedger, RunContext, TestCase
from pollcheck.reporter import ReportCoordinator
from pollcheck.retries import SuiteRetries

CHECKOUT = TestCase(module="shop/checkout", test_name="pay", group="shop")


class RecordingScreenshots:
    def __init__(self, fail: bool = False) -> None:
        self.saved: list[str] = []
        self.fail = fail

    async def save(self, file_name: str) -> str | None:
        await asyncio.sleep(0)
        if self.fail:
            raise OSError("disk full")
        self.saved.append(file_name)
        return file_name


class ToggleRegistry:
    def __init__(self, answers: list[bool]) -> None:
        self.answers = list(answers)
        self.asked: list[str] = []

    def should_retry_test(self, name: str) -> bool:
        self.asked.append(name)
        return self.answers.pop(0)


def _coordinator(
    settings: Settings | None = None,
    suite_retries=None,
    screenshot_service=None,
    test_case: TestCase = CHECKOUT,
) -> ReportCoordinator:
    ledger = ResultLedger(TestCase(module=test_case.module, test_name="", group=test_case.group))
    coordinator = ReportCoordinator(
        settings or Settings(),
        ledger,
        suite_retries=suite_retries,
        screenshot_service=screenshot_service,
        suite_name="checkout",
    )
    coordinator.set_current_test(test_case)
    return coordinator


def _screenshot_settings(tmp_path, **overrides) -> Settings:
    return Settings(
        screenshots=ScreenshotSettings(
            enabled=True, on_failure=True, path=str(tmp_path / "shots")
        ),
        **overrides,
    )


async def _failed_outcome(timeout_ms: int = 0):
    async def remote(target):
        return "Y"

    return await AssertionEngine(remote).evaluate(
        Assertion(
            target="el",
            policy=EqualsPolicy("X"),
            description="#total",
            timeout_ms=timeout_ms,
            poll_interval_ms=10,
        )
    )


# --- should_increment_total_count ---


def test_unset_flags_count():
    coordinator = _coordinator()
    assert coordinator.should_increment_total_count(AssertionFailure("x")) is True


def test_plain_exception_counts():
    coordinator = _coordinator()
    assert coordinator.should_increment_total_count(ValueError("x")) is True


def test_increment_error_count_false_suppresses():
    coordinator = _coordinator()
    err = TestError("x", increment_error_count=False)
    assert coordinator.should_increment_total_count(err) is False


def test_increment_errors_no_forces_suppression():
    coordinator = _coordinator(suite_retries=SuiteRetries(retries=0))
    err = TestError("x", increment_error_count=True, increment_errors_no=True)
    assert coordinator.should_increment_total_count(err) is False


def test_test_scheduled_for_retry_suppresses():
    coordinator = _coordinator(suite_retries=SuiteRetries(retries=1))
    assert coordinator.should_increment_total_count(AssertionFailure("x")) is False


def test_registry_consulted_on_every_event():
    registry = ToggleRegistry([True, False])
    coordinator = _coordinator(suite_retries=registry)

    coordinator.register_failed(AssertionFailure("first"))
    coordinator.register_failed(AssertionFailure("second"))

    assert registry.asked == ["pay", "pay"]
    assert coordinator.ledger.current_result.failed == 1


# --- registering events ---


def test_register_passed_counts():
    coordinator = _coordinator()
    coordinator.register_passed("Expected element <#total> text to equal '10'")
    assert coordinator.ledger.current_result.passed == 1


def test_failure_of_retried_test_is_logged_but_not_counted():
    coordinator = _coordinator(suite_retries=SuiteRetries(retries=2))
    err = AssertionFailure("Expected X but got Y")

    coordinator.register_failed(err)

    result = coordinator.ledger.current_result
    assert result.failed == 0
    assert len(result.assertions) == 1
    record = result.assertions[0]
    assert record.failure is True
    assert record.message == "Expected X but got Y"
    assert "AssertionFailure: Expected X but got Y" in record.stack_trace
    assert result.last_error is err


def test_counted_failure_is_logged_once():
    coordinator = _coordinator()

    coordinator.register_failed(AssertionFailure("Expected X but got Y"))

    result = coordinator.ledger.current_result
    assert result.failed == 1
    assert [r.message for r in result.assertions] == ["Expected X but got Y"]


def test_register_test_error_counts_and_logs_stack():
    coordinator = _coordinator()
    try:
        raise RemoteCheckError("ECONNREFUSED")
    except RemoteCheckError as e:
        coordinator.register_test_error(e)

    result = coordinator.ledger.current_result
    assert result.errors == 1
    assert len(coordinator.ledger.error_messages) == 1
    assert "Traceback" in coordinator.ledger.error_messages[0]
    assert "ECONNREFUSED" in coordinator.ledger.error_messages[0]


def test_register_test_error_without_detailed_logging():
    coordinator = _coordinator()
    coordinator.register_test_error(TestError("refused", detailed_logging=False))

    assert coordinator.ledger.current_result.errors == 1
    assert coordinator.ledger.error_messages == []


def test_register_test_error_deferred_to_retry():
    coordinator = _coordinator(suite_retries=SuiteRetries(retries=1))
    err = TestError("refused")
    coordinator.register_test_error(err)

    result = coordinator.ledger.current_result
    assert result.errors == 0
    assert result.last_error is err
    assert coordinator.ledger.error_messages == []


def test_reset_current_test_passed_count():
    coordinator = _coordinator()
    coordinator.register_passed("a")
    coordinator.register_passed("b")

    coordinator.reset_current_test_passed_count()

    assert coordinator.ledger.current_result.passed == 0


def test_current_test_and_context():
    coordinator = _coordinator()
    current = coordinator.current_test
    assert (current.name, current.module, current.group) == ("pay", "shop/checkout", "shop")
    assert current.results is coordinator.ledger.current_result

    assert coordinator.unit_tests_mode is False
    coordinator.set_current_test(CHECKOUT, RunContext(CHECKOUT, unit_tests_mode=True))
    assert coordinator.unit_tests_mode is True


@pytest.mark.asyncio
async def test_record_outcome_logs_before_counting():
    coordinator = _coordinator()
    outcome = await _failed_outcome()

    task = coordinator.record_outcome(outcome)

    result = coordinator.ledger.current_result
    assert task is None
    assert result.failed == 1
    assert len(result.assertions) == 1
    record = result.assertions[0]
    assert record.failure is True
    assert record.message == outcome.message
    assert "AssertionFailure" in record.stack_trace
    assert coordinator.current_test_case_passed is False
    assert coordinator.all_tests_passed is False


@pytest.mark.asyncio
async def test_record_outcome_suppressed_under_retry():
    coordinator = _coordinator(suite_retries=SuiteRetries(retries=1))
    outcome = await _failed_outcome()

    coordinator.record_outcome(outcome)

    result = coordinator.ledger.current_result
    assert result.failed == 0
    assert len(result.assertions) == 1


# --- failure message ---


def test_failure_message_with_skipped():
    coordinator = _coordinator()
    ledger = coordinator.ledger
    ledger.increment_failed_count().increment_failed_count()
    ledger.increment_error_count()
    ledger.increment_skipped_count()

    message = coordinator.get_failure_message()

    assert message == "2 assertions failed, 1 errors and 1 skipped"
    assert message.endswith(" and 1 skipped")


def test_failure_message_single_part():
    coordinator = _coordinator()
    coordinator.ledger.increment_failed_count()
    assert coordinator.get_failure_message() == "1 assertions failed"


# --- screenshots ---


def test_no_screenshot_when_disabled():
    coordinator = _coordinator(screenshot_service=RecordingScreenshots())
    assert coordinator.should_take_failure_screenshot is False
    assert coordinator.save_failure_screenshot(is_error=False) is None


def test_no_screenshot_without_running_loop(tmp_path, caplog):
    coordinator = _coordinator(
        settings=_screenshot_settings(tmp_path),
        screenshot_service=RecordingScreenshots(),
    )

    with caplog.at_level("WARNING"):
        assert coordinator.save_failure_screenshot(is_error=False) is None

    assert "no running event loop" in caplog.text
    assert coordinator.ledger.error_messages == [
        "Failure screenshot for shop/checkout/pay skipped: no running event loop"
    ]
    assert coordinator.ledger.current_result.screenshots == []


@pytest.mark.asyncio
async def test_no_screenshot_in_unit_tests_mode(tmp_path):
    coordinator = _coordinator(
        settings=_screenshot_settings(tmp_path, unit_tests_mode=True),
        screenshot_service=RecordingScreenshots(),
    )
    assert coordinator.save_failure_screenshot(is_error=True) is None


@pytest.mark.asyncio
async def test_failure_screenshot_logged_on_completion(tmp_path):
    service = RecordingScreenshots()
    coordinator = _coordinator(
        settings=_screenshot_settings(tmp_path), screenshot_service=service
    )
    outcome = await _failed_outcome()

    task = coordinator.record_outcome(outcome)
    assert task is not None
    # ledger counts are already updated while the capture is in flight
    assert coordinator.ledger.current_result.failed == 1
    assert coordinator.ledger.current_result.screenshots == []

    saved = await task

    assert service.saved == [saved]
    assert coordinator.ledger.current_result.screenshots == [saved]
    assert saved.startswith(str(tmp_path / "shots" / "shop" / "checkout" / "pay-test-1_FAILED_"))
    assert saved.endswith(".png")


@pytest.mark.asyncio
async def test_screenshot_lands_on_requesting_test_after_switch(tmp_path):
    coordinator = _coordinator(
        settings=_screenshot_settings(tmp_path),
        screenshot_service=RecordingScreenshots(),
    )
    task = coordinator.save_failure_screenshot(is_error=True)
    next_test = TestCase(module="shop/checkout", test_name="refund", group="shop")
    coordinator.set_current_test(next_test)

    saved = await task

    assert "_ERROR_" in saved
    assert coordinator.ledger.results[CHECKOUT.key].screenshots == [saved]
    assert coordinator.ledger.results[next_test.key].screenshots == []


@pytest.mark.asyncio
async def test_screenshot_service_failure_is_logged_not_recorded(tmp_path):
    coordinator = _coordinator(
        settings=_screenshot_settings(tmp_path),
        screenshot_service=RecordingScreenshots(fail=True),
    )

    task = coordinator.save_failure_screenshot(is_error=False)

    assert await task is None
    assert coordinator.ledger.current_result.screenshots == []


# --- console output ---


def test_print_detailed_ok(capsys):
    coordinator = _coordinator()
    coordinator.register_passed("fine")

    coordinator.print_test_result()

    out = capsys.readouterr().out
    assert "OK." in out
    assert "assertions passed" in out


def test_print_detailed_failed(capsys):
    coordinator = _coordinator()
    coordinator.ledger.increment_failed_count()
    coordinator.ledger.increment_passed_count()

    coordinator.print_test_result()

    out = capsys.readouterr().out
    assert "FAILED:" in out
    assert "1 assertions failed and 1 passed" in out


def test_print_no_assertions_ran(capsys):
    coordinator = _coordinator()
    coordinator.print_test_result()
    assert "No assertions ran." in capsys.readouterr().out


def test_print_simplified_failure_shows_assertions(capsys):
    coordinator = _coordinator(settings=Settings(detailed_output=False))
    coordinator.log_assert_result(
        AssertionRecord("Expected <#total> to equal '10'", failure=True, stack_trace="at pay")
    )
    coordinator.ledger.increment_failed_count()

    coordinator.print_test_result()

    captured = capsys.readouterr()
    assert "[checkout]" in captured.out
    assert "pay" in captured.out
    assert "Expected <#total> to equal '10'" in captured.err
    assert "at pay" in captured.err


def test_print_simplified_unit_tests_mode_shows_last_error(capsys):
    coordinator = _coordinator(settings=Settings(unit_tests_mode=True))
    coordinator.register_failed(AssertionFailure("totals differ"))

    coordinator.print_test_result()

    captured = capsys.readouterr()
    assert "[checkout]" not in captured.out
    assert "AssertionFailure: totals differ" in captured.err


def test_print_child_process_label(capsys, monkeypatch):
    monkeypatch.setenv("POLLCHECK_PARALLEL_MODE", "1")
    monkeypatch.setenv("POLLCHECK_ENV", "chrome")
    coordinator = _coordinator()
    coordinator.register_passed("fine")

    coordinator.print_test_result()

    out = capsys.readouterr().out
    assert "chrome" in out
    assert "[checkout]" in out
