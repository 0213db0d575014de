"""Poll-retry-timeout evaluation of a single assertion."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from pollcheck.assertions.base import (
    NOT_FOUND,
    Assertion,
    AssertionOutcome,
    AssertionState,
)
from pollcheck.config import AssertionSettings
from pollcheck.errors import RemoteCheckError

RemoteCheck = Callable[[Any], Awaitable[Any]]


class AssertionEngine:
    """Runs one assertion to a terminal state.

    The engine never touches the result ledger; it only returns outcomes.
    The poll loop suspends on the remote check and on the poll delay and on
    nothing else.

    Args:
        remote_check: Coroutine function taking a target handle and returning
            the observed value, or ``NOT_FOUND`` when the target is gone.
        settings: Default timeout and poll interval for assertions that leave
            theirs unset.
        clock: Monotonic clock in seconds.
        sleep: Coroutine function used for the inter-poll delay, in seconds.
        logger: Logger for per-attempt debug output.
    """

    def __init__(
        self,
        remote_check: RemoteCheck,
        *,
        settings: AssertionSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger: logging.Logger | None = None,
    ):
        self.remote_check = remote_check
        self.settings = settings or AssertionSettings()
        self._clock = clock
        self._sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    async def evaluate(self, assertion: Assertion) -> AssertionOutcome:
        if assertion.state.is_terminal:
            raise RuntimeError(
                f"Assertion on <{assertion.description}> already finished as {assertion.state.value}"
            )
        if assertion.state is not AssertionState.PENDING:
            raise RuntimeError(
                f"Assertion on <{assertion.description}> is already being evaluated"
            )

        timeout_ms = self._resolve(assertion.timeout_ms, self.settings.timeout_ms)
        poll_interval_ms = self._resolve(
            assertion.poll_interval_ms, self.settings.poll_interval_ms
        )
        if timeout_ms < 0 or poll_interval_ms <= 0:
            raise ValueError(
                f"Invalid retry policy: timeout_ms={timeout_ms}, poll_interval_ms={poll_interval_ms}"
            )

        subject = assertion.subject or self.settings.subject
        assertion.message_parts = [
            f"Expected element <{assertion.description}> {subject} to"
        ]
        if assertion.negate:
            assertion.message_parts.append(" not")
        assertion.message_parts.append(f" {assertion.policy.describe()}")

        started = self._clock()

        if assertion.target is None:
            return self._not_found(assertion)

        while True:
            assertion.state = AssertionState.EXECUTING
            try:
                observed = await self.remote_check(assertion.target)
            except RemoteCheckError:
                assertion.state = AssertionState.FAILED
                raise
            except Exception as e:
                assertion.state = AssertionState.FAILED
                raise RemoteCheckError(
                    f"Remote check failed for <{assertion.description}>: {e}"
                ) from e

            assertion.elapsed_ms = self._elapsed_ms(started)

            if observed is NOT_FOUND:
                return self._not_found(assertion)

            assertion.actual = observed
            condition = assertion.policy.matches(observed)
            self.logger.debug(
                f"<{assertion.description}> attempt {assertion.retries + 1}: "
                f"observed={observed!r} condition={condition} negate={assertion.negate}"
            )

            if condition != assertion.negate:
                return self._passed(assertion, timeout_ms)

            # A negated assertion whose condition still holds keeps polling
            # until the budget is spent, same as a plain failed condition.
            if assertion.elapsed_ms < timeout_ms:
                assertion.state = AssertionState.RETRY_SCHEDULED
                assertion.retries += 1
                # the last poll lands on the budget edge
                delay_ms = min(poll_interval_ms, timeout_ms - assertion.elapsed_ms)
                await self._sleep(delay_ms / 1000)
                continue

            return self._failed(assertion, timeout_ms)

    @staticmethod
    def _resolve(value: int | None, default: int) -> int:
        return default if value is None else value

    def _elapsed_ms(self, started: float) -> int:
        return int(round((self._clock() - started) * 1000))

    def _passed(self, assertion: Assertion, timeout_ms: int) -> AssertionOutcome:
        assertion.state = AssertionState.PASSED
        if timeout_ms:
            assertion.message_parts.append(
                f" - condition was met in {assertion.elapsed_ms}ms"
            )
        self.logger.info(f"PASS {''.join(assertion.message_parts)}")
        return self._outcome(assertion)

    def _failed(self, assertion: Assertion, timeout_ms: int) -> AssertionOutcome:
        assertion.state = (
            AssertionState.TIMED_OUT if timeout_ms else AssertionState.FAILED
        )
        assertion.message_parts.append(
            f' - expected "{assertion.expected_phrase}" but got: "{assertion.actual}"'
        )
        if timeout_ms:
            assertion.message_parts.append(f" ({assertion.elapsed_ms}ms)")
        self.logger.info(f"FAIL {''.join(assertion.message_parts)}")
        return self._outcome(assertion)

    def _not_found(self, assertion: Assertion) -> AssertionOutcome:
        assertion.state = AssertionState.FAILED
        assertion.actual = None
        assertion.message_parts.append(" - element was not found")
        self.logger.info(f"FAIL {''.join(assertion.message_parts)}")
        return self._outcome(assertion, not_found=True)

    @staticmethod
    def _outcome(assertion: Assertion, not_found: bool = False) -> AssertionOutcome:
        return AssertionOutcome(
            passed=assertion.state is AssertionState.PASSED,
            timed_out=assertion.state is AssertionState.TIMED_OUT,
            elapsed_ms=assertion.elapsed_ms,
            message_parts=tuple(assertion.message_parts),
            state=assertion.state,
            not_found=not_found,
            retries=assertion.retries,
            actual=assertion.actual,
            expected=assertion.expected_phrase,
        )
