"""Pytest configuration and fixtures."""

from __future__ import annotations

import logging

import pytest


@pytest.fixture(autouse=True)
def cleanup_loggers():
    """Clean up pollcheck loggers after each test to prevent name collisions."""
    yield

    # Remove all pollcheck loggers from registry
    loggers_to_remove = [
        name
        for name in logging.Logger.manager.loggerDict.keys()
        if name.startswith("pollcheck")
    ]

    for name in loggers_to_remove:
        logger = logging.getLogger(name)
        logger.handlers.clear()
        del logging.Logger.manager.loggerDict[name]


class FakeClock:
    """Monotonic clock in seconds that only moves when ``sleep`` is awaited."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class SequenceRemote:
    """Remote check returning the given values in order, repeating the last one."""

    def __init__(self, *values) -> None:
        self.values = list(values)
        self.calls: list[object] = []

    async def __call__(self, target):
        self.calls.append(target)
        index = min(len(self.calls), len(self.values)) - 1
        value = self.values[index]
        if isinstance(value, BaseException):
            raise value
        return value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_remote():
    return SequenceRemote
