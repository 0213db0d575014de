"""Assertion polling and test-result bookkeeping."""

from pollcheck.assertions import NOT_FOUND, Assertion, AssertionEngine, AssertionOutcome
from pollcheck.config import Settings, load_settings
from pollcheck.ledger import ResultLedger, RunContext, TestCase
from pollcheck.reporter import ReportCoordinator
from pollcheck.retries import RetryRegistry, SuiteRetries

__all__ = [
    "NOT_FOUND",
    "Assertion",
    "AssertionEngine",
    "AssertionOutcome",
    "ReportCoordinator",
    "ResultLedger",
    "RetryRegistry",
    "RunContext",
    "Settings",
    "SuiteRetries",
    "TestCase",
    "load_settings",
]
