"""Data model for recorded test attempts and per-test metrics."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Outcome(str, Enum):
    """Three-way outcome of a single test attempt."""

    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"


@dataclass(slots=True, frozen=True)
class TestIdentity:
    """Composite key identifying a test: (file path, test name).

    Example:
        TestIdentity("tests/test_login.py", "TestLogin::test_ok")
    """

    __test__ = False  # not a pytest test class

    test_file: str
    test_name: str

    @property
    def key(self) -> str:
        """Display key, e.g. ``tests/test_login.py::TestLogin::test_ok``."""
        return f"{self.test_file}::{self.test_name}"

    def __str__(self) -> str:
        return self.key


@dataclass(slots=True, frozen=True)
class TestResult:
    """Result of one execution attempt.

    Attributes:
        identity: Which test this attempt belongs to
        outcome: pass, fail or skip
        duration_ms: Wall-clock duration of the attempt in milliseconds
        timestamp: When the attempt ended (UTC)
        retry_count: Number of re-attempts before this result
        error_message: Failure message, if any
        error_stack: Failure traceback text, if any
    """

    __test__ = False

    identity: TestIdentity
    outcome: Outcome
    duration_ms: float
    timestamp: datetime
    retry_count: int = 0
    error_message: str | None = None
    error_stack: str | None = None

    @property
    def test_file(self) -> str:
        return self.identity.test_file

    @property
    def test_name(self) -> str:
        return self.identity.test_name

    @property
    def is_failed(self) -> bool:
        return self.outcome is Outcome.FAIL


@dataclass(slots=True)
class TestMetrics:
    """Cumulative statistics for one test identity.

    Only the metrics aggregator mutates these; everything else gets copies.
    """

    __test__ = False

    total_runs: int = 0
    passed_runs: int = 0
    failed_runs: int = 0
    skipped_runs: int = 0
    average_duration: float = 0.0
    min_duration: float = math.inf
    max_duration: float = 0.0
    flakiness_rate: float = 0.0
    last_failure_timestamp: datetime | None = None
    consecutive_failures: int = 0
