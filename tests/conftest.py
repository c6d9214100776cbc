"""Shared fixtures for pytest-reliability tests."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

import pytest

from pytest_reliability import ReliabilityConfig, ReliabilityMonitor
from pytest_reliability.core.models import Outcome, TestIdentity, TestResult

pytest_plugins = ["pytester"]


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms / 1000


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monitor(clock: FakeClock) -> ReliabilityMonitor:
    return ReliabilityMonitor(clock=clock)


@pytest.fixture
def small_monitor(clock: FakeClock) -> ReliabilityMonitor:
    """Monitor whose history holds only three results."""
    return ReliabilityMonitor(ReliabilityConfig(max_results=3), clock=clock)


@pytest.fixture
def run(monitor: ReliabilityMonitor, clock: FakeClock) -> Callable[..., TestResult | None]:
    """Record one start/end pair that takes ``duration_ms`` on the fake clock.

    Example:
        run("fail", duration_ms=250, test_name="test_checkout", error="boom")
    """

    def _run(
        outcome: str,
        *,
        duration_ms: float = 100.0,
        test_file: str = "tests/test_app.py",
        test_name: str = "test_login",
        error: str | None = None,
        on: ReliabilityMonitor | None = None,
    ) -> TestResult | None:
        target = on or monitor
        target.start_test(test_file, test_name)
        clock.advance(duration_ms)
        return target.end_test(test_file, test_name, outcome, error=error)

    return _run


@pytest.fixture
def make_result() -> Callable[..., TestResult]:
    """Factory for TestResult objects that skips the recorder."""

    def _make(
        outcome: Outcome | str = Outcome.PASS,
        duration_ms: float = 100.0,
        *,
        test_file: str = "tests/test_app.py",
        test_name: str = "test_login",
        error_message: str | None = None,
    ) -> TestResult:
        return TestResult(
            identity=TestIdentity(test_file, test_name),
            outcome=Outcome(outcome),
            duration_ms=duration_ms,
            timestamp=datetime.now(timezone.utc),
            error_message=error_message,
        )

    return _make
