"""ReliabilityMonitor - the engine object shared by runner adapters."""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from pytest_reliability.config import ReliabilityConfig
from pytest_reliability.core.models import TestIdentity
from pytest_reliability.engine.aggregator import MetricsAggregator
from pytest_reliability.engine.recorder import EventRecorder
from pytest_reliability.reporting.generator import generate_json
from pytest_reliability.reporting.report import ReportGenerator

if TYPE_CHECKING:
    from pytest_reliability.core.models import Outcome, TestMetrics, TestResult
    from pytest_reliability.reporting.report import ReliabilityReport


class ReliabilityMonitor:
    """Tracks test flakiness, retries and durations for one process.

    Construct one monitor per process and hand it to every runner adapter.
    Data flows adapter -> recorder -> aggregator -> report generator.

    Example:
        monitor = ReliabilityMonitor()
        monitor.start_test("tests/test_login.py", "test_ok")
        monitor.end_test("tests/test_login.py", "test_ok", "pass")
        report = monitor.generate_report()
    """

    def __init__(
        self,
        config: ReliabilityConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or ReliabilityConfig()
        self._aggregator = MetricsAggregator()
        self._recorder = EventRecorder(
            self._aggregator, max_results=self.config.max_results, clock=clock
        )
        self._generator = ReportGenerator(self._aggregator, self._recorder, self.config)

    @property
    def results(self) -> tuple[TestResult, ...]:
        """Raw results still held in the bounded history, oldest first."""
        return self._recorder.history

    @property
    def test_count(self) -> int:
        """Number of distinct tests with recorded metrics."""
        return len(self._aggregator)

    def start_test(self, test_file: str, test_name: str) -> None:
        """Start tracking an attempt of a test."""
        self._recorder.start_test(test_file, test_name)

    def cancel_test(self, test_file: str, test_name: str) -> bool:
        """Drop a started attempt that should not be recorded."""
        return self._recorder.cancel_test(test_file, test_name)

    def end_test(
        self,
        test_file: str,
        test_name: str,
        outcome: Outcome | str,
        retry_count: int = 0,
        error: BaseException | str | None = None,
        *,
        stack: str | None = None,
    ) -> TestResult | None:
        """End tracking and record the result.

        An end without a matching start logs a warning and is dropped.
        """
        return self._recorder.end_test(
            test_file, test_name, outcome, retry_count, error, stack=stack
        )

    def get_test_metrics(self, test_file: str, test_name: str) -> TestMetrics | None:
        """Copy of the metrics for a test, or None if it was never recorded."""
        return self._aggregator.get(TestIdentity(test_file, test_name))

    def generate_report(self) -> ReliabilityReport:
        """Build a fresh report from the current metrics."""
        return self._generator.generate()

    def export_report(self, path: str | Path) -> ReliabilityReport:
        """Generate a report and write it to ``path`` as JSON.

        Errors writing the file propagate to the caller.
        """
        report = self.generate_report()
        output = Path(path)
        output.parent.mkdir(parents=True, exist_ok=True)
        generate_json(report, output)
        return report

    def clear_metrics(self) -> None:
        """Drop all metrics, stored results and pending starts."""
        self._aggregator.clear()
        self._recorder.clear()
