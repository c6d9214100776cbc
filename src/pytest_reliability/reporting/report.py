"""Reliability report data structures and classification.

The generator scans every aggregated TestMetrics record and sorts tests into
three buckets:

- flaky: fails often enough, over enough runs, to be untrustworthy
- slow: average duration above the slow threshold
- failing: a streak of consecutive failures (likely a real defect)

It then rates the whole population excellent / good / fair / poor from the
share of tests that are flaky or failing.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from pytest_reliability.config import ReliabilityConfig

if TYPE_CHECKING:
    from pytest_reliability.engine.aggregator import MetricsAggregator
    from pytest_reliability.engine.recorder import EventRecorder

UNKNOWN_ERROR = "Unknown error"

# Health bands applied to both the flaky and the failing proportion
GOOD_PROPORTION = 0.05
FAIR_PROPORTION = 0.15


class HealthRating(str, Enum):
    """Overall suite health."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


@dataclass
class FlakyTest:
    """A test that fails intermittently."""

    test_name: str
    test_file: str
    flakiness_rate: float
    total_runs: int
    passed_runs: int
    failed_runs: int
    recommendation: str


@dataclass
class SlowTest:
    """A test whose average duration exceeds the slow threshold.

    Attributes:
        slowness_factor: average_duration divided by the median average
            duration of all tracked tests (inf when that median is 0)
    """

    test_name: str
    test_file: str
    average_duration: float
    max_duration: float
    slowness_factor: float


@dataclass
class FailingTest:
    """A test on a streak of consecutive failures."""

    test_name: str
    test_file: str
    consecutive_failures: int
    last_failure_timestamp: datetime | None
    last_error_message: str


@dataclass
class ReliabilityReport:
    """Point-in-time reliability snapshot. Never stored, always recomputed."""

    generated_at: datetime
    total_tests: int
    flaky_tests: list[FlakyTest] = field(default_factory=list)
    slow_tests: list[SlowTest] = field(default_factory=list)
    failing_tests: list[FailingTest] = field(default_factory=list)
    overall_health: HealthRating = HealthRating.EXCELLENT

    @property
    def is_stable(self) -> bool:
        """True when nothing is flaky or persistently failing."""
        return not self.flaky_tests and not self.failing_tests


def calculate_median(values: list[float]) -> float:
    """Median of ``values``; 0 for an empty list."""
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def flakiness_recommendation(flakiness_rate: float) -> str:
    """Remediation advice for a flaky test, by severity band."""
    if flakiness_rate >= 0.5:
        return "CRITICAL: Test is highly unstable. Consider disabling or rewriting."
    if flakiness_rate >= 0.3:
        return "HIGH: Add wait conditions, increase timeouts, or check for race conditions."
    return "MEDIUM: Monitor closely. May need minor adjustments to selectors or waits."


def calculate_health(flaky_count: int, failing_count: int, total_tests: int) -> HealthRating:
    """Rate the suite from the flaky and failing proportions."""
    if total_tests == 0:
        return HealthRating.EXCELLENT

    flaky = flaky_count / total_tests
    failing = failing_count / total_tests
    if flaky == 0 and failing == 0:
        return HealthRating.EXCELLENT
    if flaky < GOOD_PROPORTION and failing < GOOD_PROPORTION:
        return HealthRating.GOOD
    if flaky < FAIR_PROPORTION and failing < FAIR_PROPORTION:
        return HealthRating.FAIR
    return HealthRating.POOR


class ReportGenerator:
    """Builds ReliabilityReport snapshots from aggregated metrics.

    Generation only reads state, so it can be called any number of times.

    Example:
        generator = ReportGenerator(aggregator, recorder)
        report = generator.generate()
    """

    def __init__(
        self,
        aggregator: MetricsAggregator,
        recorder: EventRecorder,
        config: ReliabilityConfig | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._recorder = recorder
        self.config = config or ReliabilityConfig()

    def generate(self) -> ReliabilityReport:
        """Classify every tracked test and rate the suite."""
        config = self.config
        registry = self._aggregator.snapshot()
        median = calculate_median([m.average_duration for m in registry.values()])

        flaky: list[FlakyTest] = []
        slow: list[SlowTest] = []
        failing: list[FailingTest] = []

        for identity, metrics in registry.items():
            if (
                metrics.flakiness_rate >= config.flakiness_threshold
                and metrics.total_runs >= config.min_runs_for_flakiness
            ):
                flaky.append(
                    FlakyTest(
                        test_name=identity.test_name,
                        test_file=identity.test_file,
                        flakiness_rate=metrics.flakiness_rate,
                        total_runs=metrics.total_runs,
                        passed_runs=metrics.passed_runs,
                        failed_runs=metrics.failed_runs,
                        recommendation=flakiness_recommendation(metrics.flakiness_rate),
                    )
                )

            if metrics.average_duration > config.slow_threshold_ms:
                slow.append(
                    SlowTest(
                        test_name=identity.test_name,
                        test_file=identity.test_file,
                        average_duration=metrics.average_duration,
                        max_duration=metrics.max_duration,
                        slowness_factor=(
                            metrics.average_duration / median if median > 0 else math.inf
                        ),
                    )
                )

            if metrics.consecutive_failures >= config.consecutive_failure_threshold:
                last = self._recorder.last_failure(identity)
                failing.append(
                    FailingTest(
                        test_name=identity.test_name,
                        test_file=identity.test_file,
                        consecutive_failures=metrics.consecutive_failures,
                        last_failure_timestamp=metrics.last_failure_timestamp,
                        last_error_message=(last and last.error_message) or UNKNOWN_ERROR,
                    )
                )

        flaky.sort(key=lambda t: t.flakiness_rate, reverse=True)
        slow.sort(key=lambda t: t.slowness_factor, reverse=True)
        failing.sort(key=lambda t: t.consecutive_failures, reverse=True)

        return ReliabilityReport(
            generated_at=datetime.now(timezone.utc),
            total_tests=len(registry),
            flaky_tests=flaky,
            slow_tests=slow,
            failing_tests=failing,
            overall_health=calculate_health(len(flaky), len(failing), len(registry)),
        )
