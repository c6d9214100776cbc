"""Incremental per-test metrics aggregation.

One TestMetrics record is kept per TestIdentity and updated in place as each
result arrives, so no duration history is needed for the running mean.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from pytest_reliability.core.models import Outcome, TestIdentity, TestMetrics

if TYPE_CHECKING:
    from pytest_reliability.core.models import TestResult


class MetricsAggregator:
    """Maintains running statistics per test identity.

    The registry is private: ``record`` is the only mutation path and every
    read hands out copies.

    Example:
        aggregator = MetricsAggregator()
        aggregator.record(result)
        metrics = aggregator.get(result.identity)
    """

    def __init__(self) -> None:
        self._metrics: dict[TestIdentity, TestMetrics] = {}

    def __len__(self) -> int:
        return len(self._metrics)

    def __contains__(self, identity: object) -> bool:
        return identity in self._metrics

    def record(self, result: TestResult) -> None:
        """Fold one attempt into the metrics for its identity.

        There is no deduplication: every call counts as a real attempt.
        Skips count toward ``total_runs`` but not toward the pass/fail
        counters or the consecutive-failure streak.
        """
        metrics = self._metrics.get(result.identity)
        if metrics is None:
            metrics = TestMetrics()
            self._metrics[result.identity] = metrics

        metrics.total_runs += 1
        if result.outcome is Outcome.PASS:
            metrics.passed_runs += 1
            metrics.consecutive_failures = 0
        elif result.outcome is Outcome.FAIL:
            metrics.failed_runs += 1
            metrics.consecutive_failures += 1
            metrics.last_failure_timestamp = result.timestamp
        else:
            metrics.skipped_runs += 1

        metrics.min_duration = min(metrics.min_duration, result.duration_ms)
        metrics.max_duration = max(metrics.max_duration, result.duration_ms)

        n = metrics.total_runs
        average = (metrics.average_duration * (n - 1) + result.duration_ms) / n
        # Clamp away float rounding so min <= average <= max holds exactly
        metrics.average_duration = min(max(average, metrics.min_duration), metrics.max_duration)
        metrics.flakiness_rate = metrics.failed_runs / n

    def get(self, identity: TestIdentity) -> TestMetrics | None:
        """Copy of the metrics for ``identity``, or None if never recorded."""
        metrics = self._metrics.get(identity)
        return replace(metrics) if metrics is not None else None

    def snapshot(self) -> dict[TestIdentity, TestMetrics]:
        """Copies of all metrics, in first-recorded order."""
        return {identity: replace(metrics) for identity, metrics in self._metrics.items()}

    def clear(self) -> None:
        self._metrics.clear()
