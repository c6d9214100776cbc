"""Configuration for the reliability monitor.

Thresholds default to the values used by the report classification:

- flaky: flakiness rate >= 0.20 with at least 5 runs
- slow: average duration > 30000 ms
- persistently failing: >= 3 consecutive failures
"""

from __future__ import annotations

from dataclasses import dataclass

# Environment variable naming the JSON export path
REPORT_PATH_ENV = "RELIABILITY_REPORT_PATH"
# Environment variable naming the Markdown export path (CLI only)
MD_PATH_ENV = "RELIABILITY_MD_PATH"


@dataclass(slots=True, frozen=True)
class ReliabilityConfig:
    """Thresholds and limits for the reliability monitor.

    Example:
        config = ReliabilityConfig(slow_threshold_ms=10_000, max_results=500)
        monitor = ReliabilityMonitor(config)
    """

    flakiness_threshold: float = 0.2
    min_runs_for_flakiness: int = 5
    slow_threshold_ms: float = 30_000
    consecutive_failure_threshold: int = 3
    max_results: int = 1000
    # Entries listed per section in the console summary (failing tests are never truncated)
    summary_limit: int = 10

    def __post_init__(self) -> None:
        if not 0.0 <= self.flakiness_threshold <= 1.0:
            msg = f"flakiness_threshold must be within [0, 1], got {self.flakiness_threshold}"
            raise ValueError(msg)
        if self.min_runs_for_flakiness < 1:
            msg = f"min_runs_for_flakiness must be >= 1, got {self.min_runs_for_flakiness}"
            raise ValueError(msg)
        if self.slow_threshold_ms < 0:
            msg = f"slow_threshold_ms must be >= 0, got {self.slow_threshold_ms}"
            raise ValueError(msg)
        if self.consecutive_failure_threshold < 1:
            msg = (
                "consecutive_failure_threshold must be >= 1, "
                f"got {self.consecutive_failure_threshold}"
            )
            raise ValueError(msg)
        if self.max_results < 1:
            msg = f"max_results must be >= 1, got {self.max_results}"
            raise ValueError(msg)
        if self.summary_limit < 1:
            msg = f"summary_limit must be >= 1, got {self.summary_limit}"
            raise ValueError(msg)
