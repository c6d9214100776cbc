"""Human-readable console summary of a reliability report."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from pytest_reliability.reporting.report import ReliabilityReport

RULE = "=" * 80

REMEDIATION_HINTS = (
    "For flaky tests: Increase wait timeouts or add explicit wait conditions",
    "For slow tests: Optimize fixtures and external calls, or reduce test scope",
    "For failing tests: Check the health and logs of the services under test",
    "Re-run a suspect test in isolation to separate ordering effects from real flakiness",
)


def format_factor(factor: float) -> str:
    """Format a slowness factor, e.g. ``3.2x median``."""
    if not math.isfinite(factor):
        return "n/a (median duration is 0)"
    return f"{factor:.1f}x median"


def _format_time(value: datetime | None) -> str:
    return value.isoformat() if value else "unknown"


def render_console_summary(
    report: ReliabilityReport,
    *,
    title: str = "TEST RELIABILITY REPORT",
    limit: int = 10,
) -> str:
    """Render the console summary.

    Lists up to ``limit`` flaky and slow tests and every failing test,
    followed by remediation hints.
    """
    lines: list[str] = ["", RULE, title, RULE, ""]
    lines.append(f"Generated at: {report.generated_at.isoformat()}")
    lines.append(f"Total tests tracked: {report.total_tests}")
    lines.append(f"Overall health: {report.overall_health.value.upper()}")

    if report.flaky_tests:
        lines += ["", f"FLAKY TESTS ({len(report.flaky_tests)}):"]
        for idx, test in enumerate(report.flaky_tests[:limit], 1):
            lines += [
                "",
                f"{idx}. {test.test_name}",
                f"   File: {test.test_file}",
                f"   Flakiness: {test.flakiness_rate * 100:.1f}% "
                f"({test.failed_runs}/{test.total_runs} runs)",
                f"   Recommendation: {test.recommendation}",
            ]

    if report.slow_tests:
        lines += ["", f"SLOW TESTS ({len(report.slow_tests)}):"]
        for idx, test in enumerate(report.slow_tests[:limit], 1):
            lines += [
                "",
                f"{idx}. {test.test_name}",
                f"   File: {test.test_file}",
                f"   Average: {test.average_duration / 1000:.2f}s | "
                f"Max: {test.max_duration / 1000:.2f}s",
                f"   Slowness: {format_factor(test.slowness_factor)}",
            ]

    if report.failing_tests:
        lines += ["", f"CONSISTENTLY FAILING TESTS ({len(report.failing_tests)}):"]
        for idx, test in enumerate(report.failing_tests, 1):
            lines += [
                "",
                f"{idx}. {test.test_name}",
                f"   File: {test.test_file}",
                f"   Consecutive failures: {test.consecutive_failures}",
                f"   Last failure: {_format_time(test.last_failure_timestamp)}",
                f"   Error: {test.last_error_message}",
            ]

    if report.is_stable:
        lines += ["", "All tests are stable! No flakiness or consistent failures detected."]

    lines += ["", RULE, "RECOMMENDATIONS:", RULE]
    lines += [f"{idx}. {hint}" for idx, hint in enumerate(REMEDIATION_HINTS, 1)]
    lines += [RULE, ""]
    return "\n".join(lines)
