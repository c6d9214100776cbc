"""Markdown reliability report renderer.

Typed section functions that accept report dataclasses and return strings.
Uses mdutils for structural primitives (tables, headers).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from mdutils.tools.Header import AtxHeaderLevel, Header
from mdutils.tools.Table import Table

from pytest_reliability.reporting.console import REMEDIATION_HINTS, format_factor

if TYPE_CHECKING:
    from pytest_reliability.reporting.report import (
        FailingTest,
        FlakyTest,
        ReliabilityReport,
        SlowTest,
    )

_H1 = AtxHeaderLevel.TITLE
_H2 = AtxHeaderLevel.HEADING

_HEALTH_BADGES = {
    "excellent": "🟢",
    "good": "🟢",
    "fair": "🟡",
    "poor": "🔴",
}


def _cell(text: str) -> str:
    """Escape table-breaking characters."""
    return text.replace("|", "\\|").replace("\n", " ")


def _table(header: list[str], rows: list[list[str]], text_align: list[str]) -> str:
    cells = [cell for row in [header, *rows] for cell in row]
    return Table().create_table(
        columns=len(header),
        rows=len(rows) + 1,
        text=cells,
        text_align=text_align,
    )


def _report_header(report: ReliabilityReport) -> str:
    health = report.overall_health.value
    parts = [
        Header.atx(level=_H1, title="Test Reliability Report"),
        f"> **{report.total_tests}** tests tracked | "
        f"Health: {_HEALTH_BADGES[health]} **{health.upper()}** | "
        f"**{len(report.flaky_tests)}** flaky | "
        f"**{len(report.slow_tests)}** slow | "
        f"**{len(report.failing_tests)}** failing  ",
        f"> {report.generated_at.isoformat()}",
        "",
    ]
    return "\n".join(parts)


def _flaky_section(tests: list[FlakyTest]) -> str:
    rows = [
        [
            str(i),
            _cell(t.test_name),
            _cell(t.test_file),
            f"{t.flakiness_rate * 100:.1f}%",
            f"{t.failed_runs}/{t.total_runs}",
            _cell(t.recommendation),
        ]
        for i, t in enumerate(tests, 1)
    ]
    header = ["#", "Test", "File", "Flakiness", "Failed", "Recommendation"]
    return "\n".join(
        [
            Header.atx(level=_H2, title=f"Flaky Tests ({len(tests)})"),
            _table(header, rows, ["center", "left", "left", "right", "center", "left"]),
        ]
    )


def _slow_section(tests: list[SlowTest]) -> str:
    rows = [
        [
            str(i),
            _cell(t.test_name),
            _cell(t.test_file),
            f"{t.average_duration / 1000:.2f}s",
            f"{t.max_duration / 1000:.2f}s",
            format_factor(t.slowness_factor),
        ]
        for i, t in enumerate(tests, 1)
    ]
    header = ["#", "Test", "File", "Average", "Max", "Slowness"]
    return "\n".join(
        [
            Header.atx(level=_H2, title=f"Slow Tests ({len(tests)})"),
            _table(header, rows, ["center", "left", "left", "right", "right", "right"]),
        ]
    )


def _failing_section(tests: list[FailingTest]) -> str:
    rows = [
        [
            str(i),
            _cell(t.test_name),
            _cell(t.test_file),
            str(t.consecutive_failures),
            t.last_failure_timestamp.isoformat() if t.last_failure_timestamp else "unknown",
            _cell(t.last_error_message),
        ]
        for i, t in enumerate(tests, 1)
    ]
    header = ["#", "Test", "File", "Streak", "Last Failure", "Error"]
    return "\n".join(
        [
            Header.atx(level=_H2, title=f"Consistently Failing Tests ({len(tests)})"),
            _table(header, rows, ["center", "left", "left", "center", "left", "left"]),
        ]
    )


def render_markdown_report(report: ReliabilityReport) -> str:
    """Render a complete GFM-compatible Markdown report."""
    sections = [_report_header(report)]

    if report.flaky_tests:
        sections.append(_flaky_section(report.flaky_tests))
    if report.slow_tests:
        sections.append(_slow_section(report.slow_tests))
    if report.failing_tests:
        sections.append(_failing_section(report.failing_tests))
    if report.is_stable:
        sections.append("✅ All tests are stable. No flakiness or consistent failures detected.\n")

    sections.append(Header.atx(level=_H2, title="Recommendations"))
    sections.append("\n".join(f"{i}. {hint}" for i, hint in enumerate(REMEDIATION_HINTS, 1)))
    sections.append("")
    return "\n".join(sections)
