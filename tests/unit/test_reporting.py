"""Tests for report rendering and export (console, Markdown, JSON)."""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from pathlib import Path

import pytest

from pytest_reliability import ReliabilityMonitor
from pytest_reliability.core.serialization import SCHEMA_VERSION, deserialize_report
from pytest_reliability.reporting import (
    FailingTest,
    FlakyTest,
    HealthRating,
    ReliabilityReport,
    SlowTest,
    generate_json,
    generate_md,
    render_console_summary,
)
from pytest_reliability.reporting.console import RULE, format_factor
from pytest_reliability.reporting.generator import report_to_dict
from pytest_reliability.reporting.markdown import render_markdown_report

GENERATED_AT = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _flaky(name: str, rate: float = 0.3) -> FlakyTest:
    return FlakyTest(
        test_name=name,
        test_file="tests/test_checkout.py",
        flakiness_rate=rate,
        total_runs=10,
        passed_runs=7,
        failed_runs=3,
        recommendation="HIGH: Add wait conditions, increase timeouts, or check for race conditions.",
    )


@pytest.fixture
def report() -> ReliabilityReport:
    """Report with one entry in every bucket."""
    return ReliabilityReport(
        generated_at=GENERATED_AT,
        total_tests=12,
        flaky_tests=[_flaky("test_pay")],
        slow_tests=[
            SlowTest(
                test_name="test_export",
                test_file="tests/test_reports.py",
                average_duration=45_000,
                max_duration=52_500,
                slowness_factor=3.25,
            )
        ],
        failing_tests=[
            FailingTest(
                test_name="test_sync",
                test_file="tests/test_sync.py",
                consecutive_failures=4,
                last_failure_timestamp=GENERATED_AT,
                last_error_message="ConnectionError: a | b",
            )
        ],
        overall_health=HealthRating.POOR,
    )


@pytest.fixture
def stable_report() -> ReliabilityReport:
    return ReliabilityReport(generated_at=GENERATED_AT, total_tests=3)


class TestFormatFactor:
    def test_finite(self) -> None:
        assert format_factor(3.25) == "3.2x median"

    def test_infinite(self) -> None:
        assert format_factor(math.inf) == "n/a (median duration is 0)"


class TestConsoleSummary:
    def test_header_lines(self, report: ReliabilityReport) -> None:
        text = render_console_summary(report)

        assert RULE in text
        assert "TEST RELIABILITY REPORT" in text
        assert "Total tests tracked: 12" in text
        assert "Overall health: POOR" in text
        assert "Generated at: 2026-03-01T12:00:00+00:00" in text

    def test_sections(self, report: ReliabilityReport) -> None:
        text = render_console_summary(report)

        assert "FLAKY TESTS (1):" in text
        assert "1. test_pay" in text
        assert "Flakiness: 30.0% (3/10 runs)" in text
        assert "Recommendation: HIGH:" in text

        assert "SLOW TESTS (1):" in text
        assert "Average: 45.00s | Max: 52.50s" in text
        assert "Slowness: 3.2x median" in text

        assert "CONSISTENTLY FAILING TESTS (1):" in text
        assert "Consecutive failures: 4" in text
        assert "Error: ConnectionError: a | b" in text

        assert "All tests are stable!" not in text

    def test_stable_report(self, stable_report: ReliabilityReport) -> None:
        text = render_console_summary(stable_report)

        assert "All tests are stable! No flakiness or consistent failures detected." in text
        assert "FLAKY TESTS" not in text
        assert "RECOMMENDATIONS:" in text

    def test_limit_truncates_flaky(self, report: ReliabilityReport) -> None:
        report.flaky_tests = [_flaky(f"test_{i}") for i in range(15)]

        text = render_console_summary(report, limit=10)

        assert "FLAKY TESTS (15):" in text
        assert "10. test_9" in text
        assert "test_10" not in text

    def test_failing_never_truncated(self, report: ReliabilityReport) -> None:
        report.failing_tests = report.failing_tests * 3

        text = render_console_summary(report, limit=1)

        assert "3. test_sync" in text

    def test_custom_title(self, stable_report: ReliabilityReport) -> None:
        assert "NIGHTLY RELIABILITY" in render_console_summary(
            stable_report, title="NIGHTLY RELIABILITY"
        )


class TestMarkdownReport:
    def test_title_and_summary(self, report: ReliabilityReport) -> None:
        md = render_markdown_report(report)

        assert "# Test Reliability Report" in md
        assert "**12** tests tracked" in md
        assert "**POOR**" in md
        assert "**1** flaky" in md

    def test_sections_and_tables(self, report: ReliabilityReport) -> None:
        md = render_markdown_report(report)

        assert "## Flaky Tests (1)" in md
        assert "## Slow Tests (1)" in md
        assert "## Consistently Failing Tests (1)" in md
        assert "|#|Test|File|" in md
        assert "test_pay" in md
        assert "30.0%" in md
        assert "3.2x median" in md

    def test_pipe_escaped_in_cells(self, report: ReliabilityReport) -> None:
        md = render_markdown_report(report)
        assert "ConnectionError: a \\| b" in md

    def test_stable(self, stable_report: ReliabilityReport) -> None:
        md = render_markdown_report(stable_report)

        assert "All tests are stable" in md
        assert "## Flaky Tests" not in md
        assert "## Recommendations" in md

    def test_generate_md_writes_file(self, report: ReliabilityReport, tmp_path: Path) -> None:
        output = tmp_path / "reliability.md"
        generate_md(report, output)

        assert output.read_text(encoding="utf-8").startswith("# Test Reliability Report")


class TestJsonExport:
    def test_report_to_dict_shape(self, report: ReliabilityReport) -> None:
        data = report_to_dict(report)

        assert data["schema_version"] == SCHEMA_VERSION
        assert data["generated_at"] == "2026-03-01T12:00:00+00:00"
        assert data["total_tests"] == 12
        assert data["overall_health"] == "poor"
        assert data["flaky_tests"][0]["flakiness_rate"] == 0.3
        assert data["slow_tests"][0]["slowness_factor"] == 3.25
        assert data["failing_tests"][0]["last_failure_timestamp"] == "2026-03-01T12:00:00+00:00"

    def test_infinite_factor_exported_as_null(self, report: ReliabilityReport) -> None:
        report.slow_tests[0].slowness_factor = math.inf
        assert report_to_dict(report)["slow_tests"][0]["slowness_factor"] is None

    def test_generate_json(self, report: ReliabilityReport, tmp_path: Path) -> None:
        output = tmp_path / "reliability.json"
        generate_json(report, output)

        text = output.read_text(encoding="utf-8")
        assert text.startswith('{\n  "')
        assert json.loads(text)["failing_tests"][0]["test_name"] == "test_sync"

    def test_null_factor_reads_back_as_infinite(self, report: ReliabilityReport) -> None:
        report.slow_tests[0].slowness_factor = math.inf
        data = json.loads(json.dumps(report_to_dict(report)))

        loaded = deserialize_report(data)

        assert math.isinf(loaded.slow_tests[0].slowness_factor)
        assert loaded.overall_health is HealthRating.POOR
        assert loaded.failing_tests[0].last_failure_timestamp == GENERATED_AT

    def test_deserialize_missing_field(self) -> None:
        with pytest.raises(KeyError):
            deserialize_report({"total_tests": 1, "overall_health": "good"})


class TestMonitorExport:
    def test_export_creates_parent_dirs(self, monitor: ReliabilityMonitor, run, tmp_path: Path) -> None:
        for _ in range(3):
            run("fail", error="boom")
        output = tmp_path / "nested" / "out" / "reliability.json"

        report = monitor.export_report(output)

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["total_tests"] == report.total_tests == 1
        assert data["failing_tests"][0]["last_error_message"] == "boom"

    def test_export_error_propagates(self, monitor: ReliabilityMonitor, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x")

        with pytest.raises(OSError):
            monitor.export_report(blocker / "reliability.json")
