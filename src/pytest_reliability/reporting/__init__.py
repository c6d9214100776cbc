"""Reporting module - reliability classification, console summary and export."""

from pytest_reliability.reporting.console import render_console_summary
from pytest_reliability.reporting.generator import generate_json, generate_md, report_to_dict
from pytest_reliability.reporting.markdown import render_markdown_report
from pytest_reliability.reporting.report import (
    FailingTest,
    FlakyTest,
    HealthRating,
    ReliabilityReport,
    ReportGenerator,
    SlowTest,
    calculate_health,
    calculate_median,
    flakiness_recommendation,
)

__all__ = [
    # Report data
    "FailingTest",
    "FlakyTest",
    "HealthRating",
    "ReliabilityReport",
    "SlowTest",
    # Classification
    "ReportGenerator",
    "calculate_health",
    "calculate_median",
    "flakiness_recommendation",
    # Rendering and export
    "generate_json",
    "generate_md",
    "render_console_summary",
    "render_markdown_report",
    "report_to_dict",
]
