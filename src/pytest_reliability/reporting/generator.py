"""Report export to JSON and Markdown files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

from pytest_reliability.core.serialization import SCHEMA_VERSION, serialize_dataclass
from pytest_reliability.reporting.markdown import render_markdown_report

if TYPE_CHECKING:
    from pytest_reliability.reporting.report import ReliabilityReport


def report_to_dict(report: ReliabilityReport) -> dict:
    """JSON-compatible dict of ``report`` including the schema version."""
    report_dict = serialize_dataclass(report)
    report_dict["schema_version"] = SCHEMA_VERSION
    return report_dict


def generate_json(report: ReliabilityReport, output_path: str | Path) -> None:
    """Write ``report`` as pretty-printed UTF-8 JSON.

    I/O errors propagate to the caller.

    Example:
        generate_json(monitor.generate_report(), "reliability.json")
    """
    json_str = json.dumps(report_to_dict(report), indent=2, ensure_ascii=False)
    Path(output_path).write_text(json_str, encoding="utf-8")


def generate_md(report: ReliabilityReport, output_path: str | Path) -> None:
    """Write ``report`` as a Markdown file."""
    Path(output_path).write_text(render_markdown_report(report), encoding="utf-8")
