"""CLI for re-rendering exported reliability reports.

Usage:
    pytest-reliability-report reliability.json
    pytest-reliability-report reliability.json --md reliability.md --quiet

Configuration (in order of precedence):
    1. CLI arguments (highest)
    2. Environment variables: RELIABILITY_MD_PATH
    3. pyproject.toml [tool.pytest-reliability-report] section (lowest)
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import tomllib
from pathlib import Path
from typing import Any

from pytest_reliability.config import MD_PATH_ENV
from pytest_reliability.core.errors import ReportLoadError
from pytest_reliability.core.serialization import SCHEMA_VERSION, deserialize_report
from pytest_reliability.reporting.console import render_console_summary
from pytest_reliability.reporting.generator import generate_md
from pytest_reliability.reporting.report import ReliabilityReport

_logger = logging.getLogger(__name__)

_SUPPORTED_MAJOR = int(SCHEMA_VERSION.split(".")[0])
_SETTINGS_TABLE = "pytest-reliability-report"


def find_pyproject(start: Path | None = None) -> Path | None:
    """Nearest pyproject.toml at or above ``start`` (default: the working directory)."""
    start = start or Path.cwd()
    for directory in (start, *start.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def read_report_settings() -> dict[str, Any]:
    """``[tool.pytest-reliability-report]`` from the nearest pyproject.toml.

    A missing file or table yields ``{}``. An unreadable file or a non-table
    value also yields ``{}``, with a warning.
    """
    pyproject = find_pyproject()
    if pyproject is None:
        return {}
    try:
        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        _logger.warning("Ignoring unreadable %s", pyproject, exc_info=True)
        return {}
    settings = data.get("tool", {}).get(_SETTINGS_TABLE, {})
    if not isinstance(settings, dict):
        _logger.warning("Ignoring [tool.%s] in %s: not a table", _SETTINGS_TABLE, pyproject)
        return {}
    return settings


def resolve_setting(key: str, cli_value: Any, env_var: str) -> Any:
    """Report CLI setting from ``--<key>``, then ``$env_var``, then pyproject."""
    if cli_value is not None:
        return cli_value
    return os.environ.get(env_var) or read_report_settings().get(key)


def load_report(json_path: Path) -> ReliabilityReport:
    """Load a ReliabilityReport exported by a previous run.

    Raises:
        ReportLoadError: The file is unreadable, malformed, or uses an
            unsupported schema version.
    """
    try:
        data = json.loads(json_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ReportLoadError(str(json_path), str(e)) from e

    if not isinstance(data, dict):
        raise ReportLoadError(str(json_path), "top-level JSON value must be an object")

    schema_version = data.get("schema_version")
    try:
        major = int(str(schema_version).split(".")[0])
    except ValueError:
        major = None
    if major != _SUPPORTED_MAJOR:
        msg = f"unsupported schema version {schema_version!r} (expected {SCHEMA_VERSION})"
        raise ReportLoadError(str(json_path), msg)

    try:
        return deserialize_report(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ReportLoadError(str(json_path), f"invalid report data: {e}") from e


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="pytest-reliability-report",
        description="Print or convert an exported pytest-reliability JSON report",
    )
    parser.add_argument(
        "json_file",
        type=Path,
        help="Path to the exported JSON report (e.g., reliability.json)",
    )
    parser.add_argument(
        "--md",
        metavar="PATH",
        type=Path,
        help=f"Write a Markdown report to PATH. Can also be set via {MD_PATH_ENV} "
        "or pyproject.toml.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=10,
        metavar="N",
        help="Flaky and slow tests listed in the console summary (default: 10)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        default=False,
        help="Do not print the console summary",
    )

    args = parser.parse_args(argv)

    md_path = resolve_setting("md", args.md, MD_PATH_ENV)

    if not args.json_file.exists():
        print(f"Error: JSON file not found: {args.json_file}", file=sys.stderr)
        return 1

    try:
        report = load_report(args.json_file)
    except ReportLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        print(render_console_summary(report, limit=args.limit))

    if md_path:
        path = Path(md_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        generate_md(report, path)
        print(f"Markdown report: {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
