"""pytest plugin for test reliability monitoring.

Enabled by any of:
    pytest --reliability
    pytest --reliability-json reliability.json
    pytest --reliability-md reliability.md
    RELIABILITY_REPORT_PATH=reliability.json pytest
    [pytest] reliability = true

Configuration (in order of precedence):
    1. CLI arguments (highest)
    2. Environment variable: RELIABILITY_REPORT_PATH
    3. ini options (reliability_* keys in pytest.ini / pyproject.toml)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from pytest_reliability.adapters.base import RunnerAdapter
from pytest_reliability.config import REPORT_PATH_ENV, ReliabilityConfig
from pytest_reliability.core.models import Outcome
from pytest_reliability.engine.monitor import ReliabilityMonitor
from pytest_reliability.hooks import ReliabilityHookSpec
from pytest_reliability.reporting.generator import generate_md

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.config.argparsing import Parser
    from _pytest.reports import TestReport as PytestTestReport
    from _pytest.terminal import TerminalReporter
    from pluggy import PluginManager

    from pytest_reliability.reporting.report import ReliabilityReport

_logger = logging.getLogger(__name__)

# Key for storing the session's monitor in config
MONITOR_KEY = pytest.StashKey[ReliabilityMonitor]()
ADAPTER_PLUGIN_NAME = "reliability-adapter"
SKIP_MARKER = "reliability_skip"

__all__ = ["MONITOR_KEY", "PytestAdapter", "load_config", "split_node_id"]

# ini name -> (ReliabilityConfig field, converter)
_INI_OPTIONS: dict[str, tuple[str, type]] = {
    "reliability_flakiness_threshold": ("flakiness_threshold", float),
    "reliability_min_runs": ("min_runs_for_flakiness", int),
    "reliability_slow_threshold_ms": ("slow_threshold_ms", float),
    "reliability_consecutive_failures": ("consecutive_failure_threshold", int),
    "reliability_max_results": ("max_results", int),
    "reliability_summary_limit": ("summary_limit", int),
}


def pytest_addhooks(pluginmanager: PluginManager) -> None:
    pluginmanager.add_hookspecs(ReliabilityHookSpec)


def pytest_addoption(parser: Parser) -> None:
    """Add pytest CLI and ini options for reliability monitoring."""
    group = parser.getgroup("reliability", "Test reliability monitoring")

    group.addoption(
        "--reliability",
        action="store_true",
        default=False,
        help="Track flaky, slow and persistently failing tests and print a reliability summary",
    )
    group.addoption(
        "--reliability-json",
        metavar="PATH",
        default=None,
        help=f"Export the reliability report as JSON to PATH (default: ${REPORT_PATH_ENV})",
    )
    group.addoption(
        "--reliability-md",
        metavar="PATH",
        default=None,
        help="Export the reliability report as Markdown to PATH",
    )

    parser.addini(
        "reliability",
        type="bool",
        default=False,
        help="Enable reliability monitoring for every run",
    )
    parser.addini(
        "reliability_fail_on_export_error",
        type="bool",
        default=False,
        help="Fail the session when the reliability report cannot be written",
    )
    defaults = ReliabilityConfig()
    for ini_name, (field_name, _) in _INI_OPTIONS.items():
        parser.addini(
            ini_name,
            type="string",
            default=str(getattr(defaults, field_name)),
            help=f"Reliability monitor setting '{field_name}'",
        )


def load_config(config: Config) -> ReliabilityConfig:
    """Build a ReliabilityConfig from ini options."""
    values: dict[str, Any] = {}
    for ini_name, (field_name, convert) in _INI_OPTIONS.items():
        raw = config.getini(ini_name)
        try:
            values[field_name] = convert(raw)
        except ValueError:
            msg = f"Invalid value for ini option {ini_name}: {raw!r}"
            raise pytest.UsageError(msg) from None
    try:
        return ReliabilityConfig(**values)
    except ValueError as e:
        raise pytest.UsageError(f"Invalid reliability configuration: {e}") from None


def _resolve_export_path(config: Config) -> str | None:
    """JSON export path with precedence: CLI > env var."""
    return config.getoption("--reliability-json") or os.environ.get(REPORT_PATH_ENV) or None


def _is_enabled(config: Config) -> bool:
    return bool(
        config.getoption("--reliability")
        or config.getoption("--reliability-md")
        or _resolve_export_path(config)
        or config.getini("reliability")
    )


def _is_xdist_worker(config: Config) -> bool:
    return hasattr(config, "workerinput")


def split_node_id(nodeid: str) -> tuple[str, str]:
    """Split a pytest node ID into (file, test name).

    Example:
        "tests/test_a.py::TestA::test_x[1]" -> ("tests/test_a.py", "TestA::test_x[1]")
    """
    test_file, sep, test_name = nodeid.partition("::")
    if not sep:
        return nodeid, nodeid
    return test_file, test_name


@dataclass
class _Attempt:
    """Outcome of the attempt in progress, folded over setup/call/teardown."""

    outcome: Outcome = Outcome.PASS
    retry_count: int = 0
    error: str | None = None
    stack: str | None = None
    reports: int = 0

    def fold(self, report: PytestTestReport) -> None:
        self.reports += 1
        if report.failed or report.outcome == "rerun":
            if self.outcome is not Outcome.FAIL:
                self.outcome = Outcome.FAIL
                self.error, self.stack = _describe_failure(report)
        elif report.skipped and self.outcome is Outcome.PASS:
            self.outcome = Outcome.SKIP


def _describe_failure(report: PytestTestReport) -> tuple[str, str]:
    """(message, full text) for a failed pytest report."""
    stack = report.longreprtext
    crash = getattr(report.longrepr, "reprcrash", None)
    message = getattr(crash, "message", None)
    if not message:
        message = stack.strip().splitlines()[-1] if stack.strip() else f"{report.when} failed"
    return message, stack


class PytestAdapter(RunnerAdapter):
    """Registered as a pytest plugin object; maps pytest's runtest protocol to the monitor.

    logstart opens an attempt, logreport folds each phase into it and
    logfinish closes it. A "rerun" report from pytest-rerunfailures closes
    the attempt as a failure and opens the next one with retry_count + 1.
    Recent rerunfailures releases wrap every attempt in its own
    logstart/logfinish pair: the attempt opened by the rerun report then
    sees no reports, so logfinish discards it and the next logstart reopens
    it with the same retry count.

    Tests marked ``reliability_skip`` are dropped at collection, or at their
    first report on an xdist controller.
    """

    def __init__(
        self,
        monitor: ReliabilityMonitor,
        config: Config,
        *,
        export_path: str | Path | None = None,
        md_path: str | Path | None = None,
    ) -> None:
        super().__init__(monitor, export_path=export_path)
        self.config = config
        self.md_path = Path(md_path) if md_path else None
        self.report: ReliabilityReport | None = None
        self._attempts: dict[str, _Attempt] = {}
        self._output: list[str] = []
        self._excluded: set[str] = set()
        # nodeid -> retry count for the next logstart (one logstart per rerun)
        self._next_retry: dict[str, int] = {}

    # -- RunnerAdapter -------------------------------------------------------

    def on_test_begin(self, nodeid: str, retry_count: int = 0) -> None:
        self._attempts[nodeid] = _Attempt(retry_count=retry_count)
        self.monitor.start_test(*split_node_id(nodeid))

    def on_test_end(self, nodeid: str) -> None:
        attempt = self._attempts.pop(nodeid, None)
        if attempt is None:
            return
        test_file, test_name = split_node_id(nodeid)
        self.monitor.end_test(
            test_file,
            test_name,
            attempt.outcome,
            attempt.retry_count,
            attempt.error,
            stack=attempt.stack,
        )

    def _discard(self, nodeid: str) -> None:
        """Drop the open attempt for ``nodeid`` without recording it."""
        self._attempts.pop(nodeid, None)
        self.monitor.cancel_test(*split_node_id(nodeid))

    def on_run_complete(self, session: pytest.Session) -> None:
        if _is_xdist_worker(self.config):
            return

        report = self.monitor.generate_report()
        self.report = report
        self.config.hook.pytest_reliability_report(report=report, config=self.config)
        self.write_summary(self.render_summary(report))

        try:
            self.export(report)
        except OSError as e:
            _logger.error("Failed to export reliability report", exc_info=True)
            self.write_summary(f"Warning: reliability report export failed: {e}")
            if self.config.getini("reliability_fail_on_export_error"):
                session.exitstatus = pytest.ExitCode.INTERNAL_ERROR

    def write_summary(self, text: str) -> None:
        # Flushed by pytest_terminal_summary, which runs after sessionfinish
        self._output.append(text)

    def export(self, report: ReliabilityReport) -> Path | None:
        path = super().export(report)
        if path is not None:
            self.write_summary(f"Reliability JSON report: {path}")
        if self.md_path is not None:
            self.md_path.parent.mkdir(parents=True, exist_ok=True)
            generate_md(report, self.md_path)
            self.write_summary(f"Reliability Markdown report: {self.md_path}")
        return path

    # -- pytest hooks --------------------------------------------------------

    def pytest_collection_modifyitems(self, items: list[pytest.Item]) -> None:
        """Remember tests marked to be excluded from tracking."""
        self._excluded = {
            item.nodeid for item in items if item.get_closest_marker(SKIP_MARKER)
        }

    def pytest_runtest_logstart(self, nodeid: str, location: tuple[str, int | None, str]) -> None:
        if nodeid in self._excluded or nodeid in self._attempts:
            return
        self.on_test_begin(nodeid, retry_count=self._next_retry.pop(nodeid, 0))

    def pytest_runtest_logreport(self, report: PytestTestReport) -> None:
        attempt = self._attempts.get(report.nodeid)
        if attempt is None:
            return
        # The xdist controller never collects, so the marker travels in the report
        if SKIP_MARKER in report.keywords:
            self._excluded.add(report.nodeid)
            self._discard(report.nodeid)
            return
        attempt.fold(report)
        if report.outcome == "rerun":
            self.on_test_end(report.nodeid)
            self.on_test_begin(report.nodeid, retry_count=attempt.retry_count + 1)

    def pytest_runtest_logfinish(self, nodeid: str, location: tuple[str, int | None, str]) -> None:
        attempt = self._attempts.get(nodeid)
        if attempt is None:
            return
        if attempt.reports == 0:
            # Opened by a rerun report, but the next attempt gets its own logstart
            self._next_retry[nodeid] = attempt.retry_count
            self._discard(nodeid)
            return
        self.on_test_end(nodeid)

    def pytest_sessionfinish(self, session: pytest.Session, exitstatus: int) -> None:
        self.on_run_complete(session)

    def pytest_terminal_summary(self, terminalreporter: TerminalReporter) -> None:
        if not self._output:
            return
        terminalreporter.section("reliability")
        for text in self._output:
            for line in text.splitlines():
                terminalreporter.write_line(line)
        self._output.clear()


def pytest_configure(config: Config) -> None:
    """Create the session monitor and register the adapter when enabled."""
    config.addinivalue_line(
        "markers",
        f"{SKIP_MARKER}: Exclude this test from reliability tracking",
    )

    if not _is_enabled(config):
        return

    monitor = ReliabilityMonitor(load_config(config))
    config.stash[MONITOR_KEY] = monitor
    adapter = PytestAdapter(
        monitor,
        config,
        export_path=_resolve_export_path(config),
        md_path=config.getoption("--reliability-md"),
    )
    config.pluginmanager.register(adapter, ADAPTER_PLUGIN_NAME)


def pytest_unconfigure(config: Config) -> None:
    adapter = config.pluginmanager.get_plugin(ADAPTER_PLUGIN_NAME)
    if adapter is not None:
        config.pluginmanager.unregister(adapter)


@pytest.fixture(scope="session")
def reliability_monitor(request: pytest.FixtureRequest) -> ReliabilityMonitor | None:
    """The session's ReliabilityMonitor, or None when monitoring is disabled."""
    return request.config.stash.get(MONITOR_KEY, None)
