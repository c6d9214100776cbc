"""Abstract base class for test runner adapters."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pytest_reliability.config import REPORT_PATH_ENV
from pytest_reliability.reporting.console import render_console_summary
from pytest_reliability.reporting.generator import generate_json

if TYPE_CHECKING:
    from pytest_reliability.engine.monitor import ReliabilityMonitor
    from pytest_reliability.reporting.report import ReliabilityReport

_logger = logging.getLogger(__name__)


class RunnerAdapter(ABC):
    """Translates a test framework's lifecycle notifications into monitor calls.

    Subclasses implement the three framework-facing hooks and a way to show
    text to the user. Adapters only talk to the monitor API; they never touch
    aggregated metrics directly.

    Args:
        monitor: The process-wide monitor, injected at setup time
        export_path: JSON export path; defaults to $RELIABILITY_REPORT_PATH
        title: Heading of the console summary
    """

    def __init__(
        self,
        monitor: ReliabilityMonitor,
        *,
        export_path: str | Path | None = None,
        title: str = "TEST RELIABILITY REPORT",
    ) -> None:
        self.monitor = monitor
        if export_path is None:
            export_path = os.environ.get(REPORT_PATH_ENV) or None
        self.export_path = Path(export_path) if export_path else None
        self.title = title

    @abstractmethod
    def on_test_begin(self, *args: Any, **kwargs: Any) -> None:
        """Framework hook: a test started. Must call ``monitor.start_test``."""

    @abstractmethod
    def on_test_end(self, *args: Any, **kwargs: Any) -> None:
        """Framework hook: a test finished. Must call ``monitor.end_test``."""

    @abstractmethod
    def on_run_complete(self, *args: Any, **kwargs: Any) -> None:
        """Framework hook: the whole run finished. Usually calls ``complete_run``."""

    @abstractmethod
    def write_summary(self, text: str) -> None:
        """Show the console summary to the user."""

    def render_summary(self, report: ReliabilityReport) -> str:
        return render_console_summary(
            report, title=self.title, limit=self.monitor.config.summary_limit
        )

    def export(self, report: ReliabilityReport) -> Path | None:
        """Write ``report`` as JSON to the export path, if one is configured.

        Errors propagate; callers decide whether they fail the run.
        """
        if self.export_path is None:
            return None
        self.export_path.parent.mkdir(parents=True, exist_ok=True)
        generate_json(report, self.export_path)
        _logger.debug("Reliability report exported to %s", self.export_path)
        return self.export_path

    def complete_run(self) -> ReliabilityReport:
        """Generate the report, print the summary and export it."""
        report = self.monitor.generate_report()
        self.write_summary(self.render_summary(report))
        if (path := self.export(report)) is not None:
            self.write_summary(f"Full reliability report exported to: {path}\n")
        return report
