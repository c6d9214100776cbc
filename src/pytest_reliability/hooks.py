"""pytest hooks for reliability reporting extensibility."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from _pytest.config import Config

    from pytest_reliability.reporting.report import ReliabilityReport


class ReliabilityHookSpec:
    """Hook specifications for pytest-reliability plugins."""

    @pytest.hookspec
    def pytest_reliability_report(self, report: ReliabilityReport, config: Config) -> None:
        """Called once per session after the reliability report is generated.

        Runs before the report is printed or exported, so plugins can forward
        it elsewhere (chat notifications, CI annotations, ...).

        Args:
            report: The generated report (read-only snapshot)
            config: The pytest config object
        """
        ...
