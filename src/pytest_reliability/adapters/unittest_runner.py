"""unittest runner adapter.

Usage:
    monitor = ReliabilityMonitor()
    runner = ReliabilityTestRunner(monitor, verbosity=2)
    runner.run(unittest.defaultTestLoader.discover("tests"))

The reliability summary is written to the runner's stream when the run
stops, and exported as JSON when $RELIABILITY_REPORT_PATH is set.
"""

from __future__ import annotations

import sys
import traceback
import unittest
from typing import TYPE_CHECKING, Any

from pytest_reliability.adapters.base import RunnerAdapter
from pytest_reliability.core.models import Outcome

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

    from pytest_reliability.engine.monitor import ReliabilityMonitor

    ExcInfo = tuple[type[BaseException], BaseException, TracebackType]


def unittest_identity(test: unittest.TestCase) -> tuple[str, str]:
    """(file, name) for a unittest test case.

    The file is the test module's source path (its dotted name when the
    module has no file); the name is the test id without the module prefix.
    """
    module_name = type(test).__module__
    module = sys.modules.get(module_name)
    test_file = getattr(module, "__file__", None) or module_name
    test_id = test.id()
    prefix = f"{module_name}."
    test_name = test_id[len(prefix) :] if test_id.startswith(prefix) else test_id
    return test_file, test_name


class UnittestAdapter(RunnerAdapter):
    """Feeds unittest lifecycle events into a ReliabilityMonitor."""

    def __init__(self, monitor: ReliabilityMonitor, stream: Any, **kwargs: Any) -> None:
        super().__init__(monitor, **kwargs)
        self.stream = stream

    def on_test_begin(self, test: unittest.TestCase) -> None:
        self.monitor.start_test(*unittest_identity(test))

    def on_test_end(
        self,
        test: unittest.TestCase,
        outcome: Outcome,
        error: str | None = None,
        stack: str | None = None,
    ) -> None:
        test_file, test_name = unittest_identity(test)
        self.monitor.end_test(test_file, test_name, outcome, 0, error, stack=stack)

    def on_run_complete(self) -> None:
        self.complete_run()

    def write_summary(self, text: str) -> None:
        self.stream.write(text + "\n")
        self.stream.flush()


class ReliabilityTestResult(unittest.TextTestResult):
    """TextTestResult that reports every test to a UnittestAdapter.

    Success maps to pass; failures, errors, unexpected successes and failing
    subtests map to fail; skips and expected failures map to skip.
    """

    adapter: UnittestAdapter | None = None

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._current: unittest.TestCase | None = None
        self._outcome: Outcome = Outcome.PASS
        self._error: tuple[str, str] | None = None

    def _mark(self, test: unittest.TestCase, outcome: Outcome, err: ExcInfo | None = None) -> None:
        if test is not self._current:
            # class/module fixture errors arrive without startTest
            return
        if self._outcome is Outcome.FAIL:
            return
        self._outcome = outcome
        if err is not None:
            exc_type, exc_value, tb = err
            stack = "".join(traceback.format_exception(exc_type, exc_value, tb))
            self._error = (str(exc_value) or exc_type.__name__, stack)

    def startTest(self, test: unittest.TestCase) -> None:
        super().startTest(test)
        self._current = test
        self._outcome = Outcome.PASS
        self._error = None
        if self.adapter is not None:
            self.adapter.on_test_begin(test)

    def stopTest(self, test: unittest.TestCase) -> None:
        super().stopTest(test)
        if self.adapter is not None and test is self._current:
            message, stack = self._error or (None, None)
            self.adapter.on_test_end(test, self._outcome, message, stack)
        self._current = None

    def stopTestRun(self) -> None:
        super().stopTestRun()
        if self.adapter is not None:
            self.adapter.on_run_complete()

    def addFailure(self, test: unittest.TestCase, err: Any) -> None:
        super().addFailure(test, err)
        self._mark(test, Outcome.FAIL, err)

    def addError(self, test: unittest.TestCase, err: Any) -> None:
        super().addError(test, err)
        self._mark(test, Outcome.FAIL, err)

    def addSubTest(self, test: unittest.TestCase, subtest: unittest.TestCase, err: Any) -> None:
        super().addSubTest(test, subtest, err)
        if err is not None:
            self._mark(test, Outcome.FAIL, err)

    def addSkip(self, test: unittest.TestCase, reason: str) -> None:
        super().addSkip(test, reason)
        self._mark(test, Outcome.SKIP)

    def addExpectedFailure(self, test: unittest.TestCase, err: Any) -> None:
        super().addExpectedFailure(test, err)
        self._mark(test, Outcome.SKIP)

    def addUnexpectedSuccess(self, test: unittest.TestCase) -> None:
        super().addUnexpectedSuccess(test)
        if test is self._current and self._outcome is not Outcome.FAIL:
            self._error = ("Unexpected success", "")
        self._mark(test, Outcome.FAIL)


class ReliabilityTestRunner(unittest.TextTestRunner):
    """TextTestRunner wired to a ReliabilityMonitor.

    Args:
        monitor: The process-wide monitor
        export_path: JSON export path; defaults to $RELIABILITY_REPORT_PATH
        **kwargs: Passed through to unittest.TextTestRunner
    """

    resultclass = ReliabilityTestResult

    def __init__(
        self,
        monitor: ReliabilityMonitor,
        *,
        export_path: str | Path | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.monitor = monitor
        self.export_path = export_path

    def _makeResult(self) -> unittest.TextTestResult:
        result = super()._makeResult()
        if isinstance(result, ReliabilityTestResult):
            result.adapter = UnittestAdapter(
                self.monitor, self.stream, export_path=self.export_path
            )
        return result
