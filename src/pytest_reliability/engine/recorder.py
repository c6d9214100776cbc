"""Event recorder - turns start/end notifications into test results."""

from __future__ import annotations

import logging
import time
import traceback
from collections import deque
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from pytest_reliability.core.models import Outcome, TestIdentity, TestResult

if TYPE_CHECKING:
    from pytest_reliability.engine.aggregator import MetricsAggregator

_logger = logging.getLogger(__name__)


class EventRecorder:
    """Records the start and end of test attempts.

    Each ``end_test`` that matches a pending ``start_test`` produces an
    immutable TestResult, appended to a bounded history and forwarded to
    the metrics aggregator. Retries are just further start/end pairs with
    an incremented retry count.

    Example:
        recorder = EventRecorder(aggregator)
        recorder.start_test("tests/test_login.py", "test_ok")
        recorder.end_test("tests/test_login.py", "test_ok", "pass")
    """

    def __init__(
        self,
        aggregator: MetricsAggregator,
        *,
        max_results: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._aggregator = aggregator
        self._clock = clock
        self._history: deque[TestResult] = deque(maxlen=max_results)
        self._pending: dict[TestIdentity, float] = {}

    @property
    def history(self) -> tuple[TestResult, ...]:
        """Stored results, oldest first."""
        return tuple(self._history)

    @property
    def max_results(self) -> int:
        return self._history.maxlen or 0

    @property
    def pending(self) -> int:
        """Number of tests started but not yet ended."""
        return len(self._pending)

    def start_test(self, test_file: str, test_name: str) -> None:
        """Mark the start of an attempt."""
        self._pending[TestIdentity(test_file, test_name)] = self._clock()

    def cancel_test(self, test_file: str, test_name: str) -> bool:
        """Forget a pending start without recording a result.

        Returns:
            True if a pending start was dropped.
        """
        return self._pending.pop(TestIdentity(test_file, test_name), None) is not None

    def end_test(
        self,
        test_file: str,
        test_name: str,
        outcome: Outcome | str,
        retry_count: int = 0,
        error: BaseException | str | None = None,
        *,
        stack: str | None = None,
    ) -> TestResult | None:
        """Close an attempt and record its result.

        Args:
            test_file: File path of the test
            test_name: Name of the test
            outcome: "pass", "fail" or "skip"
            retry_count: Number of re-attempts before this result
            error: Exception or message for a failed attempt
            stack: Traceback text; overrides the one derived from ``error``

        Returns:
            The recorded TestResult, or None when no matching start exists.
        """
        outcome = Outcome(outcome)
        if retry_count < 0:
            msg = f"retry_count must be >= 0, got {retry_count}"
            raise ValueError(msg)

        identity = TestIdentity(test_file, test_name)
        started = self._pending.pop(identity, None)
        if started is None:
            _logger.warning("No start time found for test: %s", identity.key)
            return None

        duration_ms = max(0.0, (self._clock() - started) * 1000)
        message, error_stack = _describe_error(error)
        result = TestResult(
            identity=identity,
            outcome=outcome,
            duration_ms=duration_ms,
            timestamp=datetime.now(timezone.utc),
            retry_count=retry_count,
            error_message=message,
            error_stack=stack if stack is not None else error_stack,
        )

        self._history.append(result)
        self._aggregator.record(result)
        return result

    def last_failure(self, identity: TestIdentity) -> TestResult | None:
        """Most recent failing result for ``identity`` still held in history."""
        for result in reversed(self._history):
            if result.identity == identity and result.is_failed:
                return result
        return None

    def clear(self) -> None:
        self._history.clear()
        self._pending.clear()


def _describe_error(error: BaseException | str | None) -> tuple[str | None, str | None]:
    """Split an error into (message, stack) text."""
    if error is None:
        return None, None
    if isinstance(error, BaseException):
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        return str(error), stack
    return str(error), None
