"""Runner adapters - translate test framework events into monitor calls."""

from pytest_reliability.adapters.base import RunnerAdapter
from pytest_reliability.adapters.unittest_runner import (
    ReliabilityTestResult,
    ReliabilityTestRunner,
    UnittestAdapter,
)

__all__ = [
    "ReliabilityTestResult",
    "ReliabilityTestRunner",
    "RunnerAdapter",
    "UnittestAdapter",
]
