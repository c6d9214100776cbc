"""Core module - data model, errors and serialization."""

from pytest_reliability.core.errors import ReliabilityError, ReportLoadError
from pytest_reliability.core.models import Outcome, TestIdentity, TestMetrics, TestResult

__all__ = [
    "Outcome",
    "ReliabilityError",
    "ReportLoadError",
    "TestIdentity",
    "TestMetrics",
    "TestResult",
]
