"""pytest-reliability: flaky, slow and failing test detection for pytest and unittest."""

import logging

# Configure library logging per Python best practices:
# https://docs.python.org/3/howto/logging.html#configuring-logging-for-a-library
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Core types  # noqa: E402 - logging must be configured before submodule imports
from pytest_reliability.config import ReliabilityConfig  # noqa: E402
from pytest_reliability.core import (  # noqa: E402
    Outcome,
    ReliabilityError,
    ReportLoadError,
    TestIdentity,
    TestMetrics,
    TestResult,
)

# Engine
from pytest_reliability.engine import (  # noqa: E402
    EventRecorder,
    MetricsAggregator,
    ReliabilityMonitor,
)

# Adapters
from pytest_reliability.adapters import (  # noqa: E402
    ReliabilityTestResult,
    ReliabilityTestRunner,
    RunnerAdapter,
)

# Hooks (for plugin extensibility)
from pytest_reliability.hooks import ReliabilityHookSpec  # noqa: E402

# Reporting
from pytest_reliability.reporting import (  # noqa: E402
    FailingTest,
    FlakyTest,
    HealthRating,
    ReliabilityReport,
    SlowTest,
    generate_json,
    generate_md,
    render_console_summary,
)

__all__ = [  # noqa: RUF022
    # Core
    "Outcome",
    "ReliabilityConfig",
    "ReliabilityError",
    "ReportLoadError",
    "TestIdentity",
    "TestMetrics",
    "TestResult",
    # Engine
    "EventRecorder",
    "MetricsAggregator",
    "ReliabilityMonitor",
    # Adapters
    "ReliabilityTestResult",
    "ReliabilityTestRunner",
    "RunnerAdapter",
    # Hooks
    "ReliabilityHookSpec",
    # Reporting
    "FailingTest",
    "FlakyTest",
    "HealthRating",
    "ReliabilityReport",
    "SlowTest",
    "generate_json",
    "generate_md",
    "render_console_summary",
]

from importlib.metadata import version as _get_version  # noqa: E402

__version__ = _get_version("pytest-reliability")
