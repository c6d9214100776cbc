"""Engine module - event recording and metrics aggregation."""

from pytest_reliability.engine.aggregator import MetricsAggregator
from pytest_reliability.engine.monitor import ReliabilityMonitor
from pytest_reliability.engine.recorder import EventRecorder

__all__ = ["EventRecorder", "MetricsAggregator", "ReliabilityMonitor"]
