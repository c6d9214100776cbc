"""Serialization helpers for dataclasses to JSON-compatible dicts."""

from __future__ import annotations

import math
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pytest_reliability.reporting.report import ReliabilityReport

SCHEMA_VERSION = "1.0"


def serialize_dataclass(obj: Any) -> Any:
    """Convert dataclass to dict recursively, handling special types.

    Excludes private fields (prefixed with _) from serialization.
    Datetimes become ISO-8601 strings, enums their values and
    non-finite floats None (JSON has no infinity).
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        data = asdict(obj)  # type: ignore[arg-type]
        return {k: serialize_dataclass(v) for k, v in data.items() if not k.startswith("_")}
    elif isinstance(obj, (list, tuple)):
        return [serialize_dataclass(item) for item in obj]
    elif isinstance(obj, dict):
        return {k: serialize_dataclass(v) for k, v in obj.items()}
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, float) and not math.isfinite(obj):
        return None
    else:
        return obj


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def deserialize_report(data: dict[str, Any]) -> ReliabilityReport:
    """Deserialize a ReliabilityReport from a dict (from JSON).

    Raises:
        KeyError: A required field is missing
        ValueError: A field has an invalid value
    """
    from pytest_reliability.reporting.report import (
        FailingTest,
        FlakyTest,
        HealthRating,
        ReliabilityReport,
        SlowTest,
    )

    flaky_tests = [
        FlakyTest(
            test_name=t["test_name"],
            test_file=t["test_file"],
            flakiness_rate=t["flakiness_rate"],
            total_runs=t["total_runs"],
            passed_runs=t["passed_runs"],
            failed_runs=t["failed_runs"],
            recommendation=t.get("recommendation", ""),
        )
        for t in data.get("flaky_tests", [])
    ]

    slow_tests = [
        SlowTest(
            test_name=t["test_name"],
            test_file=t["test_file"],
            average_duration=t["average_duration"],
            max_duration=t["max_duration"],
            # Exported as null when the median duration was 0
            slowness_factor=(
                t["slowness_factor"] if t.get("slowness_factor") is not None else math.inf
            ),
        )
        for t in data.get("slow_tests", [])
    ]

    failing_tests = [
        FailingTest(
            test_name=t["test_name"],
            test_file=t["test_file"],
            consecutive_failures=t["consecutive_failures"],
            last_failure_timestamp=_parse_datetime(t.get("last_failure_timestamp")),
            last_error_message=t.get("last_error_message", ""),
        )
        for t in data.get("failing_tests", [])
    ]

    return ReliabilityReport(
        generated_at=datetime.fromisoformat(data["generated_at"]),
        total_tests=data["total_tests"],
        flaky_tests=flaky_tests,
        slow_tests=slow_tests,
        failing_tests=failing_tests,
        overall_health=HealthRating(data["overall_health"]),
    )
