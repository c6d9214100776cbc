"""Custom exceptions for pytest-reliability."""

from __future__ import annotations


class ReliabilityError(Exception):
    """Base exception for pytest-reliability errors."""


class ReportLoadError(ReliabilityError):
    """Error loading an exported reliability report."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"Failed to load reliability report {path}: {message}")
