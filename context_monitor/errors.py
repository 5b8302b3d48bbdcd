"""
Exception types raised by the context monitor.
"""

from typing import Iterable


class ContextMonitorError(Exception):
    """Base class for context monitor errors."""


class SensorPermissionError(ContextMonitorError, PermissionError):
    """Raised when a required sensor or location permission is not granted."""

    def __init__(self, denied: Iterable[str]):
        self.denied = tuple(denied)
        super().__init__(f"Required permissions not granted: {', '.join(self.denied)}")


class ConfigurationError(ContextMonitorError, ValueError):
    """Raised for missing or invalid configuration."""


class RecordingFormatError(ContextMonitorError, ValueError):
    """Raised when a sensor recording cannot be parsed."""
