"""
Context Monitor

On-device context detection engine that turns raw motion-sensor samples
into a discrete activity label with a confidence score.
"""

__version__ = "1.0.0"
__author__ = "Context Monitor Team"

from .models import ActivityState, ContextSnapshot, LocationFix, Orientation, SensorKind, UIMode
from .errors import ContextMonitorError, SensorPermissionError
from .context_detector import ContextClassifier

__all__ = [
    'ActivityState',
    'ContextClassifier',
    'ContextMonitorError',
    'ContextSnapshot',
    'LocationFix',
    'Orientation',
    'SensorKind',
    'SensorPermissionError',
    'UIMode',
]
