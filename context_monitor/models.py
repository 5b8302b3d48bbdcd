"""
Data Model Module

Enumerations and value types shared by the classifier, its collaborators
and the presentation layer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ActivityState(str, Enum):
    """Activity labels produced by the classifier.

    Consumers switch on these values exhaustively, so adding a member is a
    breaking change.
    """
    IDLE = 'IDLE'
    WALKING = 'WALKING'
    LIFTING = 'LIFTING'
    OPERATING_MACHINERY = 'OPERATING_MACHINERY'
    DRIVING = 'DRIVING'


class SensorKind(str, Enum):
    ACCEL = 'accel'
    GYRO = 'gyro'
    MAG = 'mag'


class Orientation(str, Enum):
    PORTRAIT = 'PORTRAIT'
    LANDSCAPE_LEFT = 'LANDSCAPE_LEFT'
    LANDSCAPE_RIGHT = 'LANDSCAPE_RIGHT'
    UPSIDE_DOWN = 'UPSIDE_DOWN'


class UIMode(str, Enum):
    NORMAL = 'normal'
    VOICE = 'voice'
    MINIMAL = 'minimal'


@dataclass(frozen=True)
class MotionSample:
    """A raw 3-axis sensor reading."""
    x: float
    y: float
    z: float
    timestamp: Optional[float] = None

    def axes(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class LocationFix:
    """A location fix as delivered by the host location service.

    Speed is in metres per second and may be missing when the host
    cannot estimate it.
    """
    latitude: float
    longitude: float
    accuracy: float
    speed: Optional[float] = None
    timestamp: Optional[float] = None

    def to_dict(self) -> Dict[str, float]:
        """Public location shape: lat, lng and accuracy only."""
        return {
            'lat': self.latitude,
            'lng': self.longitude,
            'accuracy': self.accuracy,
        }


@dataclass(frozen=True)
class WindowFeatures:
    """Statistical features of the accelerometer magnitude window."""
    mean: float
    variance: float
    frequency: float
    sample_count: int


@dataclass(frozen=True)
class ContextSnapshot:
    """Read-only summary of the current context."""
    activity: ActivityState = ActivityState.IDLE
    confidence: float = 0.0
    location: Optional[LocationFix] = None
    nearest_beacon: Optional[str] = None
    orientation: Orientation = Orientation.PORTRAIT

    def to_dict(self) -> Dict[str, Any]:
        """Convert the snapshot to the shape consumed by the interface layer."""
        return {
            'activity': self.activity.value,
            'confidence': self.confidence,
            'location': self.location.to_dict() if self.location else None,
            'nearestBeacon': self.nearest_beacon,
            'orientation': self.orientation.value,
        }
