"""
Collaborator Providers Module

Injectable stand-ins for the host platform: permission prompts, sensor and
location sources, beacon ranging and display orientation. A host runtime
wires its own implementations with the same call shapes.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .logging_setup import get_logger
from .models import LocationFix, Orientation


logger = get_logger(__name__)

LOCATION_PERMISSION = 'location'


class PermissionStatus(str, Enum):
    GRANTED = 'granted'
    DENIED = 'denied'
    UNDETERMINED = 'undetermined'


class StaticPermissionProvider:
    """Answers permission requests from a fixed table.

    Permissions missing from the table resolve to default_status.
    """

    def __init__(self,
                 statuses: Optional[Mapping[str, PermissionStatus]] = None,
                 default_status: PermissionStatus = PermissionStatus.GRANTED):
        self.statuses = dict(statuses or {})
        self.default_status = default_status
        self.requests: List[str] = []

    def request(self, permission: str) -> PermissionStatus:
        self.requests.append(permission)
        return PermissionStatus(self.statuses.get(permission, self.default_status))


class Subscription:
    """Handle returned by a source; remove() detaches the listener."""

    def __init__(self, remove_callback: Callable[[], None]):
        self._remove_callback = remove_callback
        self._removed = False

    @property
    def removed(self) -> bool:
        return self._removed

    def remove(self) -> None:
        if self._removed:
            return
        self._removed = True
        self._remove_callback()


class _CallbackRegistry:
    """Thread-safe list of listeners shared by the simulated sources."""

    def __init__(self, name: str):
        self.name = name
        self._listeners: List[Callable] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable) -> Subscription:
        with self._lock:
            self._listeners.append(callback)
        logger.debug(f"{self.name}: listener added")
        return Subscription(lambda: self._unsubscribe(callback))

    def _unsubscribe(self, callback: Callable) -> None:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)
        logger.debug(f"{self.name}: listener removed")

    def remove_all_listeners(self) -> None:
        with self._lock:
            self._listeners.clear()

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _dispatch(self, *args) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(*args)


class SimulatedSensorSource(_CallbackRegistry):
    """A 3-axis sensor whose readings are pushed with emit().

    Listeners receive (x, y, z). Useful for tests, simulations and for
    replaying recorded sessions.
    """

    def __init__(self, name: str = 'sensor', update_interval_ms: int = 100):
        super().__init__(name)
        self.update_interval_ms = update_interval_ms

    def emit(self, x: float, y: float, z: float) -> None:
        self._dispatch(x, y, z)

    def emit_many(self, readings: Iterable[Sequence[float]]) -> int:
        count = 0
        for x, y, z in readings:
            self.emit(x, y, z)
            count += 1
        return count


class SimulatedLocationSource(_CallbackRegistry):
    """Location service stand-in; listeners receive LocationFix objects."""

    def __init__(self, name: str = 'location'):
        super().__init__(name)

    def emit(self, fix: LocationFix) -> None:
        self._dispatch(fix)


@dataclass(frozen=True)
class Beacon:
    major: int
    minor: int
    proximity: str = 'NEAR'
    accuracy: float = 1.0

    @property
    def identifier(self) -> str:
        return f"{self.major}:{self.minor}"


class BeaconTracker:
    """Keeps the latest ranged beacons and reports the nearest one.

    Instances are callables, so one can be passed directly as the
    classifier's beacon provider.
    """

    def __init__(self):
        self._beacons: List[Beacon] = []
        self._lock = threading.Lock()

    def update(self, beacons: Iterable[Beacon]) -> None:
        """Replace the ranged set, dropping beacons with unknown proximity."""
        ranged = sorted(
            (beacon for beacon in beacons if beacon.proximity.upper() != 'UNKNOWN'),
            key=lambda beacon: beacon.accuracy
        )
        with self._lock:
            self._beacons = ranged

    def nearest(self) -> Optional[Beacon]:
        with self._lock:
            return self._beacons[0] if self._beacons else None

    def __call__(self) -> Optional[str]:
        beacon = self.nearest()
        return beacon.identifier if beacon else None


_ROTATION_ORIENTATIONS: Dict[int, Orientation] = {
    90: Orientation.LANDSCAPE_LEFT,
    180: Orientation.UPSIDE_DOWN,
    270: Orientation.LANDSCAPE_RIGHT,
}


def orientation_from_dimensions(width: float, height: float, rotation: int = 0) -> Orientation:
    """
    Derive the device orientation from display dimensions.

    Args:
        width: Display width
        height: Display height
        rotation: Display rotation in degrees when the host reports it

    Returns:
        The matching Orientation
    """
    rotation = rotation % 360
    if rotation in _ROTATION_ORIENTATIONS:
        return _ROTATION_ORIENTATIONS[rotation]
    if width > height:
        return Orientation.LANDSCAPE_LEFT
    return Orientation.PORTRAIT


class DimensionsOrientationProvider:
    """Orientation provider backed by a display-dimensions query."""

    def __init__(self, dimensions_query: Callable[[], Sequence[float]]):
        self.dimensions_query = dimensions_query

    def __call__(self) -> Orientation:
        dimensions = self.dimensions_query()
        width, height = dimensions[0], dimensions[1]
        rotation = int(dimensions[2]) if len(dimensions) > 2 else 0
        return orientation_from_dimensions(width, height, rotation)


def no_beacon() -> Optional[str]:
    return None


def fixed_orientation(orientation: Orientation = Orientation.PORTRAIT) -> Callable[[], Orientation]:
    return lambda: orientation
