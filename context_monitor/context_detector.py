"""
Context Detection Module

Streaming activity classifier. Motion samples are reduced to scalar
magnitudes and buffered in sliding windows; once enough accelerometer data
is buffered every new sample triggers feature extraction, rule-based
classification and the hysteresis gate. The current context is read
independently of ingestion through get_current_context().
"""

import threading
from typing import Callable, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import SensorPermissionError
from .features import DEFAULT_SAMPLE_RATE_HZ, extract_features
from .logging_setup import get_logger
from .models import (
    ActivityState,
    ContextSnapshot,
    LocationFix,
    MotionSample,
    Orientation,
    SensorKind,
    WindowFeatures,
)
from .providers import (
    LOCATION_PERMISSION,
    PermissionStatus,
    StaticPermissionProvider,
    Subscription,
    fixed_orientation,
    no_beacon,
)
from .rules import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    HysteresisGate,
    ThresholdTable,
    build_threshold_table,
    classify_features,
    complete_threshold_table,
)
from .sensor_window import DEFAULT_WINDOW_SIZE, MagnitudeWindow, is_finite_reading, magnitude_for


DEFAULT_MIN_SAMPLES = 50  # 5 seconds at 10Hz

Axes = Union[Sequence[float], Mapping[str, float], MotionSample]


def _as_reading(axes: Axes) -> Optional[Tuple[float, ...]]:
    """Normalize a reading to an (x, y, z) tuple, or None when it has the wrong shape."""
    if isinstance(axes, MotionSample):
        return axes.axes()
    if isinstance(axes, Mapping):
        if not {'x', 'y', 'z'} <= set(axes):
            return None
        return (axes['x'], axes['y'], axes['z'])
    if isinstance(axes, (str, bytes)):
        return None
    try:
        reading = tuple(axes)
    except TypeError:
        return None
    return reading if len(reading) == 3 else None


class ContextClassifier:
    """Classifies the wearer's activity from motion and location signals."""

    def __init__(self,
                 thresholds: Optional[ThresholdTable] = None,
                 window_size: int = DEFAULT_WINDOW_SIZE,
                 min_samples: int = DEFAULT_MIN_SAMPLES,
                 sample_rate_hz: float = DEFAULT_SAMPLE_RATE_HZ,
                 confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
                 permission_provider=None,
                 required_permissions: Sequence[str] = (LOCATION_PERMISSION,),
                 accelerometer=None,
                 gyroscope=None,
                 magnetometer=None,
                 location_source=None,
                 beacon_provider: Optional[Callable[[], Optional[str]]] = None,
                 orientation_provider: Optional[Callable[[], Orientation]] = None,
                 classify_every: int = 1,
                 reject_stale_locations: bool = False):
        """
        Initialize the context classifier.

        Args:
            thresholds: Threshold table used by the activity rules
            window_size: Capacity of each magnitude window
            min_samples: Accelerometer samples required before classifying
            sample_rate_hz: Assumed capture rate used to normalize frequency
            confidence_threshold: Confidence a candidate must exceed to replace the held activity
            permission_provider: Object with request(permission) -> PermissionStatus
            required_permissions: Permissions requested by initialize()
            accelerometer: Source with subscribe(callback) delivering (x, y, z)
            gyroscope: Source with subscribe(callback) delivering (x, y, z)
            magnetometer: Source with subscribe(callback) delivering (x, y, z)
            location_source: Source with subscribe(callback) delivering LocationFix
            beacon_provider: Callable returning the nearest beacon id or None
            orientation_provider: Callable returning the current Orientation
            classify_every: Classify on every Nth accelerometer sample once the window is ready
            reject_stale_locations: Drop fixes older than the stored one

        Raises:
            ConfigurationError: If the threshold table holds an invalid entry.
                Activities missing from it keep their default thresholds.
        """
        if not 0 < min_samples <= window_size:
            raise ValueError(
                f"min_samples must be within (0, window_size], got {min_samples} for window {window_size}"
            )
        if classify_every < 1:
            raise ValueError(f"classify_every must be at least 1, got {classify_every}")

        self.logger = get_logger(__name__)

        self.thresholds = complete_threshold_table(thresholds)
        self.min_samples = min_samples
        self.sample_rate_hz = sample_rate_hz
        self.classify_every = classify_every
        self.reject_stale_locations = reject_stale_locations

        # Collaborators
        self.permission_provider = permission_provider or StaticPermissionProvider()
        self.required_permissions = tuple(required_permissions)
        self.accelerometer = accelerometer
        self.gyroscope = gyroscope
        self.magnetometer = magnetometer
        self.location_source = location_source
        self.beacon_provider = beacon_provider or no_beacon
        self.orientation_provider = orientation_provider or fixed_orientation(Orientation.PORTRAIT)

        # Sliding windows
        self._windows = {
            SensorKind.ACCEL: MagnitudeWindow(window_size),
            SensorKind.GYRO: MagnitudeWindow(window_size),
            SensorKind.MAG: MagnitudeWindow(window_size),
        }

        # Classification state
        self._gate = HysteresisGate(confidence_threshold)
        self._last_location: Optional[LocationFix] = None
        self._last_features: Optional[WindowFeatures] = None
        self._accel_since_classify = 0
        self.rejected_samples = 0

        # Lifecycle
        self._is_monitoring = False
        self._subscriptions: List[Subscription] = []
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config, **collaborators) -> 'ContextClassifier':
        """
        Build a classifier from the 'classifier' section of a ConfigManager.

        Args:
            config: ConfigManager instance
            **collaborators: Sources and providers passed through to the constructor

        Returns:
            Configured ContextClassifier
        """
        return cls(
            thresholds=build_threshold_table(config.get('classifier.thresholds')),
            window_size=int(config.get('classifier.window_size', DEFAULT_WINDOW_SIZE)),
            min_samples=int(config.get('classifier.min_samples', DEFAULT_MIN_SAMPLES)),
            sample_rate_hz=float(config.get('classifier.sample_rate_hz', DEFAULT_SAMPLE_RATE_HZ)),
            confidence_threshold=float(
                config.get('classifier.confidence_threshold', DEFAULT_CONFIDENCE_THRESHOLD)
            ),
            classify_every=int(config.get('classifier.classify_every', 1)),
            reject_stale_locations=bool(config.get('classifier.reject_stale_locations', False)),
            **collaborators
        )

    def initialize(self) -> None:
        """
        Acquire permissions and start ingesting from the wired sources.

        Raises:
            SensorPermissionError: If a required permission is not granted.
                No source is subscribed in that case.
            Exception: Whatever a source's subscribe() raises. Subscriptions
                made before the failure are removed and the classifier stays inactive.
        """
        if self._is_monitoring:
            self.logger.warning("Context detection is already active")
            return

        denied = [
            permission for permission in self.required_permissions
            if self.permission_provider.request(permission) != PermissionStatus.GRANTED
        ]
        if denied:
            error = SensorPermissionError(denied)
            self.logger.error(f"Context detection initialization failed: {error}")
            raise error

        # Set before subscribing so samples delivered during subscribe() are kept
        with self._lock:
            self._is_monitoring = True

        try:
            self._start_sensors()
        except Exception as e:
            self.logger.error(f"Context detection initialization failed: {e}")
            self._release_subscriptions()
            with self._lock:
                self._is_monitoring = False
            raise

        self.logger.info("Context detection started")

    def _start_sensors(self) -> None:
        """Subscribe to every wired sensor and location source."""
        if self.accelerometer is not None:
            self._subscriptions.append(self.accelerometer.subscribe(self._on_accelerometer))
        if self.gyroscope is not None:
            self._subscriptions.append(self.gyroscope.subscribe(self._on_gyroscope))
        if self.magnetometer is not None:
            self._subscriptions.append(self.magnetometer.subscribe(self._on_magnetometer))
        if self.location_source is not None:
            self._subscriptions.append(self.location_source.subscribe(self.ingest_location_fix))

    def _release_subscriptions(self) -> None:
        for subscription in self._subscriptions:
            subscription.remove()
        self._subscriptions.clear()

    def _on_accelerometer(self, x: float, y: float, z: float) -> None:
        self.ingest_motion_sample((x, y, z), SensorKind.ACCEL)

    def _on_gyroscope(self, x: float, y: float, z: float) -> None:
        self.ingest_motion_sample((x, y, z), SensorKind.GYRO)

    def _on_magnetometer(self, x: float, y: float, z: float) -> None:
        self.ingest_motion_sample((x, y, z), SensorKind.MAG)

    def ingest_motion_sample(self, axes: Axes, kind: SensorKind = SensorKind.ACCEL) -> None:
        """
        Add one motion reading to its window.

        Accelerometer samples trigger classification once the window holds
        at least min_samples values. Non-finite readings are dropped.

        Args:
            axes: The (x, y, z) reading, a mapping with x/y/z keys or a MotionSample
            kind: Sensor that produced the reading
        """
        kind = SensorKind(kind)
        reading = _as_reading(axes)

        with self._lock:
            if not self._is_monitoring:
                return

            if reading is None or not is_finite_reading(reading):
                self.rejected_samples += 1
                self.logger.warning(f"Rejected malformed {kind.value} sample: {axes!r}")
                return

            window = self._windows[kind]
            window.append(magnitude_for(kind, tuple(float(value) for value in reading)))

            if kind != SensorKind.ACCEL or len(window) < self.min_samples:
                return

            self._accel_since_classify += 1
            if self._accel_since_classify >= self.classify_every:
                self._accel_since_classify = 0
                self._classify_locked()

    def ingest_location_fix(self, fix: LocationFix) -> None:
        """
        Store the latest location fix.

        The last write wins unless reject_stale_locations is set, in which
        case a fix with an older timestamp than the stored one is dropped.

        Args:
            fix: Location fix from the host location service
        """
        with self._lock:
            if not self._is_monitoring:
                return

            previous = self._last_location
            if (self.reject_stale_locations and previous is not None
                    and previous.timestamp is not None and fix.timestamp is not None
                    and fix.timestamp < previous.timestamp):
                self.logger.debug(
                    f"Dropped stale location fix ({fix.timestamp} < {previous.timestamp})"
                )
                return

            self._last_location = fix

    def classify(self) -> None:
        """Run feature extraction and the activity rules on the current window."""
        with self._lock:
            if not self._is_monitoring:
                return
            self._classify_locked()

    def _classify_locked(self) -> None:
        window = self._windows[SensorKind.ACCEL]
        if len(window) < self.min_samples:
            return

        features = extract_features(window.to_array(), self.sample_rate_hz)
        self._last_features = features

        speed = self._last_location.speed if self._last_location else None
        candidate, confidence = classify_features(features, speed, self.thresholds)

        self.logger.debug(
            f"Window: mean={features.mean:.3f} variance={features.variance:.3f} "
            f"frequency={features.frequency:.2f} -> {candidate.value} ({confidence:.3f})"
        )
        self._gate.offer(candidate, confidence)

    def get_current_context(self) -> ContextSnapshot:
        """Return a snapshot of the current activity, location, beacon and orientation."""
        with self._lock:
            activity = self._gate.activity
            confidence = self._gate.confidence
            location = self._last_location

        return ContextSnapshot(
            activity=activity,
            confidence=confidence,
            location=location,
            nearest_beacon=self.beacon_provider(),
            orientation=self.orientation_provider()
        )

    def get_features(self) -> Optional[WindowFeatures]:
        """Features computed by the most recent classification, if any."""
        with self._lock:
            return self._last_features

    @property
    def current_activity(self) -> ActivityState:
        with self._lock:
            return self._gate.activity

    @property
    def accelerometer_window(self) -> List[float]:
        with self._lock:
            return self._windows[SensorKind.ACCEL].to_list()

    @property
    def gyroscope_window(self) -> List[float]:
        with self._lock:
            return self._windows[SensorKind.GYRO].to_list()

    @property
    def magnetometer_window(self) -> List[float]:
        with self._lock:
            return self._windows[SensorKind.MAG].to_list()

    def stop_monitoring(self) -> None:
        """Release source subscriptions. The last context stays readable."""
        self._release_subscriptions()

        with self._lock:
            was_monitoring = self._is_monitoring
            self._is_monitoring = False

        if was_monitoring:
            self.logger.info("Context detection stopped")

    def is_active(self) -> bool:
        with self._lock:
            return self._is_monitoring
