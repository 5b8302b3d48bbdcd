"""
Synthetic Sensor Traces

Generates accelerometer traces whose magnitude statistics fall inside each
activity's rule region, for simulations, demos and tests.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from .logging_setup import get_logger
from .models import ActivityState, LocationFix, SensorKind


logger = get_logger(__name__)

GRAVITY = 9.81
_PHASE = 0.37  # keeps samples off the exact center line

# activity -> (amplitude in m/s^2, oscillation frequency in Hz, location speed in m/s)
TRACE_PROFILES: Dict[ActivityState, Tuple[float, float, Optional[float]]] = {
    ActivityState.IDLE: (0.01, 0.05, None),
    ActivityState.WALKING: (1.2, 2.0, 1.4),
    ActivityState.LIFTING: (2.5, 0.2, None),
    ActivityState.OPERATING_MACHINERY: (0.4, 4.0, None),
    ActivityState.DRIVING: (0.3, 0.1, 12.0),
}


@dataclass
class SyntheticTrace:
    activity: ActivityState
    samples: np.ndarray  # shape (n, 3)
    speed: Optional[float]
    sample_rate_hz: float

    @property
    def magnitudes(self) -> np.ndarray:
        return np.linalg.norm(self.samples, axis=1)

    def location_fix(self) -> Optional[LocationFix]:
        if self.speed is None:
            return None
        return LocationFix(latitude=34.0522, longitude=-118.2437, accuracy=10.0,
                           speed=self.speed, timestamp=0.0)


def generate_trace(activity: ActivityState,
                   seconds: float = 10.0,
                   sample_rate_hz: float = 10.0,
                   noise: float = 0.0,
                   seed: int = 42,
                   speed: Optional[float] = None) -> SyntheticTrace:
    """
    Generate a synthetic accelerometer trace for an activity.

    The magnitude is gravity plus a sinusoid whose amplitude and frequency
    come from TRACE_PROFILES. The small x and y components are fixed and z
    is solved so that the vector norm equals the target magnitude.

    Args:
        activity: Activity the trace should resemble
        seconds: Duration of the trace
        sample_rate_hz: Sampling rate
        noise: Standard deviation of gaussian noise added to the magnitude
        seed: Random seed for the noise
        speed: Location speed override in m/s

    Returns:
        SyntheticTrace with (n, 3) samples
    """
    activity = ActivityState(activity)
    amplitude, frequency, profile_speed = TRACE_PROFILES[activity]

    n_samples = int(round(seconds * sample_rate_hz))
    logger.debug(f"Generating {n_samples} {activity.value} samples")

    t = np.arange(n_samples) / sample_rate_hz
    magnitude = GRAVITY + amplitude * np.sin(2 * np.pi * frequency * t + _PHASE)

    if noise > 0:
        rng = np.random.default_rng(seed)
        magnitude = magnitude + rng.normal(0, noise, n_samples)

    x = np.full(n_samples, 0.1)
    y = np.full(n_samples, 0.2)
    z = np.sqrt(np.maximum(magnitude ** 2 - x ** 2 - y ** 2, 0.0))

    return SyntheticTrace(
        activity=activity,
        samples=np.column_stack([x, y, z]),
        speed=speed if speed is not None else profile_speed,
        sample_rate_hz=sample_rate_hz
    )


def feed_trace(classifier, trace: SyntheticTrace) -> int:
    """
    Push a trace through a classifier: its location fix first, then the samples.

    Returns:
        Number of accelerometer samples ingested
    """
    fix = trace.location_fix()
    if fix is not None:
        classifier.ingest_location_fix(fix)

    for x, y, z in trace.samples:
        classifier.ingest_motion_sample((float(x), float(y), float(z)), SensorKind.ACCEL)

    return len(trace.samples)
