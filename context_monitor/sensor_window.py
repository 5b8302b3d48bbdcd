"""
Sensor Window Module

Bounded FIFO buffers of scalar sensor magnitudes and the functions that
derive those magnitudes from raw 3-axis readings.
"""

import math
from collections import deque
from typing import Iterable, List, Sequence

import numpy as np

from .models import SensorKind


DEFAULT_WINDOW_SIZE = 100  # 10 seconds at 10Hz


def accelerometer_magnitude(x: float, y: float, z: float) -> float:
    """Euclidean norm of an accelerometer reading."""
    return float(np.sqrt(x * x + y * y + z * z))


def gyroscope_magnitude(x: float, y: float, z: float) -> float:
    """Sum of absolute angular rates of a gyroscope reading."""
    return float(abs(x) + abs(y) + abs(z))


def magnitude_for(kind: SensorKind, axes: Sequence[float]) -> float:
    """
    Derive the scalar magnitude stored for a sensor kind.

    Args:
        kind: Sensor that produced the reading
        axes: The (x, y, z) reading

    Returns:
        Scalar magnitude
    """
    x, y, z = axes
    if kind == SensorKind.GYRO:
        return gyroscope_magnitude(x, y, z)
    # Accelerometer and magnetometer both use the vector norm
    return accelerometer_magnitude(x, y, z)


def is_finite_reading(axes: Iterable[float]) -> bool:
    """Check that every axis is a finite number."""
    try:
        return all(math.isfinite(float(value)) for value in axes)
    except (TypeError, ValueError):
        return False


class MagnitudeWindow:
    """Fixed-capacity sliding window of magnitudes.

    Appending at capacity evicts the oldest value, so the length never
    exceeds the capacity.
    """

    def __init__(self, capacity: int = DEFAULT_WINDOW_SIZE):
        if capacity <= 0:
            raise ValueError(f"Window capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._values: deque = deque(maxlen=capacity)

    def append(self, value: float) -> None:
        self._values.append(float(value))

    def clear(self) -> None:
        self._values.clear()

    def is_full(self) -> bool:
        return len(self._values) == self.capacity

    def to_list(self) -> List[float]:
        return list(self._values)

    def to_array(self) -> np.ndarray:
        return np.fromiter(self._values, dtype=float, count=len(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self):
        return iter(list(self._values))

    def __repr__(self) -> str:
        return f"MagnitudeWindow(capacity={self.capacity}, size={len(self)})"
