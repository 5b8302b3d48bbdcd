"""
Feature Extraction Module

Computes the statistical features the activity rules operate on.
"""

from typing import Sequence, Union

import numpy as np

from .models import WindowFeatures


DEFAULT_SAMPLE_RATE_HZ = 10


def zero_crossings(values: np.ndarray, center: float) -> int:
    """
    Count sign changes of the centered signal between consecutive samples.

    A sample exactly at the center breaks a crossing; only strict sign
    changes (product < 0) are counted.

    Args:
        values: Magnitude samples
        center: Value the signal is centered on (usually the mean)

    Returns:
        Number of zero crossings
    """
    if len(values) < 2:
        return 0
    centered = values - center
    return int(np.count_nonzero(centered[:-1] * centered[1:] < 0))


def extract_features(
    window: Union[Sequence[float], np.ndarray],
    sample_rate_hz: float = DEFAULT_SAMPLE_RATE_HZ
) -> WindowFeatures:
    """
    Extract mean, population variance and a frequency proxy from a window.

    The frequency is the zero-crossing count normalized by the window
    duration at the assumed capture rate, i.e. crossings per notional
    second. It is a proxy, not a spectral estimate.

    Args:
        window: Accelerometer magnitudes, oldest first (must not be empty)
        sample_rate_hz: Assumed capture rate of the window

    Returns:
        WindowFeatures for the window
    """
    values = np.asarray(window, dtype=float)
    if values.size == 0:
        raise ValueError("Cannot extract features from an empty window")

    mean = float(np.mean(values))
    variance = float(np.var(values))
    crossings = zero_crossings(values, mean)
    frequency = crossings / (values.size / sample_rate_hz)

    return WindowFeatures(
        mean=mean,
        variance=variance,
        frequency=float(frequency),
        sample_count=int(values.size)
    )
