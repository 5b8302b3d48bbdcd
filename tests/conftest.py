import math

import pytest

from context_monitor.context_detector import ContextClassifier
from context_monitor.models import SensorKind
from context_monitor.providers import SimulatedLocationSource, SimulatedSensorSource


GRAVITY = 9.8


def step_magnitudes(variance, center=GRAVITY, n=50):
    """Half the window below the center, half above: one zero crossing."""
    offset = math.sqrt(variance)
    half = n // 2
    return [center - offset] * half + [center + offset] * (n - half)


def alternating_magnitudes(amplitude, center=GRAVITY, n=50):
    """Sign flips on every sample: n - 1 zero crossings."""
    return [center + (amplitude if i % 2 == 0 else -amplitude) for i in range(n)]


def ingest_magnitudes(classifier, magnitudes, kind=SensorKind.ACCEL):
    for magnitude in magnitudes:
        classifier.ingest_motion_sample((0.0, 0.0, magnitude), kind)


@pytest.fixture
def accelerometer():
    return SimulatedSensorSource('accelerometer')


@pytest.fixture
def location_source():
    return SimulatedLocationSource()


@pytest.fixture
def classifier():
    """An initialized classifier with no sources wired."""
    instance = ContextClassifier()
    instance.initialize()
    yield instance
    instance.stop_monitoring()


@pytest.fixture
def signals():
    """Helpers for building magnitude windows with known statistics."""
    class Signals:
        step = staticmethod(step_magnitudes)
        alternating = staticmethod(alternating_magnitudes)
        ingest = staticmethod(ingest_magnitudes)

    return Signals
