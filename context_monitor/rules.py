"""
Activity Rules Module

Threshold table, fixed-priority classification rules and the hysteresis
gate that decides whether a newly classified activity replaces the one
currently held.
"""

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ConfigurationError
from .logging_setup import get_logger
from .models import ActivityState, WindowFeatures


logger = get_logger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.7


@dataclass(frozen=True)
class ActivityThresholds:
    """
    Thresholds and confidence shaping for one activity.

    How each field is read depends on the activity's rule:

    - LIFTING: variance is a lower bound, frequency an upper bound,
      confidence is variance / confidence_scale.
    - WALKING: variance and frequency are lower bounds, confidence is
      frequency / confidence_scale.
    - OPERATING_MACHINERY: frequency is a lower bound, confidence is
      frequency / confidence_scale. Its variance is kept for tuning but
      not used by the rule.
    - DRIVING: variance is an upper bound, min_speed a lower bound on the
      location speed. With no confidence_scale the confidence is the
      ceiling itself.

    Confidence is always capped at confidence_ceiling.
    """
    variance: float
    frequency: float
    confidence_scale: Optional[float] = None
    confidence_ceiling: float = 1.0
    min_speed: Optional[float] = None

    def confidence(self, metric: float) -> float:
        if not self.confidence_scale:
            return self.confidence_ceiling
        return min(metric / self.confidence_scale, self.confidence_ceiling)


ThresholdTable = Dict[ActivityState, ActivityThresholds]


DEFAULT_THRESHOLDS: ThresholdTable = {
    ActivityState.LIFTING: ActivityThresholds(
        variance=2.0, frequency=1.0, confidence_scale=3.0, confidence_ceiling=0.95
    ),
    ActivityState.WALKING: ActivityThresholds(
        variance=0.5, frequency=1.5, confidence_scale=3.0, confidence_ceiling=0.90
    ),
    ActivityState.OPERATING_MACHINERY: ActivityThresholds(
        variance=1.0, frequency=3.0, confidence_scale=5.0, confidence_ceiling=0.85
    ),
    ActivityState.DRIVING: ActivityThresholds(
        variance=0.3, frequency=0.8, confidence_ceiling=0.80, min_speed=5.0
    ),
}

_FIELDS = ('variance', 'frequency', 'confidence_scale', 'confidence_ceiling', 'min_speed')


def build_threshold_table(overrides: Optional[Mapping[str, Mapping[str, Any]]] = None) -> ThresholdTable:
    """
    Build a threshold table from the defaults plus per-activity overrides.

    Args:
        overrides: Mapping of activity name to field overrides, e.g.
            {'WALKING': {'frequency': 1.2}}

    Returns:
        A complete threshold table

    Raises:
        ConfigurationError: If an activity or field is unknown or a value is invalid
    """
    table = dict(DEFAULT_THRESHOLDS)
    if not overrides:
        return table

    for name, fields in overrides.items():
        try:
            activity = ActivityState(str(name).upper())
        except ValueError:
            raise ConfigurationError(f"Unknown activity in thresholds: {name}") from None

        if activity not in table:
            raise ConfigurationError(f"Activity {activity.value} has no thresholds")

        unknown = set(fields or {}) - set(_FIELDS)
        if unknown:
            raise ConfigurationError(
                f"Unknown threshold fields for {activity.value}: {', '.join(sorted(unknown))}"
            )

        try:
            values = {key: (None if value is None else float(value))
                      for key, value in (fields or {}).items()}
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid threshold value for {activity.value}: {e}") from e

        table[activity] = replace(table[activity], **values)

    validate_threshold_table(table)
    return table


def complete_threshold_table(table: Optional[Mapping[ActivityState, ActivityThresholds]]) -> ThresholdTable:
    """
    Fill a partial threshold table with the defaults and validate it.

    Args:
        table: Per-activity thresholds, possibly covering only some activities

    Returns:
        A table with an entry for every classified activity

    Raises:
        ConfigurationError: If an entry is not a known activity or a value is invalid
    """
    complete = dict(DEFAULT_THRESHOLDS)
    for activity, thresholds in (table or {}).items():
        if activity not in DEFAULT_THRESHOLDS:
            raise ConfigurationError(f"Activity {activity} has no thresholds")
        if not isinstance(thresholds, ActivityThresholds):
            raise ConfigurationError(f"Thresholds for {activity} must be ActivityThresholds")
        complete[ActivityState(activity)] = thresholds

    validate_threshold_table(complete)
    return complete


def validate_threshold_table(table: ThresholdTable) -> None:
    """Reject tables whose values would break the confidence range."""
    for activity, thresholds in table.items():
        if not 0.0 <= thresholds.confidence_ceiling <= 1.0:
            raise ConfigurationError(
                f"{activity.value} confidence_ceiling must be within [0, 1], "
                f"got {thresholds.confidence_ceiling}"
            )
        if thresholds.confidence_scale is not None and thresholds.confidence_scale <= 0:
            raise ConfigurationError(f"{activity.value} confidence_scale must be positive")
        if thresholds.variance < 0 or thresholds.frequency < 0:
            raise ConfigurationError(f"{activity.value} thresholds must not be negative")


def threshold_table_as_dict(table: ThresholdTable) -> Dict[str, Dict[str, Any]]:
    return {activity.value: asdict(thresholds) for activity, thresholds in table.items()}


def classify_features(
    features: WindowFeatures,
    speed: Optional[float] = None,
    thresholds: Optional[ThresholdTable] = None
) -> Tuple[ActivityState, float]:
    """
    Classify window features into an activity candidate.

    Rules are evaluated in a fixed priority order and the first match
    wins. Failing every rule yields IDLE with zero confidence.

    Args:
        features: Features of the accelerometer window
        speed: Speed of the last known location fix in m/s, if any
        thresholds: Threshold table (defaults to DEFAULT_THRESHOLDS)

    Returns:
        Tuple of (activity, confidence)
    """
    table = thresholds or DEFAULT_THRESHOLDS
    variance = features.variance
    frequency = features.frequency

    lifting = table[ActivityState.LIFTING]
    if variance > lifting.variance and frequency < lifting.frequency:
        return ActivityState.LIFTING, _clamp(lifting.confidence(variance))

    walking = table[ActivityState.WALKING]
    if variance > walking.variance and frequency > walking.frequency:
        return ActivityState.WALKING, _clamp(walking.confidence(frequency))

    machinery = table[ActivityState.OPERATING_MACHINERY]
    if frequency > machinery.frequency:
        return ActivityState.OPERATING_MACHINERY, _clamp(machinery.confidence(frequency))

    driving = table[ActivityState.DRIVING]
    min_speed = driving.min_speed if driving.min_speed is not None else 0.0
    if variance < driving.variance and speed is not None and speed > min_speed:
        return ActivityState.DRIVING, _clamp(driving.confidence(speed))

    return ActivityState.IDLE, 0.0


def _clamp(confidence: float) -> float:
    return max(0.0, min(float(confidence), 1.0))


class HysteresisGate:
    """Holds the accepted activity and filters candidate transitions.

    A candidate is accepted only when it differs from the held activity and
    its confidence exceeds the threshold. Rejected candidates are dropped,
    the held activity and confidence stay as they were.
    """

    def __init__(self, threshold: float = DEFAULT_CONFIDENCE_THRESHOLD):
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Confidence threshold must be within [0, 1], got {threshold}")
        self.threshold = threshold
        self.activity = ActivityState.IDLE
        self.confidence = 0.0

    def offer(self, candidate: ActivityState, confidence: float) -> bool:
        """
        Offer a classified candidate to the gate.

        Args:
            candidate: Newly classified activity
            confidence: Confidence of the candidate

        Returns:
            True if the held activity changed
        """
        if candidate == self.activity:
            return False

        if confidence <= self.threshold:
            logger.debug(
                f"Rejected {candidate.value} ({confidence:.3f}); "
                f"holding {self.activity.value} ({self.confidence:.3f})"
            )
            return False

        logger.info(
            f"Activity changed: {self.activity.value} -> {candidate.value} "
            f"(confidence: {confidence:.3f})"
        )
        self.activity = candidate
        self.confidence = confidence
        return True
