import pytest

from context_monitor.errors import ConfigurationError
from context_monitor.models import ActivityState, WindowFeatures
from context_monitor.rules import (
    DEFAULT_THRESHOLDS,
    ActivityThresholds,
    HysteresisGate,
    build_threshold_table,
    classify_features,
    complete_threshold_table,
    threshold_table_as_dict,
)


def features(variance, frequency):
    return WindowFeatures(mean=9.8, variance=variance, frequency=frequency, sample_count=50)


class TestClassifyFeatures:

    def test_lifting(self):
        activity, confidence = classify_features(features(2.5, 0.2))
        assert activity == ActivityState.LIFTING
        assert confidence == pytest.approx(2.5 / 3)

    def test_lifting_confidence_is_clamped_to_ceiling(self):
        activity, confidence = classify_features(features(10.0, 0.2))
        assert activity == ActivityState.LIFTING
        assert confidence == pytest.approx(0.95)

    def test_walking(self):
        activity, confidence = classify_features(features(1.0, 2.4))
        assert activity == ActivityState.WALKING
        assert confidence == pytest.approx(0.8)

    def test_walking_confidence_is_clamped_to_ceiling(self):
        _, confidence = classify_features(features(1.0, 9.8))
        assert confidence == pytest.approx(0.90)

    def test_lifting_takes_priority_over_walking(self):
        # High variance with low frequency never reaches the walking rule
        activity, _ = classify_features(features(5.0, 0.5))
        assert activity == ActivityState.LIFTING

    def test_high_variance_high_frequency_is_walking(self):
        activity, _ = classify_features(features(5.0, 2.0))
        assert activity == ActivityState.WALKING

    def test_operating_machinery(self):
        activity, confidence = classify_features(features(0.1, 4.0))
        assert activity == ActivityState.OPERATING_MACHINERY
        assert confidence == pytest.approx(0.8)

    def test_operating_machinery_confidence_is_clamped(self):
        _, confidence = classify_features(features(0.1, 9.8))
        assert confidence == pytest.approx(0.85)

    def test_driving_needs_speed_above_minimum(self):
        assert classify_features(features(0.2, 0.2), speed=6.0) == (ActivityState.DRIVING, pytest.approx(0.8))
        assert classify_features(features(0.2, 0.2), speed=5.0) == (ActivityState.IDLE, 0.0)
        assert classify_features(features(0.2, 0.2), speed=None) == (ActivityState.IDLE, 0.0)

    def test_driving_needs_low_variance(self):
        activity, _ = classify_features(features(0.4, 0.2), speed=20.0)
        assert activity == ActivityState.IDLE

    def test_fallback_is_idle_with_zero_confidence(self):
        assert classify_features(features(0.0, 0.0)) == (ActivityState.IDLE, 0.0)

    def test_custom_thresholds(self):
        table = build_threshold_table({'WALKING': {'frequency': 1.0}})
        activity, _ = classify_features(features(1.0, 1.2), thresholds=table)
        assert activity == ActivityState.WALKING

    @pytest.mark.parametrize('variance', [0.0, 0.5, 2.0, 2.01, 3.0, 50.0])
    @pytest.mark.parametrize('frequency', [0.0, 0.99, 1.5, 3.0, 3.01, 9.8])
    def test_confidence_stays_in_range(self, variance, frequency):
        _, confidence = classify_features(features(variance, frequency), speed=30.0)
        assert 0.0 <= confidence <= 1.0


class TestHysteresisGate:

    def test_starts_idle_with_zero_confidence(self):
        gate = HysteresisGate()
        assert gate.activity == ActivityState.IDLE
        assert gate.confidence == 0.0

    def test_accepts_confident_change(self):
        gate = HysteresisGate()
        assert gate.offer(ActivityState.WALKING, 0.95)
        assert gate.activity == ActivityState.WALKING
        assert gate.confidence == 0.95

    def test_rejects_low_confidence_candidate(self):
        gate = HysteresisGate()
        gate.offer(ActivityState.WALKING, 0.95)

        assert not gate.offer(ActivityState.LIFTING, 0.69)
        assert gate.activity == ActivityState.WALKING
        assert gate.confidence == 0.95

    def test_threshold_is_strict(self):
        gate = HysteresisGate(0.7)
        assert not gate.offer(ActivityState.WALKING, 0.7)
        assert gate.activity == ActivityState.IDLE

    def test_same_activity_keeps_held_confidence(self):
        gate = HysteresisGate()
        gate.offer(ActivityState.LIFTING, 0.95)

        assert not gate.offer(ActivityState.LIFTING, 0.8)
        assert gate.confidence == 0.95

    def test_idle_fallback_never_lowers_held_state(self):
        gate = HysteresisGate()
        gate.offer(ActivityState.DRIVING, 0.8)

        assert not gate.offer(ActivityState.IDLE, 0.0)
        assert gate.activity == ActivityState.DRIVING
        assert gate.confidence == 0.8


class TestThresholdTable:

    def test_defaults_without_overrides(self):
        assert build_threshold_table(None) == DEFAULT_THRESHOLDS

    def test_override_keeps_other_fields(self):
        table = build_threshold_table({'lifting': {'variance': 2.5}})

        assert table[ActivityState.LIFTING].variance == 2.5
        assert table[ActivityState.LIFTING].confidence_ceiling == 0.95
        assert table[ActivityState.WALKING] == DEFAULT_THRESHOLDS[ActivityState.WALKING]

    def test_unknown_activity(self):
        with pytest.raises(ConfigurationError):
            build_threshold_table({'RUNNING': {'variance': 1.0}})

    def test_idle_has_no_thresholds(self):
        with pytest.raises(ConfigurationError):
            build_threshold_table({'IDLE': {'variance': 1.0}})

    def test_unknown_field(self):
        with pytest.raises(ConfigurationError):
            build_threshold_table({'WALKING': {'amplitude': 1.0}})

    def test_ceiling_outside_unit_interval(self):
        with pytest.raises(ConfigurationError):
            build_threshold_table({'WALKING': {'confidence_ceiling': 1.5}})

    def test_non_numeric_value(self):
        with pytest.raises(ConfigurationError):
            build_threshold_table({'WALKING': {'variance': 'high'}})

    def test_table_as_dict(self):
        table = threshold_table_as_dict(DEFAULT_THRESHOLDS)
        assert table['DRIVING']['min_speed'] == 5.0
        assert table['WALKING']['frequency'] == 1.5

    def test_complete_table_fills_missing_activities(self):
        lifting = ActivityThresholds(variance=3.0, frequency=0.5, confidence_scale=4.0, confidence_ceiling=0.9)
        table = complete_threshold_table({ActivityState.LIFTING: lifting})

        assert table[ActivityState.LIFTING] == lifting
        assert table[ActivityState.DRIVING] == DEFAULT_THRESHOLDS[ActivityState.DRIVING]
        assert complete_threshold_table(None) == DEFAULT_THRESHOLDS

    def test_complete_table_rejects_unknown_entries(self):
        with pytest.raises(ConfigurationError):
            complete_threshold_table({ActivityState.IDLE: DEFAULT_THRESHOLDS[ActivityState.DRIVING]})
        with pytest.raises(ConfigurationError):
            complete_threshold_table({ActivityState.WALKING: {'variance': 1.0}})
