import numpy as np
import pytest

from context_monitor.features import extract_features, zero_crossings


class TestZeroCrossings:

    def test_counts_strict_sign_changes(self):
        values = np.array([1.0, -1.0, 1.0, 1.0, -1.0])
        assert zero_crossings(values, 0.0) == 3

    def test_sample_on_the_center_breaks_a_crossing(self):
        values = np.array([1.0, 0.0, -1.0])
        assert zero_crossings(values, 0.0) == 0

    def test_short_input(self):
        assert zero_crossings(np.array([1.0]), 0.0) == 0


class TestExtractFeatures:

    def test_constant_window(self):
        features = extract_features([9.8] * 50)

        assert features.mean == pytest.approx(9.8)
        assert features.variance == pytest.approx(0.0, abs=1e-12)
        assert features.frequency == 0.0
        assert features.sample_count == 50

    def test_population_variance(self):
        features = extract_features([1.0, 3.0, 1.0, 3.0])

        assert features.mean == pytest.approx(2.0)
        assert features.variance == pytest.approx(1.0)

    def test_frequency_is_crossings_per_notional_second(self):
        # 50 alternating samples: 49 crossings over 5 seconds at 10Hz
        values = [9.8 + (1 if i % 2 == 0 else -1) for i in range(50)]
        features = extract_features(values, sample_rate_hz=10)

        assert features.frequency == pytest.approx(49 / 5)

    def test_frequency_scales_with_window_length(self):
        values = [9.8 - 1] * 50 + [9.8 + 1] * 50
        features = extract_features(values, sample_rate_hz=10)

        assert features.frequency == pytest.approx(1 / 10)

    def test_empty_window_is_rejected(self):
        with pytest.raises(ValueError):
            extract_features([])
