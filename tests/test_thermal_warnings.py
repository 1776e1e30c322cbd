"""Tests for overheating warning decisions."""

import math

import pytest

from config import MAX_RECENT_TEMPS, WarningSettings
from shared_types import (
    THRESHOLD_DERIVE,
    TemperatureSample,
    ThermalClearPolicy,
    ThermalThreshold,
)
from thermal_warnings import (
    TemperatureHistory,
    ThermalEvaluator,
    derive_threshold,
    evaluate_thermal,
    should_clear_thermal,
    summarize_temperatures,
)


class TestDeriveThreshold:
    def test_explicit_threshold(self):
        threshold = derive_threshold(55.0, None, 2.0)
        assert threshold.value == 55.0
        assert not threshold.derived

    def test_shutdown_based_threshold(self):
        threshold = derive_threshold(THRESHOLD_DERIVE, 57.0, 2.0)
        assert threshold.value == 55.0
        assert threshold.derived
        assert threshold.shutdown_temperature == 57.0
        assert threshold.tolerance == 2.0

    def test_none_means_derive(self):
        assert derive_threshold(None, 50.0, 3.0).value == 47.0

    def test_missing_shutdown_disables(self):
        assert derive_threshold(THRESHOLD_DERIVE, None, 2.0) is None
        assert derive_threshold(THRESHOLD_DERIVE, math.nan, 2.0) is None

    def test_negative_tolerance_disables(self):
        assert derive_threshold(THRESHOLD_DERIVE, 57.0, -1.0) is None

    def test_other_negative_threshold_disables(self):
        assert derive_threshold(-5.0, 57.0, 2.0) is None


class TestEvaluateThermal:
    @pytest.fixture
    def threshold(self):
        return ThermalThreshold(value=55.0)

    def test_over_threshold_raises(self, threshold):
        assert evaluate_thermal(50000.0, threshold, True)

    def test_under_threshold_does_not_raise(self, threshold):
        assert not evaluate_thermal(5.0, threshold, True)

    def test_equality_counts_as_crossing(self, threshold):
        assert evaluate_thermal(55.0, threshold, True)

    def test_disabled_never_raises(self, threshold):
        for temp in (5.0, 55.0, 50000.0):
            assert not evaluate_thermal(temp, threshold, False)

    def test_missing_reading_does_not_raise(self, threshold):
        assert not evaluate_thermal(None, threshold, True)
        assert not evaluate_thermal(math.nan, threshold, True)

    def test_missing_threshold_does_not_raise(self):
        assert not evaluate_thermal(90.0, None, True)

    def test_shutdown_derived_boundaries(self):
        threshold = derive_threshold(THRESHOLD_DERIVE, 57.0, 2.0)
        assert not evaluate_thermal(54.0, threshold, True)
        assert evaluate_thermal(56.0, threshold, True)


class TestClearPolicy:
    @pytest.fixture
    def threshold(self):
        return ThermalThreshold(value=55.0)

    def test_cooldown_clears_below_threshold(self, threshold):
        assert should_clear_thermal(54.9, threshold, ThermalClearPolicy.ON_COOLDOWN)
        assert not should_clear_thermal(55.0, threshold, ThermalClearPolicy.ON_COOLDOWN)

    def test_cooldown_margin(self, threshold):
        assert not should_clear_thermal(54.0, threshold, ThermalClearPolicy.ON_COOLDOWN, margin=2.0)
        assert should_clear_thermal(52.5, threshold, ThermalClearPolicy.ON_COOLDOWN, margin=2.0)

    def test_manual_never_clears(self, threshold):
        assert not should_clear_thermal(20.0, threshold, ThermalClearPolicy.MANUAL)

    def test_missing_reading_never_clears(self, threshold):
        assert not should_clear_thermal(None, threshold, ThermalClearPolicy.ON_COOLDOWN)


class TestThermalEvaluator:
    def test_hidden_only_asks_raise(self):
        evaluator = ThermalEvaluator(warnings_enabled=True, configured_threshold=55.0)
        decision = evaluator.evaluate(20.0, shown=False)
        assert not decision.raise_warning
        assert not decision.clear_warning

    def test_shown_only_asks_clear(self):
        evaluator = ThermalEvaluator(warnings_enabled=True, configured_threshold=55.0)
        decision = evaluator.evaluate(60.0, shown=True)
        assert not decision.raise_warning
        assert not decision.clear_warning

        decision = evaluator.evaluate(50.0, shown=True)
        assert decision.clear_warning

    def test_derives_from_shutdown(self):
        evaluator = ThermalEvaluator(warnings_enabled=True, tolerance=2.0)
        decision = evaluator.evaluate(56.0, shutdown_temperature=57.0)
        assert decision.raise_warning
        assert decision.threshold.value == 55.0

    def test_defaults_follow_config(self):
        evaluator = ThermalEvaluator(warnings_enabled=True)
        configured = ThermalEvaluator.from_settings(WarningSettings())
        assert evaluator.configured_threshold == configured.configured_threshold
        assert evaluator.tolerance == configured.tolerance
        assert evaluator.clear_policy is configured.clear_policy
        assert evaluator.clear_margin == configured.clear_margin


class TestTemperatureHistory:
    def test_summary(self):
        history = TemperatureHistory(maxlen=3)
        for i, temp in enumerate([30.0, 40.0, 50.0, 60.0]):
            history.append(TemperatureSample(float(i), temp))

        stats = history.summarize()
        assert len(history) == 3
        assert stats['count'] == 3
        assert stats['mean'] == pytest.approx(50.0)
        assert stats['median'] == pytest.approx(50.0)
        assert stats['min'] == 40.0
        assert stats['max'] == 60.0

    def test_nan_samples_skipped(self):
        history = TemperatureHistory()
        history.append(TemperatureSample(0.0, math.nan))
        assert len(history) == 0
        assert history.summarize() is None

    def test_empty_summary(self):
        assert summarize_temperatures([]) is None

    def test_default_length_follows_config(self):
        assert TemperatureHistory().samples.maxlen == MAX_RECENT_TEMPS
