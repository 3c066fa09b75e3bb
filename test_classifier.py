"""PatternClassifier: probability path, band path, confidence, pattern payloads."""

import math
from datetime import timedelta

import pytest
from pydantic import ValidationError

from conftest import FLAT, RISING, START
from trend_engine.schemas.base import (
    PatternType, RecommendedAction, TrendPattern, UpdateFrequency,
)
from trend_engine.schemas.trends import EnhancedTrendPattern, TrendMetrics
from trend_engine.trends.classifier import PatternClassifier


@pytest.fixture
def classifier(settings):
    return PatternClassifier(settings)


def _sine(period=8, n=64):
    return [10.0 + 5.0 * math.sin(2 * math.pi * i / period) for i in range(n)]


# ════════════════════════════════════════════════════════════════════
# Probability path
# ════════════════════════════════════════════════════════════════════

@pytest.mark.parametrize("n", range(0, 10))
def test_short_series_is_insufficient_data(classifier, n):
    result = classifier.classify([float(i + 1) for i in range(n)])
    assert result.pattern is TrendPattern.INSUFFICIENT_DATA
    assert result.confidence_score == 0.5
    assert result.pattern.is_recoverable


def test_rising_series(classifier):
    result = classifier.classify(RISING)
    assert result.pattern in (TrendPattern.STEADY_RISE, TrendPattern.BREAKOUT)
    assert result.confidence_score > 0.5
    assert result.metrics.momentum > 0


def test_rising_series_is_breakout_with_expected_confidence(classifier):
    result = classifier.classify(RISING)
    assert result.pattern is TrendPattern.BREAKOUT
    assert result.pattern_type is PatternType.BREAKOUT
    assert result.metrics.breakout_probability == 1.0
    assert result.confidence_score == pytest.approx(0.3 + 0.3 + 0.2 * result.metrics.trend_strength)


def test_flat_series_is_consolidation(classifier):
    result = classifier.classify(FLAT)
    assert result.pattern is TrendPattern.CONSOLIDATION
    assert result.pattern_type is PatternType.CONSOLIDATION
    assert result.metrics.volatility == 0.0
    assert result.metrics.momentum == 0.0
    assert result.metrics.support_level == result.metrics.resistance_level
    assert result.metrics.seasonality_strength == 0.0


def test_sine_series_is_seasonal(classifier):
    result = classifier.classify(_sine())
    assert result.pattern is TrendPattern.SEASONAL
    # Latest sample sits below the mean
    assert result.pattern_type is PatternType.SEASONAL_TROUGH
    assert result.dominant_cycle == "8.0 periods"
    assert result.recommended_action is RecommendedAction.FOLLOW_SEASONAL_PATTERN


def test_linear_series_trend_strength(classifier):
    result = classifier.classify([10.0 + i for i in range(30)])
    assert result.metrics.trend_strength == pytest.approx(1.0)


def test_non_finite_value_is_error(classifier):
    values = list(RISING)
    values[4] = float("nan")
    result = classifier.classify(values)
    assert result.pattern is TrendPattern.ERROR
    assert result.confidence_score == 0.0
    assert not result.pattern.is_recoverable


def test_infinite_value_is_error(classifier):
    assert classifier.classify(RISING[:-1] + [float("inf")]).pattern is TrendPattern.ERROR


def test_timestamp_length_mismatch_is_error(classifier):
    stamps = [START + timedelta(days=i) for i in range(3)]
    assert classifier.classify(RISING, stamps).pattern is TrendPattern.ERROR


def test_classification_is_deterministic(classifier):
    stamps = [START + timedelta(days=i) for i in range(len(RISING))]
    first = classifier.classify(RISING, stamps)
    second = classifier.classify(RISING, stamps)
    assert first.model_dump_json() == second.model_dump_json()


def test_result_carries_input(classifier):
    stamps = [START + timedelta(days=i) for i in range(len(RISING))]
    result = classifier.classify(RISING, stamps)
    assert result.historical_values == tuple(float(v) for v in RISING)
    assert result.timestamps == tuple(stamps)


def test_result_is_immutable(classifier):
    result = classifier.classify(RISING)
    with pytest.raises(ValidationError):
        result.confidence_score = 0.1


def test_trend_strength_branch_uses_slope_direction(classifier):
    base = {
        "breakout_probability": 0.0, "reversal_probability": 0.0,
        "seasonality_strength": 0.0, "trend_strength": 0.9,
    }
    assert classifier.assign_pattern({**base, "slope": 1.0, "volatility": 0.1}) is TrendPattern.STEADY_RISE
    assert classifier.assign_pattern({**base, "slope": 1.0, "volatility": 0.9}) is TrendPattern.VOLATILE_RISE
    assert classifier.assign_pattern({**base, "slope": -1.0, "volatility": 0.1}) is TrendPattern.STEADY_DECLINE
    assert classifier.assign_pattern({**base, "slope": -1.0, "volatility": 0.9}) is TrendPattern.VOLATILE_DECLINE


def test_priority_order(classifier):
    signals = {
        "breakout_probability": 0.9, "reversal_probability": 0.9,
        "seasonality_strength": 0.9, "trend_strength": 0.9,
        "slope": 1.0, "volatility": 0.0,
    }
    assert classifier.assign_pattern(signals) is TrendPattern.BREAKOUT
    signals["breakout_probability"] = 0.5
    assert classifier.assign_pattern(signals) is TrendPattern.REVERSAL
    signals["reversal_probability"] = 0.5
    assert classifier.assign_pattern(signals) is TrendPattern.SEASONAL
    signals["seasonality_strength"] = 0.5
    assert classifier.assign_pattern(signals) is TrendPattern.STEADY_RISE
    signals["trend_strength"] = 0.5
    assert classifier.assign_pattern(signals) is TrendPattern.CONSOLIDATION


def test_confidence_formula(classifier):
    metrics = TrendMetrics(breakout_probability=1.0, trend_strength=0.5, volatility=0.25)
    assert classifier.confidence(10, metrics) == pytest.approx(0.3 + 0.3 + 0.1 + 0.15)
    assert classifier.confidence(5, TrendMetrics()) == pytest.approx(0.15 + 0.2)


# ════════════════════════════════════════════════════════════════════
# Band path
# ════════════════════════════════════════════════════════════════════

def test_band_linear_series_with_low_volatility_is_steady_rise(classifier):
    values = [10.0 + i for i in range(10)]
    assert classifier.classify_bands(values, momentum=0.5, volatility=0.0) is TrendPattern.STEADY_RISE


def test_band_geometric_growth_is_steady_rise(classifier):
    assert classifier.classify_bands([100 * 1.08 ** i for i in range(10)]) is TrendPattern.STEADY_RISE


def test_band_geometric_decay_is_steady_decline(classifier):
    assert classifier.classify_bands([100 * 0.85 ** i for i in range(10)]) is TrendPattern.STEADY_DECLINE


def test_band_high_volatility(classifier):
    values = [10.0] * 10
    assert classifier.classify_bands(values, momentum=0.2, volatility=0.5) is TrendPattern.VOLATILE_RISE
    assert classifier.classify_bands(values, momentum=-0.2, volatility=0.5) is TrendPattern.VOLATILE_DECLINE


def test_band_flat_is_consolidation(classifier):
    assert classifier.classify_bands(FLAT) is TrendPattern.CONSOLIDATION


def test_band_breakout_from_value_deltas(classifier):
    values = [10, 11, 10, 11, 10, 30, 31, 30, 31, 30]
    assert classifier.classify_bands(values, momentum=0.2, volatility=0.3) is TrendPattern.BREAKOUT


def test_band_reversal_from_momentum_sign_flip(classifier):
    values = [10, 12, 14, 16, 18, 18, 16, 14, 12, 10]
    assert classifier.classify_bands(values, momentum=0.2, volatility=0.3) is TrendPattern.REVERSAL


def test_band_undefined(classifier):
    values = [10, 11] * 5
    assert classifier.classify_bands(values, momentum=0.2, volatility=0.3) is TrendPattern.UNDEFINED


def test_band_short_and_invalid(classifier):
    assert classifier.classify_bands([1.0, 2.0, 3.0]) is TrendPattern.INSUFFICIENT_DATA
    assert classifier.classify_bands(RISING[:-1] + [float("nan")]) is TrendPattern.ERROR


# ════════════════════════════════════════════════════════════════════
# Pattern payloads
# ════════════════════════════════════════════════════════════════════

def test_pattern_payloads():
    assert TrendPattern.STEADY_RISE.recommended_update_frequency is UpdateFrequency.WEEKLY
    assert TrendPattern.BREAKOUT.recommended_update_frequency is UpdateFrequency.DAILY
    assert TrendPattern.CONSOLIDATION.recommended_update_frequency is UpdateFrequency.MONTHLY
    assert TrendPattern.SEASONAL.recommended_update_frequency is UpdateFrequency.SEASONALLY
    assert TrendPattern.UNDEFINED.recommended_update_frequency is UpdateFrequency.AS_NEEDED
    assert TrendPattern.STEADY_RISE.confidence_level == 0.9
    assert TrendPattern.UNDEFINED.confidence_level == 0.4
    assert TrendPattern.ERROR.confidence_level == 0.0
    assert TrendPattern.STEADY_RISE.recommended_strategy
    assert TrendPattern.STEADY_RISE.multiplier == 1.2
    assert TrendPattern.STEADY_DECLINE.multiplier == 0.8
    assert TrendPattern.BREAKOUT.multiplier == 1.0
    for pattern in TrendPattern:
        assert pattern.recommended_strategy


@pytest.mark.parametrize("metrics,confidence,action", [
    (dict(breakout_probability=0.9, volatility=0.2), 0.5, RecommendedAction.MONITOR_FOR_BREAKOUT),
    (dict(reversal_probability=0.9, trend_strength=0.3), 0.5, RecommendedAction.PREPARE_FOR_REVERSAL),
    (dict(seasonality_strength=0.8, volatility=0.9), 0.5, RecommendedAction.FOLLOW_SEASONAL_PATTERN),
    (dict(trend_strength=0.9), 0.8, RecommendedAction.STRONG_TREND_CONTINUE),
    (dict(volatility=0.6), 0.5, RecommendedAction.HIGH_VOLATILITY_CAUTION),
    (dict(), 0.5, RecommendedAction.MAINTAIN_CURRENT_STRATEGY),
])
def test_recommended_action(metrics, confidence, action):
    result = EnhancedTrendPattern(
        pattern=TrendPattern.UNDEFINED,
        confidence_score=confidence,
        metrics=TrendMetrics(**metrics),
    )
    assert result.recommended_action is action


def test_candidate_flags():
    result = EnhancedTrendPattern(
        pattern=TrendPattern.STEADY_RISE,
        confidence_score=0.8,
        metrics=TrendMetrics(trend_strength=0.7, breakout_probability=0.85, volatility=0.1),
    )
    assert result.is_significant
    assert result.is_breakout_candidate
    assert not result.is_reversal_candidate
