"""Statistics kernel: moments, momentum, volatility, regression, levels, FFT, probabilities."""

import math
import random

import pytest

from trend_engine.trends.signals import (
    breakout_probability,
    compute_trend_metrics,
    correlation,
    momentum,
    reversal_probability,
    seasonality,
    support_resistance,
    trend_strength,
    volatility,
)
from trend_engine.trends.signals.spectral import padded_length


def _sine(period=8, n=64, base=10.0, amplitude=5.0):
    return [base + amplitude * math.sin(2 * math.pi * i / period) for i in range(n)]


# ════════════════════════════════════════════════════════════════════
# Momentum / volatility
# ════════════════════════════════════════════════════════════════════

@pytest.mark.parametrize("value", [0.0, 1.0, 42.5, 1e6])
def test_single_point_momentum_and_volatility_are_zero(value):
    assert momentum([value]) == 0.0
    assert volatility([value]) == 0.0


def test_empty_series_is_neutral():
    assert momentum([]) == 0.0
    assert volatility([]) == 0.0
    assert trend_strength([]) == 0.0
    assert support_resistance([]) == (0.0, 0.0)


def test_momentum_two_points_uses_lag_one_everywhere():
    # All three lags collapse to 1: (11 - 10) / 10 with weights summing to 1
    assert momentum([10.0, 11.0]) == pytest.approx(0.1)


def test_momentum_weighted_lags():
    values = [10, 12, 11, 13, 14, 15, 17, 19, 21, 24]
    expected = 0.5 * (24 - 21) / 21 + 0.3 * (24 - 14) / 14 + 0.2 * (24 - 10) / 10
    assert momentum(values) == pytest.approx(expected)


def test_momentum_zero_base_contributes_nothing():
    assert momentum([0.0, 5.0]) == 0.0


def test_volatility_skips_non_positive_ratios():
    # (0, 1) is skipped; remaining returns are identical so stddev is 0
    assert volatility([0.0, 1.0, 2.0, 4.0]) == pytest.approx(0.0, abs=1e-12)


def test_volatility_is_annualized():
    values = [10.0, 11.0, 10.0, 11.0, 10.0]
    returns = [math.log(11 / 10), math.log(10 / 11)] * 2
    mean = sum(returns) / len(returns)
    std = math.sqrt(sum((r - mean) ** 2 for r in returns) / (len(returns) - 1))
    assert volatility(values) == pytest.approx(std * math.sqrt(252))
    assert volatility(values, periods=1) == pytest.approx(std)


# ════════════════════════════════════════════════════════════════════
# Regression / levels / correlation
# ════════════════════════════════════════════════════════════════════

def test_linear_series_has_unit_trend_strength():
    assert trend_strength([3 + 2 * i for i in range(20)]) == pytest.approx(1.0)


def test_constant_series_has_zero_trend_strength():
    assert trend_strength([7.0] * 12) == 0.0
    assert trend_strength([7.0]) == 0.0


def test_constant_series_support_equals_resistance():
    support, resistance = support_resistance([50.0] * 10)
    assert support == resistance == 50.0


def test_support_never_exceeds_resistance():
    rng = random.Random(7)
    for _ in range(200):
        values = [rng.uniform(0, 100) for _ in range(rng.randint(1, 60))]
        support, resistance = support_resistance(values)
        assert support <= resistance


def test_support_widened_by_recent_min():
    values = [100.0] * 30 + [1.0]
    support, resistance = support_resistance(values)
    assert support == 1.0
    assert resistance == 100.0


def test_correlation():
    assert correlation([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
    assert correlation([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)
    assert correlation([1, 2, 3], [5, 5, 5]) == 0.0
    assert correlation([1], [1]) == 0.0
    # Only the overlapping prefix counts
    assert correlation([1, 2, 3, 100], [1, 2, 3]) == pytest.approx(1.0)


# ════════════════════════════════════════════════════════════════════
# Seasonality
# ════════════════════════════════════════════════════════════════════

@pytest.mark.parametrize("n,expected", [(1, 32), (10, 32), (32, 32), (33, 64), (64, 64), (100, 128)])
def test_padded_length(n, expected):
    assert padded_length(n, 32) == expected


def test_sine_wave_dominant_period():
    strength, period = seasonality(_sine(period=8, n=64))
    assert period == pytest.approx(8.0)
    assert strength > 0.9


def test_constant_series_has_no_seasonality():
    assert seasonality([50.0] * 10) == (0.0, 0.0)
    assert seasonality([3.0]) == (0.0, 0.0)


def test_seasonality_strength_bounded():
    rng = random.Random(3)
    for _ in range(50):
        values = [rng.uniform(0, 10) for _ in range(rng.randint(2, 80))]
        strength, period = seasonality(values)
        assert 0.0 <= strength <= 1.0
        assert period >= 0.0


# ════════════════════════════════════════════════════════════════════
# Probabilities
# ════════════════════════════════════════════════════════════════════

def test_breakout_zero_stddev_uses_neutral_z():
    values = [50.0] * 10
    # sigmoid(0) + no momentum bonus + full low-volatility bonus
    assert breakout_probability(values, 50.0, 0.0) == pytest.approx(0.7)


def test_breakout_is_clamped():
    values = [1, 1, 1, 1, 1, 1, 1, 1, 1, 100]
    assert breakout_probability(values, 10.9, 31.3) == 1.0


def test_reversal_overextension_clamped():
    values = [1.0] * 9 + [10.0]
    assert reversal_probability(values, trend_strength=0.0) == 1.0


def test_reversal_zero_percentile_guard():
    assert reversal_probability([0.0] * 10, trend_strength=0.0) == 0.0


def test_reversal_trend_exhaustion_term():
    values = [50.0] * 10
    assert reversal_probability(values, trend_strength=0.9, momentum=0.0) == pytest.approx(0.3 * 0.2)


def test_compute_trend_metrics_ranges():
    rng = random.Random(11)
    for _ in range(50):
        values = [rng.uniform(0.1, 100) for _ in range(rng.randint(10, 90))]
        m = compute_trend_metrics(values)
        assert 0.0 <= m.trend_strength <= 1.0
        assert 0.0 <= m.seasonality_strength <= 1.0
        assert 0.0 <= m.breakout_probability <= 1.0
        assert 0.0 <= m.reversal_probability <= 1.0
        assert m.volatility >= 0.0
        assert m.support_level <= m.resistance_level
