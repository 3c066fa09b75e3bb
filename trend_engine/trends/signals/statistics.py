"""
Core numeric primitives for engagement series.

Pure functions, no state, deterministic given inputs. Every function
accepts any sequence of floats (list, tuple, ndarray) and returns plain
Python floats so results serialize identically across runs.

SIGNALS:
  momentum:          Weighted rate-of-change at short/medium/long lag.
                     0.5 * ROC(1) + 0.3 * ROC(min(5, n-1)) + 0.2 * ROC(min(20, n-1))
  volatility:        Sample stddev of consecutive log-returns, annualized.
  trend_strength:    R² of an ordinary least-squares line over index vs value.
  support/resistance: P25/P75 of the full series, widened to the min/max of
                     the most recent 20 samples.
  correlation:       Pearson r over the overlapping prefix of two series.

REF: Annualization by sqrt(252) follows the trading-day convention used for
     financial return series.
"""

import logging
import math
from typing import Sequence, Tuple

import numpy as np
from sklearn.metrics import r2_score

logger = logging.getLogger(__name__)

# (lag cap, weight) pairs for momentum
MOMENTUM_LAGS = ((1, 0.5), (5, 0.3), (20, 0.2))

# Recent window that widens the percentile levels
LEVEL_LOOKBACK = 20


def mean_std(values: Sequence[float]) -> Tuple[float, float]:
    """Mean and sample standard deviation. (0, 0) for an empty series."""
    if len(values) == 0:
        return 0.0, 0.0
    arr = np.asarray(values, dtype=float)
    if len(arr) < 2:
        return float(arr[0]), 0.0
    return float(arr.mean()), float(arr.std(ddof=1))


def rate_of_change(values: Sequence[float], lag: int) -> float:
    """(latest - values[-1-lag]) / values[-1-lag]; 0 when the base is zero."""
    previous = float(values[-1 - lag])
    if previous == 0:
        return 0.0
    return (float(values[-1]) - previous) / previous


def momentum(values: Sequence[float]) -> float:
    """Short-lag-biased weighted rate of change. 0 for fewer than 2 points."""
    n = len(values)
    if n < 2:
        return 0.0
    total = 0.0
    for cap, weight in MOMENTUM_LAGS:
        total += weight * rate_of_change(values, min(cap, n - 1))
    return float(total)


def log_returns(values: Sequence[float]) -> np.ndarray:
    """Consecutive log-ratios, skipping pairs where either side is <= 0."""
    returns = []
    for prev, cur in zip(values[:-1], values[1:]):
        if prev <= 0 or cur <= 0:
            continue
        returns.append(math.log(cur / prev))
    return np.asarray(returns, dtype=float)


def volatility(values: Sequence[float], periods: int = 252) -> float:
    """Annualized stddev of log-returns. 0 for fewer than 2 valid returns."""
    if len(values) < 2:
        return 0.0
    returns = log_returns(values)
    if len(returns) < 2:
        return 0.0
    return float(returns.std(ddof=1) * math.sqrt(periods))


def linear_fit(values: Sequence[float]) -> Tuple[float, float, float]:
    """
    OLS fit of value against sample index.

    Returns (slope, intercept, r_squared). R² is 0 for fewer than 2 points
    or a series with zero total variance.
    """
    n = len(values)
    if n < 2:
        return 0.0, 0.0, 0.0
    y = np.asarray(values, dtype=float)
    x = np.arange(n, dtype=float)
    slope, intercept = np.polyfit(x, y, 1)
    if float(np.sum((y - y.mean()) ** 2)) == 0.0:
        return float(slope), float(intercept), 0.0
    r2 = r2_score(y, slope * x + intercept)
    return float(slope), float(intercept), float(min(1.0, max(0.0, r2)))


def trend_strength(values: Sequence[float]) -> float:
    return linear_fit(values)[2]


def support_resistance(values: Sequence[float]) -> Tuple[float, float]:
    """
    (support, resistance) from P25/P75, widened by the recent min/max.

    support = min(P25, min(last 20)), resistance = max(P75, max(last 20)),
    so support <= resistance always holds.
    """
    n = len(values)
    if n == 0:
        return 0.0, 0.0
    arr = np.asarray(values, dtype=float)
    recent = arr[-min(LEVEL_LOOKBACK, n):]
    support = min(float(np.percentile(arr, 25)), float(recent.min()))
    resistance = max(float(np.percentile(arr, 75)), float(recent.max()))
    return support, resistance


def correlation(series_a: Sequence[float], series_b: Sequence[float]) -> float:
    """Pearson r over the common prefix. 0 when undefined."""
    n = min(len(series_a), len(series_b))
    if n < 2:
        return 0.0
    a = np.asarray(series_a[:n], dtype=float)
    b = np.asarray(series_b[:n], dtype=float)
    da = a - a.mean()
    db = b - b.mean()
    denominator = math.sqrt(float(np.sum(da * da)) * float(np.sum(db * db)))
    if denominator == 0:
        return 0.0
    return float(np.sum(da * db) / denominator)
