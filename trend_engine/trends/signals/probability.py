"""
Heuristic breakout / reversal probabilities.

BREAKOUT:
  sigmoid(z of latest value) + 0.3 * max(0, momentum) + 0.2 * max(0, 1 - volatility)

REVERSAL:
  0.4 * overextension above P75  (latest - P75) / P75
  0.3 * momentum weakness        max(0, -momentum)
  0.3 * trend exhaustion         max(0, trend_strength - 0.7)

Both are clamped to [0, 1]. They are scores, not calibrated probabilities.
"""

import math
from typing import Optional, Sequence

import numpy as np

from .statistics import momentum as compute_momentum, volatility as compute_volatility

EXHAUSTION_FLOOR = 0.7


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def sigmoid(z: float) -> float:
    # Split form avoids overflow in exp for large |z|
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    e = math.exp(z)
    return e / (1.0 + e)


def breakout_probability(
    values: Sequence[float],
    mean: float,
    stddev: float,
    momentum: Optional[float] = None,
    volatility: Optional[float] = None,
) -> float:
    if len(values) == 0:
        return 0.0
    if momentum is None:
        momentum = compute_momentum(values)
    if volatility is None:
        volatility = compute_volatility(values)
    z = (float(values[-1]) - mean) / stddev if stddev > 0 else 0.0
    score = sigmoid(z) + max(0.0, momentum) * 0.3 + max(0.0, 1.0 - volatility) * 0.2
    return _clamp(score)


def reversal_probability(
    values: Sequence[float],
    trend_strength: float,
    momentum: Optional[float] = None,
) -> float:
    if len(values) == 0:
        return 0.0
    if momentum is None:
        momentum = compute_momentum(values)
    p75 = float(np.percentile(np.asarray(values, dtype=float), 75))
    overextension = max(0.0, (float(values[-1]) - p75) / p75) if p75 > 0 else 0.0
    weakness = max(0.0, -momentum)
    exhaustion = max(0.0, trend_strength - EXHAUSTION_FLOOR)
    return _clamp(0.4 * overextension + 0.3 * weakness + 0.3 * exhaustion)
