"""
Signal computation for engagement series.

Each metric family is computed independently; a family that raises is
logged and replaced by its neutral default so the rest of the map stays
usable.

Modules:
- statistics.py: moments, momentum, volatility, regression, levels, correlation
- spectral.py: FFT seasonality strength + dominant period
- probability.py: breakout / reversal scores
"""

import logging
from typing import Any, Dict, Optional, Sequence

from trend_engine.config import Settings, get_settings
from trend_engine.schemas.trends import TrendMetrics

from .statistics import (
    correlation,
    linear_fit,
    mean_std,
    momentum,
    support_resistance,
    trend_strength,
    volatility,
)
from .spectral import seasonality
from .probability import breakout_probability, reversal_probability

logger = logging.getLogger(__name__)

__all__ = [
    "compute_trend_signals", "compute_trend_metrics",
    "correlation", "linear_fit", "mean_std", "momentum", "support_resistance",
    "trend_strength", "volatility", "seasonality",
    "breakout_probability", "reversal_probability",
]

_METRIC_FIELDS = tuple(TrendMetrics.model_fields)


def compute_trend_signals(
    values: Sequence[float],
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """
    Compute every metric family for one series.

    Returns a flat dict with all TrendMetrics fields plus the helper values
    (mean, stddev, slope, sample_count) the classifier needs.
    """
    settings = settings or get_settings()
    values = [float(v) for v in values]
    signals: Dict[str, Any] = {"sample_count": len(values)}

    try:
        signals["mean"], signals["stddev"] = mean_std(values)
    except Exception as e:
        logger.warning(f"Moment computation failed: {e}")
        signals["mean"], signals["stddev"] = 0.0, 0.0

    try:
        signals["momentum"] = momentum(values)
    except Exception as e:
        logger.warning(f"Momentum computation failed: {e}")
        signals["momentum"] = 0.0

    try:
        signals["volatility"] = volatility(values, settings.annualization_periods)
    except Exception as e:
        logger.warning(f"Volatility computation failed: {e}")
        signals["volatility"] = 0.0

    try:
        slope, _, r2 = linear_fit(values)
        signals["slope"], signals["trend_strength"] = slope, r2
    except Exception as e:
        logger.warning(f"Trend regression failed: {e}")
        signals["slope"], signals["trend_strength"] = 0.0, 0.0

    try:
        signals["support_level"], signals["resistance_level"] = support_resistance(values)
    except Exception as e:
        logger.warning(f"Support/resistance computation failed: {e}")
        signals["support_level"], signals["resistance_level"] = 0.0, 0.0

    try:
        strength, period = seasonality(values, settings.fft_padding)
        signals["seasonality_strength"], signals["dominant_cycle_period"] = strength, period
    except Exception as e:
        logger.warning(f"Seasonality computation failed: {e}")
        signals["seasonality_strength"], signals["dominant_cycle_period"] = 0.0, 0.0

    try:
        signals["breakout_probability"] = breakout_probability(
            values, signals["mean"], signals["stddev"],
            momentum=signals["momentum"], volatility=signals["volatility"],
        )
    except Exception as e:
        logger.warning(f"Breakout probability failed: {e}")
        signals["breakout_probability"] = 0.0

    try:
        signals["reversal_probability"] = reversal_probability(
            values, signals["trend_strength"], momentum=signals["momentum"],
        )
    except Exception as e:
        logger.warning(f"Reversal probability failed: {e}")
        signals["reversal_probability"] = 0.0

    return signals


def compute_trend_metrics(
    values: Sequence[float],
    settings: Optional[Settings] = None,
) -> TrendMetrics:
    signals = compute_trend_signals(values, settings)
    return TrendMetrics(**{k: signals[k] for k in _METRIC_FIELDS})
