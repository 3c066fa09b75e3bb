"""
Pattern classification for one engagement series.

Two classification paths exist:

PROBABILITY PATH (classify) — canonical. Uses the full metric set;
first match wins:
  breakout_probability   > 0.8  → BREAKOUT
  reversal_probability   > 0.8  → REVERSAL
  seasonality_strength   > 0.7  → SEASONAL
  trend_strength         > 0.7  → STEADY_/VOLATILE_ RISE/DECLINE (slope sign + volatility)
  otherwise                     → CONSOLIDATION

BAND PATH (classify_bands) — for callers that only hold raw momentum and
volatility (the aggregation pipeline labels partial metric maps with it):
  momentum > 0.3  & volatility < 0.2   → STEADY_RISE
  momentum < -0.3 & volatility < 0.2   → STEADY_DECLINE
  volatility > 0.4                     → VOLATILE_RISE / VOLATILE_DECLINE
  |momentum| < 0.1 & volatility < 0.15 → CONSOLIDATION
  recent mean vs history > 2σ          → BREAKOUT
  momentum sign flip across midpoint   → REVERSAL
  otherwise                            → UNDEFINED

CONFIDENCE:
  0.3 * min(1, n / MIN_DATA_POINTS)
  + 0.3 * max(breakout, reversal, seasonality)
  + 0.2 * trend_strength
  + 0.2 * max(0, 1 - volatility)

Short series are INSUFFICIENT_DATA (confidence 0.5), never an error. Any
exception during classification yields ERROR with confidence 0.0.
"""

import logging
import math
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

import numpy as np

from trend_engine.config import Settings, get_settings
from trend_engine.schemas.base import PatternType, TrendPattern
from trend_engine.schemas.trends import EnhancedTrendPattern, TrendMetrics

from .signals import compute_trend_signals, momentum as compute_momentum, volatility as compute_volatility

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_CONFIDENCE = 0.5

_METRIC_FIELDS = tuple(TrendMetrics.model_fields)


class PatternClassifier:
    """Assigns one TrendPattern per series and scores confidence."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    # ══════════════════════════════════════════════════════════════════════
    # PROBABILITY PATH
    # ══════════════════════════════════════════════════════════════════════

    def classify(
        self,
        values: Sequence[float],
        timestamps: Optional[Sequence[datetime]] = None,
    ) -> EnhancedTrendPattern:
        """Classify one series. Never raises."""
        try:
            series = [float(v) for v in values]
            stamps = tuple(timestamps or ())
            if stamps and len(stamps) != len(series):
                raise ValueError(
                    f"{len(stamps)} timestamps for {len(series)} values"
                )

            if len(series) < self.settings.min_data_points:
                return EnhancedTrendPattern(
                    pattern=TrendPattern.INSUFFICIENT_DATA,
                    confidence_score=INSUFFICIENT_DATA_CONFIDENCE,
                    historical_values=tuple(series),
                    timestamps=stamps,
                )

            if not all(math.isfinite(v) for v in series):
                raise ValueError("series contains non-finite values")

            signals = compute_trend_signals(series, self.settings)
            metrics = TrendMetrics(**{k: signals[k] for k in _METRIC_FIELDS})
            pattern = self.assign_pattern(signals)

            return EnhancedTrendPattern(
                pattern=pattern,
                pattern_type=self.pattern_type(pattern, series, signals["mean"]),
                confidence_score=self.confidence(len(series), metrics),
                metrics=metrics,
                historical_values=tuple(series),
                timestamps=stamps,
            )
        except Exception as e:
            logger.error(f"Pattern classification failed: {e}", exc_info=True)
            return EnhancedTrendPattern(
                pattern=TrendPattern.ERROR,
                confidence_score=0.0,
            )

    def assign_pattern(self, signals: Dict[str, Any]) -> TrendPattern:
        s = self.settings
        if signals["breakout_probability"] > s.breakout_threshold:
            return TrendPattern.BREAKOUT
        if signals["reversal_probability"] > s.reversal_threshold:
            return TrendPattern.REVERSAL
        if signals["seasonality_strength"] > s.seasonality_threshold:
            return TrendPattern.SEASONAL
        if signals["trend_strength"] > s.trend_strength_threshold:
            return self._continuation(signals["slope"], signals["volatility"])
        return TrendPattern.CONSOLIDATION

    def _continuation(self, slope: float, volatility: float) -> TrendPattern:
        volatile = volatility > self.settings.band_high_volatility
        if slope > 0:
            return TrendPattern.VOLATILE_RISE if volatile else TrendPattern.STEADY_RISE
        if slope < 0:
            return TrendPattern.VOLATILE_DECLINE if volatile else TrendPattern.STEADY_DECLINE
        return TrendPattern.CONSOLIDATION

    @staticmethod
    def pattern_type(
        pattern: TrendPattern, values: Sequence[float], mean: float,
    ) -> Optional[PatternType]:
        if pattern is TrendPattern.BREAKOUT:
            return PatternType.BREAKOUT
        if pattern is TrendPattern.REVERSAL:
            return PatternType.REVERSAL
        if pattern is TrendPattern.CONSOLIDATION:
            return PatternType.CONSOLIDATION
        if pattern is TrendPattern.SEASONAL:
            if values and values[-1] >= mean:
                return PatternType.SEASONAL_PEAK
            return PatternType.SEASONAL_TROUGH
        if pattern in (
            TrendPattern.STEADY_RISE, TrendPattern.STEADY_DECLINE,
            TrendPattern.VOLATILE_RISE, TrendPattern.VOLATILE_DECLINE,
        ):
            return PatternType.CONTINUATION
        return None

    def confidence(self, sample_count: int, metrics: TrendMetrics) -> float:
        sufficiency = min(1.0, sample_count / self.settings.min_data_points)
        clarity = max(
            metrics.breakout_probability,
            metrics.reversal_probability,
            metrics.seasonality_strength,
        )
        score = (
            0.3 * sufficiency
            + 0.3 * clarity
            + 0.2 * metrics.trend_strength
            + 0.2 * max(0.0, 1.0 - metrics.volatility)
        )
        return min(1.0, max(0.0, score))

    # ══════════════════════════════════════════════════════════════════════
    # BAND PATH
    # ══════════════════════════════════════════════════════════════════════

    def classify_bands(
        self,
        values: Sequence[float],
        momentum: Optional[float] = None,
        volatility: Optional[float] = None,
    ) -> TrendPattern:
        """Momentum/volatility band classification. Never raises."""
        try:
            series = [float(v) for v in values]
            if len(series) < self.settings.min_data_points:
                return TrendPattern.INSUFFICIENT_DATA
            if not all(math.isfinite(v) for v in series):
                raise ValueError("series contains non-finite values")

            if momentum is None:
                momentum = compute_momentum(series)
            if volatility is None:
                volatility = compute_volatility(series, self.settings.annualization_periods)

            s = self.settings
            if momentum > s.band_momentum_threshold and volatility < s.band_low_volatility:
                return TrendPattern.STEADY_RISE
            if momentum < -s.band_momentum_threshold and volatility < s.band_low_volatility:
                return TrendPattern.STEADY_DECLINE
            if volatility > s.band_high_volatility:
                return TrendPattern.VOLATILE_RISE if momentum > 0 else TrendPattern.VOLATILE_DECLINE
            if abs(momentum) < s.band_flat_momentum and volatility < s.band_flat_volatility:
                return TrendPattern.CONSOLIDATION
            if self._is_band_breakout(series):
                return TrendPattern.BREAKOUT
            if self._is_band_reversal(series):
                return TrendPattern.REVERSAL
            return TrendPattern.UNDEFINED
        except Exception as e:
            logger.error(f"Band classification failed: {e}", exc_info=True)
            return TrendPattern.ERROR

    def _is_band_breakout(self, series: Sequence[float]) -> bool:
        """Recent mean departs from the historical mean by more than k historical σ."""
        recent_n = self.settings.band_recent_points
        if len(series) <= recent_n + 1:
            return False
        historical = np.asarray(series[:-recent_n], dtype=float)
        recent = np.asarray(series[-recent_n:], dtype=float)
        spread = float(historical.std(ddof=1))
        gap = abs(float(recent.mean()) - float(historical.mean()))
        return gap > self.settings.band_breakout_sigma * spread

    def _is_band_reversal(self, series: Sequence[float]) -> bool:
        """Momentum changes sign across the midpoint with both halves strong."""
        mid = len(series) // 2
        first = compute_momentum(series[:mid])
        second = compute_momentum(series[mid:])
        threshold = self.settings.band_reversal_magnitude
        return (
            first * second < 0
            and abs(first) > threshold
            and abs(second) > threshold
        )
