"""
Trend data models.

Input side:
  SeriesPoint        one (timestamp, value) sample, validated at the boundary
  SeriesObservation  a batch of points for one topic, as submitted

Output side:
  TrendMetrics          immutable numeric summary of one series
  EnhancedTrendPattern  metrics + pattern + confidence + the input it came from
  TrendRecord           persisted per-topic aggregate, owned by the pipeline
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import PatternType, RecommendedAction, Region, TrendPattern

logger = logging.getLogger(__name__)


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ══════════════════════════════════════════════════════════════════════════════
# INPUT
# ══════════════════════════════════════════════════════════════════════════════

class SeriesPoint(BaseModel):
    """One engagement/interest sample. Naive timestamps are read as UTC."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    value: float = Field(ge=0.0)

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, v: datetime) -> datetime:
        return _utc(v)

    @field_validator("value")
    @classmethod
    def _finite_value(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("value must be finite")
        return v


class SeriesObservation(BaseModel):
    """Points for one topic as handed over by an external collaborator."""
    topic: str = Field(min_length=1)
    points: List[SeriesPoint] = Field(default_factory=list)
    category: Optional[str] = None
    region: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════════
# OUTPUT
# ══════════════════════════════════════════════════════════════════════════════

class TrendMetrics(BaseModel):
    """
    Derived numeric summary of one series. Immutable per computation.

    All fields default to the neutral value used when a series is too short
    or a metric family failed.
    """
    model_config = ConfigDict(frozen=True)

    momentum: float = 0.0
    volatility: float = 0.0
    trend_strength: float = 0.0
    support_level: float = 0.0
    resistance_level: float = 0.0
    seasonality_strength: float = 0.0
    dominant_cycle_period: float = 0.0
    breakout_probability: float = 0.0
    reversal_probability: float = 0.0

    def as_signal_map(self) -> Dict[str, float]:
        return self.model_dump()


class EnhancedTrendPattern(BaseModel):
    """
    Result of one classification call. Created fresh, never mutated,
    discarded once consumed.
    """
    model_config = ConfigDict(frozen=True)

    pattern: TrendPattern
    pattern_type: Optional[PatternType] = None
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)
    metrics: TrendMetrics = Field(default_factory=TrendMetrics)
    historical_values: Tuple[float, ...] = ()
    timestamps: Tuple[datetime, ...] = ()

    @property
    def dominant_cycle(self) -> str:
        return f"{self.metrics.dominant_cycle_period:.1f} periods"

    @property
    def is_significant(self) -> bool:
        return self.confidence_score >= 0.7 and self.metrics.trend_strength >= 0.6

    @property
    def is_breakout_candidate(self) -> bool:
        return self.metrics.breakout_probability > 0.8 and self.metrics.volatility < 0.3

    @property
    def is_reversal_candidate(self) -> bool:
        return self.metrics.reversal_probability > 0.8 and self.metrics.trend_strength < 0.4

    @property
    def recommended_action(self) -> RecommendedAction:
        """First matching rule wins."""
        m = self.metrics
        if self.is_breakout_candidate:
            return RecommendedAction.MONITOR_FOR_BREAKOUT
        if self.is_reversal_candidate:
            return RecommendedAction.PREPARE_FOR_REVERSAL
        if m.seasonality_strength > 0.7:
            return RecommendedAction.FOLLOW_SEASONAL_PATTERN
        if m.trend_strength > 0.8 and self.confidence_score > 0.7:
            return RecommendedAction.STRONG_TREND_CONTINUE
        if m.volatility > 0.5:
            return RecommendedAction.HIGH_VOLATILITY_CAUTION
        return RecommendedAction.MAINTAIN_CURRENT_STRATEGY


class TrendRecord(BaseModel):
    """
    Persisted per-topic aggregate.

    Mutated only by the aggregation pipeline. The historical windows are
    capped (append-then-truncate); dates are ISO-8601 strings.
    """
    topic: str
    category: Optional[str] = None
    region: Optional[str] = None

    metrics: TrendMetrics = Field(default_factory=TrendMetrics)
    pattern: TrendPattern = TrendPattern.INSUFFICIENT_DATA
    confidence_score: float = 0.5
    trend_score: float = 0.5
    signals: Dict[str, Any] = Field(default_factory=dict)

    historical_values: List[float] = Field(default_factory=list)
    historical_dates: List[str] = Field(default_factory=list)

    sentiment_score: Optional[float] = None
    dynamic_weight: float = 0.5

    analysis_timestamp: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def region_enum(self) -> Optional[Region]:
        return Region.parse(self.region)

    @property
    def last_timestamp(self) -> Optional[datetime]:
        if not self.historical_dates:
            return None
        return _utc(datetime.fromisoformat(self.historical_dates[-1]))
