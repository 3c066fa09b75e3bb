"""
Dynamic priority weights for content items and trend records.

CONTENT WEIGHT (from raw counters views/likes/shares/comments/engagement):
  virality         = norm(share_rate * 0.7 + engagement * 0.3)
  relevance        = norm(comment_rate * 0.4 + like_rate * 0.6)
  competitor       = norm(engagement * 0.6 + weighted_interaction_rate * 0.4)
                     weighted interactions = likes + 2*shares + 3*comments, over views
  momentum         = norm(((current - previous) / previous + 1) / 2), 0 without history
  time_decay       = exp(-0.01 * hours since creation)

  weight = (0.20 virality + 0.15 relevance + 0.15 engagement + 0.15 competitor
            + 0.10 seasonality + 0.15 market_potential + 0.10 momentum) * time_decay

  Rates are 0 when views is 0. A missing or non-numeric counter returns the
  fallback weight map instead of raising.

TREND WEIGHT (from a persisted TrendRecord):
  weight = norm(trend_score) * confidence * pattern multiplier * time_decay
  Any failure yields the neutral 0.5.

normalize(v, lo, hi) clamps to [0, 1] and returns 0.5 when lo == hi.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from trend_engine.config import Settings, get_settings
from trend_engine.schemas.base import TrendPattern
from trend_engine.schemas.content import FALLBACK_WEIGHTS, REQUIRED_COUNTERS
from trend_engine.tools.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

NEUTRAL_WEIGHT = 0.5

# Blend of sub-scores before time decay. Sums to 1.0.
BLEND_WEIGHTS = {
    "virality": 0.20,
    "relevance": 0.15,
    "engagement": 0.15,
    "competitor": 0.15,
    "seasonality": 0.10,
    "market_potential": 0.15,
    "momentum": 0.10,
}


def normalize(value: float, minimum: float, maximum: float) -> float:
    """Scale into [0, 1]. Degenerate range (min == max) maps to 0.5."""
    if minimum == maximum:
        return 0.5
    return min(1.0, max(0.0, (value - minimum) / (maximum - minimum)))


def as_number(value: Any) -> Optional[float]:
    """Finite int/float as float; None for anything else (bools included)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


class DynamicWeightCalculator:
    """Computes content and trend priority weights."""

    def __init__(self, settings: Optional[Settings] = None, clock: Optional[Clock] = None):
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()

    def time_decay(self, since: Optional[datetime], now: Optional[datetime] = None) -> float:
        """exp(-rate * hours elapsed). Future or missing timestamps decay to 1.0."""
        if since is None:
            return 1.0
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        now = now or self.clock.now()
        hours = max(0.0, (now - since).total_seconds() / 3600.0)
        return math.exp(-self.settings.time_decay_rate * hours)

    # ══════════════════════════════════════════════════════════════════════
    # CONTENT
    # ══════════════════════════════════════════════════════════════════════

    def content_weight(
        self,
        metrics: Mapping[str, Any],
        created_at: Optional[datetime],
        previous_engagement: Optional[float] = None,
    ) -> Dict[str, float]:
        """
        Sub-score map for one content item.

        Returns a copy of FALLBACK_WEIGHTS when any required counter is
        missing or unusable.
        """
        counters = {}
        for key in REQUIRED_COUNTERS:
            value = as_number(metrics.get(key)) if metrics else None
            if value is None:
                logger.warning(f"Content metrics missing '{key}', using fallback weights")
                return dict(FALLBACK_WEIGHTS)
            counters[key] = value

        views = counters["views"]
        if views > 0:
            share_rate = counters["shares"] / views
            comment_rate = counters["comments"] / views
            like_rate = counters["likes"] / views
            interaction_rate = (
                counters["likes"] + 2 * counters["shares"] + 3 * counters["comments"]
            ) / views
        else:
            share_rate = comment_rate = like_rate = interaction_rate = 0.0

        engagement = normalize(counters["engagement"], 0.0, 1.0)

        weights = {
            "virality": normalize(share_rate * 0.7 + engagement * 0.3, 0.0, 1.0),
            "relevance": normalize(comment_rate * 0.4 + like_rate * 0.6, 0.0, 1.0),
            "engagement": engagement,
            "competitor": normalize(engagement * 0.6 + interaction_rate * 0.4, 0.0, 1.0),
            "seasonality": self._optional_score(
                metrics, "seasonality", self.settings.default_seasonality_score),
            "market_potential": self._optional_score(
                metrics, "market_potential", self.settings.default_market_potential),
            "momentum": self._engagement_momentum(counters["engagement"], previous_engagement),
            "time_decay": self.time_decay(created_at),
        }
        return weights

    @staticmethod
    def _optional_score(metrics: Mapping[str, Any], key: str, default: float) -> float:
        value = as_number(metrics.get(key))
        if value is None:
            return default
        return normalize(value, 0.0, 1.0)

    @staticmethod
    def _engagement_momentum(current: float, previous: Optional[float]) -> float:
        previous = as_number(previous)
        if not previous:
            return 0.0
        change = (current - previous) / previous
        return normalize((change + 1.0) / 2.0, 0.0, 1.0)

    @staticmethod
    def combine(weights: Mapping[str, float]) -> float:
        """Blend a sub-score map into one scalar in [0, 1]."""
        blended = sum(BLEND_WEIGHTS[k] * float(weights.get(k, 0.0)) for k in BLEND_WEIGHTS)
        score = blended * float(weights.get("time_decay", 1.0))
        if not math.isfinite(score):
            return NEUTRAL_WEIGHT
        return min(1.0, max(0.0, score))

    def content_dynamic_weight(
        self,
        metrics: Mapping[str, Any],
        created_at: Optional[datetime],
        previous_engagement: Optional[float] = None,
    ) -> float:
        return self.combine(self.content_weight(metrics, created_at, previous_engagement))

    # ══════════════════════════════════════════════════════════════════════
    # TREND
    # ══════════════════════════════════════════════════════════════════════

    def trend_weight(self, record: Any) -> float:
        """
        Decayed weight for a trend record. Never raises.

        Reads trend_score, confidence_score, pattern and analysis_timestamp
        from the record.
        """
        try:
            virality = normalize(float(record.trend_score), 0.0, 1.0)
            confidence = float(record.confidence_score)
            multiplier = TrendPattern(record.pattern).multiplier
            decay = self.time_decay(record.analysis_timestamp)
            weight = virality * confidence * multiplier * decay
            if not math.isfinite(weight):
                raise ValueError(f"non-finite trend weight for {getattr(record, 'topic', '?')}")
            return min(1.0, max(0.0, weight))
        except Exception as e:
            logger.warning(f"Trend weight computation failed, using neutral weight: {e}")
            return NEUTRAL_WEIGHT
