"""
Schemas package — all data models for the trend engine.

Models are organized by domain in submodules:
  - base.py: Enums (TrendPattern, PatternType, RecommendedAction, PipelineState, Region)
  - trends.py: SeriesPoint, SeriesObservation, TrendMetrics, EnhancedTrendPattern, TrendRecord
  - content.py: ContentObservation, ContentRecord, weight-map constants
"""

from trend_engine.schemas.base import (
    TrendPattern, PatternType, RecommendedAction, PipelineState, Region,
    UpdateFrequency,
)

from trend_engine.schemas.trends import (
    SeriesPoint, SeriesObservation, TrendMetrics, EnhancedTrendPattern, TrendRecord,
)

from trend_engine.schemas.content import (
    ContentObservation, ContentRecord, REQUIRED_COUNTERS, WEIGHT_KEYS, FALLBACK_WEIGHTS,
)

__all__ = [
    # base
    "TrendPattern", "PatternType", "RecommendedAction", "PipelineState", "Region",
    "UpdateFrequency",
    # trends
    "SeriesPoint", "SeriesObservation", "TrendMetrics", "EnhancedTrendPattern", "TrendRecord",
    # content
    "ContentObservation", "ContentRecord", "REQUIRED_COUNTERS", "WEIGHT_KEYS",
    "FALLBACK_WEIGHTS",
]
