"""
Common enums used across the trend engine.

These define the vocabulary of the system: pattern classifications, the
finer-grained pattern types, recommended downstream actions, pipeline
states and regions.
"""

from enum import Enum
from typing import Optional


# ══════════════════════════════════════════════════════════════════════════════
# ENUMS - Pattern Classification
# ══════════════════════════════════════════════════════════════════════════════

class UpdateFrequency(str, Enum):
    """How often content tied to a pattern should be refreshed."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    SEASONALLY = "seasonally"
    AS_NEEDED = "as_needed"


class TrendPattern(str, Enum):
    """
    Discrete classification of one series. Exactly one per classification run.

    Each variant carries its own payload (strategy text, refresh cadence,
    baseline confidence) so consumers never need a parallel lookup table.
    """
    STEADY_RISE = "steady_rise"
    STEADY_DECLINE = "steady_decline"
    VOLATILE_RISE = "volatile_rise"
    VOLATILE_DECLINE = "volatile_decline"
    CONSOLIDATION = "consolidation"
    BREAKOUT = "breakout"
    REVERSAL = "reversal"
    SEASONAL = "seasonal"
    INSUFFICIENT_DATA = "insufficient_data"
    UNDEFINED = "undefined"
    ERROR = "error"

    @property
    def is_recoverable(self) -> bool:
        """ERROR is the only variant that signals a failed computation."""
        return self is not TrendPattern.ERROR

    @property
    def recommended_strategy(self) -> str:
        return _STRATEGIES[self]

    @property
    def recommended_update_frequency(self) -> UpdateFrequency:
        return _FREQUENCIES.get(self, UpdateFrequency.AS_NEEDED)

    @property
    def confidence_level(self) -> float:
        """Baseline trust in the pattern label itself."""
        return _CONFIDENCE_LEVELS.get(self, 0.4)

    @property
    def multiplier(self) -> float:
        """Pattern multiplier applied by the trend-weight formula."""
        if self is TrendPattern.STEADY_RISE:
            return 1.2
        if self is TrendPattern.STEADY_DECLINE:
            return 0.8
        return 1.0


_STRATEGIES = {
    TrendPattern.STEADY_RISE: "Capitalize on growing interest with in-depth content",
    TrendPattern.STEADY_DECLINE: "Pivot to related topics or refresh the angle",
    TrendPattern.VOLATILE_RISE: "Publish quickly and monitor engagement closely",
    TrendPattern.VOLATILE_DECLINE: "Reduce investment and watch for stabilization",
    TrendPattern.CONSOLIDATION: "Maintain evergreen coverage",
    TrendPattern.BREAKOUT: "Act immediately on the emerging surge",
    TrendPattern.REVERSAL: "Prepare content for the changing direction",
    TrendPattern.SEASONAL: "Schedule content ahead of the recurring peak",
    TrendPattern.INSUFFICIENT_DATA: "Collect more data before acting",
    TrendPattern.UNDEFINED: "Monitor without committing resources",
    TrendPattern.ERROR: "Review the input data for this topic",
}

_FREQUENCIES = {
    TrendPattern.VOLATILE_RISE: UpdateFrequency.DAILY,
    TrendPattern.VOLATILE_DECLINE: UpdateFrequency.DAILY,
    TrendPattern.BREAKOUT: UpdateFrequency.DAILY,
    TrendPattern.STEADY_RISE: UpdateFrequency.WEEKLY,
    TrendPattern.REVERSAL: UpdateFrequency.WEEKLY,
    TrendPattern.STEADY_DECLINE: UpdateFrequency.MONTHLY,
    TrendPattern.CONSOLIDATION: UpdateFrequency.MONTHLY,
    TrendPattern.SEASONAL: UpdateFrequency.SEASONALLY,
}

_CONFIDENCE_LEVELS = {
    TrendPattern.STEADY_RISE: 0.9,
    TrendPattern.STEADY_DECLINE: 0.9,
    TrendPattern.CONSOLIDATION: 0.8,
    TrendPattern.BREAKOUT: 0.7,
    TrendPattern.REVERSAL: 0.7,
    TrendPattern.VOLATILE_RISE: 0.6,
    TrendPattern.VOLATILE_DECLINE: 0.6,
    TrendPattern.SEASONAL: 0.85,
    TrendPattern.INSUFFICIENT_DATA: 0.2,
    TrendPattern.ERROR: 0.0,
}


class PatternType(str, Enum):
    """Finer-grained label attached to an EnhancedTrendPattern."""
    BREAKOUT = "breakout"
    REVERSAL = "reversal"
    CONSOLIDATION = "consolidation"
    CONTINUATION = "continuation"
    SEASONAL_PEAK = "seasonal_peak"
    SEASONAL_TROUGH = "seasonal_trough"


class RecommendedAction(str, Enum):
    """What downstream adaptation logic should do with a topic."""
    MONITOR_FOR_BREAKOUT = "monitor_for_breakout"
    PREPARE_FOR_REVERSAL = "prepare_for_reversal"
    FOLLOW_SEASONAL_PATTERN = "follow_seasonal_pattern"
    STRONG_TREND_CONTINUE = "strong_trend_continue"
    HIGH_VOLATILITY_CAUTION = "high_volatility_caution"
    MAINTAIN_CURRENT_STRATEGY = "maintain_current_strategy"


# ══════════════════════════════════════════════════════════════════════════════
# ENUMS - Pipeline & Metadata
# ══════════════════════════════════════════════════════════════════════════════

class PipelineState(str, Enum):
    """Aggregation cycle state machine."""
    IDLE = "idle"
    FETCHING = "fetching"
    SCORING = "scoring"
    MERGING = "merging"
    PERSISTING = "persisting"


class Region(str, Enum):
    NORTH_AMERICA = "north_america"
    EUROPE = "europe"
    ASIA = "asia"
    SOUTH_AMERICA = "south_america"
    AFRICA = "africa"
    OCEANIA = "oceania"
    GLOBAL = "global"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Region"]:
        """Match a free-form region string ("North America", "EUROPE") or None."""
        if not value:
            return None
        key = value.strip().lower().replace(" ", "_").replace("-", "_")
        for region in cls:
            if region.value == key:
                return region
        return None
