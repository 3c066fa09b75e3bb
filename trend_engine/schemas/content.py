"""
Content item models fed to the dynamic weight calculator.

Raw counter maps are kept as loose dicts on purpose: a missing counter is a
documented condition (fallback weight map), not a validation error.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator

# Counters a content item must carry for a computed weight.
REQUIRED_COUNTERS = ("views", "likes", "shares", "comments", "engagement")

# Sub-score keys of a weight map, in blend order.
WEIGHT_KEYS = (
    "virality", "relevance", "engagement", "competitor",
    "seasonality", "market_potential", "momentum", "time_decay",
)

# Returned whenever required counters are missing or unusable.
FALLBACK_WEIGHTS: Dict[str, float] = {
    "virality": 0.0,
    "relevance": 0.5,
    "engagement": 0.0,
    "time_decay": 1.0,
    "competitor": 0.5,
    "seasonality": 0.5,
    "market_potential": 0.5,
    "momentum": 0.0,
}


class ContentObservation(BaseModel):
    """Raw counters for one content item, as submitted."""
    item_id: str = Field(min_length=1)
    metrics: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class ContentRecord(BaseModel):
    """Latest state of one content item plus its last computed weights."""
    item_id: str
    metrics: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    previous_engagement: Optional[float] = None
    weights: Dict[str, float] = Field(default_factory=dict)
    dynamic_weight: float = 0.5
    updated_at: Optional[datetime] = None
