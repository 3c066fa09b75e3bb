"""
Real-time adaptation: smoothed topic weights over a bounded recent window.

observe() is called from the ingestion side and only appends to a bounded
FIFO. smooth_weights() runs on its own schedule:

  smoothed = 0.7 * old + 0.3 * trend_weight(latest record)
  (first sighting takes the new weight directly)

A topic is significant when its smoothed weight exceeds 0.7 and it still
appears in the recent window.
"""

import logging
import threading
from collections import deque
from typing import Dict, List, Optional

from trend_engine.config import Settings, get_settings
from trend_engine.schemas.trends import TrendRecord

from .weights import DynamicWeightCalculator

logger = logging.getLogger(__name__)


class RealTimeAdapter:
    """Bounded recent-trend window plus EMA-smoothed weights."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        calculator: Optional[DynamicWeightCalculator] = None,
    ):
        self.settings = settings or get_settings()
        self.calculator = calculator or DynamicWeightCalculator(self.settings)
        self._recent: deque = deque(maxlen=self.settings.realtime_window)
        self._weights: Dict[str, float] = {}
        self._lock = threading.Lock()

    def observe(self, record: TrendRecord) -> None:
        with self._lock:
            self._recent.append(record)

    def smooth_weights(self) -> Dict[str, float]:
        """One EMA pass over the topics in the recent window."""
        with self._lock:
            snapshot = list(self._recent)
            previous = dict(self._weights)

        # Last observation per topic wins
        latest: Dict[str, TrendRecord] = {}
        for record in snapshot:
            latest[record.topic] = record

        retain = self.settings.ema_retain
        updated = {}
        for topic, record in latest.items():
            new = self.calculator.trend_weight(record)
            old = previous.get(topic)
            updated[topic] = new if old is None else retain * old + (1 - retain) * new

        with self._lock:
            self._weights.update(updated)
            result = dict(self._weights)
        logger.debug(f"Smoothed weights for {len(updated)} topics")
        return result

    def weight(self, topic: str) -> Optional[float]:
        with self._lock:
            return self._weights.get(topic)

    def significant_topics(self) -> List[str]:
        """Recent topics above the significance threshold, strongest first."""
        threshold = self.settings.significance_threshold
        with self._lock:
            recent = {r.topic for r in self._recent}
            hits = [(w, t) for t, w in self._weights.items() if t in recent and w > threshold]
        return [t for _, t in sorted(hits, key=lambda x: (-x[0], x[1]))]

    def __len__(self) -> int:
        with self._lock:
            return len(self._recent)
