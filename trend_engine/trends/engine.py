"""
TrendEngine — the library boundary used by the surrounding application.

Wires the components together and exposes the input/output contract:

  Input:   submit_series, submit_content_metrics, submit_sentiment
  Output:  get_pattern, get_dynamic_weight, get_significant_topics,
           get_historical_values, get_historical_dates, compare_topics
  Control: process_pending, start, stop, close

Submissions are buffered; the pipeline folds them in on process_pending()
or on the scheduled refresh. Background tasks once started:

  reaggregation      hourly     drain buffer + reclassify every topic
  metrics_refresh    5 min      drain buffer when a minimum batch is waiting
  weight_smoothing   15 min     EMA pass in the real-time adapter

Caches:
  pattern      30 min   evicted whenever the pipeline persists the topic
  comparison    4 h     keyed by the sorted topic set
  sentiment    24 h     externally supplied scores
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from trend_engine.config import Settings, get_settings
from trend_engine.schemas.base import TrendPattern
from trend_engine.schemas.content import ContentObservation
from trend_engine.schemas.trends import (
    EnhancedTrendPattern, SeriesObservation, SeriesPoint, TrendRecord,
)
from trend_engine.tools.cache import ExpiringCache
from trend_engine.tools.clock import Clock, SystemClock
from trend_engine.tools.store import InMemoryTrendStore, TrendStore

from .batching import AdaptiveBatchSizer
from .classifier import INSUFFICIENT_DATA_CONFIDENCE, PatternClassifier
from .pipeline import CycleReport, TrendAggregationPipeline
from .realtime import RealTimeAdapter
from .scheduler import IntervalScheduler
from .signals import correlation
from .weights import NEUTRAL_WEIGHT, DynamicWeightCalculator

logger = logging.getLogger(__name__)

PointLike = Union[SeriesPoint, Tuple[datetime, float], Mapping[str, Any]]

TASK_REAGGREGATION = "reaggregation"
TASK_METRICS_REFRESH = "metrics_refresh"
TASK_WEIGHT_SMOOTHING = "weight_smoothing"


def _to_point(point: PointLike) -> SeriesPoint:
    if isinstance(point, SeriesPoint):
        return point
    if isinstance(point, Mapping):
        return SeriesPoint.model_validate(point)
    timestamp, value = point
    return SeriesPoint(timestamp=timestamp, value=value)


class TrendEngine:
    """Façade over the pipeline, classifier, weights and real-time adapter."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[TrendStore] = None,
        clock: Optional[Clock] = None,
        memory_reader: Optional[Callable[[], float]] = None,
    ):
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self.store = store or InMemoryTrendStore()

        self.classifier = PatternClassifier(self.settings)
        self.calculator = DynamicWeightCalculator(self.settings, self.clock)
        self.batch_sizer = AdaptiveBatchSizer(self.settings, memory_reader)
        self.realtime = RealTimeAdapter(self.settings, self.calculator)
        self.scheduler = IntervalScheduler()

        self._pattern_cache: ExpiringCache[EnhancedTrendPattern] = ExpiringCache(
            self.settings.request_cache_ttl_seconds, self.clock, name="pattern")
        self._comparison_cache: ExpiringCache[Dict[str, Dict[str, float]]] = ExpiringCache(
            self.settings.competitor_cache_ttl_seconds, self.clock, name="comparison")
        self._sentiment_cache: ExpiringCache[float] = ExpiringCache(
            self.settings.sentiment_cache_ttl_seconds, self.clock, name="sentiment")

        self.pipeline = TrendAggregationPipeline(
            store=self.store,
            settings=self.settings,
            classifier=self.classifier,
            calculator=self.calculator,
            batch_sizer=self.batch_sizer,
            clock=self.clock,
            sentiment_lookup=self._sentiment_cache.get,
        )
        self.pipeline.add_persist_listener(self._on_persist)

    def _on_persist(self, record: TrendRecord, pattern: EnhancedTrendPattern) -> None:
        self._pattern_cache.evict(record.topic)
        self.realtime.observe(record)

    # ══════════════════════════════════════════════════════════════════════
    # INPUT
    # ══════════════════════════════════════════════════════════════════════

    def submit_series(
        self,
        topic: str,
        points: Iterable[PointLike],
        category: Optional[str] = None,
        region: Optional[str] = None,
    ) -> None:
        """Buffer (timestamp, value) samples for one topic. Raises on invalid points."""
        observation = SeriesObservation(
            topic=topic,
            points=[_to_point(p) for p in points],
            category=category,
            region=region,
        )
        self.pipeline.enqueue(observation)

    def submit_content_metrics(
        self,
        item_id: str,
        metrics: Mapping[str, Any],
        created_at: datetime,
    ) -> None:
        self.pipeline.enqueue(ContentObservation(
            item_id=item_id, metrics=dict(metrics), created_at=created_at,
        ))

    def submit_sentiment(self, topic: str, score: float) -> None:
        self._sentiment_cache.put(topic, float(score))
        self.pipeline.apply_sentiment(topic, float(score))

    def process_pending(self, force: bool = True) -> Optional[CycleReport]:
        return self.pipeline.process_pending(force=force)

    # ══════════════════════════════════════════════════════════════════════
    # OUTPUT
    # ══════════════════════════════════════════════════════════════════════

    def get_pattern(self, topic: str) -> EnhancedTrendPattern:
        """Classification of the topic's stored window. Unknown topics are INSUFFICIENT_DATA."""
        cached = self._pattern_cache.get(topic)
        if cached is not None:
            return cached

        record = self.store.get_record(topic)
        if record is None:
            return EnhancedTrendPattern(
                pattern=TrendPattern.INSUFFICIENT_DATA,
                confidence_score=INSUFFICIENT_DATA_CONFIDENCE,
            )

        timestamps = [datetime.fromisoformat(d) for d in record.historical_dates]
        pattern = self.classifier.classify(record.historical_values, timestamps)
        self._pattern_cache.put(topic, pattern)
        return pattern

    def get_dynamic_weight(self, key: str) -> float:
        """Weight of a topic or content item, recomputed per request. Unknown keys are neutral."""
        record = self.store.get_record(key)
        if record is not None:
            return self.calculator.trend_weight(record)
        content = self.store.get_content(key)
        if content is not None:
            return self.calculator.content_dynamic_weight(
                content.metrics, content.created_at, content.previous_engagement,
            )
        return NEUTRAL_WEIGHT

    def get_significant_topics(self) -> List[str]:
        return self.realtime.significant_topics()

    def get_historical_values(self, topic: str) -> List[float]:
        record = self.store.get_record(topic)
        return list(record.historical_values) if record else []

    def get_historical_dates(self, topic: str) -> List[str]:
        record = self.store.get_record(topic)
        return list(record.historical_dates) if record else []

    def get_sentiment(self, topic: str) -> Optional[float]:
        cached = self._sentiment_cache.get(topic)
        if cached is not None:
            return cached
        record = self.store.get_record(topic)
        return record.sentiment_score if record else None

    def compare_topics(self, topics: Sequence[str]) -> Dict[str, Dict[str, float]]:
        """Pairwise Pearson correlation of the topics' historical windows."""
        key = tuple(sorted(set(topics)))
        cached = self._comparison_cache.get(key)
        if cached is not None:
            return cached

        windows = {t: self.get_historical_values(t) for t in key}
        matrix: Dict[str, Dict[str, float]] = {t: {} for t in key}
        for i, a in enumerate(key):
            for b in key[i:]:
                r = correlation(windows[a], windows[b])
                matrix[a][b] = r
                matrix[b][a] = r

        self._comparison_cache.put(key, matrix)
        return matrix

    # ══════════════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ══════════════════════════════════════════════════════════════════════

    def _reaggregate(self) -> None:
        self.pipeline.process_pending(force=True)
        self.pipeline.reaggregate_all()

    def _refresh_metrics(self) -> None:
        self.pipeline.process_pending(force=False)

    def start(self) -> None:
        """Register the periodic tasks and start the scheduler."""
        s = self.settings
        self.scheduler.register(TASK_REAGGREGATION, s.reaggregation_interval_seconds, self._reaggregate)
        self.scheduler.register(TASK_METRICS_REFRESH, s.metrics_refresh_interval_seconds, self._refresh_metrics)
        self.scheduler.register(TASK_WEIGHT_SMOOTHING, s.weight_smoothing_interval_seconds, self.realtime.smooth_weights)
        self.scheduler.start()

    def stop(self) -> None:
        """Stop and deregister the periodic tasks. A running cycle stops at its next page."""
        self.pipeline.cancel()
        self.scheduler.stop()
        for name in (TASK_REAGGREGATION, TASK_METRICS_REFRESH, TASK_WEIGHT_SMOOTHING):
            self.scheduler.deregister(name)

    def close(self) -> None:
        self.stop()
        self.pipeline.close()

    def __enter__(self) -> "TrendEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
