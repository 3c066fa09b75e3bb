"""
Trend aggregation pipeline — batch scoring of incoming series and content.

One cycle walks this state machine:

  IDLE → FETCHING → SCORING → MERGING → PERSISTING → (next page) … → IDLE

  FETCHING:   ask the page source for up to batch_size items at the offset
  SCORING:    per-item metric computation on the worker pool; each worker
              merges its partial map into the page accumulator under a lock
  MERGING:    fold the page accumulator into the stored records (windows
              append-then-truncate, full-window classification, weights)
  PERSISTING: upsert records, then notify persist listeners

The cycle stops on an empty page, on the max-items ceiling, or on cancel().
Each page is persisted before the next is fetched, so cancelling between
pages never leaves a topic half-written.

An item whose scoring raises is logged, counted, reported to the batch
sizer and skipped. A page whose merge or persist raises stops the cycle and
is handed back to the pending buffer, so no drained item is lost.
"""

import logging
import threading
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from trend_engine.config import Settings, get_settings
from trend_engine.schemas.base import PipelineState, TrendPattern
from trend_engine.schemas.content import ContentObservation, ContentRecord
from trend_engine.schemas.trends import (
    EnhancedTrendPattern, SeriesObservation, SeriesPoint, TrendRecord,
)
from trend_engine.tools.clock import Clock, SystemClock
from trend_engine.tools.store import InMemoryTrendStore, TrendStore

from .batching import AdaptiveBatchSizer
from .classifier import PatternClassifier
from .merge import merge_metric_maps
from .signals import compute_trend_signals
from .weights import DynamicWeightCalculator, as_number, normalize

logger = logging.getLogger(__name__)

# fetch_page(offset, limit) -> items
PageSource = Callable[[int, int], Sequence[Any]]
PersistListener = Callable[[TrendRecord, EnhancedTrendPattern], None]


def sequence_source(items: Sequence[Any]) -> PageSource:
    """Page source over an in-memory sequence."""
    def fetch(offset: int, limit: int) -> Sequence[Any]:
        return items[offset:offset + limit]
    return fetch


@dataclass
class CycleReport:
    """Outcome of one aggregation cycle."""
    started_at: datetime
    completed_at: Optional[datetime] = None
    pages: int = 0
    fetched: int = 0
    scored: int = 0
    failed: int = 0
    topics_persisted: int = 0
    content_persisted: int = 0
    cancelled: bool = False
    page_failed: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()


@dataclass
class _TopicPartial:
    """Page-level accumulator for one topic."""
    points: List[SeriesPoint] = field(default_factory=list)
    signals: Dict[str, Any] = field(default_factory=dict)
    category: Optional[str] = None
    region: Optional[str] = None


@dataclass
class _ContentPartial:
    observation: ContentObservation
    weights: Dict[str, float]


class TrendAggregationPipeline:
    """Owns and mutates TrendRecords. Everything else reads them."""

    def __init__(
        self,
        store: Optional[TrendStore] = None,
        settings: Optional[Settings] = None,
        classifier: Optional[PatternClassifier] = None,
        calculator: Optional[DynamicWeightCalculator] = None,
        batch_sizer: Optional[AdaptiveBatchSizer] = None,
        clock: Optional[Clock] = None,
        sentiment_lookup: Optional[Callable[[str], Optional[float]]] = None,
    ):
        self.settings = settings or get_settings()
        self.sentiment_lookup = sentiment_lookup
        self.store = store or InMemoryTrendStore()
        self.clock = clock or SystemClock()
        self.classifier = classifier or PatternClassifier(self.settings)
        self.calculator = calculator or DynamicWeightCalculator(self.settings, self.clock)
        self.batch_sizer = batch_sizer or AdaptiveBatchSizer(self.settings)

        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.pipeline_workers,
            thread_name_prefix="trend-score",
        )
        self._state = PipelineState.IDLE
        self._state_lock = threading.Lock()
        self._merge_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        # Guards read-modify-write of a single stored record
        self._record_lock = threading.Lock()
        self._cancel = threading.Event()

        self._pending: deque = deque()
        self._pending_lock = threading.Lock()
        self._listeners: List[PersistListener] = []

    # ── State ────────────────────────────────────────────────────────────

    @property
    def state(self) -> PipelineState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: PipelineState) -> None:
        with self._state_lock:
            self._state = state

    def add_persist_listener(self, listener: PersistListener) -> None:
        self._listeners.append(listener)

    def apply_sentiment(self, topic: str, score: float) -> bool:
        """
        Attach an externally computed sentiment score to a stored topic.

        Only the per-record write lock is taken, so this never waits for a
        running cycle. A cycle that persists the topic afterwards carries
        the newest score forward (see _save_record).
        """
        with self._record_lock:
            record = self.store.get_record(topic)
            if record is None:
                return False
            record.sentiment_score = score
            self.store.save_record(record)
        return True

    def cancel(self) -> None:
        """Abandon the running cycle before its next page."""
        self._cancel.set()

    def close(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=True)

    # ── Ingestion buffer ─────────────────────────────────────────────────

    def enqueue(self, item: Any) -> None:
        with self._pending_lock:
            self._pending.append(item)

    @property
    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def process_pending(self, force: bool = True) -> Optional[CycleReport]:
        """
        Run one cycle over the buffered submissions.

        With force=False the buffer is left alone until it holds at least
        one minimum-size batch. Items the cycle never fetched (cancel,
        max-items ceiling or a failed page) go back to the front of the
        buffer.
        """
        with self._pending_lock:
            if not self._pending:
                return None
            if not force and not self.batch_sizer.should_process(len(self._pending)):
                logger.debug(f"Deferring {len(self._pending)} pending items")
                return None
            items = list(self._pending)
            self._pending.clear()

        ceiling = min(len(items), self.settings.pipeline_max_items)
        try:
            report = self.run_cycle(sequence_source(items), max_items=ceiling)
        except Exception:
            with self._pending_lock:
                self._pending.extendleft(reversed(items))
            raise

        leftover = items[report.fetched:]
        if leftover:
            with self._pending_lock:
                self._pending.extendleft(reversed(leftover))
            logger.info(f"Re-queued {len(leftover)} unprocessed items")
        return report

    # ══════════════════════════════════════════════════════════════════════
    # CYCLE
    # ══════════════════════════════════════════════════════════════════════

    def run_cycle(self, source: PageSource, max_items: Optional[int] = None) -> CycleReport:
        """Page through the source, scoring and persisting each page."""
        limit = max_items if max_items is not None else self.settings.pipeline_max_items
        with self._cycle_lock:
            self._cancel.clear()
            report = CycleReport(started_at=self.clock.now())
            offset = 0
            try:
                while offset < limit:
                    if self._cancel.is_set():
                        report.cancelled = True
                        logger.info(f"Cycle cancelled after {report.pages} pages")
                        break

                    self.batch_sizer.adjust_for_memory()
                    page_size = min(self.batch_sizer.batch_size, limit - offset)

                    self._set_state(PipelineState.FETCHING)
                    page = list(source(offset, page_size))
                    if not page:
                        break
                    offset += len(page)
                    report.pages += 1
                    report.fetched += len(page)

                    started = time.monotonic()
                    try:
                        self._process_page(page, report)
                    except Exception as e:
                        # Hand the page back as unfetched so process_pending re-queues it
                        offset -= len(page)
                        report.fetched -= len(page)
                        report.page_failed = True
                        report.errors.append(str(e))
                        self.batch_sizer.report_error()
                        logger.error(f"Page {report.pages} failed, stopping cycle: {e}", exc_info=True)
                        break
                    self.batch_sizer.record_throughput(len(page), time.monotonic() - started)
            finally:
                self._set_state(PipelineState.IDLE)
                report.completed_at = self.clock.now()

        logger.info(
            f"Cycle done: {report.pages} pages, {report.scored}/{report.fetched} items scored, "
            f"{report.failed} failed, {report.topics_persisted} topics persisted"
        )
        return report

    def _process_page(self, page: List[Any], report: CycleReport) -> None:
        topics: Dict[str, _TopicPartial] = {}
        contents: Dict[str, _ContentPartial] = {}

        self._set_state(PipelineState.SCORING)
        futures = [
            self._executor.submit(self._score_item, item, topics, contents)
            for item in page
        ]
        for future in futures:
            error = future.exception()
            if error is None:
                report.scored += 1
                continue
            report.failed += 1
            report.errors.append(str(error))
            self.batch_sizer.report_error()
            logger.warning(f"Skipping item that failed scoring: {error}")

        self._set_state(PipelineState.MERGING)
        now = self.clock.now()
        folded = []
        for topic in sorted(topics):
            folded.append(self._fold_topic(topic, topics[topic], now))
        content_records = [
            self._fold_content(partial, now) for partial in contents.values()
        ]

        self._set_state(PipelineState.PERSISTING)
        for record, pattern in folded:
            self._save_record(record)
            report.topics_persisted += 1
            self._notify(record, pattern)
        for record in content_records:
            self.store.save_content(record)
            report.content_persisted += 1

    # ── Scoring (worker threads) ─────────────────────────────────────────

    def _score_item(
        self,
        item: Any,
        topics: Dict[str, _TopicPartial],
        contents: Dict[str, _ContentPartial],
    ) -> None:
        if isinstance(item, dict):
            item = (
                ContentObservation.model_validate(item) if "item_id" in item
                else SeriesObservation.model_validate(item)
            )

        if isinstance(item, SeriesObservation):
            values = [p.value for p in sorted(item.points, key=lambda p: p.timestamp)]
            signals = compute_trend_signals(values, self.settings)
            signals["band_pattern"] = self.classifier.classify_bands(
                values, signals["momentum"], signals["volatility"],
            ).value
            with self._merge_lock:
                partial = topics.setdefault(item.topic, _TopicPartial())
                partial.points.extend(item.points)
                partial.signals = merge_metric_maps(partial.signals, signals)
                partial.category = item.category or partial.category
                partial.region = item.region or partial.region

        elif isinstance(item, ContentObservation):
            previous = self.store.get_content(item.item_id)
            previous_engagement = as_number(previous.metrics.get("engagement")) if previous else None
            weights = self.calculator.content_weight(
                item.metrics, item.created_at, previous_engagement,
            )
            with self._merge_lock:
                existing = contents.get(item.item_id)
                if existing is None:
                    contents[item.item_id] = _ContentPartial(item, weights)
                else:
                    existing.observation = existing.observation.model_copy(update={
                        "metrics": merge_metric_maps(existing.observation.metrics, item.metrics),
                    })
                    existing.weights = merge_metric_maps(existing.weights, weights)

        else:
            raise TypeError(f"Unsupported item type: {type(item).__name__}")

    # ── Folding into stored records ──────────────────────────────────────

    def _fold_topic(
        self,
        topic: str,
        partial: _TopicPartial,
        now: datetime,
    ) -> Tuple[TrendRecord, EnhancedTrendPattern]:
        record = self.store.get_record(topic) or TrendRecord(topic=topic, created_at=now)

        points = sorted(partial.points, key=lambda p: p.timestamp)
        last = record.last_timestamp
        if last is not None:
            stale = sum(1 for p in points if p.timestamp < last)
            if stale:
                logger.warning(f"Dropping {stale} out-of-order points for '{topic}'")
            points = [p for p in points if p.timestamp >= last]

        self._append_window(record, points)
        record.category = partial.category or record.category
        record.region = partial.region or record.region
        record.signals = partial.signals

        pattern = self._refresh_analysis(record, now)
        return record, pattern

    def _append_window(self, record: TrendRecord, points: List[SeriesPoint]) -> None:
        cap = self.settings.history_window
        values = record.historical_values + [p.value for p in points]
        dates = record.historical_dates + [p.timestamp.isoformat() for p in points]
        record.historical_values = values[-cap:]
        record.historical_dates = dates[-cap:]

    def _refresh_analysis(self, record: TrendRecord, now: datetime) -> EnhancedTrendPattern:
        """Reclassify the stored window and recompute the record's weight."""
        timestamps = [datetime.fromisoformat(d) for d in record.historical_dates]
        pattern = self.classifier.classify(record.historical_values, timestamps)

        record.pattern = pattern.pattern
        record.confidence_score = pattern.confidence_score
        if pattern.pattern is not TrendPattern.ERROR:
            record.metrics = pattern.metrics

        values = record.historical_values
        if values:
            record.trend_score = normalize(values[-1], min(values), max(values))
        record.analysis_timestamp = now
        record.dynamic_weight = self.calculator.trend_weight(record)
        return pattern

    def _fold_content(self, partial: _ContentPartial, now: datetime) -> ContentRecord:
        item = partial.observation
        previous = self.store.get_content(item.item_id)
        previous_engagement = as_number(previous.metrics.get("engagement")) if previous else None
        return ContentRecord(
            item_id=item.item_id,
            metrics=dict(item.metrics),
            created_at=item.created_at,
            previous_engagement=previous_engagement,
            weights=partial.weights,
            dynamic_weight=self.calculator.combine(partial.weights),
            updated_at=now,
        )

    def _save_record(self, record: TrendRecord) -> None:
        """Upsert a folded record, carrying forward the newest sentiment score."""
        with self._record_lock:
            sentiment = self.sentiment_lookup(record.topic) if self.sentiment_lookup else None
            if sentiment is None:
                stored = self.store.get_record(record.topic)
                if stored is not None and stored.sentiment_score is not None:
                    sentiment = stored.sentiment_score
            if sentiment is not None:
                record.sentiment_score = sentiment
            self.store.save_record(record)

    def _notify(self, record: TrendRecord, pattern: EnhancedTrendPattern) -> None:
        for listener in self._listeners:
            try:
                listener(record.model_copy(deep=True), pattern)
            except Exception as e:
                logger.warning(f"Persist listener failed for '{record.topic}': {e}")

    # ══════════════════════════════════════════════════════════════════════
    # RE-AGGREGATION
    # ══════════════════════════════════════════════════════════════════════

    def reaggregate_all(self) -> int:
        """Reclassify and re-weight every stored topic from its window."""
        refreshed: List[Tuple[TrendRecord, EnhancedTrendPattern]] = []
        with self._cycle_lock:
            self._cancel.clear()
            self._set_state(PipelineState.MERGING)
            try:
                now = self.clock.now()
                for record in self.store.list_records():
                    if self._cancel.is_set():
                        break
                    refreshed.append((record, self._refresh_analysis(record, now)))

                self._set_state(PipelineState.PERSISTING)
                for record, pattern in refreshed:
                    self._save_record(record)
                    self._notify(record, pattern)
            finally:
                self._set_state(PipelineState.IDLE)
        logger.info(f"Re-aggregated {len(refreshed)} topics")
        return len(refreshed)
