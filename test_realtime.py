"""RealTimeAdapter: bounded window, EMA smoothing, significance."""

import threading

import pytest

from trend_engine.config import Settings
from trend_engine.schemas.base import TrendPattern
from trend_engine.schemas.trends import TrendRecord
from trend_engine.trends.realtime import RealTimeAdapter
from trend_engine.trends.weights import DynamicWeightCalculator


def _record(clock, topic, trend_score=1.0, confidence=0.9, pattern=TrendPattern.STEADY_RISE):
    return TrendRecord(
        topic=topic,
        trend_score=trend_score,
        confidence_score=confidence,
        pattern=pattern,
        analysis_timestamp=clock.now(),
    )


@pytest.fixture
def adapter(settings, clock):
    return RealTimeAdapter(settings, DynamicWeightCalculator(settings, clock))


def test_first_sighting_takes_new_weight(adapter, clock):
    adapter.observe(_record(clock, "a"))
    weights = adapter.smooth_weights()
    # 1.0 * 0.9 * 1.2 clamps to 1.0
    assert weights["a"] == 1.0


def test_ema_smoothing(adapter, clock):
    adapter.observe(_record(clock, "a"))
    adapter.smooth_weights()
    adapter.observe(_record(clock, "a", trend_score=0.5, confidence=1.0, pattern=TrendPattern.CONSOLIDATION))
    weights = adapter.smooth_weights()
    assert weights["a"] == pytest.approx(0.7 * 1.0 + 0.3 * 0.5)
    assert adapter.weight("a") == pytest.approx(0.85)


def test_unknown_topic_has_no_weight(adapter):
    assert adapter.weight("nothing") is None


def test_significance_threshold(adapter, clock):
    adapter.observe(_record(clock, "strong"))
    adapter.observe(_record(clock, "weak", trend_score=0.5, confidence=0.5, pattern=TrendPattern.CONSOLIDATION))
    adapter.smooth_weights()
    assert adapter.significant_topics() == ["strong"]


def test_significant_topics_strongest_first(adapter, clock):
    adapter.observe(_record(clock, "a", confidence=0.8))
    adapter.observe(_record(clock, "b", confidence=0.9))
    adapter.smooth_weights()
    # a: 1.0 * 0.8 * 1.2 = 0.96, b clamps to 1.0
    assert adapter.significant_topics() == ["b", "a"]


def test_window_eviction(clock):
    settings = Settings(realtime_window=3)
    adapter = RealTimeAdapter(settings, DynamicWeightCalculator(settings, clock))
    adapter.observe(_record(clock, "old"))
    adapter.smooth_weights()
    assert adapter.significant_topics() == ["old"]

    for topic in ("x", "y", "z"):
        adapter.observe(_record(clock, topic, trend_score=0.1))
    assert len(adapter) == 3
    adapter.smooth_weights()
    # Smoothed weight survives but the topic left the recent window
    assert adapter.weight("old") == 1.0
    assert adapter.significant_topics() == []


def test_concurrent_observe_and_smooth(adapter, clock):
    records = [_record(clock, f"t{i % 7}") for i in range(300)]

    def feed(chunk):
        for record in chunk:
            adapter.observe(record)

    threads = [threading.Thread(target=feed, args=(records[i::3],)) for i in range(3)]
    for t in threads:
        t.start()
    for _ in range(20):
        adapter.smooth_weights()
    for t in threads:
        t.join()

    weights = adapter.smooth_weights()
    assert len(adapter) == 100
    assert set(weights) == {f"t{i}" for i in range(7)}
    assert all(0.0 <= w <= 1.0 for w in weights.values())
