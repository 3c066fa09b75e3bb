"""
Trend signal analysis and pattern classification.

Data flow:
  submissions → TrendAggregationPipeline (pages, worker pool)
              → signals/ (per-series metrics)
              → PatternClassifier (pattern + confidence)
              → DynamicWeightCalculator (priority weight)
              → TrendStore → RealTimeAdapter (EMA smoothing) → consumers

Modules:
  - engine.py: TrendEngine façade (library boundary)
  - pipeline.py: TrendAggregationPipeline (batch cycle state machine)
  - classifier.py: probability path + band path classification
  - weights.py: content / trend dynamic weights
  - realtime.py: bounded recent window + smoothed weights
  - scheduler.py: interval scheduler for periodic tasks
  - batching.py: adaptive batch sizing
  - merge.py: max-wins metric map merge
  - signals/: statistics kernel
"""

from trend_engine.trends.engine import TrendEngine
from trend_engine.trends.pipeline import TrendAggregationPipeline, CycleReport, sequence_source
from trend_engine.trends.classifier import PatternClassifier
from trend_engine.trends.weights import DynamicWeightCalculator, normalize
from trend_engine.trends.realtime import RealTimeAdapter
from trend_engine.trends.scheduler import IntervalScheduler
from trend_engine.trends.batching import AdaptiveBatchSizer
from trend_engine.trends.merge import merge_metric_maps
