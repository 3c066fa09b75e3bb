"""
Adaptive batch sizing for the aggregation pipeline.

Three feedback loops move the batch size, always bounded to
[batch_size_min, batch_size_max] and smoothed by averaging with the
current size:

  memory:      usage > 75%  → target = size * (1 - (usage - 0.75))
               usage <= 75% → target = size * (1 + (1 - usage) * 0.5)
  throughput:  target = items/second * 5s (one batch per target interval)
  errors:      size *= 0.8 immediately (no smoothing)

Memory usage is this process's resident set as a share of physical memory
(psutil), the pressure the batches themselves create. Tests inject a callable
returning a fixed ratio.
"""

import logging
import threading
from typing import Callable, Optional

import psutil

from trend_engine.config import Settings, get_settings

logger = logging.getLogger(__name__)

ERROR_SHRINK = 0.8
LOW_MEMORY_GROWTH = 0.5


def process_memory_ratio() -> float:
    """Fraction of physical memory held by this process, 0..1."""
    return psutil.Process().memory_percent() / 100.0


class AdaptiveBatchSizer:
    """Thread-safe batch size controller."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        memory_reader: Optional[Callable[[], float]] = None,
    ):
        self.settings = settings or get_settings()
        self._memory_reader = memory_reader or process_memory_ratio
        self._size = self._bound(self.settings.batch_size_default)
        self._lock = threading.Lock()

    @property
    def batch_size(self) -> int:
        with self._lock:
            return self._size

    def _bound(self, size: int) -> int:
        return max(self.settings.batch_size_min, min(self.settings.batch_size_max, int(size)))

    def _set(self, size: int, reason: str) -> int:
        # Caller holds the lock
        previous, self._size = self._size, size
        if previous != size:
            logger.debug(f"Batch size {previous} -> {size} ({reason})")
        return size

    def adjust_for_memory(self) -> int:
        """Re-target the batch size from current memory pressure."""
        try:
            ratio = float(self._memory_reader())
        except Exception as e:
            logger.warning(f"Memory reading failed, keeping batch size: {e}")
            return self.batch_size

        threshold = self.settings.batch_memory_threshold
        with self._lock:
            current = self._size
            if ratio > threshold:
                optimal = int(current * (1 - (ratio - threshold)))
            else:
                optimal = int(current * (1 + (1 - ratio) * LOW_MEMORY_GROWTH))
            return self._set(self._bound((current + optimal) // 2), f"memory {ratio:.0%}")

    def record_throughput(self, items: int, seconds: float) -> int:
        """Move toward the size that would take batch_target_seconds per batch."""
        if items <= 0 or seconds <= 0:
            return self.batch_size
        rate = items / seconds
        with self._lock:
            optimal = self._bound(int(rate * self.settings.batch_target_seconds))
            return self._set(self._bound((self._size + optimal) // 2), f"{rate:.1f} items/s")

    def report_error(self) -> int:
        with self._lock:
            return self._set(self._bound(int(self._size * ERROR_SHRINK)), "error")

    def should_process(self, remaining: int) -> bool:
        """True when enough items are pending to justify a batch."""
        return remaining >= self.settings.batch_size_min

    def reset(self) -> None:
        with self._lock:
            self._set(self._bound(self.settings.batch_size_default), "reset")
