"""
Expiring key→value cache.

Each entry carries its own expiry. Reads that find an expired entry evict
it and report a miss; writes sweep every expired entry before inserting,
so there is no background timer.

Used for the pattern-request cache (30 min), the competitor-comparison
cache (4 h) and the sentiment cache (24 h).
"""

import logging
import threading
from typing import Any, Dict, Generic, Hashable, Optional, Tuple, TypeVar

from .clock import Clock, SystemClock

logger = logging.getLogger(__name__)

V = TypeVar("V")


class ExpiringCache(Generic[V]):
    """Thread-safe TTL cache with lazy sweep-on-write."""

    def __init__(self, ttl_seconds: float, clock: Optional[Clock] = None, name: str = "cache"):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock or SystemClock()
        self._entries: Dict[Hashable, Tuple[V, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[V]:
        now = self._clock.timestamp()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if now >= expires_at:
                del self._entries[key]
                return None
            return value

    def put(self, key: Hashable, value: V) -> None:
        now = self._clock.timestamp()
        with self._lock:
            swept = self._sweep(now)
            self._entries[key] = (value, now + self.ttl_seconds)
        if swept:
            logger.debug(f"{self.name}: swept {swept} expired entries")

    def evict(self, key: Hashable) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Any) -> bool:
        return self.get(key) is not None

    def _sweep(self, now: float) -> int:
        expired = [k for k, (_, exp) in self._entries.items() if now >= exp]
        for k in expired:
            del self._entries[k]
        return len(expired)
