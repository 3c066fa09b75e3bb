# Tools module
from .cache import ExpiringCache
from .clock import Clock, SystemClock, FixedClock
from .store import TrendStore, InMemoryTrendStore

__all__ = [
    # Caching
    "ExpiringCache",
    # Time
    "Clock",
    "SystemClock",
    "FixedClock",
    # Storage
    "TrendStore",
    "InMemoryTrendStore",
]
