"""Shared fixtures: pinned clock, settings, stores and a wired engine."""

from datetime import datetime, timedelta, timezone

import pytest

from trend_engine.config import Settings
from trend_engine.tools.clock import FixedClock
from trend_engine.tools.store import InMemoryTrendStore
from trend_engine.trends.engine import TrendEngine


START = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

RISING = [10, 12, 11, 13, 14, 15, 17, 19, 21, 24]
FLAT = [50.0] * 10


def daily_points(values, start=START):
    """[(timestamp, value)] one day apart."""
    return [(start + timedelta(days=i), float(v)) for i, v in enumerate(values)]


@pytest.fixture
def clock():
    return FixedClock(START)


@pytest.fixture
def settings():
    return Settings(pipeline_workers=2)


@pytest.fixture
def store():
    return InMemoryTrendStore()


@pytest.fixture
def engine(settings, store, clock):
    eng = TrendEngine(settings=settings, store=store, clock=clock, memory_reader=lambda: 0.5)
    yield eng
    eng.close()
