"""AdaptiveBatchSizer: memory, throughput and error feedback, always bounded."""

import pytest

from trend_engine.trends.batching import AdaptiveBatchSizer, process_memory_ratio


def _sizer(settings, ratio=0.5):
    return AdaptiveBatchSizer(settings, memory_reader=lambda: ratio)


def test_starts_at_default(settings):
    assert _sizer(settings).batch_size == 50


def test_high_memory_shrinks(settings):
    sizer = _sizer(settings, 0.95)
    # optimal = int(50 * (1 - 0.2)) = 40, smoothed (50 + 40) // 2
    assert sizer.adjust_for_memory() == 45


def test_low_memory_grows(settings):
    sizer = _sizer(settings, 0.5)
    # optimal = int(50 * 1.25) = 62, smoothed (50 + 62) // 2
    assert sizer.adjust_for_memory() == 56


def test_memory_pressure_bounded(settings):
    full = _sizer(settings, 1.0)
    empty = _sizer(settings, 0.0)
    for _ in range(100):
        full.adjust_for_memory()
        empty.adjust_for_memory()
    assert full.batch_size == 10
    assert empty.batch_size == 200


def test_throughput_retarget(settings):
    sizer = _sizer(settings)
    # 100 items/s * 5s = 500 → bounded 200, smoothed (50 + 200) // 2
    assert sizer.record_throughput(100, 1.0) == 125
    assert sizer.record_throughput(0, 1.0) == 125
    assert sizer.record_throughput(10, 0.0) == 125


def test_slow_throughput_shrinks(settings):
    sizer = _sizer(settings)
    # 1 item/s * 5s = 5 → bounded 10, smoothed (50 + 10) // 2
    assert sizer.record_throughput(10, 10.0) == 30


def test_error_shrinks_twenty_percent(settings):
    sizer = _sizer(settings)
    assert sizer.report_error() == 40
    assert sizer.report_error() == 32
    for _ in range(20):
        sizer.report_error()
    assert sizer.batch_size == 10


def test_should_process(settings):
    sizer = _sizer(settings)
    assert not sizer.should_process(9)
    assert sizer.should_process(10)


def test_reset(settings):
    sizer = _sizer(settings)
    sizer.report_error()
    sizer.reset()
    assert sizer.batch_size == 50


def test_failing_memory_reading_keeps_size(settings):
    def broken_reading():
        raise RuntimeError("no psutil")
    sizer = AdaptiveBatchSizer(settings, memory_reader=broken_reading)
    assert sizer.adjust_for_memory() == 50


@pytest.mark.parametrize("ratio", [0.0, 0.3, 0.75, 0.76, 0.9, 1.0])
def test_memory_adjustment_stays_in_bounds(settings, ratio):
    sizer = _sizer(settings, ratio)
    for _ in range(10):
        size = sizer.adjust_for_memory()
        assert 10 <= size <= 200


def test_default_memory_reading_is_a_ratio(settings):
    assert 0.0 <= process_memory_ratio() <= 1.0
    sizer = AdaptiveBatchSizer(settings)
    assert settings.batch_size_min <= sizer.adjust_for_memory() <= settings.batch_size_max
