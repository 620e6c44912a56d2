"""Price Analytics — verifies percent change, volatility, bucketing, and source mix."""

import math
from datetime import datetime, timezone

import pytest

from dynamicvault.core.domain_types import AggregationPeriod
from dynamicvault.core.price_analytics import (
    PricePoint, aggregate_price_points, bucket_key, derive_usd_price, mean,
    percent_change, returns_volatility, source_distribution,
)


def _ts(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_percent_change():
    assert percent_change(110, 100) == pytest.approx(10.0)
    assert percent_change(50, 100) == pytest.approx(-50.0)


def test_percent_change_without_usable_previous_is_zero():
    assert percent_change(110, None) == 0.0
    assert percent_change(110, 0) == 0.0


def test_volatility_of_flat_series_is_zero():
    assert returns_volatility([10, 10, 10]) == 0.0


def test_volatility_needs_two_points():
    assert returns_volatility([]) == 0.0
    assert returns_volatility([5]) == 0.0


def test_volatility_is_population_stddev_of_returns():
    # returns: +0.1, -0.1 -> mean 0, stddev 0.1 -> 10%
    assert returns_volatility([100, 110, 99]) == pytest.approx(10.0)


def test_volatility_skips_zero_previous_price():
    assert returns_volatility([0, 10, 11]) == pytest.approx(0.0)


def test_bucket_keys_per_period():
    ts = _ts(2024, 3, 5, 14, 30)
    assert bucket_key(ts, AggregationPeriod.HOUR) == (2024, 3, 5, 14)
    assert bucket_key(ts, AggregationPeriod.DAY) == (2024, 3, 5)
    assert bucket_key(ts, AggregationPeriod.WEEK) == (2024, 10)
    assert bucket_key(ts, AggregationPeriod.MONTH) == (2024, 3)


def test_naive_timestamps_treated_as_utc():
    naive = datetime(2024, 3, 5, 23, 0)
    assert bucket_key(naive, AggregationPeriod.DAY) == (2024, 3, 5)


def test_aggregate_by_day():
    points = [
        PricePoint(_ts(2024, 1, 2, 9), 30.0),
        PricePoint(_ts(2024, 1, 1, 8), 10.0),
        PricePoint(_ts(2024, 1, 1, 20), 20.0),
    ]
    buckets = aggregate_price_points(points, AggregationPeriod.DAY)
    assert [b["period"] for b in buckets] == [[2024, 1, 1], [2024, 1, 2]]
    first = buckets[0]
    assert first["avgPrice"] == pytest.approx(15.0)
    assert first["minPrice"] == 10.0
    assert first["maxPrice"] == 20.0
    assert first["count"] == 2
    assert first["timestamp"].startswith("2024-01-01T08:00:00")


def test_aggregate_empty():
    assert aggregate_price_points([], AggregationPeriod.MONTH) == []


def test_source_distribution_percentages():
    rows = source_distribution({"manual": 1, "ai-oracle": 3})
    assert rows[0] == {"source": "ai-oracle", "count": 3, "percentage": 75.0}
    assert rows[1]["percentage"] == 25.0
    assert math.isclose(sum(r["percentage"] for r in rows), 100.0)


def test_source_distribution_empty():
    assert source_distribution({}) == []


def test_derive_usd_price_keeps_rate():
    assert derive_usd_price(2.0, 1.0, 3000.0) == pytest.approx(6000.0)
    assert derive_usd_price(2.0, 0.0, 3000.0) == 0.0


def test_mean():
    assert mean([]) == 0.0
    assert mean([1.0, 3.0]) == 2.0
