"""Price Analytics — pure computations over price-history points.

Invariants:
    - No IO: callers load points from the DB and pass plain values in
    - Percent changes and volatility are expressed in percent (x100)
    - Missing comparison points yield 0.0, never None or an exception
    - Aggregated buckets are sorted by their first point's timestamp, ascending

Design Decisions:
    - Bucketing in Python rather than SQL date functions: identical behavior on
      PostgreSQL and SQLite, and the per-asset point count is small
    - Week buckets use ISO (year, week) so buckets never straddle a year boundary oddly
"""

import math
from dataclasses import dataclass
from datetime import datetime

from dynamicvault.core.clock import ensure_utc
from dynamicvault.core.domain_types import AggregationPeriod


@dataclass(frozen=True)
class PricePoint:
    timestamp: datetime
    price: float


def percent_change(current: float, previous: float | None) -> float:
    """Percent change from previous to current; 0.0 when previous is unusable."""
    if previous is None or previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def returns_volatility(prices: list[float]) -> float:
    """Population std-dev of consecutive simple returns, in percent.

    Returns over a zero previous price are skipped.
    """
    returns = [
        (curr - prev) / prev
        for prev, curr in zip(prices, prices[1:])
        if prev > 0
    ]
    if not returns:
        return 0.0
    mean = sum(returns) / len(returns)
    variance = sum((r - mean) ** 2 for r in returns) / len(returns)
    return math.sqrt(variance) * 100


def bucket_key(timestamp: datetime, period: AggregationPeriod) -> tuple:
    """Group key for a timestamp at the given granularity."""
    ts = ensure_utc(timestamp)
    if period == AggregationPeriod.HOUR:
        return (ts.year, ts.month, ts.day, ts.hour)
    if period == AggregationPeriod.DAY:
        return (ts.year, ts.month, ts.day)
    if period == AggregationPeriod.WEEK:
        iso = ts.isocalendar()
        return (iso[0], iso[1])
    return (ts.year, ts.month)


def aggregate_price_points(
    points: list[PricePoint], period: AggregationPeriod,
) -> list[dict]:
    """Collapse points into avg/min/max buckets."""
    ordered = sorted(points, key=lambda p: ensure_utc(p.timestamp))
    buckets: dict[tuple, list[PricePoint]] = {}
    for point in ordered:
        buckets.setdefault(bucket_key(point.timestamp, period), []).append(point)

    result = []
    for key, members in buckets.items():
        prices = [m.price for m in members]
        result.append({
            "period": list(key),
            "avgPrice": sum(prices) / len(prices),
            "minPrice": min(prices),
            "maxPrice": max(prices),
            "count": len(prices),
            "timestamp": ensure_utc(members[0].timestamp).isoformat(),
        })
    result.sort(key=lambda b: b["timestamp"])
    return result


def source_distribution(counts: dict[str, int]) -> list[dict]:
    """Share of points per source type, most common first."""
    total = sum(counts.values())
    rows = [
        {
            "source": source,
            "count": count,
            "percentage": (count / total * 100) if total > 0 else 0.0,
        }
        for source, count in counts.items()
    ]
    rows.sort(key=lambda r: (-r["count"], r["source"]))
    return rows


def derive_usd_price(new_price: float, value: float, value_usd: float) -> float:
    """Convert a native-currency price to USD at the asset's current rate."""
    if value <= 0:
        return 0.0
    return new_price * (value_usd / value)


def mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0
