"""Data Source Health — pure metric transitions after a fetch attempt.

Invariants:
    - reliability and price accuracy stay within [0, 100]
    - success resets error_count to 0 and raises reliability by RELIABILITY_GAIN
    - failure increments error_count, lowers reliability by RELIABILITY_PENALTY,
      and records last_error (default "Unknown error")
    - next_fetch_at = fetched_at + refresh_interval
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

RELIABILITY_GAIN = 5.0
RELIABILITY_PENALTY = 10.0
MIN_ORACLE_RELIABILITY = 70.0
DEFAULT_REFRESH_INTERVAL_SECONDS = 3600


@dataclass(frozen=True)
class FetchOutcome:
    reliability: float
    error_count: int
    last_error: str | None
    latency: float
    last_fetch_at: datetime
    next_fetch_at: datetime


def clamp_percentage(value: float) -> float:
    return min(100.0, max(0.0, value))


def apply_fetch_result(
    reliability: float,
    error_count: int,
    last_error: str | None,
    refresh_interval_seconds: int | None,
    success: bool,
    latency: float,
    error: str | None,
    fetched_at: datetime,
) -> FetchOutcome:
    """Compute the post-fetch health state of a data source."""
    interval = refresh_interval_seconds or DEFAULT_REFRESH_INTERVAL_SECONDS
    if success:
        reliability = clamp_percentage(reliability + RELIABILITY_GAIN)
        error_count = 0
    else:
        reliability = clamp_percentage(reliability - RELIABILITY_PENALTY)
        error_count = error_count + 1
        last_error = error or "Unknown error"
    return FetchOutcome(
        reliability=reliability,
        error_count=error_count,
        last_error=last_error,
        latency=latency,
        last_fetch_at=fetched_at,
        next_fetch_at=fetched_at + timedelta(seconds=interval),
    )
