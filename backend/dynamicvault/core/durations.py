"""Duration Strings — parse human-readable expiry settings ("15m", "2h", "7d").

Invariants:
    - Bare numbers are milliseconds
    - Units: ms, s, m, h, d, w, y (case-insensitive, optional whitespace, long forms accepted)
    - Invalid or non-positive input raises ValueError (fail fast at startup)
"""

import re
from datetime import timedelta

_DURATION_RE = re.compile(
    r"^(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>[a-z]*)$", re.IGNORECASE,
)

_UNIT_MS = {
    "": 1,
    "ms": 1, "msec": 1, "msecs": 1, "millisecond": 1, "milliseconds": 1,
    "s": 1000, "sec": 1000, "secs": 1000, "second": 1000, "seconds": 1000,
    "m": 60_000, "min": 60_000, "mins": 60_000, "minute": 60_000, "minutes": 60_000,
    "h": 3_600_000, "hr": 3_600_000, "hrs": 3_600_000, "hour": 3_600_000, "hours": 3_600_000,
    "d": 86_400_000, "day": 86_400_000, "days": 86_400_000,
    "w": 604_800_000, "week": 604_800_000, "weeks": 604_800_000,
    "y": 31_557_600_000, "yr": 31_557_600_000, "yrs": 31_557_600_000,
    "year": 31_557_600_000, "years": 31_557_600_000,
}


def parse_duration(value: str | int) -> timedelta:
    """Parse a duration string into a timedelta."""
    if isinstance(value, int):
        millis = float(value)
    else:
        match = _DURATION_RE.match(value.strip())
        if not match:
            raise ValueError(f"Invalid duration: {value!r}")
        unit = match.group("unit").lower()
        if unit not in _UNIT_MS:
            raise ValueError(f"Unknown duration unit {unit!r} in {value!r}")
        millis = float(match.group("value")) * _UNIT_MS[unit]
    if millis <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return timedelta(milliseconds=millis)
