from datetime import datetime, timedelta, timezone

import pytest

from dynamicvault.core.clock import (
    ensure_utc, isoformat_utc, parse_iso_datetime, utcnow,
)


def test_utcnow_is_aware():
    assert utcnow().tzinfo is not None


def test_ensure_utc_attaches_utc_to_naive():
    assert ensure_utc(datetime(2024, 1, 1)) == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_ensure_utc_converts_offsets():
    plus_two = timezone(timedelta(hours=2))
    value = ensure_utc(datetime(2024, 1, 1, 12, tzinfo=plus_two))
    assert value.hour == 10 and value.tzinfo == timezone.utc


def test_none_passes_through():
    assert ensure_utc(None) is None
    assert isoformat_utc(None) is None


def test_isoformat_utc():
    assert isoformat_utc(datetime(2024, 1, 1)) == "2024-01-01T00:00:00+00:00"


@pytest.mark.parametrize("raw", ["2024-01-01", "2024-01-01T10:00:00Z", "2024-01-01T10:00:00+02:00"])
def test_parse_iso_datetime(raw):
    assert parse_iso_datetime(raw).tzinfo == timezone.utc


@pytest.mark.parametrize("raw", ["", "   ", "yesterday", "2024-13-01"])
def test_parse_iso_datetime_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_iso_datetime(raw)
