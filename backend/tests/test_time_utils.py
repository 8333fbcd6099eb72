from datetime import datetime

import pytest

from payportal.time_utils import from_epoch, parse_iso_datetime, to_epoch, to_utc_z


def test_date_only_bounds():
    assert parse_iso_datetime("2026-03-01") == datetime(2026, 3, 1)
    assert parse_iso_datetime("2026-03-01", end_of_day=True) == datetime(2026, 3, 1, 23, 59, 59, 999999)


def test_offsets_normalized_to_utc():
    assert parse_iso_datetime("2026-03-01T10:00:00+02:00") == datetime(2026, 3, 1, 8, 0)
    assert parse_iso_datetime("2026-03-01T10:00:00Z", end_of_day=True) == datetime(2026, 3, 1, 10, 0)


def test_blank_is_none():
    assert parse_iso_datetime(None) is None
    assert parse_iso_datetime("  ") is None


def test_garbage_raises():
    with pytest.raises(ValueError):
        parse_iso_datetime("yesterday")


def test_serialization_and_epoch():
    dt = datetime(2026, 3, 1, 8, 0, 0, 500)
    assert to_utc_z(dt) == "2026-03-01T08:00:00Z"
    assert from_epoch(to_epoch(dt)) == dt.replace(microsecond=0)
