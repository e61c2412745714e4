"""Timestamp normalization for mixed-source order data."""
from datetime import datetime, timedelta, timezone

from app.core.timeutil import EPOCH, as_utc, isoformat

KST = timezone(timedelta(hours=9))


def test_naive_is_read_as_utc():
    assert as_utc(datetime(2024, 5, 1, 12, 0)) == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_aware_is_converted():
    assert as_utc(datetime(2024, 5, 1, 21, 0, tzinfo=KST)) == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_epoch_seconds_and_mappings():
    assert as_utc(0) == EPOCH
    assert as_utc({"seconds": 60}) == EPOCH + timedelta(seconds=60)
    assert as_utc({"_seconds": 60, "_nanoseconds": 500_000_000}) == EPOCH + timedelta(seconds=60.5)


def test_iso_strings():
    assert as_utc("2024-05-01T21:00:00+09:00") == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert as_utc("2024-05-01T12:00:00Z") == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_unusable_values_sort_first():
    assert as_utc(None) == EPOCH
    assert as_utc("yesterday") == EPOCH
    assert as_utc({"foo": 1}) == EPOCH


def test_isoformat():
    assert isoformat(None) is None
    assert isoformat(datetime(2024, 5, 1, 12, 0)) == "2024-05-01T12:00:00+00:00"
