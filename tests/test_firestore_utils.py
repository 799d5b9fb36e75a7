from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from google.cloud.firestore_v1._helpers import DatetimeWithNanoseconds

from expiry_reconciler.core.exceptions import ConfigurationError
from expiry_reconciler.utils.firestore_utils import convert_firestore_timestamp, parse_duration, to_utc


@pytest.mark.parametrize(
    "text, expected",
    [
        ("0", timedelta(0)),
        ("90s", timedelta(seconds=90)),
        ("5m", timedelta(minutes=5)),
        ("720h", timedelta(days=30)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("1.5h", timedelta(hours=1, minutes=30)),
        ("250ms", timedelta(milliseconds=250)),
        ("10us", timedelta(microseconds=10)),
        ("10µs", timedelta(microseconds=10)),
        ("2h45m30.5s", timedelta(hours=2, minutes=45, seconds=30.5)),
        ("-5m", timedelta(minutes=-5)),
        ("+5m", timedelta(minutes=5)),
    ],
)
def test_parse_duration(text: str, expected: timedelta) -> None:
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "5", "abc", "5 m", "5d", "m5", "-", "1h-5m", "99999999999999h"])
def test_parse_duration_rejects_invalid(text: str) -> None:
    with pytest.raises(ConfigurationError):
        parse_duration(text)


def test_convert_datetime_with_nanoseconds() -> None:
    value = DatetimeWithNanoseconds(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    converted = convert_firestore_timestamp(value)

    assert converted == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert converted.tzinfo is not None


def test_convert_ignores_non_timestamps() -> None:
    assert convert_firestore_timestamp(None) is None
    assert convert_firestore_timestamp(1700000000.0) is None
    assert convert_firestore_timestamp({"seconds": 1}) is None


def test_to_utc_normalizes_offsets() -> None:
    value = datetime(2026, 1, 1, 5, 0, tzinfo=timezone(timedelta(hours=5)))

    assert to_utc(value) == datetime(2026, 1, 1, 0, 0, tzinfo=timezone.utc)
    assert to_utc(value).utcoffset() == timedelta(0)


@pytest.mark.parametrize("text", ["1ns", "499ns", "-1ns"])
def test_parse_duration_rejects_sub_microsecond(text: str) -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        parse_duration(text)

    assert "microsecond resolution" in exc_info.value.message


def test_parse_duration_keeps_whole_microseconds_of_nanoseconds() -> None:
    assert parse_duration("1500ns") == timedelta(microseconds=2)


def test_convert_keeps_unix_epoch() -> None:
    epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)

    assert convert_firestore_timestamp(DatetimeWithNanoseconds(1970, 1, 1, tzinfo=timezone.utc)) == epoch
