from datetime import datetime, timedelta, timezone

import pytest

from clipscout.core.utils import iso8601_to_seconds, lookback_start, parse_timestamp, sanitize_filename


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Insane Clutch!", "Insane_Clutch!"),
        ('a/b: c?', "a_b__c_"),
        ("what <is> this|thing*", "what__is__this_thing_"),
        ("tabs\tand   spaces", "tabs_and_spaces"),
        ("[100%] real", "_100___real"),
        ("...", "untitled"),
        ("", "untitled"),
    ],
)
def test_sanitize_filename(name, expected):
    assert sanitize_filename(name) == expected


def test_sanitize_filename_truncates():
    assert len(sanitize_filename("x" * 500)) == 100
    assert sanitize_filename("abcdef", max_length=3) == "abc"


@pytest.mark.parametrize(
    "duration,seconds",
    [("PT1H2M3S", 3723), ("PT45S", 45), ("PT10M", 600), ("", 0), (None, 0), ("garbage", 0)],
)
def test_iso8601_to_seconds(duration, seconds):
    assert iso8601_to_seconds(duration) == seconds


def test_parse_timestamp_handles_zulu_suffix():
    parsed = parse_timestamp("2024-05-01T10:15:00Z")
    assert parsed == datetime(2024, 5, 1, 10, 15, tzinfo=timezone.utc)


def test_parse_timestamp_falls_back_to_now():
    before = datetime.now(timezone.utc)
    assert parse_timestamp("not a date") >= before
    assert parse_timestamp(None) >= before


def test_lookback_start_is_rfc3339_utc():
    value = lookback_start(7)
    assert value.endswith("Z")
    start = datetime.fromisoformat(value.replace("Z", "+00:00"))
    delta = datetime.now(timezone.utc) - start
    assert timedelta(days=7) <= delta < timedelta(days=7, minutes=1)
