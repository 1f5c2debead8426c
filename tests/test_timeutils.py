from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from timeapp.timeutils import (
    ensure_utc,
    format_clock,
    format_datetime,
    format_duration,
    format_for_input,
    format_time,
    format_total_time,
    parse_datetime_input,
    round_half_up,
)


@pytest.mark.parametrize(
    "seconds,expected",
    [(0, "0s"), (59, "59s"), (60, "1m"), (3599, "59m"), (3600, "1h 0m"), (5430, "1h 30m")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_format_total_time():
    assert format_total_time(59) == "0m"
    assert format_total_time(7260) == "2h 1m"


def test_format_clock():
    assert format_clock(65) == "01:05"
    assert format_clock(3661) == "01:01:01"


def test_clock_formats():
    dt = datetime(2024, 3, 5, 15, 7, 9)
    assert format_time(dt, "24h") == "15:07"
    assert format_time(dt, "12h") == "03:07 PM"
    assert format_datetime(dt, "24h") == "Mar 05, 2024 15:07"
    with pytest.raises(ValueError):
        format_time(dt, "36h")


def test_ensure_utc():
    naive = datetime(2024, 3, 5, 12)
    assert ensure_utc(naive) == datetime(2024, 3, 5, 12, tzinfo=timezone.utc)
    berlin = datetime(2024, 3, 5, 13, tzinfo=ZoneInfo("Europe/Berlin"))
    assert ensure_utc(berlin).hour == 12


def test_parse_datetime_input():
    tz = ZoneInfo("Europe/Berlin")
    assert parse_datetime_input("2024-03-05T10:30", tz) == datetime(2024, 3, 5, 10, 30, tzinfo=tz)
    assert parse_datetime_input("2024-03-05T10:30:00Z", tz).utcoffset().total_seconds() == 0
    assert parse_datetime_input(date(2024, 3, 5), tz) == datetime(2024, 3, 5, tzinfo=tz)
    assert format_for_input(datetime(2024, 3, 5, 10, 30)) == "2024-03-05T10:30"


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2
