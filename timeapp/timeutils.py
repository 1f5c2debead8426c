"""
Time helpers shared by the timer, analytics and export modules.

Stored timestamps are UTC. Anything user-facing (bucketing, labels, export
columns) is converted to the configured local timezone first.
"""
import math
from datetime import date, datetime, timezone, tzinfo

TIME_FORMATS = ("12h", "24h")


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and normalise aware ones."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_local(dt: datetime, tz: tzinfo) -> datetime:
    return ensure_utc(dt).astimezone(tz)


def parse_datetime_input(value: str | date | datetime, tz: tzinfo) -> datetime:
    """
    Parse a date or datetime coming from a form field or query string.

    Accepts full ISO-8601 strings, ``YYYY-MM-DDTHH:mm`` (datetime-local inputs)
    and plain ``YYYY-MM-DD``. Naive values are interpreted in ``tz``.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def format_for_input(dt: datetime) -> str:
    """Format as YYYY-MM-DDTHH:mm (datetime-local input value)."""
    return dt.strftime("%Y-%m-%dT%H:%M")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_duration(seconds: int) -> str:
    """Short duration: ``45s``, ``12m`` or ``2h 5m``."""
    if seconds < 60:
        return f"{seconds}s"
    hours, rem = divmod(int(seconds), 3600)
    minutes = rem // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_total_time(seconds: int) -> str:
    hours, rem = divmod(int(seconds), 3600)
    minutes = rem // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_clock(seconds: int) -> str:
    """Running-timer display: MM:SS, or HH:MM:SS once an hour has passed."""
    hours, rem = divmod(int(seconds), 3600)
    minutes, secs = divmod(rem, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def _clock_pattern(time_format: str) -> str:
    if time_format not in TIME_FORMATS:
        raise ValueError(f"Unknown time format: {time_format}")
    return "%I:%M %p" if time_format == "12h" else "%H:%M"


def format_time(dt: datetime, time_format: str = "24h") -> str:
    return dt.strftime(_clock_pattern(time_format))


def format_datetime(dt: datetime, time_format: str = "24h") -> str:
    return dt.strftime(f"%b %d, %Y {_clock_pattern(time_format)}")
