"""
Session analytics: bucket raw session records into the series shown on the
analytics dashboard.

All functions are pure. Sessions are any objects with ``start_timestamp``
(datetime, UTC or naive-UTC), ``duration_seconds`` (int or None) and ``tags``
(list or None). Bucketing happens in the caller's local timezone ``tz``.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Literal, Optional

from timeapp.timeutils import ensure_utc, format_total_time, round_half_up, to_local

ViewPeriod = Literal["daily", "weekly", "monthly"]
VIEW_PERIODS = ("daily", "weekly", "monthly")

UNTAGGED = "Untagged"
NOT_AVAILABLE = "N/A"

# (label, min seconds inclusive, max seconds exclusive); None means unbounded
DURATION_RANGES: list[tuple[str, int, Optional[int]]] = [
    ("< 15 min", 0, 15 * 60),
    ("15-30 min", 15 * 60, 30 * 60),
    ("30-60 min", 30 * 60, 60 * 60),
    ("1-2 hours", 60 * 60, 2 * 60 * 60),
    ("2-4 hours", 2 * 60 * 60, 4 * 60 * 60),
    ("4+ hours", 4 * 60 * 60, None),
]


@dataclass
class TimeDistributionPoint:
    date: str
    sessions: int
    total_time: int
    average_time: int


@dataclass
class TagAnalyticsPoint:
    tag: str
    total_time: int
    session_count: int
    percentage: float


@dataclass
class ProductivityTrendPoint:
    period: str
    total_time: int
    session_count: int
    average_session_time: int


@dataclass
class PeakHoursPoint:
    hour: int
    total_time: int
    session_count: int
    label: str


@dataclass
class DurationDistributionPoint:
    range: str
    count: int
    percentage: float
    min_minutes: int
    max_minutes: Optional[int]


@dataclass
class AnalyticsSummary:
    total_sessions: int = 0
    total_time: int = 0
    average_session_time: int = 0
    most_active_day: str = NOT_AVAILABLE
    top_tag: str = NOT_AVAILABLE
    peak_hour: int = 0
    total_time_label: str = "0m"


@dataclass
class AnalyticsReport:
    time_distribution: list[TimeDistributionPoint] = field(default_factory=list)
    tag_analytics: list[TagAnalyticsPoint] = field(default_factory=list)
    productivity_trends: list[ProductivityTrendPoint] = field(default_factory=list)
    peak_hours: list[PeakHoursPoint] = field(default_factory=list)
    duration_distribution: list[DurationDistributionPoint] = field(default_factory=list)
    summary: AnalyticsSummary = field(default_factory=AnalyticsSummary)

    def to_dict(self) -> dict:
        return asdict(self)


def _duration(session) -> int:
    return session.duration_seconds or 0


def _local_start(session, tz: tzinfo) -> datetime:
    return to_local(session.start_timestamp, tz)


# --- period helpers ---

def start_of_week(day: date, week_starts_on: int = 1) -> date:
    """First day of the week containing ``day``; 0 = Sunday, 1 = Monday."""
    sunday_based = (day.weekday() + 1) % 7
    return day - timedelta(days=(sunday_based - week_starts_on) % 7)


def _add_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def period_boundaries(day: date, period: ViewPeriod, week_starts_on: int = 1) -> tuple[date, date]:
    """Inclusive first and last calendar day of the period containing ``day``."""
    if period == "daily":
        return day, day
    if period == "weekly":
        start = start_of_week(day, week_starts_on)
        return start, start + timedelta(days=6)
    if period == "monthly":
        start = day.replace(day=1)
        return start, _add_month(start) - timedelta(days=1)
    raise ValueError(f"Unknown view period: {period}")


def format_period_label(day: date, period: ViewPeriod) -> str:
    if period == "monthly":
        return day.strftime("%b %Y")
    return day.strftime("%b %d")


def iter_periods(first: date, last: date, period: ViewPeriod, week_starts_on: int = 1) -> list[date]:
    """Start day of every period that overlaps ``[first, last]``."""
    if first > last:
        return []
    if period == "daily":
        step = first
        out = []
        while step <= last:
            out.append(step)
            step += timedelta(days=1)
        return out
    if period == "weekly":
        step = start_of_week(first, week_starts_on)
        out = []
        while step <= last:
            out.append(step)
            step += timedelta(days=7)
        return out
    if period == "monthly":
        step = first.replace(day=1)
        out = []
        while step <= last:
            out.append(step)
            step = _add_month(step)
        return out
    raise ValueError(f"Unknown view period: {period}")


# --- series ---

def filter_by_date_range(sessions: Iterable, start: datetime, end: datetime) -> list:
    """Sessions whose start falls within ``[start, end]`` (both inclusive)."""
    start_utc = ensure_utc(start)
    end_utc = ensure_utc(end)
    return [s for s in sessions if start_utc <= ensure_utc(s.start_timestamp) <= end_utc]


def time_distribution(
    sessions: Sequence,
    start: datetime,
    end: datetime,
    period: ViewPeriod,
    week_starts_on: int = 1,
    tz: tzinfo = timezone.utc,
) -> list[TimeDistributionPoint]:
    local_days = [(_local_start(s, tz).date(), _duration(s)) for s in sessions]
    points = []
    for period_start in iter_periods(to_local(start, tz).date(), to_local(end, tz).date(), period, week_starts_on):
        lo, hi = period_boundaries(period_start, period, week_starts_on)
        durations = [d for day, d in local_days if lo <= day <= hi]
        total = sum(durations)
        average = total / len(durations) if durations else 0
        points.append(
            TimeDistributionPoint(
                date=format_period_label(period_start, period),
                sessions=len(durations),
                total_time=total,
                average_time=round_half_up(average),
            )
        )
    return points


def productivity_trends(
    sessions: Sequence,
    start: datetime,
    end: datetime,
    period: ViewPeriod,
    week_starts_on: int = 1,
    tz: tzinfo = timezone.utc,
) -> list[ProductivityTrendPoint]:
    return _as_trends(time_distribution(sessions, start, end, period, week_starts_on, tz))


def _as_trends(distribution: list[TimeDistributionPoint]) -> list[ProductivityTrendPoint]:
    return [
        ProductivityTrendPoint(
            period=p.date,
            total_time=p.total_time,
            session_count=p.sessions,
            average_session_time=p.average_time,
        )
        for p in distribution
    ]


def tag_analytics(sessions: Iterable) -> list[TagAnalyticsPoint]:
    stats: dict[str, list[int]] = {}
    overall = 0
    for s in sessions:
        seconds = _duration(s)
        overall += seconds
        for tag in (s.tags or [UNTAGGED]):
            entry = stats.setdefault(tag, [0, 0])
            entry[0] += seconds
            entry[1] += 1

    points = [
        TagAnalyticsPoint(
            tag=tag,
            total_time=total,
            session_count=count,
            percentage=(total / overall) * 100 if overall > 0 else 0,
        )
        for tag, (total, count) in stats.items()
    ]
    # sorted() is stable: equal totals keep first-seen order
    return sorted(points, key=lambda p: -p.total_time)


def format_hour_label(hour: int) -> str:
    if hour == 0:
        return "12 AM"
    if hour < 12:
        return f"{hour} AM"
    if hour == 12:
        return "12 PM"
    return f"{hour - 12} PM"


def peak_hours(sessions: Iterable, tz: tzinfo = timezone.utc) -> list[PeakHoursPoint]:
    totals = [0] * 24
    counts = [0] * 24
    for s in sessions:
        hour = _local_start(s, tz).hour
        totals[hour] += _duration(s)
        counts[hour] += 1
    return [
        PeakHoursPoint(hour=h, total_time=totals[h], session_count=counts[h], label=format_hour_label(h))
        for h in range(24)
    ]


def duration_distribution(sessions: Sequence) -> list[DurationDistributionPoint]:
    counts = [0] * len(DURATION_RANGES)
    for s in sessions:
        seconds = _duration(s)
        for i, (_, lo, hi) in enumerate(DURATION_RANGES):
            if seconds >= lo and (hi is None or seconds < hi):
                counts[i] += 1
                break

    total = len(sessions)
    return [
        DurationDistributionPoint(
            range=label,
            count=counts[i],
            percentage=(counts[i] / total) * 100 if total > 0 else 0,
            min_minutes=round_half_up(lo / 60),
            max_minutes=None if hi is None else round_half_up(hi / 60),
        )
        for i, (label, lo, hi) in enumerate(DURATION_RANGES)
    ]


# --- report ---

def default_date_range(now: datetime, days: int = 30) -> tuple[datetime, datetime]:
    """The last ``days`` days ending at ``now`` (used for presets too)."""
    return now - timedelta(days=days), now


def build_report(
    sessions: Iterable,
    start: datetime,
    end: datetime,
    period: ViewPeriod = "weekly",
    week_starts_on: int = 1,
    tz: tzinfo = timezone.utc,
) -> AnalyticsReport:
    """Filter ``sessions`` to ``[start, end]`` and compute every series plus the summary."""
    if period not in VIEW_PERIODS:
        raise ValueError(f"Unknown view period: {period}")
    filtered = filter_by_date_range(sessions, start, end)
    if not filtered:
        return AnalyticsReport()

    distribution = time_distribution(filtered, start, end, period, week_starts_on, tz)
    tags = tag_analytics(filtered)
    hours = peak_hours(filtered, tz)

    total_time = sum(_duration(s) for s in filtered)
    most_active = max(distribution, key=lambda p: p.sessions).date if distribution else NOT_AVAILABLE
    peak = max(hours, key=lambda p: p.total_time).hour if hours else 0

    summary = AnalyticsSummary(
        total_sessions=len(filtered),
        total_time=total_time,
        average_session_time=round_half_up(total_time / len(filtered)),
        most_active_day=most_active,
        top_tag=tags[0].tag if tags else NOT_AVAILABLE,
        peak_hour=peak,
        total_time_label=format_total_time(total_time),
    )
    return AnalyticsReport(
        time_distribution=distribution,
        tag_analytics=tags,
        productivity_trends=_as_trends(distribution),
        peak_hours=hours,
        duration_distribution=duration_distribution(filtered),
        summary=summary,
    )
