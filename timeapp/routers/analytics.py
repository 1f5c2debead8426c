"""
Analytics report for the dashboard: time distribution, productivity trends,
tag breakdown, peak hours, duration histogram and summary.
"""
from datetime import datetime, time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session

from timeapp import repository
from timeapp.analytics import VIEW_PERIODS, build_report, default_date_range
from timeapp.config import settings
from timeapp.db import get_session
from timeapp.deps import get_now, require_user_id
from timeapp.listing import filter_sessions
from timeapp.timeutils import format_for_input, parse_datetime_input
from timeapp.url_state import codec

router = APIRouter(prefix="/api", tags=["analytics"])


def date_range_from_params(
    params: dict,
    now: datetime,
    days: Optional[int] = None,
    start_input: Optional[str] = None,
    end_input: Optional[str] = None,
) -> tuple[datetime, datetime]:
    """
    Resolve the requested range into local-time datetimes.

    Precedence: a ``days`` quick range (ending now), then exact
    ``start``/``end`` datetime-local inputs, then the ``from``/``to`` URL
    dates covering whole days. Missing ends fall back to the last 30 days.
    """
    tz = settings.tz
    default_start, default_end = default_date_range(now.astimezone(tz), days or 30)
    if days:
        return default_start, default_end

    try:
        if start_input:
            start = parse_datetime_input(start_input, tz)
        elif params.get("from"):
            start = datetime.combine(params["from"], time.min, tzinfo=tz)
        else:
            start = default_start
        if end_input:
            end = parse_datetime_input(end_input, tz)
        elif params.get("to"):
            end = datetime.combine(params["to"], time.max, tzinfo=tz)
        else:
            end = default_end
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid date: {e}")
    if start > end:
        raise HTTPException(status_code=400, detail="Start date must be before end date")
    return start, end


@router.get("/analytics")
def get_analytics(
    request: Request,
    period: str = "weekly",
    days: Optional[int] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
    now: datetime = Depends(get_now),
):
    """
    Full analytics report. Accepts the analytics-tab URL parameters
    (``from``, ``to``, ``tags``, ``search``), exact ``start``/``end``
    datetime-local values, a ``period`` of daily/weekly/monthly and an
    optional ``days`` quick range that overrides the dates.
    """
    if period not in VIEW_PERIODS:
        raise HTTPException(status_code=400, detail=f"period must be one of {', '.join(VIEW_PERIODS)}")
    if days is not None and days <= 0:
        raise HTTPException(status_code=400, detail="days must be positive")

    params = codec.parse(request.query_params).parameters
    range_start, range_end = date_range_from_params(params, now, days, start, end)
    prefs = repository.get_settings(db, uid)
    sessions = filter_sessions(repository.list_sessions(db, uid), params["search"], params["tags"])

    report = build_report(sessions, range_start, range_end, period, prefs.start_of_week, settings.tz)
    return {
        "date_range": {"start": format_for_input(range_start), "end": format_for_input(range_end)},
        "period": period,
        "total_session_count": len(sessions),
        "filtered_session_count": report.summary.total_sessions,
        "has_data": report.summary.total_sessions > 0,
        **report.to_dict(),
    }
