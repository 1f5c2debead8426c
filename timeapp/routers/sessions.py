"""
Recorded sessions: list (search / tag filter / sort / pages), create, edit,
delete and bulk delete, plus the dashboard stats and tag suggestions.
"""
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlmodel import Session

from timeapp import repository
from timeapp.analytics import start_of_week
from timeapp.config import settings
from timeapp.db import get_session
from timeapp.deps import get_now, require_user_id
from timeapp.errors import InvalidSessionError, SessionNotFoundError
from timeapp.listing import display_name, filter_sessions, paginate, sort_sessions
from timeapp.models import TimeSession
from timeapp.preferences import AppSettings
from timeapp.timeutils import ensure_utc, format_datetime, format_duration, to_local
from timeapp.url_state import codec

router = APIRouter(prefix="/api", tags=["sessions"])


class CreateSessionRequest(BaseModel):
    start_timestamp: datetime
    end_timestamp: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    name: Optional[str] = None
    tags: Optional[list[str]] = None


class UpdateSessionRequest(BaseModel):
    name: Optional[str] = None
    tags: Optional[list[str]] = None
    start_timestamp: Optional[datetime] = None
    end_timestamp: Optional[datetime] = None
    duration_seconds: Optional[int] = None


class BulkDeleteRequest(BaseModel):
    ids: list[str]


def session_out(s: TimeSession, prefs: Optional[AppSettings] = None) -> dict:
    """JSON shape of a session, timestamps as UTC plus display strings."""
    time_format = prefs.time_format if prefs else "24h"
    return {
        "id": s.id,
        "user_id": s.user_id,
        "name": s.name,
        "display_name": display_name(s),
        "tags": s.tags or [],
        "start_timestamp": ensure_utc(s.start_timestamp),
        "end_timestamp": ensure_utc(s.end_timestamp) if s.end_timestamp else None,
        "duration_seconds": s.duration_seconds,
        "formatted_duration": format_duration(s.duration_seconds or 0),
        "display_start": format_datetime(to_local(s.start_timestamp, settings.tz), time_format),
        "created_at": ensure_utc(s.created_at),
    }


@router.get("/sessions")
def list_sessions(
    request: Request,
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
):
    """List sessions using the sessions-tab URL parameters (search, tags, sort, order, page)."""
    params = codec.parse(request.query_params).parameters
    prefs = repository.get_settings(db, uid)

    matched = filter_sessions(repository.list_sessions(db, uid), params["search"], params["tags"])
    ordered = sort_sessions(matched, params["sort"], params["order"])
    page = paginate(ordered, params["page"], settings.page_size)
    return {
        "items": [session_out(s, prefs) for s in page.items],
        "page": page.page,
        "page_size": page.page_size,
        "total_items": page.total_items,
        "total_pages": page.total_pages,
        "query": codec.build_query(params),
    }


@router.post("/sessions", status_code=201)
def create_session(
    req: CreateSessionRequest,
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
):
    """Record a finished session directly (manual entry)."""
    try:
        record = repository.create_session(
            db, uid, req.start_timestamp, req.end_timestamp, req.duration_seconds, req.name, req.tags
        )
    except InvalidSessionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session_out(record)


@router.post("/sessions/bulk-delete")
def bulk_delete_sessions(
    req: BulkDeleteRequest,
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
):
    if not req.ids:
        raise HTTPException(status_code=400, detail="No session ids given")
    deleted = repository.delete_sessions(db, uid, req.ids)
    return {"deleted": deleted}


@router.get("/sessions/{session_id}")
def get_session_detail(
    session_id: str,
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
):
    try:
        record = repository.get_session_or_raise(db, uid, session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    return session_out(record, repository.get_settings(db, uid))


@router.patch("/sessions/{session_id}")
def update_session(
    session_id: str,
    req: UpdateSessionRequest,
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
):
    """Edit a session. Changing either timestamp recomputes the duration."""
    try:
        record = repository.get_session_or_raise(db, uid, session_id)
        record = repository.update_session(db, record, req.model_dump(exclude_unset=True))
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    except InvalidSessionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session_out(record)


@router.delete("/sessions/{session_id}")
def delete_session(
    session_id: str,
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
):
    if not repository.delete_sessions(db, uid, [session_id]):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"deleted": 1}


# --- Stats ---


@router.get("/stats")
def get_stats(
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
    now: datetime = Depends(get_now),
):
    """Completed-session totals for today, this week and per tag."""
    prefs = repository.get_settings(db, uid)
    completed = [s for s in repository.list_sessions(db, uid) if s.end_timestamp is not None]

    today = to_local(now, settings.tz).date()
    week_start = start_of_week(today, prefs.start_of_week)

    today_seconds = 0
    week_seconds = 0
    tag_stats: dict[str, int] = {}
    for s in completed:
        seconds = s.duration_seconds or 0
        day = to_local(s.start_timestamp, settings.tz).date()
        if day >= today:
            today_seconds += seconds
        if day >= week_start:
            week_seconds += seconds
        for tag in s.tags or []:
            tag_stats[tag] = tag_stats.get(tag, 0) + seconds

    return {
        "total_sessions": len(completed),
        "today_seconds": today_seconds,
        "week_seconds": week_seconds,
        "tag_stats": tag_stats,
    }


@router.get("/tags")
def list_tags(
    q: str = "",
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
    now: datetime = Depends(get_now),
):
    """
    Unique tags across the user's sessions, sorted.
    With ``q``, only suggestions containing it that the running timer doesn't already have.
    """
    tags = sorted({t for s in repository.list_sessions(db, uid) for t in (s.tags or [])})
    query = q.strip().lower()
    if query:
        current = set(repository.load_timer(db, uid, now, timedelta(hours=settings.max_timer_age_hours)).session_tags)
        tags = [t for t in tags if query in t.lower() and t not in current]
    return tags
