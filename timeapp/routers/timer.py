"""
Session timer endpoints. The timer itself lives in timeapp.timer; state is
restored from and saved to the database on every request.
"""
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from timeapp import repository
from timeapp.config import settings
from timeapp.db import get_session
from timeapp.deps import get_now, require_user_id
from timeapp.errors import InvalidSessionError, TimerStateError
from timeapp.routers.sessions import session_out
from timeapp.timer import SessionTimer
from timeapp.timeutils import format_clock, format_time, to_local

router = APIRouter(prefix="/api/timer", tags=["timer"])


class StartTimerRequest(BaseModel):
    start_time: Optional[datetime] = None
    name: Optional[str] = None
    tags: Optional[list[str]] = None


class UpdateTimerRequest(BaseModel):
    name: Optional[str] = None
    tags: Optional[list[str]] = None


def _max_age() -> timedelta:
    return timedelta(hours=settings.max_timer_age_hours)


def _time_format(db: Session, uid: str) -> str:
    return repository.get_settings(db, uid).time_format


def timer_out(timer: SessionTimer, now: datetime, time_format: str = "24h") -> dict:
    elapsed = timer.elapsed(now)
    started = format_time(to_local(timer.start_time, settings.tz), time_format) if timer.start_time else None
    return {
        "is_running": timer.is_running,
        "is_paused": timer.is_paused,
        "start_time": timer.start_time,
        "start_time_display": started,
        "pause_start_time": timer.pause_start_time,
        "paused_duration": timer.paused_duration,
        "elapsed": elapsed,
        "elapsed_display": format_clock(elapsed),
        "session_name": timer.session_name,
        "session_tags": timer.session_tags,
    }


@router.get("")
def get_timer(
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
    now: datetime = Depends(get_now),
):
    timer = repository.load_timer(db, uid, now, _max_age())
    # Persist so a discarded stale timer stays discarded
    repository.save_timer(db, uid, timer)
    return timer_out(timer, now, _time_format(db, uid))


@router.patch("")
def update_timer(
    req: UpdateTimerRequest,
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
    now: datetime = Depends(get_now),
):
    """Rename or retag the current session (works whether or not it is running)."""
    timer = repository.load_timer(db, uid, now, _max_age())
    if req.name is not None:
        timer.update_name(req.name)
    if req.tags is not None:
        timer.update_tags(req.tags)
    repository.save_timer(db, uid, timer)
    return timer_out(timer, now, _time_format(db, uid))


@router.post("/start")
def start_timer(
    req: Optional[StartTimerRequest] = None,
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
    now: datetime = Depends(get_now),
):
    """Start the timer, optionally back-dated to ``start_time`` (future times clamp to now)."""
    req = req or StartTimerRequest()
    prefs = repository.get_settings(db, uid)
    timer = repository.load_timer(db, uid, now, _max_age())
    if req.name is not None:
        timer.update_name(req.name)
    if req.tags is not None:
        timer.update_tags(req.tags)
    elif not timer.session_tags and prefs.default_tags:
        timer.update_tags(prefs.default_tags)
    try:
        timer.start(now, req.start_time, default_name=prefs.default_session_name)
    except TimerStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    repository.save_timer(db, uid, timer)
    return timer_out(timer, now, prefs.time_format)


@router.post("/pause")
def pause_timer(
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
    now: datetime = Depends(get_now),
):
    timer = repository.load_timer(db, uid, now, _max_age())
    try:
        timer.pause(now)
    except TimerStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    repository.save_timer(db, uid, timer)
    return timer_out(timer, now, _time_format(db, uid))


@router.post("/resume")
def resume_timer(
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
    now: datetime = Depends(get_now),
):
    timer = repository.load_timer(db, uid, now, _max_age())
    try:
        timer.resume(now)
    except TimerStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    repository.save_timer(db, uid, timer)
    return timer_out(timer, now, _time_format(db, uid))


@router.post("/stop")
def stop_timer(
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
    now: datetime = Depends(get_now),
):
    """Stop the timer and save the finished session."""
    timer = repository.load_timer(db, uid, now, _max_age())
    try:
        completed = timer.stop(now, development=not settings.is_production)
    except TimerStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    # The stopped timer is only saved once the session is stored
    try:
        record = repository.create_session(
            db,
            uid,
            completed.start_time,
            completed.end_time,
            duration_seconds=completed.duration_seconds,
            name=completed.name,
            tags=completed.tags,
        )
    except InvalidSessionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    repository.save_timer(db, uid, timer)

    prefs = repository.get_settings(db, uid)
    return {"session": session_out(record, prefs), "timer": timer_out(timer, now, prefs.time_format)}


@router.post("/reset")
def reset_timer(
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
    now: datetime = Depends(get_now),
):
    """Discard the running session without saving it; name and tags are kept."""
    timer = repository.load_timer(db, uid, now, _max_age())
    timer.reset()
    repository.save_timer(db, uid, timer)
    return timer_out(timer, now, _time_format(db, uid))
