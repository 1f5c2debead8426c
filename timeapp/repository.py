"""
Database access shared by several routers.

Every query is scoped to the requesting user.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Session, col, select

from timeapp.errors import InvalidSessionError, SessionNotFoundError
from timeapp.models import ExportHistory, TimeSession, TimerState, UserSettings
from timeapp.preferences import AppSettings, load_settings
from timeapp.timer import MAX_TIMER_AGE, SessionTimer
from timeapp.timeutils import ensure_utc

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- sessions ---

def list_sessions(db: Session, user_id: str) -> list[TimeSession]:
    """All sessions for ``user_id``, newest first."""
    statement = (
        select(TimeSession)
        .where(TimeSession.user_id == user_id)
        .order_by(col(TimeSession.start_timestamp).desc())
    )
    return list(db.exec(statement).all())


def get_session_or_raise(db: Session, user_id: str, session_id: str) -> TimeSession:
    statement = select(TimeSession).where(TimeSession.id == session_id, TimeSession.user_id == user_id)
    found = db.exec(statement).one_or_none()
    if found is None:
        raise SessionNotFoundError(session_id)
    return found


def duration_between(start: datetime, end: datetime) -> int:
    """Whole seconds from ``start`` to ``end``; the end must be strictly later."""
    start, end = ensure_utc(start), ensure_utc(end)
    if start >= end:
        raise InvalidSessionError("Start time must be before end time")
    seconds = int((end - start).total_seconds())
    if seconds <= 0:
        raise InvalidSessionError("Session duration must be positive")
    return seconds


def check_duration(seconds: int, span: Optional[int] = None) -> int:
    """Reject a non-positive duration, or one longer than the session it measures."""
    if seconds <= 0:
        raise InvalidSessionError("Session duration must be positive")
    if span is not None and seconds > span:
        raise InvalidSessionError("Session duration exceeds the time between start and end")
    return seconds


def create_session(
    db: Session,
    user_id: str,
    start: datetime,
    end: Optional[datetime],
    duration_seconds: Optional[int] = None,
    name: Optional[str] = None,
    tags: Optional[list[str]] = None,
) -> TimeSession:
    """
    Store a session. With an end time the start must come first; a given
    duration (paused time excluded) may not exceed that span.
    """
    span = duration_between(start, end) if end is not None else None
    if duration_seconds is None:
        duration_seconds = span
    if duration_seconds is not None:
        check_duration(duration_seconds, span)
    record = TimeSession(
        user_id=user_id,
        name=name or None,
        tags=tags or None,
        start_timestamp=ensure_utc(start),
        end_timestamp=ensure_utc(end) if end else None,
        duration_seconds=duration_seconds,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Created session %s for user %s (%ss)", record.id, user_id, duration_seconds)
    return record


def update_session(db: Session, record: TimeSession, changes: dict) -> TimeSession:
    """
    Apply ``changes`` to ``record``.

    When either timestamp changes the duration is recomputed from the
    resulting pair, overriding any duration passed in.
    """
    if "start_timestamp" in changes or "end_timestamp" in changes:
        start = changes.get("start_timestamp") or record.start_timestamp
        end = changes.get("end_timestamp") or record.end_timestamp
        if end is None:
            raise InvalidSessionError("Session has no end time")
        changes["duration_seconds"] = duration_between(start, end)
        changes["start_timestamp"] = ensure_utc(start)
        changes["end_timestamp"] = ensure_utc(end)
    elif changes.get("duration_seconds") is not None:
        span = duration_between(record.start_timestamp, record.end_timestamp) if record.end_timestamp else None
        check_duration(changes["duration_seconds"], span)
    elif "duration_seconds" in changes:
        raise InvalidSessionError("Session duration must be positive")

    if "tags" in changes:
        changes["tags"] = changes["tags"] or None
    for key, value in changes.items():
        setattr(record, key, value)
    record.updated_at = _utcnow()
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def delete_sessions(db: Session, user_id: str, ids: list[str]) -> int:
    """Delete the given sessions owned by ``user_id``; returns how many were removed."""
    statement = select(TimeSession).where(TimeSession.user_id == user_id, col(TimeSession.id).in_(ids))
    records = db.exec(statement).all()
    for record in records:
        db.delete(record)
    db.commit()
    return len(records)


# --- settings ---

def get_settings(db: Session, user_id: str) -> AppSettings:
    row = db.get(UserSettings, user_id)
    return load_settings(row.payload if row else None)


def save_settings(db: Session, user_id: str, prefs: AppSettings) -> AppSettings:
    row = db.get(UserSettings, user_id) or UserSettings(user_id=user_id)
    row.payload = prefs.model_dump()
    row.updated_at = _utcnow()
    db.add(row)
    db.commit()
    return prefs


# --- timer ---

def load_timer(db: Session, user_id: str, now: datetime, max_age=MAX_TIMER_AGE) -> SessionTimer:
    row = db.get(TimerState, user_id)
    return SessionTimer.restore(row.payload if row else None, now, max_age)


def save_timer(db: Session, user_id: str, timer: SessionTimer) -> None:
    row = db.get(TimerState, user_id) or TimerState(user_id=user_id)
    row.payload = timer.to_stored()
    row.updated_at = _utcnow()
    db.add(row)
    db.commit()


# --- export history ---

def list_exports(db: Session, user_id: str, limit: Optional[int] = 100) -> list[ExportHistory]:
    statement = (
        select(ExportHistory)
        .where(ExportHistory.user_id == user_id)
        .order_by(col(ExportHistory.created_at).desc())
        .limit(limit)
    )
    return list(db.exec(statement).all())


def add_export(db: Session, record: ExportHistory) -> ExportHistory:
    db.add(record)
    db.commit()
    db.refresh(record)
    return record
