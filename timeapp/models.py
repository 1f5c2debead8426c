from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid.uuid4())


class TimeSession(SQLModel, table=True):
    __tablename__ = "time_sessions"

    id: str = Field(default_factory=_uuid, primary_key=True, index=True)
    user_id: str = Field(index=True)
    name: Optional[str] = None
    tags: Optional[list[str]] = Field(default=None, sa_column=Column(JSON))
    start_timestamp: datetime = Field(index=True)
    end_timestamp: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class TimerState(SQLModel, table=True):
    """Persisted timer payload, one row per user (see timeapp.timer)."""

    __tablename__ = "timer_states"

    user_id: str = Field(primary_key=True)
    payload: dict = Field(default_factory=dict, sa_column=Column(JSON))
    updated_at: datetime = Field(default_factory=_utcnow)


class UserSettings(SQLModel, table=True):
    __tablename__ = "user_settings"

    user_id: str = Field(primary_key=True)
    payload: dict = Field(default_factory=dict, sa_column=Column(JSON))
    updated_at: datetime = Field(default_factory=_utcnow)


class ExportHistory(SQLModel, table=True):
    __tablename__ = "export_history"

    id: str = Field(default_factory=_uuid, primary_key=True, index=True)
    user_id: str = Field(index=True)
    export_type: str = "sessions"
    format: str
    session_count: int = 0
    date_range_start: datetime
    date_range_end: datetime
    fields_exported: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    file_name: str
    file_size_bytes: Optional[int] = None
    created_at: datetime = Field(default_factory=_utcnow, index=True)
