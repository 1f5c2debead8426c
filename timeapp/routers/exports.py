"""
Session export (CSV / JSON download) and the export history kept for each
user.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlmodel import Session

from timeapp import repository
from timeapp.analytics import filter_by_date_range
from timeapp.config import settings
from timeapp.db import get_session
from timeapp.deps import get_now, require_user_id
from timeapp.errors import InvalidExportError
from timeapp.export import render, select_fields
from timeapp.listing import filter_sessions
from timeapp.models import ExportHistory
from timeapp.routers.analytics import date_range_from_params
from timeapp.timeutils import ensure_utc
from timeapp.url_state import codec

router = APIRouter(prefix="/api", tags=["exports"])

MEDIA_TYPES = {"csv": "text/csv; charset=utf-8", "json": "application/json"}


def export_out(record: ExportHistory) -> dict:
    return {
        **record.model_dump(),
        "date_range_start": ensure_utc(record.date_range_start),
        "date_range_end": ensure_utc(record.date_range_end),
        "created_at": ensure_utc(record.created_at),
    }


@router.get("/export")
def export_sessions(
    request: Request,
    format: str = "csv",
    fields: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
    now: datetime = Depends(get_now),
):
    """
    Download the user's sessions in ``from``..``to`` or exact ``start``/``end``
    (default last 30 days), optionally narrowed by ``tags``. ``fields`` is a
    comma-separated list of field keys; omitted means the default set.
    The export is logged in history.
    """
    params = codec.parse(request.query_params).parameters
    range_start, range_end = date_range_from_params(params, now, start_input=start, end_input=end)
    try:
        selected = select_fields([f for f in fields.split(",") if f] if fields is not None else None)
    except InvalidExportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not selected:
        raise HTTPException(status_code=400, detail="Select at least one field to export")

    tagged = filter_sessions(repository.list_sessions(db, uid), tags=params["tags"])
    sessions = filter_by_date_range(tagged, range_start, range_end)
    if not sessions:
        raise HTTPException(status_code=400, detail="No sessions in the selected date range")

    try:
        file_name, content = render(format, sessions, selected, range_start, range_end, now, settings.tz)
    except InvalidExportError as e:
        raise HTTPException(status_code=400, detail=str(e))

    body = content.encode("utf-8")
    repository.add_export(
        db,
        ExportHistory(
            user_id=uid,
            export_type="sessions",
            format=format,
            session_count=len(sessions),
            date_range_start=ensure_utc(range_start),
            date_range_end=ensure_utc(range_end),
            fields_exported=[f.key for f in selected],
            file_name=file_name,
            file_size_bytes=len(body),
        ),
    )
    return Response(
        content=body,
        media_type=MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


@router.get("/exports")
def list_exports(
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
):
    """Most recent exports first."""
    return [export_out(r) for r in repository.list_exports(db, uid, settings.export_history_limit)]


@router.get("/exports/stats")
def export_stats(
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
):
    history = repository.list_exports(db, uid, settings.export_history_limit)
    by_format: dict[str, int] = {}
    by_type: dict[str, int] = {}
    for r in history:
        by_format[r.format] = by_format.get(r.format, 0) + 1
        by_type[r.export_type] = by_type.get(r.export_type, 0) + 1
    return {
        "total_exports": len(history),
        "total_sessions_exported": sum(r.session_count for r in history),
        "total_file_size_bytes": sum(r.file_size_bytes or 0 for r in history),
        "most_recent_export": export_out(history[0]) if history else None,
        "exports_by_format": by_format,
        "exports_by_type": by_type,
    }


@router.delete("/exports")
def clear_exports(
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
):
    records = repository.list_exports(db, uid, limit=None)
    for r in records:
        db.delete(r)
    db.commit()
    return {"deleted": len(records)}


@router.delete("/exports/{export_id}")
def delete_export(
    export_id: str,
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
):
    record = db.get(ExportHistory, export_id)
    if record is None or record.user_id != uid:
        raise HTTPException(status_code=404, detail="Export not found")
    db.delete(record)
    db.commit()
    return {"deleted": 1}
