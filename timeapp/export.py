"""
Session export as CSV or JSON.

Both formats start with the same metadata (generation time, session count and
date range) and contain one record per session with the selected fields,
keyed by the field's human label.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Sequence

from timeapp.errors import InvalidExportError
from timeapp.listing import display_name
from timeapp.timeutils import format_duration, to_local

EXPORT_FORMATS = ("csv", "json")
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
EXPORT_TITLE = "TIME App Session Export"


@dataclass(frozen=True)
class ExportField:
    key: str
    label: str
    enabled: bool = True


DEFAULT_FIELDS: list[ExportField] = [
    ExportField("displayName", "Session Name"),
    ExportField("start_timestamp", "Start Time"),
    ExportField("end_timestamp", "End Time"),
    ExportField("formattedDuration", "Duration"),
    ExportField("tags", "Tags"),
    ExportField("created_at", "Created Date", enabled=False),
]
FIELD_KEYS = [f.key for f in DEFAULT_FIELDS]


def escape_csv_value(value: str) -> str:
    """Quote a value only when it holds a comma, a quote or a newline."""
    if "," in value or '"' in value or "\n" in value:
        return '"' + value.replace('"', '""') + '"'
    return value


def select_fields(keys: Sequence[str] | None = None) -> list[ExportField]:
    """Enabled fields in canonical order; ``None`` keeps the defaults."""
    if keys is None:
        return [f for f in DEFAULT_FIELDS if f.enabled]
    unknown = [k for k in keys if k not in FIELD_KEYS]
    if unknown:
        raise InvalidExportError(f"Unknown export field(s): {', '.join(unknown)}")
    return [ExportField(f.key, f.label, True) for f in DEFAULT_FIELDS if f.key in keys]


def _timestamp(value: datetime | None, tz: tzinfo) -> str:
    return to_local(value, tz).strftime(TIMESTAMP_FORMAT) if value else ""


def format_session(session, fields: Sequence[ExportField], tz: tzinfo = timezone.utc) -> dict[str, str]:
    row: dict[str, str] = {}
    for f in fields:
        if f.key == "displayName":
            row[f.label] = display_name(session)
        elif f.key in ("start_timestamp", "end_timestamp", "created_at"):
            row[f.label] = _timestamp(getattr(session, f.key, None), tz)
        elif f.key == "formattedDuration":
            row[f.label] = format_duration(session.duration_seconds) if session.duration_seconds else ""
        elif f.key == "tags":
            row[f.label] = "|".join(session.tags) if session.tags else ""
        else:
            value = getattr(session, f.key, None)
            row[f.label] = str(value) if value else ""
    return row


def _metadata(count: int, start: datetime, end: datetime, generated_at: datetime, tz: tzinfo) -> dict:
    return {
        "title": EXPORT_TITLE,
        "generated": to_local(generated_at, tz).strftime(TIMESTAMP_FORMAT),
        "total_sessions": count,
        "date_range": {
            "start": to_local(start, tz).strftime("%Y-%m-%d"),
            "end": to_local(end, tz).strftime("%Y-%m-%d"),
        },
    }


def generate_csv(
    sessions: Sequence,
    fields: Sequence[ExportField],
    start: datetime,
    end: datetime,
    generated_at: datetime,
    tz: tzinfo = timezone.utc,
) -> str:
    if not sessions or not fields:
        return ""

    meta = _metadata(len(sessions), start, end, generated_at, tz)
    lines = [
        f"# {meta['title']}",
        f"# Generated: {meta['generated']}",
        f"# Total Sessions: {meta['total_sessions']}",
        f"# Date Range: {meta['date_range']['start']} to {meta['date_range']['end']}",
        ",".join(escape_csv_value(f.label) for f in fields),
    ]
    for session in sessions:
        row = format_session(session, fields, tz)
        lines.append(",".join(escape_csv_value(row.get(f.label, "")) for f in fields))
    return "\n".join(lines)


def generate_json(
    sessions: Sequence,
    fields: Sequence[ExportField],
    start: datetime,
    end: datetime,
    generated_at: datetime,
    tz: tzinfo = timezone.utc,
) -> str:
    payload = {
        "metadata": {
            **_metadata(len(sessions), start, end, generated_at, tz),
            "fields": [f.label for f in fields],
        },
        "sessions": [format_session(s, fields, tz) for s in sessions],
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def export_file_name(fmt: str, generated_at: datetime, tz: tzinfo = timezone.utc) -> str:
    return f"time-sessions-{to_local(generated_at, tz).strftime('%Y-%m-%d')}.{fmt}"


def render(
    fmt: str,
    sessions: Sequence,
    fields: Sequence[ExportField],
    start: datetime,
    end: datetime,
    generated_at: datetime,
    tz: tzinfo = timezone.utc,
) -> tuple[str, str]:
    """Return ``(file_name, content)`` for ``fmt``."""
    if fmt == "csv":
        content = generate_csv(sessions, fields, start, end, generated_at, tz)
    elif fmt == "json":
        content = generate_json(sessions, fields, start, end, generated_at, tz)
    else:
        raise InvalidExportError(f"Unsupported export format: {fmt}")
    return export_file_name(fmt, generated_at, tz), content
