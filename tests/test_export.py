"""
Tests for CSV / JSON session export.
"""
import json
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from conftest import make_session
from timeapp.errors import InvalidExportError
from timeapp.export import (
    DEFAULT_FIELDS,
    export_file_name,
    format_session,
    generate_csv,
    generate_json,
    render,
    select_fields,
)

UTC = timezone.utc
START = datetime(2024, 3, 1, tzinfo=UTC)
END = datetime(2024, 3, 31, 23, 59, tzinfo=UTC)
GENERATED = datetime(2024, 4, 1, 8, 30, tzinfo=UTC)


@pytest.fixture
def sessions():
    return [
        make_session(datetime(2024, 3, 4, 9, 0, tzinfo=UTC), 5400, tags=["work", "deep"], name="Plan, then write"),
        make_session(datetime(2024, 3, 5, 14, 0, tzinfo=UTC), 45),
    ]


class TestFields:
    def test_default_selection(self):
        assert [f.key for f in select_fields()] == [
            "displayName", "start_timestamp", "end_timestamp", "formattedDuration", "tags"
        ]

    def test_explicit_selection_uses_canonical_order(self):
        assert [f.label for f in select_fields(["tags", "created_at"])] == ["Tags", "Created Date"]

    def test_unknown_field(self):
        with pytest.raises(InvalidExportError):
            select_fields(["colour"])

    def test_format_session(self, sessions):
        row = format_session(sessions[1], DEFAULT_FIELDS)
        assert row == {
            "Session Name": "Untitled Session",
            "Start Time": "2024-03-05 14:00:00",
            "End Time": "2024-03-05 14:00:45",
            "Duration": "45s",
            "Tags": "",
            "Created Date": "2024-03-05 14:00:00",
        }

    def test_timestamps_use_local_time(self, sessions):
        row = format_session(sessions[0], select_fields(["start_timestamp"]), ZoneInfo("Europe/Berlin"))
        assert row["Start Time"] == "2024-03-04 10:00:00"


class TestCsv:
    def test_layout(self, sessions):
        content = generate_csv(sessions, select_fields(), START, END, GENERATED)
        lines = content.split("\n")
        assert lines[:5] == [
            "# TIME App Session Export",
            "# Generated: 2024-04-01 08:30:00",
            "# Total Sessions: 2",
            "# Date Range: 2024-03-01 to 2024-03-31",
            "Session Name,Start Time,End Time,Duration,Tags",
        ]
        assert lines[5] == '"Plan, then write",2024-03-04 09:00:00,2024-03-04 10:30:00,1h 30m,work|deep'
        assert lines[6] == "Untitled Session,2024-03-05 14:00:00,2024-03-05 14:00:45,45s,"
        assert len(lines) == 7

    def test_quotes_are_escaped(self):
        s = make_session(START, 60, name='Say "hi"')
        content = generate_csv([s], select_fields(["displayName"]), START, END, GENERATED)
        assert content.split("\n")[-1] == '"Say ""hi"""'

    def test_empty_value_is_left_bare(self):
        s = make_session(START, 60)
        content = generate_csv([s], select_fields(["tags"]), START, END, GENERATED)
        assert content.split("\n")[-2:] == ["Tags", ""]

    def test_empty(self, sessions):
        assert generate_csv([], select_fields(), START, END, GENERATED) == ""
        assert generate_csv(sessions, [], START, END, GENERATED) == ""


class TestJson:
    def test_structure(self, sessions):
        data = json.loads(generate_json(sessions, select_fields(["displayName", "tags"]), START, END, GENERATED))
        assert data["metadata"]["total_sessions"] == 2
        assert data["metadata"]["fields"] == ["Session Name", "Tags"]
        assert data["metadata"]["date_range"] == {"start": "2024-03-01", "end": "2024-03-31"}
        assert data["sessions"][0] == {"Session Name": "Plan, then write", "Tags": "work|deep"}


def test_render_names_file_by_format(sessions):
    name, _ = render("json", sessions, select_fields(), START, END, GENERATED)
    assert name == "time-sessions-2024-04-01.json"
    assert export_file_name("csv", GENERATED) == "time-sessions-2024-04-01.csv"


def test_render_rejects_pdf(sessions):
    with pytest.raises(InvalidExportError):
        render("pdf", sessions, select_fields(), START, END, GENERATED)
