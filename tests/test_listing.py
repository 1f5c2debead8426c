from datetime import datetime, timedelta, timezone

from conftest import make_session
from timeapp.listing import filter_sessions, paginate, sort_sessions

T0 = datetime(2024, 3, 1, 9, tzinfo=timezone.utc)


def _sessions():
    return [
        make_session(T0, 300, tags=["Work"], name="alpha"),
        make_session(T0 + timedelta(hours=1), 100, name=None),
        make_session(T0 + timedelta(hours=2), 200, tags=["deep", "reading"], name="Beta"),
    ]


def test_search_matches_display_name_and_tags():
    sessions = _sessions()
    assert filter_sessions(sessions, search="untitled") == [sessions[1]]
    assert filter_sessions(sessions, search="  READ ") == [sessions[2]]
    assert filter_sessions(sessions, search="") == sessions


def test_tag_filter_matches_any():
    sessions = _sessions()
    assert filter_sessions(sessions, tags=["deep", "Work"]) == [sessions[0], sessions[2]]


def test_sorting():
    sessions = _sessions()
    assert [s.duration_seconds for s in sort_sessions(sessions, "duration_seconds", "asc")] == [100, 200, 300]
    assert [s.name for s in sort_sessions(sessions, "name", "asc")] == ["alpha", "Beta", None]
    assert sort_sessions(sessions)[0] is sessions[2]


def test_paginate():
    page = paginate(list(range(45)), page=3, page_size=20)
    assert page.items == list(range(40, 45))
    assert page.total_pages == 3
    assert paginate(list(range(5)), page=4, page_size=20).items == []
    assert paginate([], 1, 20).total_pages == 0
