"""Search, tag filtering, sorting and pagination for the sessions list."""
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from timeapp.timeutils import ensure_utc

UNTITLED = "Untitled Session"


def display_name(session) -> str:
    return session.name or UNTITLED


def matches_search(session, query: str) -> bool:
    """Case-insensitive match on the display name or the space-joined tags."""
    query = query.strip().lower()
    if not query:
        return True
    tags = " ".join(session.tags or []).lower()
    return query in display_name(session).lower() or query in tags


def has_any_tag(session, tags: Iterable[str]) -> bool:
    wanted = set(tags)
    if not wanted:
        return True
    return bool(wanted.intersection(session.tags or []))


def filter_sessions(sessions: Iterable, search: str = "", tags: Sequence[str] = ()) -> list:
    return [s for s in sessions if matches_search(s, search) and has_any_tag(s, tags)]


def _sort_key(field: str):
    if field == "start_timestamp":
        return lambda s: ensure_utc(s.start_timestamp)
    if field == "duration_seconds":
        return lambda s: s.duration_seconds or 0
    if field == "name":
        return lambda s: display_name(s).lower()
    raise ValueError(f"Unknown sort field: {field}")


def sort_sessions(sessions: Iterable, field: str = "start_timestamp", order: str = "desc") -> list:
    return sorted(sessions, key=_sort_key(field), reverse=(order == "desc"))


@dataclass
class Page:
    items: list
    page: int
    page_size: int
    total_items: int
    total_pages: int


def paginate(items: Sequence, page: int = 1, page_size: int = 20) -> Page:
    """Slice out 1-based ``page``; pages past the end come back empty."""
    total_pages = math.ceil(len(items) / page_size) if page_size > 0 else 0
    start = (page - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        page=page,
        page_size=page_size,
        total_items=len(items),
        total_pages=total_pages,
    )
