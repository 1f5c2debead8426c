"""
Pytest fixtures: an in-memory database per test and a TestClient whose
clock can be moved by hand.
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from timeapp.db import get_session, init_db, make_engine
from timeapp.deps import get_now
from timeapp.main import app

USER = "user-1"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def client(engine, clock):
    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_now] = clock
    c = TestClient(app, headers={"X-User-Id": USER})
    yield c
    app.dependency_overrides.clear()


def make_session(start: datetime, duration: int | None = 600, tags=None, name=None):
    """Lightweight stand-in for a TimeSession row in pure-function tests."""
    return SimpleNamespace(
        start_timestamp=start,
        end_timestamp=start + timedelta(seconds=duration or 0),
        duration_seconds=duration,
        tags=tags,
        name=name,
        created_at=start,
    )
