from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from timeapp.config import settings


def make_engine(url: str):
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(url, echo=False)


engine = make_engine(settings.database_url)


def init_db(bind=None) -> None:
    # Table classes must be registered on SQLModel.metadata before create_all.
    import timeapp.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def get_session():
    with Session(engine) as session:
        yield session
