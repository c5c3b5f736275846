from pathlib import Path
from typing import Any, Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from marquee.config import get_settings

_settings = get_settings()

DATABASE_URL = _settings.database_url


def build_engine(url: str, echo: bool = False, **kwargs: Any) -> Engine:
    """
    SQLite gets a shared-thread connection (FastAPI runs sync handlers in a
    thread pool) and its parent directory created; other backends get
    pre-ping so connections dropped by the server are replaced.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if ":memory:" not in url and url != "sqlite://":
            Path(url.replace("sqlite:///", "", 1)).parent.mkdir(parents=True, exist_ok=True)
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, echo=echo, **kwargs)


engine: Engine = build_engine(DATABASE_URL, echo=_settings.sql_echo)


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    with Session(engine) as session:
        yield session


def register_models() -> None:
    """Import every table model so SQLModel.metadata knows about it."""
    import marquee.models  # noqa: F401


def init_db() -> None:
    """Create missing tables (alembic owns real schema changes)"""
    register_models()
    SQLModel.metadata.create_all(engine)
