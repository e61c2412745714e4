from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from .config import settings


def _normalized_database_url(raw_url: str) -> str:
    """
    DATABASE_URL normalization:
    - postgres:// or postgresql:// without a driver -> psycopg3 dialect.
    - anything else (SQLite etc.) is returned unchanged.
    """
    if not raw_url:
        return "sqlite:///./cruise.db"
    raw_url = raw_url.strip()
    if raw_url.startswith("postgres://"):
        return "postgresql+psycopg://" + raw_url[len("postgres://") :]
    if raw_url.startswith("postgresql://") and "+psycopg" not in raw_url.split("://", 1)[0]:
        return "postgresql+psycopg://" + raw_url[len("postgresql://") :]
    return raw_url


DATABASE_URL = _normalized_database_url(settings.database_url)


def create_db_engine(url: str | None = None) -> Engine:
    url = _normalized_database_url(url) if url else DATABASE_URL
    # In-memory SQLite: one shared connection so tables created at startup stay visible
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    in_memory = url.startswith("sqlite") and (":memory:" in url or url.rstrip("/") == "sqlite:")
    if in_memory:
        return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(url, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    # Import registers every table on SQLModel.metadata
    import app.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_db(request: Request):
    with Session(request.app.state.engine) as session:
        yield session
