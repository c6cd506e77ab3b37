from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings


def build_engine(url: str):
    """Create an engine for the given URL.

    SQLite connections are shared across threads (FastAPI runs sync routes in
    a threadpool); in-memory SQLite keeps a single connection alive.
    """
    backend = make_url(url).get_backend_name()
    kwargs: dict = {"pool_pre_ping": True}
    if backend.startswith("postgresql"):
        kwargs["connect_args"] = {"options": "-c timezone=utc"}
    elif backend == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url:
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
