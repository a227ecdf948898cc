"""Journal database: engine factory, session dependency and table setup."""

from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from ..config import settings

Base = declarative_base()


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the engine for a STOCKTAX_DATABASE_URL.

    SQLite connections are shared across FastAPI's worker threads; an
    in-memory SQLite database keeps a single connection so every session
    sees the same tables.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo)

    options = {"connect_args": {"check_same_thread": False}, "echo": echo}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return create_engine(url, **options)


engine = build_engine(settings.database_url, echo=settings.log_level == "DEBUG")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = engine):
    """Create the journal tables, and the SQLite file's directory if needed."""
    url = bind.url
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=bind)
