"""Database configuration and session management."""

from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    """Create an engine; SQLite files get their parent directory created."""
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    connect_args = {"check_same_thread": False}  # SQLite specific
    db_path = database_url.split("///", 1)[1] if "///" in database_url else ""

    if db_path in ("", ":memory:"):
        # One shared connection, otherwise every thread sees its own empty database
        return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)

    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Initialize database tables."""
    from grade_engine.db.models import AssignmentRecord, SubmissionRecord  # noqa: F401
    Base.metadata.create_all(bind=engine)


def create_session_factory(database_url: Optional[str] = None) -> sessionmaker:
    """Engine + tables + session factory for a database URL (settings default)."""
    if database_url is None:
        from grade_engine.config.settings import get_settings
        database_url = get_settings().database_url

    engine = make_engine(database_url)
    init_db(engine)
    return make_session_factory(engine)
