"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine used as the
application's data store and provides small helpers used by the
application and tests. By default the store is a local SQLite file at
the backend root (`schoolhub.db`); set `DATABASE_URL` to point at a
hosted Postgres instead.
"""

from sqlmodel import SQLModel, create_engine, Session
from pathlib import Path

from .config import settings

BASE = Path(__file__).resolve().parent.parent
DB_URL = settings.DATABASE_URL or f"sqlite:///{BASE / 'schoolhub.db'}"

if DB_URL.startswith("sqlite"):
    engine = create_engine(DB_URL, echo=False, connect_args={"check_same_thread": False})
else:
    engine = create_engine(DB_URL, echo=False, pool_pre_ping=True)


def create_db_and_tables():
    """Create database tables using SQLModel metadata.

    Tables that already exist are left untouched, so this is safe to
    call on every start-up.
    """
    # models must be imported so their tables are registered on the metadata
    from . import models  # noqa: F401
    SQLModel.metadata.create_all(engine)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session
