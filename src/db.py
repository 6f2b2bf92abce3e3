"""Database engine/session helpers."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def create_db_engine(db_url: str, *, pool_timeout: float = 30.0) -> Engine:
    """Create a SQLAlchemy engine with conservative defaults for scripts."""
    if db_url.startswith("sqlite"):
        return create_engine(db_url, future=True)
    return create_engine(db_url, pool_pre_ping=True, pool_timeout=pool_timeout, future=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory bound to the provided engine."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
