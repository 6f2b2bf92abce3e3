"""Shared helpers for SQLAlchemy-backed stores."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from domain.ratings.errors import InvalidInputError, PersistenceError, PersistenceTimeoutError
from models.base import Base

_TIMEOUT_MARKERS = ("timeout", "timed out", "canceling statement", "database is locked")
_UNIQUE_VIOLATION_SQLSTATE = "23505"


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def ensure_tables(engine: Engine, *models: type[Base]) -> None:
    """Create the given model tables and their indexes when missing."""
    with engine.begin() as connection:
        for model in models:
            model.__table__.create(bind=connection, checkfirst=True)


def apply_statement_timeout(session: Session, timeout: float | None) -> None:
    """Bound statements in the current transaction on PostgreSQL."""
    if timeout is None:
        return
    bind = session.get_bind()
    if bind.dialect.name != "postgresql":
        return
    milliseconds = max(1, int(timeout * 1000))
    session.execute(text(f"SET LOCAL statement_timeout = {milliseconds}"))


def is_timeout_error(exc: OperationalError) -> bool:
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in message for marker in _TIMEOUT_MARKERS)


def is_unique_violation(exc: IntegrityError) -> bool:
    """True for unique-key collisions, False for CHECK and other constraint failures."""
    if getattr(exc.orig, "sqlstate", None) == _UNIQUE_VIOLATION_SQLSTATE:
        return True
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return "unique constraint" in message or "duplicate key" in message


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Re-raise SQLAlchemy failures as rating engine errors.

    Pool and statement timeouts become PersistenceTimeoutError, constraint
    violations become InvalidInputError and anything else PersistenceError.
    """
    try:
        yield
    except PoolTimeoutError as exc:
        raise PersistenceTimeoutError(f"{operation}: connection pool timed out") from exc
    except OperationalError as exc:
        if is_timeout_error(exc):
            raise PersistenceTimeoutError(f"{operation}: {exc.orig or exc}") from exc
        raise PersistenceError(f"{operation}: {exc.orig or exc}") from exc
    except IntegrityError as exc:
        raise InvalidInputError(f"{operation}: constraint violated: {exc.orig or exc}") from exc
    except SQLAlchemyError as exc:
        raise PersistenceError(f"{operation}: {exc}") from exc


__all__ = [
    "apply_statement_timeout",
    "ensure_tables",
    "is_timeout_error",
    "is_unique_violation",
    "storage_errors",
    "utcnow",
]
