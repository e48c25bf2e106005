"""SQLAlchemy engine, session and transaction helpers.

Nothing here is created at import time: :func:`lending.application.create_app`
builds the engine once per process and keeps the session factory on
``app.state`` so request handlers receive it through :func:`get_db`.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..core.errors import StoreError

logger = logging.getLogger("lending.db")

# ``Base`` is the parent class for every SQLAlchemy model defined in lending/models.
Base = declarative_base()


def build_engine(url: str, *, sqlite_foreign_keys: bool = False) -> Engine:
    """Create the engine (and its connection pool) for ``url``."""

    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    # SQLite connections are shared by FastAPI worker threads.
    kwargs: dict[str, object] = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # An in-memory database only exists on one connection.
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)

    if sqlite_foreign_keys:

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):  # pragma: no cover - driver hook
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create any missing tables."""

    # Importing the models registers them with the metadata.
    from ..models import borrow_record as _borrow_record  # noqa: F401
    from ..models import equipment as _equipment  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency that yields a session and guarantees cleanup."""

    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Group writes so they commit together or not at all.

    Any exception rolls the session back. Database errors are re-raised as
    :class:`StoreError`; domain errors raised inside the block pass through.
    """

    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("transaction.failed", extra={"extra_data": {"error": exc.__class__.__name__}})
        raise StoreError("The database rejected the change", details={"error": exc.__class__.__name__}) from exc
    except Exception:
        db.rollback()
        raise
