"""
Database engine, session factory and declarative base.

Every service function receives a SQLAlchemy ``Session``.  Mutations are
wrapped in :func:`atomic` so that an operation either commits once or rolls
back entirely; readers never observe a half-applied change.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any

from sqlalchemy import Enum as SAEnum
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from budget_engine.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding a session that is always closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or roll all of it back.

    Domain errors raised inside the block propagate unchanged after the
    rollback so that the caller receives the typed failure.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def str_enum(enum_cls: type[Enum], length: int = 30) -> SAEnum:
    """Column type storing a closed ``Enum`` by value as a non-native VARCHAR."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=length,
        validate_strings=True,
        values_callable=lambda cls: [member.value for member in cls],
    )


def lock_rows(query: Any, db: Session) -> Any:
    """Reload rows of *query* from the database, with ``FOR UPDATE`` where supported.

    ``populate_existing`` refreshes objects already in the identity map so a
    guard evaluated under a lock never sees a stale value.
    """
    query = query.populate_existing()
    if db.get_bind().dialect.name == "sqlite":
        return query
    return query.with_for_update()
