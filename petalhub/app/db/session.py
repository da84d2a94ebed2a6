from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from petalhub.app.core.config import get_settings
from petalhub.app.db.base import Base
from petalhub.app.db.models import models_v1  # noqa: F401  (registers tables)
from petalhub.services.errors import StoreTimeout

logger = logging.getLogger(__name__)

# query_canceled, lock_not_available
PG_TIMEOUT_SQLSTATES = {"57014", "55P03"}


def create_engine_from_url(url: str, **kwargs):
    settings = get_settings()
    if url.startswith("sqlite"):
        connect_args = {
            "check_same_thread": False,
            "timeout": settings.store_timeout_ms / 1000,
        }
        connect_args.update(kwargs.pop("connect_args", {}))
        return create_engine(url, future=True, connect_args=connect_args, **kwargs)

    if "poolclass" not in kwargs:
        kwargs.setdefault("pool_timeout", settings.db_pool_timeout_seconds)
    return create_engine(url, future=True, pool_pre_ping=True, **kwargs)


engine = create_engine_from_url(get_settings().database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def _apply_timeout(db: Session, timeout_ms: int) -> None:
    dialect = db.get_bind().dialect.name
    ms = int(timeout_ms)
    if dialect.startswith("postgres"):
        # SET does not take bind parameters; ms is an int
        db.execute(text(f"SET LOCAL statement_timeout = {ms}"))
        db.execute(text(f"SET LOCAL lock_timeout = {ms}"))
    elif dialect == "sqlite":
        db.execute(text(f"PRAGMA busy_timeout = {ms}"))


def is_timeout_error(exc: Exception) -> bool:
    if isinstance(exc, PoolTimeoutError):
        return True
    if not isinstance(exc, OperationalError):
        return False
    orig = exc.orig
    if getattr(orig, "sqlstate", None) in PG_TIMEOUT_SQLSTATES:
        return True
    return "database is locked" in str(orig)


@contextmanager
def transaction(db: Session, *, timeout_ms: int | None = None) -> Generator[Session, None, None]:
    """
    Unit of work: commit on success, rollback on any error.

    Nested calls join the outermost unit of work, which alone commits.
    Store timeouts (statement/lock timeout, busy database, pool exhaustion)
    surface as StoreTimeout.
    """
    if db.info.get("unit_of_work"):
        yield db
        return

    timeout_ms = timeout_ms or get_settings().store_timeout_ms
    db.info["unit_of_work"] = True
    try:
        _apply_timeout(db, timeout_ms)
        yield db
        db.commit()
    except Exception as exc:
        db.rollback()
        if is_timeout_error(exc):
            logger.warning("unit of work timed out after %s ms: %s", timeout_ms, exc)
            raise StoreTimeout(timeout_ms, detail=str(getattr(exc, "orig", exc))) from exc
        raise
    finally:
        db.info.pop("unit_of_work", None)


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        with transaction(session):
            yield session
    finally:
        session.close()


def init_db() -> None:
    # Alembic reste la source de vérité du schéma ; ceci ne crée que les tables manquantes
    Base.metadata.create_all(bind=engine)
