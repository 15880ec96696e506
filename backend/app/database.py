"""Database configuration for the dashboard backend."""

from __future__ import annotations

import os
from contextlib import contextmanager
from functools import lru_cache
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, URL, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .errors import ServerMisconfiguredError

DATABASE_URL_ENV = "DATABASE_URL"
SSLMODE_ENV = "DATABASE_SSLMODE"
POOL_SIZE_ENV = "DATABASE_POOL_SIZE"
POOL_MAX_OVERFLOW_ENV = "DATABASE_MAX_OVERFLOW"
POOL_TIMEOUT_ENV = "DATABASE_POOL_TIMEOUT"
POOL_RECYCLE_ENV = "DATABASE_POOL_RECYCLE"
CONNECT_TIMEOUT_ENV = "DATABASE_CONNECT_TIMEOUT"

DEFAULT_SSLMODE = "require"
DEFAULT_POOL_SIZE = 2
DEFAULT_MAX_OVERFLOW = 3
DEFAULT_POOL_TIMEOUT = 30
DEFAULT_POOL_RECYCLE = 1800
DEFAULT_CONNECT_TIMEOUT = 10

_LEGACY_POSTGRES_SCHEME = "postgres://"


def _read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ServerMisconfiguredError(f"{name} must be an integer") from exc
    if value < 0:
        raise ServerMisconfiguredError(f"{name} must be non-negative")
    return value


def _resolve_database_url(raw_url: Optional[str]) -> URL:
    if not raw_url:
        raise ServerMisconfiguredError("DATABASE_URL environment variable is missing")

    # Hosted Postgres providers still hand out postgres:// URLs, which
    # SQLAlchemy no longer accepts as a dialect name.
    if raw_url.startswith(_LEGACY_POSTGRES_SCHEME):
        raw_url = "postgresql://" + raw_url[len(_LEGACY_POSTGRES_SCHEME) :]
    try:
        return make_url(raw_url)
    except ArgumentError as exc:
        raise ServerMisconfiguredError("DATABASE_URL could not be parsed") from exc


def _engine_kwargs(url: URL) -> Dict[str, Any]:
    if url.drivername.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}

    connect_args: Dict[str, Any] = {
        "connect_timeout": _read_int_env(CONNECT_TIMEOUT_ENV, DEFAULT_CONNECT_TIMEOUT)
    }
    if url.drivername.startswith("postgresql") and "sslmode" not in url.query:
        connect_args["sslmode"] = os.getenv(SSLMODE_ENV) or DEFAULT_SSLMODE
    return {
        "pool_pre_ping": True,
        "pool_size": _read_int_env(POOL_SIZE_ENV, DEFAULT_POOL_SIZE),
        "max_overflow": _read_int_env(POOL_MAX_OVERFLOW_ENV, DEFAULT_MAX_OVERFLOW),
        "pool_timeout": _read_int_env(POOL_TIMEOUT_ENV, DEFAULT_POOL_TIMEOUT),
        "pool_recycle": _read_int_env(POOL_RECYCLE_ENV, DEFAULT_POOL_RECYCLE),
        "connect_args": connect_args,
    }


@lru_cache(maxsize=4)
def _build_engine(rendered_url: str) -> Engine:
    url = make_url(rendered_url)
    return create_engine(url, **_engine_kwargs(url))


def get_engine(raw_url: Optional[str] = None) -> Engine:
    """Return the engine for ``raw_url`` or the configured ``DATABASE_URL``.

    Engines are created on first use and reused for the same URL, so nothing
    connects at import time and a missing URL only fails the request that
    needs the database.
    """

    url = _resolve_database_url(raw_url if raw_url is not None else os.getenv(DATABASE_URL_ENV))
    return _build_engine(url.render_as_string(hide_password=False))


SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and ensure it is closed afterwards."""
    db = SessionLocal(bind=get_engine())
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Generator[Session, None, None]:
    """Commit everything done inside the block, or roll all of it back."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
