from __future__ import annotations

import os
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

load_dotenv()

# Writers queue on SQLite's file lock; case-number allocation relies on this wait.
SQLITE_BUSY_TIMEOUT_SECONDS = 5.0


def _resolve_database_url() -> str:
    url = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URL")
    if not url:
        raise RuntimeError(
            "Set DATABASE_URL (or SQLALCHEMY_DATABASE_URL) before importing lawdesk.app.db."
        )
    return url


def _make_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        return create_engine(
            url,
            future=True,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_SECONDS},
        )
    # Timeline fetches hold several pooled connections per request.
    return create_engine(url, future=True, pool_pre_ping=True, pool_size=10, max_overflow=10)


DATABASE_URL = _resolve_database_url()
engine = _make_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


class Base(DeclarativeBase):
    pass


def get_db():
    """Request-scoped session; routes commit, the session is always closed."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    """
    Factory for short-lived sessions used by work that runs off the request thread
    (each timeline stream opens its own session).
    """
    return SessionLocal
