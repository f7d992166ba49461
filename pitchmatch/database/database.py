"""
Database wiring for the marketplace.

*   DATABASE_URL picks the backend: PostgreSQL in deployments, SQLite for
    the test-suite and local runs.
*   `SessionLocal()` / `db_session()` / `get_db()` hand out sessions.
*   `init_db()` creates the marketplace tables, `drop_db()` removes them.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

# --------------------------------------------------------------------------- #
# Environment
# --------------------------------------------------------------------------- #
DATABASE_URL: str | None = os.getenv("DATABASE_URL")

if not DATABASE_URL:
    raise RuntimeError(
        "DATABASE_URL is not set; the marketplace API needs a database to start."
    )


def _engine_options(url: str) -> Dict[str, Any]:
    # SQLite (tests, local dev) shares one connection across threads.
    if url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 1800,  # 30 min – keeps long-lived workers fresh.
    }


# --------------------------------------------------------------------------- #
# Engine
# --------------------------------------------------------------------------- #
ENGINE = create_engine(
    DATABASE_URL,
    echo=os.getenv("SQLALCHEMY_ECHO", "false").lower() == "true",
    future=True,
    **_engine_options(DATABASE_URL),
)

# --------------------------------------------------------------------------- #
# Session factory
# --------------------------------------------------------------------------- #
SessionLocal = sessionmaker(
    bind=ENGINE,
    expire_on_commit=False,  # rows stay readable after the request commits
    autoflush=False,
    autocommit=False,
)

# --------------------------------------------------------------------------- #
# Declarative base
# --------------------------------------------------------------------------- #
Base = declarative_base()

# --------------------------------------------------------------------------- #
# Dependency helpers
# --------------------------------------------------------------------------- #
@contextmanager
def db_session() -> Generator[Session, None, None]:
    """
    Unit-of-work scope::

        with db_session() as db:
            crud.create_startup(db, founder_id, data)

    Commits on success, rolls back on error, always closes.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency – yields a SQLAlchemy Session per request."""
    with db_session() as db:
        yield db


def init_db() -> None:
    """
    Create any missing marketplace tables.
    Runs from the FastAPI startup hook.
    """
    import pitchmatch.database.models  # noqa: F401 - registers the tables

    Base.metadata.create_all(bind=ENGINE)


def drop_db() -> None:
    """Drop every table. Only used by the test-suite."""
    import pitchmatch.database.models  # noqa: F401

    Base.metadata.drop_all(bind=ENGINE)
