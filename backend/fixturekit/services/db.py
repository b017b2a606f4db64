"""
Database configuration and session management for the fixturekit backend.

This module defines a SQLModel engine targeting a SQLite database stored
in the project's ``storage`` directory.  The directory can be moved with
the ``FIXTUREKIT_STORAGE_DIR`` environment variable, which is read once
at import time.  It exposes helper functions to initialise the schema
and to obtain session objects for interacting with the database.
"""

from __future__ import annotations

import os
from pathlib import Path

from sqlmodel import SQLModel, Session, create_engine

# Default location is ``backend/storage``, two parents up from this file.
STORAGE_DIR = Path(
    os.getenv("FIXTUREKIT_STORAGE_DIR") or Path(__file__).resolve().parents[2] / "storage"
)
STORAGE_DIR.mkdir(parents=True, exist_ok=True)

# as_posix() keeps the URL valid on all platforms
engine = create_engine(
    f"sqlite:///{(STORAGE_DIR / 'fixturekit.db').as_posix()}", echo=False
)


def create_db_and_tables() -> None:
    """Create all tables in the database.

    Safe to call repeatedly; existing tables are left alone.
    """
    SQLModel.metadata.create_all(engine)


def get_session() -> Session:
    """Return a new SQLModel session bound to the engine.

    Use it as a context manager (``with get_session() as session: ...``)
    so the connection is always released.
    """
    return Session(engine)
