"""Database engine and session management.

This module provides thread-safe SQLAlchemy 2.0 synchronous setup with
connection pooling, WAL mode, and a transactional session context manager.
"""

import contextlib
import os
from typing import Generator, Tuple

from sqlalchemy import QueuePool, StaticPool, create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from resibox.database.models import Base

MEMORY_URL = "sqlite:///:memory:"


def init_db(database_url: str = "sqlite:///data/resibox.db") -> Tuple[Engine, sessionmaker]:
    """Create the engine, session factory and schema for a SQLite database.

    Args:
        database_url: SQLAlchemy connection string (must be a valid SQLite URL).

    Returns:
        The engine and a session factory bound to it.

    Raises:
        ValueError: If the database URL format is invalid.
        RuntimeError: If the database cannot be created or accessed.
    """
    if not isinstance(database_url, str):
        raise ValueError("database_url must be a string")
    if not database_url.startswith("sqlite:///"):
        raise ValueError("database_url must be a SQLite URL (sqlite:///path)")

    in_memory = database_url == MEMORY_URL
    try:
        if in_memory:
            # One shared connection, otherwise every checkout sees an empty database
            engine = create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=False,
            )
        else:
            _ensure_parent_dir(database_url)
            engine = create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=QueuePool,
                pool_size=5,
                max_overflow=10,
                echo=False,
            )
            with engine.connect() as conn:
                conn.execute(text("PRAGMA journal_mode=WAL"))
                conn.execute(text("PRAGMA busy_timeout=5000"))
                conn.commit()

        Base.metadata.create_all(bind=engine)
        return engine, sessionmaker(bind=engine, class_=Session, expire_on_commit=False)

    except SQLAlchemyError as e:
        raise RuntimeError(f"Database initialisation failed: {e}") from e


def _ensure_parent_dir(database_url: str) -> None:
    path = database_url[len("sqlite:///"):]
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


@contextlib.contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """Provide a transactional database session.

    Behavior:
        - On normal exit: session.commit() is called.
        - On exception: session.rollback() is called and the exception is re-raised.
        - Finally: session.close() is always executed.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
