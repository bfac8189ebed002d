"""SQLAlchemy ORM models for the local tree store.

Each row holds one child of a top-level collection: ('resi', <key>) holds a
whole tracking record, ('solenoid-lock', 'unlock') holds a single boolean.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base class for all ORM models."""
    pass


class StoreNode(Base):
    """ORM model for the store_nodes table."""

    __tablename__ = "store_nodes"

    collection: Mapped[str] = mapped_column(String, primary_key=True)
    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

