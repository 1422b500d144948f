"""
Base class and BaseEntity for all SQLAlchemy ORM models.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, DateTime, Uuid, event
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, validates
from sqlalchemy.orm.attributes import set_committed_value
from uuid6 import uuid7

from kernel.security.user_context import EMPTY_USER_ID
from kernel.utils.exceptions import ArgumentError


def new_entity_id() -> uuid.UUID:
    """
    Generate a time-ordered UUID (version 7).

    The high 48 bits hold milliseconds since the epoch, so IDs created later
    sort after earlier ones.
    """
    return uuid7()


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class BaseEntity(Base):
    """
    Abstract base for every persisted record.

    Fields:
    - id: time-ordered UUID, assigned when the object is constructed
    - is_deleted: soft delete flag (True = deleted, excluded from default reads)
    - created_by/created_time: who and when the row was first saved
    - updated_by/updated_time: who and when the row was last saved

    The audit fields are written by AuditingSession at commit time, never by
    callers.
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)

    # Soft delete flag (True = deleted)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    # Audit trail
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, default=EMPTY_USER_ID, nullable=False)
    created_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_by: Mapped[uuid.UUID] = mapped_column(Uuid, default=EMPTY_USER_ID, nullable=False)
    updated_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __init__(self, **kwargs: Any):
        kwargs.setdefault("id", new_entity_id())
        kwargs.setdefault("is_deleted", False)
        super().__init__(**kwargs)

    @validates("id")
    def _validate_id(self, key: str, value: uuid.UUID) -> uuid.UUID:
        current = self.__dict__.get("id")
        if current is not None and value != current:
            raise ArgumentError("Entity identifier cannot be changed once assigned", "id")
        return value

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        state = "deleted" if self.is_deleted else "active"
        return f"<{class_name}(id={self.id}, {state})>"


def _ensure_aware_timestamp(value: datetime | None) -> datetime | None:
    """Normalize timestamps to UTC when timezone info is missing."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@event.listens_for(BaseEntity, "load", propagate=True)
@event.listens_for(BaseEntity, "refresh", propagate=True)
def _normalize_audit_times_on_load(target: BaseEntity, *_: Any) -> None:
    """Backends without timezone support (SQLite) return naive UTC values."""
    # set_committed_value leaves no history, so the entity is not marked modified
    for key in ("created_time", "updated_time"):
        value = target.__dict__.get(key)
        if value is not None and value.tzinfo is None:
            set_committed_value(target, key, _ensure_aware_timestamp(value))
