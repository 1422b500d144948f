"""
Audit-stamping persistence context.

AuditingSession is a synchronous SQLAlchemy Session used as the
`sync_session_class` of an AsyncSession. AsyncSession.commit() runs the
synchronous commit underneath, so a single override stamps audit fields
for both `session.commit()` and `await async_session.commit()`.

On every commit, before anything is flushed:
- new BaseEntity objects get created_by/created_time and the same values
  in updated_by/updated_time
- modified BaseEntity objects get updated_by/updated_time only
- objects queued for deletion are left alone

The caller ID and the UTC timestamp are captured once per commit, so every
entity saved by the same commit carries identical values.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterator

from sqlalchemy import event, inspect
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.orm import Session

from data_api.models.base import BaseEntity
from kernel.security.user_context import EMPTY_USER_ID, UserContext


class AuditingSession(Session):
    """
    Change-tracked session that stamps audit fields on commit.

    Usage:
        factory = async_sessionmaker(
            engine,
            sync_session_class=AuditingSession,
            expire_on_commit=False,
        )
        async with factory(user_context=ClaimsUserContext()) as session:
            ...
    """

    def __init__(self, *args: Any, user_context: UserContext | None = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.user_context = user_context
        self.last_commit_count = 0
        # id(entity) -> entity for updates staged explicitly (see mark_modified)
        self._staged_updates: dict[int, BaseEntity] = {}
        self._flushed_count = 0

    def mark_modified(self, entity: BaseEntity) -> None:
        """
        Stage a full-entity update.

        The entity is attached to the session and will be stamped as modified
        at the next commit even when none of its attributes changed.
        A transient entity (never inserted, never loaded) is rejected:
        staging it would turn the update into an insert.
        """
        if inspect(entity).transient:
            raise InvalidRequestError(
                f"Cannot update {type(entity).__name__} with ID {entity.id}: "
                "it was never inserted or loaded"
            )
        self.add(entity)
        if entity not in self.new:
            self._staged_updates[id(entity)] = entity

    def current_user_id(self):
        if self.user_context is None:
            return EMPTY_USER_ID
        return self.user_context.get_current_user_id()

    def set_audit_fields(self) -> None:
        """Stamp audit fields on every pending or modified BaseEntity."""
        user_id = self.current_user_id()
        now = datetime.now(timezone.utc)

        for entity in self.new:
            if isinstance(entity, BaseEntity):
                entity.created_by = user_id
                entity.created_time = now
                entity.updated_by = user_id
                entity.updated_time = now

        for entity in self._modified_entities():
            entity.updated_by = user_id
            entity.updated_time = now

    def _modified_entities(self) -> Iterator[BaseEntity]:
        seen: set[int] = set()
        deleted = self.deleted

        for entity in self.dirty:
            if (
                isinstance(entity, BaseEntity)
                and entity not in deleted
                and self.is_modified(entity, include_collections=False)
            ):
                seen.add(id(entity))
                yield entity

        for key, entity in self._staged_updates.items():
            if key in seen or entity in deleted or entity in self.new:
                continue
            if entity in self:
                yield entity

    def commit(self) -> None:
        self.set_audit_fields()
        self._flushed_count = 0
        try:
            super().commit()
        finally:
            self._staged_updates.clear()
        self.last_commit_count = self._flushed_count

    def rollback(self) -> None:
        self._staged_updates.clear()
        self._flushed_count = 0
        super().rollback()


@event.listens_for(AuditingSession, "after_flush")
def _count_flushed_rows(session: AuditingSession, flush_context: Any) -> None:
    # new/dirty/deleted still hold the pre-flush state here
    modified = sum(
        1 for entity in session.dirty
        if session.is_modified(entity, include_collections=False)
    )
    session._flushed_count += len(session.new) + modified + len(session.deleted)
