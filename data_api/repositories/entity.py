"""
Generic entity repository.

Usage:
    repo = EntityRepository(User, session)

    user = await repo.get(User.username == "ada")
    active = await repo.query(lambda q: q.order_by(User.username).limit(20))

    await repo.insert(User(username="grace", password=hashed))
    await repo.delete(user)              # soft delete
    await repo.delete(user, soft=False)  # physical removal
    await unit_of_work.save_changes()
"""

from __future__ import annotations

import functools
import uuid
from typing import Any, Callable, Sequence

from sqlalchemy import ColumnElement, Select, select

from kernel.infrastructure.exception_logging import log_repository_exception
from kernel.utils.exceptions import ArgumentError, ArgumentNullError

from .base import BaseRepository, EntityT, QueryTransform


def repository_operation(
    operation: str,
    entity_id: Callable[..., Any] | None = None,
):
    """
    Log any failure of a repository coroutine as a repository exception, then re-raise it.

    Argument errors are raised to the caller without the failure event;
    they describe a caller mistake, not a data access failure.

    Args:
        operation: Name recorded as the event's Operation property.
        entity_id: Extracts the entity ID from the call's arguments, when known.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self: EntityRepository, *args: Any, **kwargs: Any):
            try:
                return await func(self, *args, **kwargs)
            except ArgumentError:
                raise
            except Exception as exc:
                known_id = None
                if entity_id is not None:
                    try:
                        known_id = entity_id(*args, **kwargs)
                    except (AttributeError, IndexError, KeyError):
                        known_id = None
                log_repository_exception(
                    self.logger, exc, operation, self.entity_name, known_id
                )
                raise

        return wrapper

    return decorator


def _first_arg_id(entity: Any = None, *args: Any, **kwargs: Any) -> Any:
    return getattr(entity, "id", None)


def _first_arg(value: Any = None, *args: Any, **kwargs: Any) -> Any:
    return value


class EntityRepository(BaseRepository[EntityT]):
    """
    Repository with soft delete filtering and structured logging.

    Every operation logs what it does; failures are logged with operation,
    entity kind and entity ID, then propagate unchanged.
    """

    def _base_query(self, include_deleted: bool) -> Select:
        """Base SELECT, without soft-deleted rows unless include_deleted."""
        query = select(self._model)
        if not include_deleted:
            query = query.where(self._model.is_deleted.is_(False))
        return query

    async def _single(self, query: Select) -> EntityT | None:
        result = await self._session.execute(query)
        return result.scalars().one_or_none()

    @repository_operation("GetByPredicate")
    async def get(
        self,
        *criteria: ColumnElement[bool],
        include_deleted: bool = False,
    ) -> EntityT | None:
        self._logger.debug(
            "Getting {EntityName} using predicate (IncludeDeleted: {IncludeDeleted})",
            self.entity_name,
            include_deleted,
        )

        entity = await self._single(self._base_query(include_deleted).where(*criteria))

        if entity is not None:
            self._logger.debug("Found {EntityName} with ID {EntityId}", self.entity_name, entity.id)
        else:
            self._logger.debug("No {EntityName} found matching the predicate", self.entity_name)

        return entity

    @repository_operation("GetById", entity_id=_first_arg)
    async def get_by_id(
        self,
        entity_id: uuid.UUID,
        include_deleted: bool = False,
    ) -> EntityT | None:
        self._logger.debug(
            "Getting {EntityName} by ID {EntityId} (IncludeDeleted: {IncludeDeleted})",
            self.entity_name,
            entity_id,
            include_deleted,
        )

        query = self._base_query(include_deleted).where(self._model.id == entity_id)
        entity = await self._single(query)

        if entity is not None:
            self._logger.debug("Successfully retrieved {EntityName} with ID {EntityId}", self.entity_name, entity_id)
        else:
            self._logger.debug("{EntityName} with ID {EntityId} not found", self.entity_name, entity_id)

        return entity

    @repository_operation("GetWithCustomQuery")
    async def query(
        self,
        transform: QueryTransform,
        include_deleted: bool = False,
    ) -> list[EntityT]:
        if transform is None:
            raise ArgumentNullError("transform")

        self._logger.debug(
            "Getting {EntityName} collection using custom query (IncludeDeleted: {IncludeDeleted})",
            self.entity_name,
            include_deleted,
        )

        result = await self._session.execute(transform(self._base_query(include_deleted)))
        entities = list(result.scalars().all())

        self._logger.info(
            "Retrieved {Count} {EntityName} records using custom query",
            len(entities),
            self.entity_name,
        )
        return entities

    @repository_operation("GetAll")
    async def get_all(self, include_deleted: bool = False) -> list[EntityT]:
        self._logger.debug(
            "Getting all {EntityName} entities (IncludeDeleted: {IncludeDeleted})",
            self.entity_name,
            include_deleted,
        )

        result = await self._session.execute(self._base_query(include_deleted))
        entities = list(result.scalars().all())

        self._logger.info("Retrieved {Count} {EntityName} records", len(entities), self.entity_name)
        return entities

    @repository_operation("Insert", entity_id=_first_arg_id)
    async def insert(self, entity: EntityT) -> EntityT:
        if entity is None:
            raise ArgumentNullError("entity")

        self._logger.info("Inserting new {EntityName} with ID {EntityId}", self.entity_name, entity.id)

        self._session.add(entity)

        self._logger.info(
            "Successfully prepared {EntityName} with ID {EntityId} for insertion",
            self.entity_name,
            entity.id,
        )
        return entity

    @repository_operation("BulkInsert")
    async def insert_many(self, entities: Sequence[EntityT]) -> list[EntityT]:
        if entities is None:
            raise ArgumentNullError("entities")

        entities = list(entities)
        if not entities:
            self._logger.warning("Attempted to insert empty collection of {EntityName}", self.entity_name)
            return []

        if any(entity is None for entity in entities):
            raise ArgumentNullError("entities")

        self._logger.info("Inserting {Count} {EntityName} entities", len(entities), self.entity_name)

        self._session.add_all(entities)

        self._logger.info(
            "Successfully prepared {Count} {EntityName} entities for insertion",
            len(entities),
            self.entity_name,
        )
        return entities

    @repository_operation("Delete", entity_id=_first_arg_id)
    async def delete(self, entity: EntityT, soft: bool = True) -> None:
        if entity is None:
            raise ArgumentNullError("entity")

        await self._delete_entity(entity, soft)

    async def _delete_entity(self, entity: EntityT, soft: bool) -> None:
        self._logger.info(
            "Deleting {EntityName} with ID {EntityId} (SoftDelete: {IsSoftDeleted})",
            self.entity_name,
            entity.id,
            soft,
        )

        if not soft:
            await self._session.delete(entity)
            return

        if entity.is_deleted:
            self._logger.warning(
                "{EntityName} with ID {EntityId} is already marked as deleted",
                self.entity_name,
                entity.id,
            )
            return

        entity.is_deleted = True
        self._session.sync_session.mark_modified(entity)

        self._logger.info(
            "Successfully marked {EntityName} with ID {EntityId} for deletion",
            self.entity_name,
            entity.id,
        )

    @repository_operation("DeleteByPredicate")
    async def delete_where(
        self,
        *criteria: ColumnElement[bool],
        soft: bool = True,
    ) -> None:
        self._logger.info(
            "Searching for {EntityName} to delete using predicate (SoftDelete: {IsSoftDeleted})",
            self.entity_name,
            soft,
        )

        # Deleted rows are included: a hard delete must reach them, and a
        # repeated soft delete should report "already deleted", not "not found"
        entity = await self._single(self._base_query(include_deleted=True).where(*criteria))
        if entity is None:
            self._logger.warning("No {EntityName} found matching the delete predicate", self.entity_name)
            return

        await self._delete_entity(entity, soft)

    @repository_operation("Update", entity_id=_first_arg_id)
    async def update(self, entity: EntityT) -> EntityT:
        if entity is None:
            raise ArgumentNullError("entity")

        self._logger.info("Updating {EntityName} with ID {EntityId}", self.entity_name, entity.id)

        self._session.sync_session.mark_modified(entity)

        self._logger.info(
            "Successfully marked {EntityName} with ID {EntityId} for update",
            self.entity_name,
            entity.id,
        )
        return entity
