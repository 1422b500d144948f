"""
Base Repository contract.
Defines the data access operations every entity repository provides.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Callable, Generic, Sequence, TypeVar

from sqlalchemy import ColumnElement, Select
from sqlalchemy.ext.asyncio import AsyncSession

from data_api.models.base import BaseEntity
from kernel.config.logging import StructuredLogger, get_logger


EntityT = TypeVar("EntityT", bound=BaseEntity)

QueryTransform = Callable[[Select], Select]


class BaseRepository(ABC, Generic[EntityT]):
    """
    Abstract repository over one entity kind.

    Reads skip soft-deleted rows unless include_deleted=True. Writes only
    stage changes on the session; nothing reaches the database until the
    unit of work commits.
    """

    def __init__(
        self,
        model: type[EntityT],
        session: AsyncSession,
        logger: StructuredLogger | None = None,
    ):
        self._model = model
        self._session = session
        self._logger = logger or get_logger("data_api.repositories")

    @property
    def model(self) -> type[EntityT]:
        """The SQLAlchemy model class."""
        return self._model

    @property
    def session(self) -> AsyncSession:
        """The database session."""
        return self._session

    @property
    def logger(self) -> StructuredLogger:
        return self._logger

    @property
    def entity_name(self) -> str:
        return self._model.__name__

    @abstractmethod
    async def get(
        self,
        *criteria: ColumnElement[bool],
        include_deleted: bool = False,
    ) -> EntityT | None:
        """
        Get the single entity matching all criteria.

        Returns:
            The entity, or None when nothing matches.

        Raises:
            MultipleResultsError: If more than one entity matches.
        """
        ...

    @abstractmethod
    async def get_by_id(
        self,
        entity_id: uuid.UUID,
        include_deleted: bool = False,
    ) -> EntityT | None:
        """Get an entity by its identifier."""
        ...

    @abstractmethod
    async def query(
        self,
        transform: QueryTransform,
        include_deleted: bool = False,
    ) -> list[EntityT]:
        """
        Run a caller-built query over the entity set.

        `transform` receives the base SELECT (already filtered for soft
        deletes) and returns it with filtering, ordering or paging applied.
        """
        ...

    @abstractmethod
    async def get_all(self, include_deleted: bool = False) -> list[EntityT]:
        """Get all entities."""
        ...

    @abstractmethod
    async def insert(self, entity: EntityT) -> EntityT:
        """Stage a new entity for insertion."""
        ...

    @abstractmethod
    async def insert_many(self, entities: Sequence[EntityT]) -> list[EntityT]:
        """Stage several new entities for insertion."""
        ...

    @abstractmethod
    async def delete(self, entity: EntityT, soft: bool = True) -> None:
        """
        Delete an entity.

        Args:
            entity: The entity to delete.
            soft: Mark as deleted (True) or stage physical removal (False).
        """
        ...

    @abstractmethod
    async def delete_where(
        self,
        *criteria: ColumnElement[bool],
        soft: bool = True,
    ) -> None:
        """Delete the single entity matching all criteria."""
        ...

    @abstractmethod
    async def update(self, entity: EntityT) -> EntityT:
        """Stage a full update of an entity."""
        ...
