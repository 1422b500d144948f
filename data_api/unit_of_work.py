"""
Unit of work over one AuditingSession.

Repositories only stage changes; `save_changes()` commits everything staged
through any repository of the same unit of work in a single transaction.

Usage:
    async with UnitOfWork(session_factory(user_context=user_context)) as uow:
        await uow.users.insert(User(username="ada", password=hashed))
        saved = await uow.save_changes()
"""

from __future__ import annotations

import asyncio
import time
from datetime import timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from data_api.models import BaseEntity, User
from data_api.repositories import EntityRepository
from kernel.config.logging import StructuredLogger, get_logger
from kernel.infrastructure.exception_logging import log_repository_exception
from kernel.infrastructure.performance import (
    PerformanceLogger,
    log_repository_metrics,
    performance_logger as default_performance_logger,
    track_database_operation,
)
from kernel.utils.exceptions import ArgumentNullError

SAVE_CHANGES = "SaveChanges"
UNIT_OF_WORK = "UnitOfWork"


class UnitOfWork:
    """
    Single commit boundary for a request.

    Not safe for concurrent use: one caller at a time per instance. Each
    request gets its own session and therefore its own unit of work.
    """

    def __init__(
        self,
        session: AsyncSession,
        logger: StructuredLogger | None = None,
        performance_logger: PerformanceLogger | None = None,
    ):
        if session is None:
            raise ArgumentNullError("session")

        self._session = session
        self._logger = logger or get_logger(__name__)
        self._performance_logger = performance_logger or default_performance_logger
        self._repositories: dict[type, EntityRepository[Any]] = {}
        self._closed = False

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def closed(self) -> bool:
        return self._closed

    def repository(self, model: type[BaseEntity]) -> EntityRepository[Any]:
        """Repository for `model`, bound to this unit of work's session."""
        repository = self._repositories.get(model)
        if repository is None:
            repository = self._repositories[model] = EntityRepository(model, self._session)
        return repository

    @property
    def users(self) -> EntityRepository[User]:
        return self.repository(User)

    async def save_changes(self) -> int:
        """
        Commit all staged changes atomically.

        Returns:
            Number of entities inserted, updated or deleted by the commit.

        Raises:
            Whatever the commit raised, after rolling the session back.
        """
        with track_database_operation(self._performance_logger, SAVE_CHANGES, UNIT_OF_WORK):
            started = time.perf_counter()
            try:
                await self._session.commit()
            except asyncio.CancelledError:
                await self._session.rollback()
                raise
            except Exception as exc:
                await self._session.rollback()
                log_repository_exception(self._logger, exc, SAVE_CHANGES, UNIT_OF_WORK)
                raise

            duration = timedelta(seconds=time.perf_counter() - started)
            changes = self._session.sync_session.last_commit_count

            if changes == 0:
                self._logger.debug("No changes to save")
            else:
                log_repository_metrics(self._logger, SAVE_CHANGES, UNIT_OF_WORK, changes, duration)
                self._logger.info("Successfully saved {ChangeCount} changes to database", changes)

            return changes

    async def close(self) -> None:
        """Release the session. Calling it again does nothing."""
        if self._closed:
            return
        self._closed = True
        self._logger.debug("Disposing UnitOfWork and session")
        self._repositories.clear()
        await self._session.close()

    async def __aenter__(self) -> UnitOfWork:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
