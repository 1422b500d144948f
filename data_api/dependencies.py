"""
FastAPI dependencies for data access.
"""

from collections.abc import AsyncGenerator

from data_api.db import get_session_factory
from data_api.unit_of_work import UnitOfWork
from kernel.security.user_context import ClaimsUserContext


async def get_unit_of_work() -> AsyncGenerator[UnitOfWork, None]:
    """
    FastAPI dependency for a request-scoped unit of work.

    Usage:
        @app.post("/users")
        async def create_user(body: UserIn, uow: UnitOfWork = Depends(get_unit_of_work)):
            await uow.users.insert(User(**body.model_dump()))
            await uow.save_changes()

    Audit fields are stamped with the caller resolved from the request's
    claims. The session is closed after the request completes.
    """
    session = get_session_factory()(user_context=ClaimsUserContext())
    uow = UnitOfWork(session)
    try:
        yield uow
    finally:
        await uow.close()
