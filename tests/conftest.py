"""
Pytest configuration and fixtures for the data API tests.
"""

import logging
import uuid

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from data_api.db import create_session_factory
from data_api.models import Base, User
from data_api.unit_of_work import UnitOfWork
from kernel.infrastructure.correlation import correlation_id_var
from kernel.security.user_context import StaticUserContext


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Caller ID stamped on every entity saved through the fixtures
TEST_USER_ID = uuid.UUID("0190f3c8-7a1e-7b2c-9d4e-5f6a7b8c9d0e")


class LogCapture:
    """
    Structured view over pytest's caplog.

    Usage:
        records = log_capture.records("Deleting {EntityName} with ID {EntityId}")
        assert records[0].properties["EntityName"] == "User"
    """

    def __init__(self, caplog: pytest.LogCaptureFixture):
        self._caplog = caplog

    def records(self, template: str | None = None, level: int | None = None) -> list[logging.LogRecord]:
        found = []
        for record in self._caplog.records:
            if template is not None and getattr(record, "template", None) != template:
                continue
            if level is not None and record.levelno != level:
                continue
            found.append(record)
        return found

    def one(self, template: str) -> logging.LogRecord:
        records = self.records(template)
        assert len(records) == 1, f"expected one {template!r} event, got {len(records)}"
        return records[0]

    def clear(self) -> None:
        self._caplog.clear()


@pytest.fixture
def log_capture(caplog):
    """Capture every log record at DEBUG and above."""
    caplog.set_level(logging.DEBUG)
    return LogCapture(caplog)


@pytest.fixture(autouse=True)
def clear_correlation_id():
    """Start every test without a correlation ID."""
    token = correlation_id_var.set(None)
    yield
    correlation_id_var.reset(token)


@pytest_asyncio.fixture
async def engine():
    """
    Create a fresh in-memory database for each test.
    StaticPool keeps the single connection alive for the test's lifetime.
    """
    test_engine = create_async_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def user_context():
    return StaticUserContext(TEST_USER_ID)


@pytest_asyncio.fixture
async def db_session(session_factory, user_context):
    """Create an auditing session bound to the test caller."""
    session = session_factory(user_context=user_context)
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture
async def uow(db_session):
    """Unit of work over the test session."""
    unit_of_work = UnitOfWork(db_session)
    try:
        yield unit_of_work
    finally:
        await unit_of_work.close()


def make_user(username: str = "ada", **kwargs) -> User:
    """Build an unsaved User with test defaults."""
    kwargs.setdefault("password", "hashed-password")
    kwargs.setdefault("name", username.title())
    return User(username=username, **kwargs)


@pytest_asyncio.fixture
async def seed_users(uow):
    """Three saved users: ada, grace and alan."""
    users = [make_user("ada"), make_user("grace"), make_user("alan")]
    await uow.users.insert_many(users)
    await uow.save_changes()
    return users
