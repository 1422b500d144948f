"""
Tests for the generic entity repository.
"""

import logging

import pytest

from data_api.models import User
from data_api.repositories import BaseRepository, EntityRepository
from kernel.utils.exceptions import ArgumentNullError, MultipleResultsError, PersistenceError
from tests.conftest import make_user

REPOSITORY_FAILURE = "Repository operation {Operation} failed for {EntityType}"


class TestRepositoryContract:

    @pytest.mark.asyncio
    async def test_base_repository_is_abstract(self, db_session):
        with pytest.raises(TypeError):
            BaseRepository(User, db_session)

    @pytest.mark.asyncio
    async def test_entity_name(self, uow):
        assert uow.users.entity_name == "User"
        assert uow.users.model is User


# =============================================================================
# Reads
# =============================================================================


class TestGet:
    """Tests for single-result reads."""

    @pytest.mark.asyncio
    async def test_get_by_predicate(self, uow, seed_users):
        user = await uow.users.get(User.username == "grace")

        assert user is seed_users[1]

    @pytest.mark.asyncio
    async def test_get_combines_criteria(self, uow, seed_users):
        assert await uow.users.get(User.username == "ada", User.name == "Ada") is not None
        assert await uow.users.get(User.username == "ada", User.name == "Grace") is None

    @pytest.mark.asyncio
    async def test_get_no_match_returns_none(self, uow, seed_users, log_capture):
        assert await uow.users.get(User.username == "nobody") is None
        assert not log_capture.records(REPOSITORY_FAILURE)

    @pytest.mark.asyncio
    async def test_get_multiple_matches_raises_and_logs(self, uow, seed_users, log_capture):
        with pytest.raises(MultipleResultsError):
            await uow.users.get(User.username.in_(["ada", "grace"]))

        record = log_capture.one(REPOSITORY_FAILURE)
        assert record.properties["Operation"] == "GetByPredicate"
        assert record.properties["EntityType"] == "User"
        assert record.properties["Component"] == "Repository"

    @pytest.mark.asyncio
    async def test_get_hides_soft_deleted(self, uow, seed_users):
        ada = seed_users[0]
        await uow.users.delete(ada)
        await uow.save_changes()

        assert await uow.users.get(User.username == "ada") is None
        assert await uow.users.get(User.username == "ada", include_deleted=True) is ada

    @pytest.mark.asyncio
    async def test_get_by_id(self, uow, seed_users, log_capture):
        grace = seed_users[1]

        assert await uow.users.get_by_id(grace.id) is grace

        record = log_capture.records("Successfully retrieved {EntityName} with ID {EntityId}")[0]
        assert record.properties["EntityId"] == grace.id

    @pytest.mark.asyncio
    async def test_get_by_id_soft_deleted(self, uow, seed_users):
        grace = seed_users[1]
        await uow.users.delete(grace)
        await uow.save_changes()

        assert await uow.users.get_by_id(grace.id) is None
        assert await uow.users.get_by_id(grace.id, include_deleted=True) is grace


class TestQuery:
    """Tests for collection reads."""

    @pytest.mark.asyncio
    async def test_get_all(self, uow, seed_users):
        users = await uow.users.get_all()

        assert {u.username for u in users} == {"ada", "grace", "alan"}

    @pytest.mark.asyncio
    async def test_get_all_excludes_deleted_by_default(self, uow, seed_users):
        await uow.users.delete(seed_users[2])
        await uow.save_changes()

        assert {u.username for u in await uow.users.get_all()} == {"ada", "grace"}
        assert len(await uow.users.get_all(include_deleted=True)) == 3

    @pytest.mark.asyncio
    async def test_query_transform(self, uow, seed_users):
        users = await uow.users.query(lambda q: q.order_by(User.username).limit(2))

        assert [u.username for u in users] == ["ada", "alan"]

    @pytest.mark.asyncio
    async def test_query_filter_applied_before_transform(self, uow, seed_users):
        await uow.users.delete(seed_users[0])
        await uow.save_changes()

        users = await uow.users.query(lambda q: q.order_by(User.username))

        assert [u.username for u in users] == ["alan", "grace"]

    @pytest.mark.asyncio
    async def test_query_returns_fresh_list(self, uow, seed_users):
        first = await uow.users.get_all()
        second = await uow.users.get_all()

        assert first == second
        assert first is not second

    @pytest.mark.asyncio
    async def test_query_rejects_none(self, uow):
        with pytest.raises(ArgumentNullError):
            await uow.users.query(None)


# =============================================================================
# Writes
# =============================================================================


class TestInsert:
    """Tests for insert and insert_many."""

    @pytest.mark.asyncio
    async def test_insert_stages_until_commit(self, uow, session_factory):
        user = await uow.users.insert(make_user("ada"))

        assert user in uow.session.new
        async with session_factory() as reader:
            assert await EntityRepository(User, reader).get_all() == []

        assert await uow.save_changes() == 1

    @pytest.mark.asyncio
    async def test_insert_none_not_logged_as_failure(self, uow, log_capture):
        with pytest.raises(ArgumentNullError) as exc_info:
            await uow.users.insert(None)

        assert exc_info.value.param_name == "entity"
        assert not log_capture.records(REPOSITORY_FAILURE)

    @pytest.mark.asyncio
    async def test_insert_many(self, uow):
        users = [make_user("ada"), make_user("grace")]

        result = await uow.users.insert_many(users)

        assert result == users
        assert await uow.save_changes() == 2

    @pytest.mark.asyncio
    async def test_insert_many_empty(self, uow, log_capture):
        result = await uow.users.insert_many([])

        assert result == []
        assert not uow.session.new
        record = log_capture.one("Attempted to insert empty collection of {EntityName}")
        assert record.levelno == logging.WARNING

    @pytest.mark.asyncio
    async def test_insert_many_none(self, uow):
        with pytest.raises(ArgumentNullError):
            await uow.users.insert_many(None)

        with pytest.raises(ArgumentNullError):
            await uow.users.insert_many([make_user("ada"), None])

        assert not uow.session.new


class TestDelete:
    """Tests for soft and hard deletes."""

    @pytest.mark.asyncio
    async def test_soft_delete_keeps_row(self, uow, seed_users):
        ada = seed_users[0]
        created_time = ada.created_time

        await uow.users.delete(ada)
        assert await uow.save_changes() == 1

        assert ada.is_deleted is True
        assert ada.created_time == created_time
        assert len(await uow.users.get_all(include_deleted=True)) == 3

    @pytest.mark.asyncio
    async def test_repeated_soft_delete_is_noop(self, uow, seed_users, log_capture):
        ada = seed_users[0]
        await uow.users.delete(ada)
        await uow.save_changes()
        stamped = ada.updated_time

        await uow.users.delete(ada)

        assert await uow.save_changes() == 0
        assert ada.updated_time == stamped
        record = log_capture.one("{EntityName} with ID {EntityId} is already marked as deleted")
        assert record.levelno == logging.WARNING

    @pytest.mark.asyncio
    async def test_hard_delete_removes_row(self, uow, seed_users):
        await uow.users.delete(seed_users[0], soft=False)
        assert await uow.save_changes() == 1

        remaining = await uow.users.get_all(include_deleted=True)
        assert {u.username for u in remaining} == {"grace", "alan"}

    @pytest.mark.asyncio
    async def test_delete_none(self, uow):
        with pytest.raises(ArgumentNullError):
            await uow.users.delete(None)

    @pytest.mark.asyncio
    async def test_delete_logs_soft_flag(self, uow, seed_users, log_capture):
        await uow.users.delete(seed_users[0], soft=False)

        record = log_capture.one("Deleting {EntityName} with ID {EntityId} (SoftDelete: {IsSoftDeleted})")
        assert record.properties["IsSoftDeleted"] is False
        assert record.properties["EntityId"] == seed_users[0].id


class TestDeleteWhere:
    """Tests for predicate deletes."""

    @pytest.mark.asyncio
    async def test_soft_delete_where(self, uow, seed_users):
        await uow.users.delete_where(User.username == "grace")
        await uow.save_changes()

        assert seed_users[1].is_deleted is True

    @pytest.mark.asyncio
    async def test_hard_delete_where_reaches_soft_deleted_row(self, uow, seed_users):
        await uow.users.delete_where(User.username == "grace")
        await uow.save_changes()

        await uow.users.delete_where(User.username == "grace", soft=False)
        await uow.save_changes()

        assert await uow.users.get(User.username == "grace", include_deleted=True) is None

    @pytest.mark.asyncio
    async def test_delete_where_no_match(self, uow, seed_users, log_capture):
        await uow.users.delete_where(User.username == "nobody")

        assert await uow.save_changes() == 0
        log_capture.one("No {EntityName} found matching the delete predicate")

    @pytest.mark.asyncio
    async def test_delete_where_multiple_matches(self, uow, seed_users):
        with pytest.raises(MultipleResultsError):
            await uow.users.delete_where(User.username.in_(["ada", "grace"]))

        assert not any(u.is_deleted for u in seed_users)


class TestUpdate:
    """Tests for full-entity updates."""

    @pytest.mark.asyncio
    async def test_update_changed_entity(self, uow, seed_users):
        alan = seed_users[2]
        created = (alan.created_by, alan.created_time)
        previous = alan.updated_time

        alan.name = "Alan Turing"
        await uow.users.update(alan)
        assert await uow.save_changes() == 1

        assert (alan.created_by, alan.created_time) == created
        assert alan.updated_time >= previous
        stored = await uow.users.get_by_id(alan.id)
        assert stored.name == "Alan Turing"

    @pytest.mark.asyncio
    async def test_update_unchanged_entity_is_staged(self, uow, seed_users):
        await uow.users.update(seed_users[0])

        assert await uow.save_changes() == 1

    @pytest.mark.asyncio
    async def test_update_none(self, uow):
        with pytest.raises(ArgumentNullError):
            await uow.users.update(None)

    @pytest.mark.asyncio
    async def test_update_never_inserted_entity_rejected(self, uow, log_capture):
        stranger = make_user("stranger")

        with pytest.raises(PersistenceError):
            await uow.users.update(stranger)

        record = log_capture.one(REPOSITORY_FAILURE)
        assert record.properties["Operation"] == "Update"
        assert record.properties["EntityId"] == stranger.id
        assert await uow.save_changes() == 0
        assert await uow.users.get(User.username == "stranger") is None

    @pytest.mark.asyncio
    async def test_update_detached_entity(self, uow, session_factory, seed_users):
        async with session_factory() as other:
            detached = await other.get(User, seed_users[0].id)
        uow.session.expunge_all()

        detached.name = "Countess of Lovelace"
        await uow.users.update(detached)

        assert await uow.save_changes() == 1
        stored = await uow.users.get_by_id(detached.id)
        assert stored.name == "Countess of Lovelace"
