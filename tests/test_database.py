"""
Tests for the database layer.

Tests cover database initialization, ORM models, and the commit/rollback
boundary provided by DatabaseManager.get_session().
"""

import pytest
from sqlalchemy import select

from tasklists.database import DatabaseManager, TaskListORM, TaskORM, init_database
from tasklists.services.errors import NotFound, TransactionFailure
from tasklists.services.list_service import ListService


class TestDatabaseManager:
    """Tests for DatabaseManager class."""

    @pytest.mark.asyncio
    async def test_initialize_creates_tables(self, db_manager):
        async with db_manager.get_session() as session:
            result = await session.execute(select(TaskListORM))
            assert result.scalars().all() == []

            result = await session.execute(select(TaskORM))
            assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_get_session_auto_commit(self, db_manager):
        """Test that session auto-commits on successful exit."""
        async with db_manager.get_session() as session:
            session.add(TaskListORM(user_id="u", name="Inbox", slug="inbox", position=0))

        async with db_manager.get_session() as session:
            result = await session.execute(select(TaskListORM.name))
            assert result.scalars().all() == ["Inbox"]

    @pytest.mark.asyncio
    async def test_get_session_auto_rollback_on_error(self, db_manager):
        """Test that session auto-rolls back on exception."""
        with pytest.raises(ValueError):
            async with db_manager.get_session() as session:
                session.add(TaskListORM(user_id="u", name="Inbox", slug="inbox", position=0))
                await session.flush()
                raise ValueError("Simulated error")

        async with db_manager.get_session() as session:
            result = await session.execute(select(TaskListORM))
            assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_domain_error_rolls_back_and_propagates(self, db_manager):
        """Errors raised by services roll back work already flushed in the session."""
        with pytest.raises(NotFound):
            async with db_manager.get_session() as session:
                service = ListService(session)
                await service.create_list("u", "Inbox")
                await service.get_list("u", 999)

        async with db_manager.get_session() as session:
            assert await ListService(session).get_lists("u") == []

    @pytest.mark.asyncio
    async def test_store_failure_becomes_transaction_failure(self, db_manager):
        """A failed commit rolls back every change made in the session."""
        async with db_manager.get_session() as session:
            service = ListService(session)
            a = await service.create_list("u", "A")
            b = await service.create_list("u", "B")

        with pytest.raises(TransactionFailure):
            async with db_manager.get_session() as session:
                await ListService(session).reorder_lists("u", [b.id, a.id])
                # name is NOT NULL, so the unit fails after the reorder was flushed
                session.add(TaskListORM(user_id="u", name=None, slug="broken", position=2))

        async with db_manager.get_session() as session:
            lists = await ListService(session).get_lists("u")
            assert [(lst.id, lst.position) for lst in lists] == [(a.id, 0), (b.id, 1)]

    @pytest.mark.asyncio
    async def test_close_disposes_engine(self):
        manager = DatabaseManager("sqlite+aiosqlite:///:memory:")
        await manager.initialize()
        assert manager.engine is not None

        await manager.close()

        assert manager.engine is None
        assert manager.session_maker is None

    @pytest.mark.asyncio
    async def test_get_session_raises_when_not_initialized(self):
        manager = DatabaseManager("sqlite+aiosqlite:///:memory:")

        with pytest.raises(RuntimeError, match="not initialized"):
            async with manager.get_session():
                pass

    @pytest.mark.asyncio
    async def test_init_database_helper(self):
        manager = await init_database("sqlite+aiosqlite:///:memory:")
        try:
            assert manager.session_maker is not None
        finally:
            await manager.close()


class TestOrmModels:
    """Tests for the ORM column defaults and nullability."""

    @pytest.mark.asyncio
    async def test_task_defaults(self, db_session, sample_list):
        task = TaskORM(user_id="user-1", list_id=sample_list.id, title="Defaults")
        db_session.add(task)
        await db_session.flush()

        assert task.completed is False
        assert task.starred is False
        assert task.position == 0
        assert task.description is None
        assert task.recurring_config is None

    @pytest.mark.asyncio
    async def test_recurring_config_round_trips_json(self, db_manager):
        rule = {"frequency": "daily", "until": "2025-12-31", "skip": [0, 6]}
        async with db_manager.get_session() as session:
            task_list = TaskListORM(user_id="u", name="L", slug="l", position=0)
            session.add(task_list)
            await session.flush()
            session.add(TaskORM(user_id="u", list_id=task_list.id, title="R", recurring_config=rule))

        async with db_manager.get_session() as session:
            result = await session.execute(select(TaskORM.recurring_config))
            assert result.scalar_one() == rule
