"""
Pytest configuration and fixtures for tasklists tests.

Provides database fixtures, service/command factories and a small seeded
data set shared by the service tests.
"""

import pytest
import pytest_asyncio

from tasklists.commands import TaskCommands
from tasklists.database import DatabaseManager, TaskListORM, TaskORM


USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest_asyncio.fixture
async def db_manager():
    """
    Create an in-memory SQLite database for testing.

    Yields:
        DatabaseManager instance with in-memory database
    """
    manager = DatabaseManager("sqlite+aiosqlite:///:memory:")
    await manager.initialize()

    yield manager

    await manager.close()


@pytest_asyncio.fixture
async def db_session(db_manager):
    """
    Provide a database session for tests.

    Yields:
        AsyncSession for database operations
    """
    async with db_manager.get_session() as session:
        yield session


@pytest.fixture
def commands(db_manager):
    """Command surface bound to the test database."""
    return TaskCommands(db_manager)


@pytest.fixture
def user_id():
    return USER_ID


@pytest.fixture
def other_user_id():
    return OTHER_USER_ID


@pytest_asyncio.fixture
async def sample_list(db_session):
    """
    Create a list owned by USER_ID at position 0.

    Returns:
        TaskListORM instance
    """
    task_list = TaskListORM(user_id=USER_ID, name="Inbox", slug="inbox", position=0)
    db_session.add(task_list)
    await db_session.flush()
    return task_list


@pytest_asyncio.fixture
async def sample_tasks(db_session, sample_list):
    """
    Create three tasks t1, t2, t3 at positions 0, 1, 2 in sample_list.

    Returns:
        List of TaskORM instances in position order
    """
    tasks = [
        TaskORM(
            user_id=USER_ID,
            list_id=sample_list.id,
            title=f"t{index + 1}",
            description=f"Task number {index + 1}",
            completed=False,
            starred=False,
            position=index,
        )
        for index in range(3)
    ]
    db_session.add_all(tasks)
    await db_session.flush()
    return tasks


@pytest_asyncio.fixture
async def foreign_list(db_session):
    """
    Create a list owned by OTHER_USER_ID with one task.

    Returns:
        Tuple of (TaskListORM, TaskORM)
    """
    task_list = TaskListORM(user_id=OTHER_USER_ID, name="Private", slug="private", position=0)
    db_session.add(task_list)
    await db_session.flush()

    task = TaskORM(
        user_id=OTHER_USER_ID,
        list_id=task_list.id,
        title="Not yours",
        completed=False,
        starred=False,
        position=0,
    )
    db_session.add(task)
    await db_session.flush()
    return task_list, task

