"""Database helpers for inspecting stored ordering state."""

from typing import Dict, List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tasklists.database import DatabaseManager, TaskListORM, TaskORM


async def get_positions(session: AsyncSession, model, **filters) -> Dict[int, int]:
    """
    Map id -> position for rows of ``model`` matching ``filters``.

    Args:
        session: Session to read through
        model: TaskListORM or TaskORM
        **filters: Column equality filters, e.g. list_id=1

    Returns:
        Dictionary of row id to position
    """
    query = select(model.id, model.position)
    for column, value in filters.items():
        query = query.where(getattr(model, column) == value)
    result = await session.execute(query)
    return {row.id: row.position for row in result.all()}


async def get_task_rows(session: AsyncSession, **filters) -> List[TaskORM]:
    """Tasks matching ``filters`` ordered by position, then id."""
    query = select(TaskORM)
    for column, value in filters.items():
        query = query.where(getattr(TaskORM, column) == value)
    result = await session.execute(query.order_by(TaskORM.position, TaskORM.id))
    return list(result.scalars().all())


async def snapshot_positions(
    db_manager: DatabaseManager,
) -> Tuple[Dict[int, Tuple[str, int]], Dict[int, Tuple[int, int]]]:
    """
    Read every list and task placement through a fresh session.

    Returns:
        ({list_id: (user_id, position)}, {task_id: (list_id, position)})
    """
    async with db_manager.get_session() as session:
        lists = await session.execute(
            select(TaskListORM.id, TaskListORM.user_id, TaskListORM.position)
        )
        tasks = await session.execute(
            select(TaskORM.id, TaskORM.list_id, TaskORM.position)
        )
        return (
            {row.id: (row.user_id, row.position) for row in lists.all()},
            {row.id: (row.list_id, row.position) for row in tasks.all()},
        )
