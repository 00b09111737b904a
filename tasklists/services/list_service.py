"""
List service for tasklists.

Provides CRUD and ordering operations for a user's task lists, including
cascade deletion of a list together with its tasks.
"""

import re
from typing import List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasklists.database import TaskListORM, TaskORM
from tasklists.logging_config import get_logger
from tasklists.models import TaskList
from tasklists.services.ordering import OrderedCollection

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")


def default_slug(name: str) -> str:
    """Derive a slug from a list name: lower-cased, whitespace runs become '-'."""
    return _WHITESPACE.sub("-", name.lower())


class ListService:
    """
    Service layer for task list management.

    Lists are ordered per user; every operation is scoped to the caller's
    user id.
    """

    def __init__(self, session: AsyncSession, strict_reorder: bool = False) -> None:
        """
        Initialize the list service.

        Args:
            session: Active database session for operations
            strict_reorder: Require reorders to name every list of the user
        """
        self.session = session
        self.lists = OrderedCollection(
            session,
            TaskListORM,
            scope_column=None,
            label="List",
            strict_reorder=strict_reorder,
        )

    @staticmethod
    def _orm_to_pydantic(list_orm: TaskListORM) -> TaskList:
        return TaskList.model_validate(list_orm)

    async def get_lists(self, user_id: str) -> List[TaskList]:
        """
        Retrieve all lists of a user in display order.

        Args:
            user_id: Owner of the lists

        Returns:
            Lists ordered by position, then id
        """
        result = await self.session.execute(
            select(TaskListORM)
            .where(TaskListORM.user_id == user_id)
            .order_by(TaskListORM.position, TaskListORM.id)
        )
        return [self._orm_to_pydantic(row) for row in result.scalars().all()]

    async def get_list(self, user_id: str, list_id: int) -> TaskList:
        """
        Retrieve one list owned by the user.

        Raises:
            NotFound: If the list does not exist or belongs to another user
        """
        list_orm = await self.lists.get_owned(user_id, list_id)
        return self._orm_to_pydantic(list_orm)

    async def create_list(
        self,
        user_id: str,
        name: str,
        slug: Optional[str] = None,
    ) -> TaskList:
        """
        Create a new list at the end of the user's lists.

        Args:
            user_id: Owner of the new list
            name: Name of the list
            slug: Optional slug, derived from the name when omitted

        Returns:
            Created TaskList model
        """
        logger.debug(f"Creating list for user {user_id}: name='{name}'")

        list_orm = await self.lists.append(
            user_id,
            name=name,
            slug=slug if slug else default_slug(name),
        )

        logger.info(
            f"Created list: id={list_orm.id}, name='{name}', position={list_orm.position}"
        )
        return self._orm_to_pydantic(list_orm)

    async def update_list(
        self,
        user_id: str,
        list_id: int,
        name: Optional[str] = None,
        slug: Optional[str] = None,
    ) -> TaskList:
        """
        Rename a list. Position is never changed here.

        Args:
            user_id: Caller
            list_id: List to update
            name: New name, kept when None
            slug: New slug, kept when None

        Returns:
            Updated TaskList model

        Raises:
            NotFound: If the list does not exist or belongs to another user
        """
        logger.debug(f"Updating list {list_id}: name={name!r}, slug={slug!r}")

        list_orm = await self.lists.get_owned(user_id, list_id)
        old_name = list_orm.name
        if name is not None:
            list_orm.name = name
        if slug is not None:
            list_orm.slug = slug
        await self.session.flush()

        logger.info(f"Updated list: id={list_id}, '{old_name}' -> '{list_orm.name}'")
        return self._orm_to_pydantic(list_orm)

    async def delete_list(self, user_id: str, list_id: int) -> int:
        """
        Delete a list and all of its tasks.

        Both deletes run in the caller's session, so they commit or roll back
        together.

        Args:
            user_id: Caller
            list_id: List to delete

        Returns:
            Number of tasks removed with the list

        Raises:
            NotFound: If the list does not exist or belongs to another user
        """
        logger.debug(f"Deleting list {list_id} for user {user_id}")

        list_orm = await self.lists.get_owned(user_id, list_id)

        # Tasks must match both the list and the caller.
        result = await self.session.execute(
            delete(TaskORM).where(
                TaskORM.list_id == list_id,
                TaskORM.user_id == user_id,
            )
        )
        task_count = result.rowcount

        list_name = list_orm.name
        await self.session.delete(list_orm)
        await self.session.flush()

        logger.info(f"Deleted list: id={list_id}, name='{list_name}', tasks={task_count}")
        return task_count

    async def reorder_lists(self, user_id: str, list_order: Sequence[int]) -> List[TaskList]:
        """
        Apply a full ordering of the user's lists.

        Args:
            user_id: Caller
            list_order: List ids in their new order

        Returns:
            The reordered lists, in submitted order

        Raises:
            InvalidArgument: If any id is unknown or owned by someone else
        """
        rows = await self.lists.full_reorder(user_id, list_order)
        logger.info(f"Reordered {len(rows)} lists for user {user_id}")
        return [self._orm_to_pydantic(row) for row in rows]
