"""
Task service for tasklists.

Implements task creation, reading, partial updates with cross-list moves,
deletion and ordering. Tasks are ordered per list; ownership is checked
against the caller's user id on every operation.
"""

from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasklists.database import TaskListORM, TaskORM
from tasklists.logging_config import get_logger
from tasklists.models import Task
from tasklists.services.errors import InvalidArgument, NotFound
from tasklists.services.ordering import OrderedCollection

logger = get_logger(__name__)

# Fields a partial update may touch. ``list_id`` moves the task.
PATCHABLE_FIELDS = (
    "title",
    "description",
    "due_date",
    "recurring_config",
    "completed",
    "starred",
    "list_id",
)


class TaskService:
    """
    Service layer for task operations.

    Handles CRUD and ordering for tasks with database persistence.
    """

    def __init__(self, session: AsyncSession, strict_reorder: bool = False) -> None:
        """
        Initialize task service with database session.

        Args:
            session: Active async database session
            strict_reorder: Require reorders to name every task of the target list
        """
        self.session = session
        self.tasks = OrderedCollection(
            session,
            TaskORM,
            scope_column="list_id",
            label="Task",
            strict_reorder=strict_reorder,
        )

    # ==============================================================================
    # HELPERS
    # ==============================================================================

    @staticmethod
    def _orm_to_pydantic(task_orm: TaskORM) -> Task:
        return Task.model_validate(task_orm)

    async def _verify_list_owned(self, user_id: str, list_id: int) -> TaskListORM:
        """
        Verify that a list exists and belongs to the user.

        Raises:
            NotFound: If the list does not exist or belongs to another user
        """
        result = await self.session.execute(
            select(TaskListORM).where(
                TaskListORM.id == list_id,
                TaskListORM.user_id == user_id,
            )
        )
        list_orm = result.scalar_one_or_none()
        if list_orm is None:
            logger.warning(f"List {list_id} not found for user {user_id}")
            raise NotFound("List not found")
        return list_orm

    # ==============================================================================
    # READ OPERATIONS
    # ==============================================================================

    async def get_tasks(self, user_id: str, list_id: Optional[int] = None) -> List[Task]:
        """
        Get the user's tasks, optionally only those of one list.

        Args:
            user_id: Owner of the tasks
            list_id: Restrict to this list when given

        Returns:
            Tasks ordered by list, position, then id
        """
        query = select(TaskORM).where(TaskORM.user_id == user_id)
        if list_id is not None:
            query = query.where(TaskORM.list_id == list_id)
        query = query.order_by(TaskORM.list_id, TaskORM.position, TaskORM.id)

        result = await self.session.execute(query)
        return [self._orm_to_pydantic(row) for row in result.scalars().all()]

    async def get_task(self, user_id: str, task_id: int) -> Task:
        """
        Get one task owned by the user.

        Raises:
            NotFound: If the task does not exist or belongs to another user
        """
        task_orm = await self.tasks.get_owned(user_id, task_id)
        return self._orm_to_pydantic(task_orm)

    # ==============================================================================
    # CREATE OPERATIONS
    # ==============================================================================

    async def create_task(
        self,
        user_id: str,
        list_id: int,
        title: str,
        description: Optional[str] = None,
        due_date: Optional[datetime] = None,
        recurring_config: Optional[Any] = None,
        starred: bool = False,
    ) -> Task:
        """
        Create a new task at the end of a list.

        Args:
            user_id: Owner of the task
            list_id: List receiving the task
            title: Task title
            description: Optional description
            due_date: Optional due date
            recurring_config: Optional recurrence rule, stored as-is
            starred: Whether the task starts starred

        Returns:
            Created Task instance

        Raises:
            NotFound: If the list does not exist or belongs to another user
        """
        logger.debug(f"Creating task: title='{title}', list_id={list_id}, user={user_id}")

        await self._verify_list_owned(user_id, list_id)

        task_orm = await self.tasks.append(
            user_id,
            list_id,
            title=title,
            description=description,
            due_date=due_date,
            recurring_config=recurring_config or None,
            completed=False,
            starred=bool(starred),
        )

        logger.info(
            f"Created task: id={task_orm.id}, title='{title}', "
            f"list_id={list_id}, position={task_orm.position}"
        )
        return self._orm_to_pydantic(task_orm)

    # ==============================================================================
    # UPDATE OPERATIONS
    # ==============================================================================

    async def update_task(
        self,
        user_id: str,
        task_id: int,
        changes: Mapping[str, Any],
    ) -> Task:
        """
        Apply a partial update to a task.

        Only the keys present in ``changes`` are written. A new ``list_id``
        moves the task to that list but keeps its position value; neither
        list is renumbered.

        Args:
            user_id: Caller
            task_id: Task to update
            changes: Field values keyed by name, see PATCHABLE_FIELDS

        Returns:
            Updated Task instance

        Raises:
            InvalidArgument: If an unknown field is supplied
            NotFound: If the task, or the list it moves to, is not the caller's
        """
        unknown = sorted(set(changes) - set(PATCHABLE_FIELDS))
        if unknown:
            raise InvalidArgument(f"Unknown task fields: {unknown}")

        logger.debug(f"Updating task {task_id}: fields={sorted(changes)}")

        task_orm = await self.tasks.get_owned(user_id, task_id)

        new_list_id = changes.get("list_id")
        if new_list_id is not None and new_list_id != task_orm.list_id:
            await self._verify_list_owned(user_id, new_list_id)
            logger.info(
                f"Moving task {task_id} from list {task_orm.list_id} to {new_list_id} "
                f"(position {task_orm.position} kept)"
            )

        for field, value in changes.items():
            setattr(task_orm, field, value)
        await self.session.flush()

        logger.info(f"Updated task: id={task_id}, title='{task_orm.title}'")
        return self._orm_to_pydantic(task_orm)

    async def reorder_tasks(
        self,
        user_id: str,
        list_id: int,
        task_order: Sequence[int],
    ) -> List[Task]:
        """
        Move the given tasks into a list and order them as submitted.

        Tasks may come from any of the caller's lists; each ends up with
        ``list_id`` set to the target and ``position`` set to its index.

        Args:
            user_id: Caller
            list_id: Target list
            task_order: Task ids in their new order

        Returns:
            The reordered tasks, in submitted order

        Raises:
            NotFound: If the target list is not the caller's
            InvalidArgument: If any task id is unknown or owned by someone else
        """
        await self._verify_list_owned(user_id, list_id)

        rows = await self.tasks.full_reorder(
            user_id,
            task_order,
            scope_value=list_id,
            assign_scope=True,
        )

        logger.info(f"Reordered {len(rows)} tasks into list {list_id} for user {user_id}")
        return [self._orm_to_pydantic(row) for row in rows]

    # ==============================================================================
    # DELETE OPERATIONS
    # ==============================================================================

    async def delete_task(self, user_id: str, task_id: int) -> None:
        """
        Delete a single task. Remaining tasks keep their positions.

        Raises:
            NotFound: If the task does not exist or belongs to another user
        """
        logger.debug(f"Deleting task {task_id} for user {user_id}")
        await self.tasks.delete(user_id, task_id)
        logger.info(f"Deleted task: id={task_id}")

    async def delete_completed_tasks(self, user_id: str, list_id: int) -> int:
        """
        Delete every completed task of a list in one statement.

        Args:
            user_id: Caller
            list_id: List to clear

        Returns:
            Number of tasks deleted

        Raises:
            NotFound: If the list is not the caller's
        """
        await self._verify_list_owned(user_id, list_id)

        result = await self.session.execute(
            delete(TaskORM).where(
                TaskORM.list_id == list_id,
                TaskORM.user_id == user_id,
                TaskORM.completed == True,  # noqa: E712
            )
        )
        await self.session.flush()

        deleted_count = result.rowcount
        logger.info(f"Deleted {deleted_count} completed tasks from list {list_id}")
        return deleted_count
