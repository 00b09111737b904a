"""
Caller-facing command layer for tasklists.

Each command takes the caller's user id (already authenticated upstream)
plus a raw payload, validates the payload into a typed command model, and
runs the matching service call inside one database session. The session is
the atomic unit: it commits when the command succeeds and rolls back when
it raises.

Payload keys are accepted in snake_case or camelCase.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from tasklists.database import DatabaseManager
from tasklists.logging_config import get_logger
from tasklists.models import Task, TaskList
from tasklists.services.errors import InvalidArgument, Unauthenticated
from tasklists.services.list_service import ListService
from tasklists.services.task_service import TaskService
from tasklists.snapshot_schema import BootstrapSnapshot

logger = get_logger(__name__)

CommandT = TypeVar("CommandT", bound="Command")


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ==============================================================================
# COMMAND MODELS
# ==============================================================================


class Command(BaseModel):
    """Base class for command payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class CreateListCommand(Command):
    name: StrictStr = Field(..., min_length=1)
    slug: Optional[str] = None

    @field_validator("slug", mode="before")
    @classmethod
    def ignore_non_string_slug(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None


class UpdateListCommand(Command):
    """Rename a list. Fields that are not strings are left unchanged."""

    name: Optional[str] = Field(default=None, min_length=1)
    slug: Optional[str] = None

    @field_validator("name", "slug", mode="before")
    @classmethod
    def ignore_non_strings(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None


class ListRef(Command):
    list_id: int


class ReorderListsCommand(Command):
    list_order: List[int]


class ListTasksQuery(Command):
    list_id: Optional[int] = None


class TaskRef(Command):
    task_id: int


class CreateTaskCommand(Command):
    list_id: int
    title: StrictStr = Field(..., min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    recurring_config: Optional[Any] = None
    starred: bool = False

    @field_validator("description", mode="before")
    @classmethod
    def ignore_non_string_description(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None

    @field_validator("due_date", "recurring_config", mode="before")
    @classmethod
    def clear_falsy(cls, value: Any) -> Any:
        return value if value else None

    @field_validator("due_date", mode="after")
    @classmethod
    def normalize_due_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(value)

    @field_validator("starred", mode="before")
    @classmethod
    def coerce_flag(cls, value: Any) -> bool:
        return bool(value)


class TaskPatch(Command):
    """
    Partial task update.

    A field left out of the payload is not touched. Nullable fields sent as
    null are cleared. A title that is not a string is ignored. Supplying a
    different ``list_id`` moves the task.
    """

    list_id: Optional[int] = None
    title: Optional[StrictStr] = Field(default=None, min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    recurring_config: Optional[Any] = None
    completed: Optional[bool] = None
    starred: Optional[bool] = None

    @model_validator(mode="before")
    @classmethod
    def reject_position(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and "position" in data:
            raise ValueError("position can only be changed by reordering")
        return data

    @model_validator(mode="before")
    @classmethod
    def drop_non_string_title(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and "title" in data and not isinstance(data["title"], str):
            return {key: value for key, value in data.items() if key != "title"}
        return data

    @field_validator("description", mode="before")
    @classmethod
    def ignore_non_string_description(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None

    @field_validator("due_date", "recurring_config", mode="before")
    @classmethod
    def clear_falsy(cls, value: Any) -> Any:
        return value if value else None

    @field_validator("due_date", mode="after")
    @classmethod
    def normalize_due_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(value)

    @field_validator("completed", "starred", mode="before")
    @classmethod
    def coerce_flag(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("list_id", mode="after")
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("must not be null")
        return value

    def changes(self) -> Dict[str, Any]:
        """Field values that were present in the payload."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class ReorderTasksCommand(Command):
    list_id: int
    task_order: List[int]


# ==============================================================================
# RESULTS
# ==============================================================================


class OkResult(BaseModel):
    ok: bool = True


class DeleteCompletedResult(OkResult):
    deleted_count: int = 0


# ==============================================================================
# COMMAND SURFACE
# ==============================================================================


class TaskCommands:
    """
    Entry point for every caller-facing command.

    The database manager is injected; nothing is kept between commands
    besides it.
    """

    def __init__(self, db_manager: DatabaseManager, strict_reorder: bool = False) -> None:
        """
        Args:
            db_manager: Initialized database manager
            strict_reorder: Require full reorders to name every member of the scope
        """
        self.db_manager = db_manager
        self.strict_reorder = strict_reorder

    @staticmethod
    def _require_user(user_id: Optional[str]) -> str:
        if not isinstance(user_id, str) or not user_id.strip():
            raise Unauthenticated()
        return user_id

    @staticmethod
    def _parse(model: Type[CommandT], data: Mapping[str, Any]) -> CommandT:
        """Validate a payload, turning validation failures into InvalidArgument."""
        if not isinstance(data, Mapping):
            raise InvalidArgument(f"{model.__name__} payload must be an object")
        try:
            return model.model_validate(dict(data))
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'payload'}: {error['msg']}"
                for error in e.errors()
            )
            logger.warning(f"Rejected {model.__name__}: {details}")
            raise InvalidArgument(details) from e

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    async def bootstrap(self, user_id: Optional[str]) -> BootstrapSnapshot:
        """Return every list and task of the caller."""
        user_id = self._require_user(user_id)
        async with self.db_manager.get_session() as session:
            lists = await ListService(session).get_lists(user_id)
            tasks = await TaskService(session).get_tasks(user_id)
        return BootstrapSnapshot(lists=lists, tasks=tasks)

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    async def get_lists(self, user_id: Optional[str]) -> List[TaskList]:
        user_id = self._require_user(user_id)
        async with self.db_manager.get_session() as session:
            return await ListService(session).get_lists(user_id)

    async def get_list(self, user_id: Optional[str], list_id: Any) -> TaskList:
        user_id = self._require_user(user_id)
        command = self._parse(ListRef, {"list_id": list_id})
        async with self.db_manager.get_session() as session:
            return await ListService(session).get_list(user_id, command.list_id)

    async def create_list(self, user_id: Optional[str], payload: Mapping[str, Any]) -> TaskList:
        user_id = self._require_user(user_id)
        command = self._parse(CreateListCommand, payload)
        async with self.db_manager.get_session() as session:
            return await ListService(session).create_list(
                user_id, command.name, slug=command.slug
            )

    async def update_list(
        self,
        user_id: Optional[str],
        list_id: Any,
        payload: Mapping[str, Any],
    ) -> TaskList:
        user_id = self._require_user(user_id)
        ref = self._parse(ListRef, {"list_id": list_id})
        command = self._parse(UpdateListCommand, payload)
        async with self.db_manager.get_session() as session:
            return await ListService(session).update_list(
                user_id, ref.list_id, name=command.name, slug=command.slug
            )

    async def delete_list(self, user_id: Optional[str], list_id: Any) -> OkResult:
        user_id = self._require_user(user_id)
        command = self._parse(ListRef, {"list_id": list_id})
        async with self.db_manager.get_session() as session:
            await ListService(session).delete_list(user_id, command.list_id)
        return OkResult()

    async def reorder_lists(self, user_id: Optional[str], payload: Mapping[str, Any]) -> OkResult:
        user_id = self._require_user(user_id)
        command = self._parse(ReorderListsCommand, payload)
        async with self.db_manager.get_session() as session:
            await ListService(session, strict_reorder=self.strict_reorder).reorder_lists(
                user_id, command.list_order
            )
        return OkResult()

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def get_tasks(
        self,
        user_id: Optional[str],
        payload: Optional[Mapping[str, Any]] = None,
    ) -> List[Task]:
        user_id = self._require_user(user_id)
        query = self._parse(ListTasksQuery, payload or {})
        async with self.db_manager.get_session() as session:
            return await TaskService(session).get_tasks(user_id, list_id=query.list_id)

    async def get_task(self, user_id: Optional[str], task_id: Any) -> Task:
        user_id = self._require_user(user_id)
        command = self._parse(TaskRef, {"task_id": task_id})
        async with self.db_manager.get_session() as session:
            return await TaskService(session).get_task(user_id, command.task_id)

    async def create_task(self, user_id: Optional[str], payload: Mapping[str, Any]) -> Task:
        user_id = self._require_user(user_id)
        command = self._parse(CreateTaskCommand, payload)
        async with self.db_manager.get_session() as session:
            return await TaskService(session).create_task(
                user_id,
                command.list_id,
                command.title,
                description=command.description,
                due_date=command.due_date,
                recurring_config=command.recurring_config,
                starred=command.starred,
            )

    async def update_task(
        self,
        user_id: Optional[str],
        task_id: Any,
        payload: Mapping[str, Any],
    ) -> Task:
        user_id = self._require_user(user_id)
        ref = self._parse(TaskRef, {"task_id": task_id})
        patch = self._parse(TaskPatch, payload)
        async with self.db_manager.get_session() as session:
            return await TaskService(session).update_task(
                user_id, ref.task_id, patch.changes()
            )

    async def delete_task(self, user_id: Optional[str], task_id: Any) -> OkResult:
        user_id = self._require_user(user_id)
        command = self._parse(TaskRef, {"task_id": task_id})
        async with self.db_manager.get_session() as session:
            await TaskService(session).delete_task(user_id, command.task_id)
        return OkResult()

    async def reorder_tasks(self, user_id: Optional[str], payload: Mapping[str, Any]) -> OkResult:
        user_id = self._require_user(user_id)
        command = self._parse(ReorderTasksCommand, payload)
        async with self.db_manager.get_session() as session:
            await TaskService(session, strict_reorder=self.strict_reorder).reorder_tasks(
                user_id, command.list_id, command.task_order
            )
        return OkResult()

    async def delete_completed_tasks(
        self,
        user_id: Optional[str],
        list_id: Any,
    ) -> DeleteCompletedResult:
        user_id = self._require_user(user_id)
        command = self._parse(ListRef, {"list_id": list_id})
        async with self.db_manager.get_session() as session:
            deleted_count = await TaskService(session).delete_completed_tasks(
                user_id, command.list_id
            )
        return DeleteCompletedResult(deleted_count=deleted_count)
