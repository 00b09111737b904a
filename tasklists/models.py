"""
Pydantic models for tasklists.

Defines the data structures returned by the command layer for lists and
tasks. Instances are built from the ORM rows in tasklists.database.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TaskList(BaseModel):
    """
    A user's task list (e.g., Inbox, Work).

    ``position`` orders the list among the same user's lists.
    """

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "user_id": "user-1",
                "name": "Inbox",
                "slug": "inbox",
                "position": 0,
            }
        },
    )

    id: int = Field(..., description="Store-assigned list identifier")
    user_id: str = Field(..., description="Owning user")
    name: str = Field(..., min_length=1, description="List name")
    slug: str = Field(..., description="URL-friendly list name")
    position: int = Field(default=0, ge=0, description="Order among the user's lists")


class Task(BaseModel):
    """
    A single task inside a list.

    ``position`` orders the task among the tasks of its list.
    ``recurring_config`` is stored and returned as-is.
    """

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "user_id": "user-1",
                "list_id": 1,
                "title": "Buy groceries",
                "description": "Milk, bread, eggs, coffee",
                "due_date": None,
                "recurring_config": None,
                "completed": False,
                "starred": True,
                "position": 0,
            }
        },
    )

    id: int = Field(..., description="Store-assigned task identifier")
    user_id: str = Field(..., description="Owning user")
    list_id: int = Field(..., description="ID of the list this task belongs to")
    title: str = Field(..., min_length=1, description="Task title")
    description: Optional[str] = Field(default=None, description="Optional task description")
    due_date: Optional[datetime] = Field(default=None, description="Optional due date")
    recurring_config: Optional[Any] = Field(default=None, description="Recurrence rule, any JSON value")
    completed: bool = Field(default=False, description="Whether the task is completed")
    starred: bool = Field(default=False, description="Whether the task is starred")
    position: int = Field(default=0, ge=0, description="Order within the list")
