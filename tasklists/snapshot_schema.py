"""
Pydantic models for the bootstrap snapshot.

A snapshot carries every list and task of one user so a client can render
its whole state from a single response.
"""

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from tasklists.models import Task, TaskList


SNAPSHOT_VERSION = "2.0.0"


class SnapshotMeta(BaseModel):
    """Snapshot metadata."""

    version: str = Field(default=SNAPSHOT_VERSION, description="Snapshot format version")
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Time the snapshot was taken",
    )


class BootstrapSnapshot(BaseModel):
    """
    Full state of one user.

    Lists are in display order; tasks are grouped by list and ordered by
    position within each list.
    """

    meta: SnapshotMeta = Field(default_factory=SnapshotMeta)
    lists: List[TaskList] = Field(default_factory=list, description="All lists of the user")
    tasks: List[Task] = Field(default_factory=list, description="All tasks of the user")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "meta": {"version": "2.0.0", "updated_at": "2025-11-26T18:00:00Z"},
                "lists": [],
                "tasks": [],
            }
        }
    )
