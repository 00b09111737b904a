"""Test helper utilities for tasklists tests.

Read-side helpers that look at stored rows directly, bypassing the
services under test.
"""

from tests.helpers.db_helpers import (
    get_positions,
    get_task_rows,
    snapshot_positions,
)

__all__ = [
    "get_positions",
    "get_task_rows",
    "snapshot_positions",
]
