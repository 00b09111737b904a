"""
Error taxonomy shared by the ordering services and the command layer.

Every error carries a stable ``code`` so callers can map it onto whatever
response protocol sits in front of the command layer.
"""

from typing import Any, Dict, List, Optional


class TaskListsError(Exception):
    """Base exception for tasklists errors."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Render the error as a response body."""
        return {"error": self.message, "code": self.code}


class Unauthenticated(TaskListsError):
    """Raised when a command arrives without a resolvable caller identity."""

    code = "unauthenticated"

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class InvalidArgument(TaskListsError):
    """
    Raised for structurally invalid input.

    For reorder batches ``missing`` lists the ids that do not exist or are not
    owned by the caller, and ``omitted`` lists scope members left out of a
    strict reorder. ``duplicates`` lists ids submitted more than once.
    """

    code = "invalid_argument"

    def __init__(
        self,
        message: str,
        missing: Optional[List[int]] = None,
        omitted: Optional[List[int]] = None,
        duplicates: Optional[List[int]] = None,
    ) -> None:
        super().__init__(message)
        self.missing = missing or []
        self.omitted = omitted or []
        self.duplicates = duplicates or []

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.missing:
            body["missing"] = self.missing
        if self.omitted:
            body["omitted"] = self.omitted
        if self.duplicates:
            body["duplicates"] = self.duplicates
        return body


class NotFound(TaskListsError):
    """Raised when an id does not exist or is not owned by the caller."""

    code = "not_found"


class TransactionFailure(TaskListsError):
    """Raised when the store could not apply an atomic unit."""

    code = "transaction_failure"
