"""
Ordered collection manager.

Keeps a zero-based ``position`` sequence over the rows of one ORM model,
grouped by a scope: the owning user for lists, the owning list for tasks.
ListService and TaskService each wrap one instance of OrderedCollection.

Positions are assigned on append and rewritten by a full reorder. Deleting
or moving a single row never renumbers the survivors, so a scope may carry
gaps (or, after a non-exhaustive reorder, duplicates) until the next full
reorder of that scope.
"""

from collections import Counter
from typing import Any, Dict, List, Optional, Sequence, Type, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasklists.database import TaskListORM, TaskORM
from tasklists.logging_config import get_logger
from tasklists.services.errors import InvalidArgument, NotFound

logger = get_logger(__name__)

OrderedModel = Union[Type[TaskListORM], Type[TaskORM]]


class OrderedCollection:
    """
    Position bookkeeping for one ordered model.

    Every row carries ``user_id``; that column is the ownership check for all
    operations. When ``scope_column`` is None the scope is the owner itself.
    """

    def __init__(
        self,
        session: AsyncSession,
        model: OrderedModel,
        scope_column: Optional[str] = None,
        label: str = "Item",
        strict_reorder: bool = False,
    ) -> None:
        """
        Args:
            session: Active database session for operations
            model: ORM model whose rows are ordered
            scope_column: Column grouping the rows, None when scoped by owner
            label: Human readable name used in error messages
            strict_reorder: Reject reorders that leave scope members out
        """
        self.session = session
        self.model = model
        self.scope_column = scope_column
        self.label = label
        self.strict_reorder = strict_reorder

    # ==============================================================================
    # QUERY HELPERS
    # ==============================================================================

    def _owned_by(self, user_id: str):
        return self.model.user_id == user_id

    def _in_scope(self, user_id: str, scope_value: Any = None) -> list:
        """Predicates selecting every row of one scope for one owner."""
        clauses = [self._owned_by(user_id)]
        if self.scope_column is not None:
            clauses.append(getattr(self.model, self.scope_column) == scope_value)
        return clauses

    async def count(self, user_id: str, scope_value: Any = None) -> int:
        """
        Count rows in a scope.

        Args:
            user_id: Owner of the rows
            scope_value: Scope key, ignored when scoped by owner

        Returns:
            Number of rows in the scope
        """
        result = await self.session.execute(
            select(func.count(self.model.id)).where(*self._in_scope(user_id, scope_value))
        )
        return result.scalar_one()

    async def get_owned(self, user_id: str, item_id: int):
        """
        Fetch a row by id, checking that the caller owns it.

        Raises:
            NotFound: If the row does not exist or belongs to another user
        """
        result = await self.session.execute(
            select(self.model).where(self.model.id == item_id, self._owned_by(user_id))
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFound(f"{self.label} not found")
        return row

    # ==============================================================================
    # ORDERING OPERATIONS
    # ==============================================================================

    async def append(self, user_id: str, scope_value: Any = None, **attributes: Any):
        """
        Create a row at the tail of its scope.

        Args:
            user_id: Owner of the new row
            scope_value: Scope key, ignored when scoped by owner
            **attributes: Remaining column values

        Returns:
            The flushed ORM row, with its store-assigned id
        """
        position = await self.count(user_id, scope_value)
        values: Dict[str, Any] = dict(attributes, user_id=user_id, position=position)
        if self.scope_column is not None:
            values[self.scope_column] = scope_value

        row = self.model(**values)
        self.session.add(row)
        await self.session.flush()

        logger.debug(f"Appended {self.label.lower()} {row.id} at position {position}")
        return row

    async def delete(self, user_id: str, item_id: int) -> None:
        """
        Delete one owned row. Survivors keep their positions.

        Raises:
            NotFound: If the row does not exist or belongs to another user
        """
        row = await self.get_owned(user_id, item_id)
        await self.session.delete(row)
        await self.session.flush()
        logger.debug(f"Deleted {self.label.lower()} {item_id} (no renumbering)")

    async def full_reorder(
        self,
        user_id: str,
        ordered_ids: Sequence[int],
        scope_value: Any = None,
        assign_scope: bool = False,
    ) -> List[Any]:
        """
        Rewrite positions so that ``ordered_ids[i]`` ends up at position i.

        Every id is validated before anything is written; a rejected batch
        leaves the scope untouched. With ``assign_scope`` the rows are also
        moved into ``scope_value``, which lets tasks from several lists be
        gathered into one list in the same batch.

        Args:
            user_id: Caller asserting ownership of every id
            ordered_ids: Complete new order for the scope
            scope_value: Scope being reordered
            assign_scope: Also set the scope column of every row

        Returns:
            The reordered ORM rows, in submitted order

        Raises:
            InvalidArgument: If ids repeat, are missing, not owned, or (in
                strict mode) scope members are left out
        """
        ids = list(ordered_ids)

        duplicates = sorted(i for i, seen in Counter(ids).items() if seen > 1)
        if duplicates:
            raise InvalidArgument(
                f"{self.label} order contains duplicate ids",
                duplicates=duplicates,
            )

        rows_by_id: Dict[int, Any] = {}
        if ids:
            result = await self.session.execute(
                select(self.model).where(self.model.id.in_(ids), self._owned_by(user_id))
            )
            rows_by_id = {row.id: row for row in result.scalars().all()}

        missing = [i for i in ids if i not in rows_by_id]
        if missing:
            logger.warning(
                f"{self.label} reorder rejected for user {user_id}: missing={missing}"
            )
            raise InvalidArgument(
                f"Some {self.label.lower()}s do not exist or do not belong to user",
                missing=missing,
            )

        if self.strict_reorder:
            result = await self.session.execute(
                select(self.model.id).where(*self._in_scope(user_id, scope_value))
            )
            submitted = set(ids)
            omitted = sorted(i for i in result.scalars().all() if i not in submitted)
            if omitted:
                logger.warning(
                    f"{self.label} reorder rejected for user {user_id}: omitted={omitted}"
                )
                raise InvalidArgument(
                    f"{self.label} order must include every {self.label.lower()} in scope",
                    omitted=omitted,
                )

        rows = []
        for index, item_id in enumerate(ids):
            row = rows_by_id[item_id]
            if assign_scope and self.scope_column is not None:
                setattr(row, self.scope_column, scope_value)
            row.position = index
            rows.append(row)
        await self.session.flush()

        logger.debug(f"Reordered {len(rows)} {self.label.lower()}s for user {user_id}")
        return rows
