"""
Database layer for tasklists.

Provides SQLAlchemy ORM models for lists and tasks, async engine/session
management, and the transaction boundary every command runs inside.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from tasklists.config import DEFAULT_DATABASE_URL
from tasklists.logging_config import get_logger
from tasklists.services.errors import TaskListsError, TransactionFailure

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class TaskListORM(Base):
    """
    SQLAlchemy ORM model for task lists.

    Lists are ordered per user by ``position``.
    """
    __tablename__ = "task_lists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<TaskListORM(id={self.id}, name={self.name}, position={self.position})>"


class TaskORM(Base):
    """
    SQLAlchemy ORM model for tasks.

    Tasks are ordered per list by ``position``. ``user_id`` is denormalized
    from the owning list so ownership can be checked without a join.
    """
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    list_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("task_lists.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    recurring_config: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    # Status flags
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    starred: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<TaskORM(id={self.id}, title={self.title}, "
            f"list_id={self.list_id}, position={self.position})>"
        )


class DatabaseManager:
    """
    Manages database connections and session lifecycle.

    One manager is created by the process entry point and handed to the
    command layer; each command opens its own session through
    :meth:`get_session`, which is the atomic unit for that command.
    """

    def __init__(self, database_url: str = DEFAULT_DATABASE_URL, echo: bool = False):
        """
        Initialize database manager with connection URL.

        Args:
            database_url: SQLAlchemy database URL (default: local SQLite file)
            echo: Log emitted SQL
        """
        self.database_url = database_url
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self.session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    async def initialize(self) -> None:
        """
        Initialize the database engine and create tables.
        """
        try:
            logger.info(f"Initializing database: {self.database_url}")
            self.engine = create_async_engine(
                self.database_url,
                echo=self.echo,
            )

            self.session_maker = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}", exc_info=True)
            raise

    async def close(self) -> None:
        """
        Close the database engine and cleanup resources.
        """
        if self.engine:
            logger.info("Closing database connection")
            try:
                await self.engine.dispose()
                self.engine = None
                self.session_maker = None
                logger.info("Database connection closed successfully")
            except Exception as e:
                logger.error(f"Error closing database connection: {e}", exc_info=True)
                raise

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get an async database session with automatic transaction management.

        Everything done inside the block is committed together when the block
        exits normally and rolled back when it raises. Store failures surface
        as TransactionFailure; domain errors propagate unchanged.

        Yields:
            AsyncSession for database operations

        Example:
            async with db_manager.get_session() as session:
                result = await session.execute(select(TaskORM))
                tasks = result.scalars().all()
        """
        if not self.session_maker:
            raise RuntimeError("DatabaseManager not initialized. Call initialize() first.")

        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except TaskListsError as e:
                logger.debug(f"Rolling back after rejected command: {e}")
                await session.rollback()
                raise
            except SQLAlchemyError as e:
                logger.error(f"Database transaction failed, rolling back: {e}", exc_info=True)
                await session.rollback()
                raise TransactionFailure("Transaction could not be applied") from e
            except Exception as e:
                logger.error(f"Database session error, rolling back: {e}", exc_info=True)
                await session.rollback()
                raise


async def init_database(database_url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> DatabaseManager:
    """
    Create and initialize a database manager.

    Convenience function for application startup.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log emitted SQL

    Returns:
        Initialized DatabaseManager instance
    """
    db_manager = DatabaseManager(database_url, echo=echo)
    await db_manager.initialize()
    return db_manager
