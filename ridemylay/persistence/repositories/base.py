"""
Shared plumbing for repositories.
"""

from typing import Any, NoReturn

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...exceptions import PersistenceError, create_error_context


class BaseRepository:
    """Holds the session maker and turns driver errors into PersistenceError."""

    table: str = ""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    def _fail(self, operation: str, error: Exception, **details: Any) -> NoReturn:
        context = create_error_context()
        context.metadata["operation"] = operation
        raise PersistenceError(
            f"Database error during {operation}: {error}",
            context=context,
            operation=operation,
            table=self.table,
            details={**details, "error": str(error)},
            user_friendly="Something went wrong saving your data",
        ) from error
