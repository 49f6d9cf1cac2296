"""Executor protocol definition.

Defines the ``Executor`` Protocol that every backend executor implements,
and the normalized ``ExecutionResult`` they all return.  All I/O methods are
``async def`` -- the library is async-first.

An executor owns exactly one concern: sending a finished statement and its
ordered parameters to a backend.  It never builds SQL; that is the job of
the ``Dialect`` it is paired with.

Usage:
    from sqlrecord.adapters.base import Executor

    async def do_work(executor: Executor) -> None:
        result = await executor.execute(
            'SELECT * FROM "users" WHERE "id" = ?', [1]
        )
        print(result.rows)
        await executor.close()
"""

from collections.abc import Sequence
from typing import Any, Protocol

from pydantic import BaseModel, Field

from sqlrecord.dialects.base import Dialect


class ExecutionResult(BaseModel):
    """Normalized result of one statement.

    Example:
        >>> result = ExecutionResult(rows=[{"id": 1}], rows_affected=1)
        >>> result.rows[0]["id"]
        1
    """

    rows: list[dict[str, Any]] = Field(default_factory=list)
    inserted_id: Any = None
    rows_affected: int = 0


class Executor(Protocol):
    """Backend executor interface.

    Attributes:
        dialect: The ``Dialect`` whose statements this executor accepts.
        supports_returning: ``True`` when generated ids are read from an
            ``INSERT ... RETURNING`` row, ``False`` when the backend
            exposes a native last-insert-id accessor.
    """

    dialect: Dialect
    supports_returning: bool

    async def execute(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> ExecutionResult:
        """Execute one statement with ordered parameters.

        Args:
            sql: Statement text using the dialect's parameter markers.
            params: Values bound to the markers, in order.

        Returns:
            ``ExecutionResult`` with rows (empty for non-queries), the
            generated id for inserts, and the affected-row count.

        Raises:
            ExecutionError: If the backend rejects the statement.
        """
        ...

    async def get_connection(self) -> Any:
        """Return the underlying driver handle (engine, HTTP client, binding)."""
        ...

    async def close(self) -> None:
        """Release backend resources.  Safe to call more than once."""
        ...
