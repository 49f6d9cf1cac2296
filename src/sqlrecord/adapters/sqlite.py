"""Async SQLite executor.

Provides ``AsyncSQLiteExecutor``, an implementation of the ``Executor``
protocol using SQLAlchemy's async engine with the ``aiosqlite`` driver.

Usage:
    from sqlrecord.adapters.sqlite import AsyncSQLiteExecutor

    executor = AsyncSQLiteExecutor("sqlite:///app.db")
    result = await executor.execute('SELECT * FROM "users" WHERE "id" = ?', [1])
    await executor.close()
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from sqlrecord.adapters.base import ExecutionResult
from sqlrecord.dialects.sqlite import SQLiteDialect
from sqlrecord.errors import ConfigurationError, ExecutionError


def normalize_sqlite_url(database: str) -> str:
    """Normalize a SQLite URL or bare file path to ``sqlite+aiosqlite://``.

    Example:
        >>> normalize_sqlite_url("app.db")
        'sqlite+aiosqlite:///app.db'
        >>> normalize_sqlite_url("sqlite:///:memory:")
        'sqlite+aiosqlite:///:memory:'
    """
    if database.startswith("sqlite+aiosqlite://"):
        return database
    if database.startswith("sqlite://"):
        return "sqlite+aiosqlite://" + database[len("sqlite://"):]
    return f"sqlite+aiosqlite:///{database}"


class AsyncSQLiteExecutor:
    """Async SQLite implementation of the ``Executor`` protocol.

    ``?`` markers and a positional tuple go straight to the driver.
    Generated ids come from the cursor's ``lastrowid``.  An in-memory
    database is held on a single shared connection (``StaticPool``) so
    every statement sees the same data.

    Args:
        database: SQLite URL (``sqlite:///path``) or a bare file path.
        **engine_kwargs: Additional keyword arguments forwarded to
            ``create_async_engine``.
    """

    supports_returning = False

    def __init__(self, database: str, **engine_kwargs: Any) -> None:
        if not database:
            raise ConfigurationError("SQLite executor requires a database path or URL")

        url = normalize_sqlite_url(database)
        if url.endswith(":memory:") or url == "sqlite+aiosqlite://":
            engine_kwargs.setdefault("poolclass", StaticPool)
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})

        self.dialect = SQLiteDialect()
        self._engine: AsyncEngine = create_async_engine(url, **engine_kwargs)

    async def execute(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> ExecutionResult:
        """Execute a statement using ``?`` markers."""
        try:
            async with self._engine.begin() as conn:
                if params:
                    result = await conn.exec_driver_sql(sql, tuple(params))
                else:
                    result = await conn.exec_driver_sql(sql)

                rows: list[dict[str, Any]] = []
                if result.returns_rows:
                    rows = [dict(row) for row in result.mappings()]

                inserted_id = None
                if sql.lstrip().upper().startswith("INSERT"):
                    inserted_id = result.lastrowid
                rows_affected = result.rowcount if result.rowcount >= 0 else len(rows)
        except SQLAlchemyError as exc:
            reason = getattr(exc, "orig", None) or exc
            raise ExecutionError(str(reason), sql=sql) from exc

        return ExecutionResult(
            rows=rows, inserted_id=inserted_id, rows_affected=rows_affected
        )

    async def get_connection(self) -> AsyncEngine:
        return self._engine

    async def close(self) -> None:
        """Dispose of the engine and its connection pool."""
        if self._engine:
            await self._engine.dispose()
