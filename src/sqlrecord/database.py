"""Database handle -- the explicit Dialect + Executor pair.

A ``Database`` is the single object passed to models, migrations and the
schema introspector.  It owns statement logging and the small set of
DML/DDL helpers everything else is built on.  There is no module-level
connection; callers construct a handle (directly or via
``sqlrecord.factory.get_database``) and bind models to it.

Usage:
    from sqlrecord.adapters.sqlite import AsyncSQLiteExecutor
    from sqlrecord.database import Database

    db = Database(AsyncSQLiteExecutor("sqlite:///app.db"))
    db.register(Article, Comment)

    await db.create_table(Article.table)
    rows = await db.select("articles", {"title": "Hello"})
    await db.close()
"""

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from sqlrecord.adapters.base import ExecutionResult, Executor
from sqlrecord.dialects.base import Dialect, OrderSpec, Statement
from sqlrecord.registry import ModelRegistry
from sqlrecord.schema.models import Column, TableDef

if TYPE_CHECKING:
    from sqlrecord.record import Record

logger = logging.getLogger(__name__)


class Database:
    """Explicit pairing of an ``Executor`` with the ``Dialect`` it accepts.

    Args:
        executor: Backend executor.
        dialect: Statement generator.  Defaults to ``executor.dialect``.
        registry: Model registry used to resolve association targets.
            A fresh registry is created when omitted.
    """

    def __init__(
        self,
        executor: Executor,
        dialect: Dialect | None = None,
        registry: ModelRegistry | None = None,
    ) -> None:
        self.executor = executor
        self.dialect = dialect or executor.dialect
        self.registry = registry or ModelRegistry()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> ExecutionResult:
        """Execute one statement, logging it and its outcome at DEBUG level."""
        logger.debug("SQL: %s params=%s", sql, list(params or []))
        result = await self.executor.execute(sql, params)
        logger.debug(
            "-> %d row(s), %d affected, inserted_id=%s",
            len(result.rows),
            result.rows_affected,
            result.inserted_id,
        )
        return result

    async def run(self, statement: Statement) -> ExecutionResult:
        return await self.execute(statement.sql, statement.params)

    # ------------------------------------------------------------------
    # DML
    # ------------------------------------------------------------------

    async def select(
        self,
        table_name: str,
        conditions: Mapping[str, Any] | None = None,
        *,
        columns: Sequence[str] | None = None,
        order: OrderSpec | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        statement = self.dialect.render_select(
            table_name,
            conditions,
            columns=columns,
            order=order,
            limit=limit,
            offset=offset,
        )
        return (await self.run(statement)).rows

    async def count(
        self, table_name: str, conditions: Mapping[str, Any] | None = None
    ) -> int:
        result = await self.run(self.dialect.render_count(table_name, conditions))
        if not result.rows:
            return 0
        return int(next(iter(result.rows[0].values())))

    async def insert(
        self, table: TableDef, values: Mapping[str, Any]
    ) -> ExecutionResult:
        """Insert one row into *table*.

        When the executor reads generated ids from ``RETURNING`` the
        statement asks for the primary key; otherwise the executor's
        native last-insert-id is used.

        Raises:
            ValueError: If *values* names a column *table* does not declare.
        """
        self._check_columns(table, values)
        returning = table.primary_key if self.executor.supports_returning else None
        statement = self.dialect.render_insert(table.name, values, returning=returning)
        return await self.run(statement)

    async def update(
        self,
        table: TableDef,
        values: Mapping[str, Any],
        conditions: Mapping[str, Any],
    ) -> int:
        """Update matching rows; returns the affected-row count."""
        self._check_columns(table, values)
        statement = self.dialect.render_update(table.name, values, conditions)
        return (await self.run(statement)).rows_affected

    async def delete(
        self, table_name: str, conditions: Mapping[str, Any] | None
    ) -> int:
        statement = self.dialect.render_delete(table_name, conditions)
        return (await self.run(statement)).rows_affected

    @staticmethod
    def _check_columns(table: TableDef, values: Mapping[str, Any]) -> None:
        unknown = [name for name in values if table.column(name) is None]
        if unknown:
            raise ValueError(
                f"Unknown column(s) for table '{table.name}': {', '.join(unknown)}"
            )

    # ------------------------------------------------------------------
    # DDL
    # ------------------------------------------------------------------

    async def create_table(self, table: TableDef) -> None:
        """Create *table* and its declared indexes (no-op if present)."""
        await self.execute(self.dialect.render_create_table(table))
        for index in table.indexes:
            await self.execute(self.dialect.render_index(table.name, index))

    async def add_index(
        self,
        table_name: str,
        columns: Sequence[str] | str,
        *,
        unique: bool = False,
        name: str | None = None,
    ) -> None:
        await self.execute(
            self.dialect.render_add_index(table_name, columns, unique=unique, name=name)
        )

    async def add_column(self, table_name: str, column: Column) -> None:
        await self.execute(self.dialect.render_add_column(table_name, column))

    async def remove_column(self, table_name: str, column_name: str) -> None:
        await self.execute(self.dialect.render_remove_column(table_name, column_name))

    async def drop_table(self, table_name: str) -> None:
        await self.execute(self.dialect.render_drop_table(table_name))

    # ------------------------------------------------------------------
    # Introspection / health
    # ------------------------------------------------------------------

    async def table_exists(self, table_name: str) -> bool:
        result = await self.run(self.dialect.render_table_exists(table_name))
        return bool(result.rows)

    async def ping(self) -> bool:
        """Run ``SELECT 1`` to verify the backend is reachable."""
        result = await self.execute("SELECT 1 AS ok")
        return bool(result.rows)

    # ------------------------------------------------------------------
    # Models / lifecycle
    # ------------------------------------------------------------------

    def register(self, *models: type["Record"]) -> None:
        """Bind *models* to this handle and record them in the registry."""
        for model in models:
            model.database = self
            self.registry.register(model)

    async def close(self) -> None:
        await self.executor.close()
