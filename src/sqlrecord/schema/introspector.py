"""Live schema introspection through a ``Database`` handle.

Queries the backend for table and column names using the dialect's
introspection statements, so the same code works for SQLite, D1, Postgres
and Neon.

Usage:
    introspector = SchemaIntrospector(db)

    if await introspector.table_exists("articles"):
        columns = await introspector.get_column_names()
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlrecord.database import Database


class SchemaIntrospector:
    """Reads table/column names from a live database.

    Usage:
        columns = await SchemaIntrospector(db).get_column_names()
        # {"articles": {"id", "title", ...}, ...}
    """

    # Tables to exclude from introspection (bookkeeping tables)
    EXCLUDED_TABLES = {
        "schema_migrations",
        "sqlite_sequence",
    }

    def __init__(self, db: "Database") -> None:
        self._db = db

    async def table_exists(self, table_name: str) -> bool:
        return await self._db.table_exists(table_name)

    async def get_column_names(self) -> dict[str, set[str]]:
        """Get column names per table for schema validation.

        Returns:
            Dict mapping table name to set of column names.
        """
        statement = self._db.dialect.render_column_listing()
        result = await self._db.execute(statement.sql, statement.params)

        columns: dict[str, set[str]] = {}
        for row in result.rows:
            table_name = row["table_name"]
            if table_name in self.EXCLUDED_TABLES:
                continue
            columns.setdefault(table_name, set()).add(row["column_name"])
        return columns
