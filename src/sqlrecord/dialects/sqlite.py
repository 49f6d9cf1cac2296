"""SQLite dialect.

SQLite has a loose type system: booleans are stored as 1/0 and temporal
values as ISO-8601 text.  Those conversions happen in ``format_value`` on the
way in and ``cast_value`` on the way out.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from sqlrecord.dialects.base import Dialect, Statement
from sqlrecord.schema.models import Column


class SQLiteDialect(Dialect):
    """SQL generation for SQLite and SQLite-compatible backends (D1)."""

    name = "sqlite"
    type_map = {
        "string": "TEXT",
        "text": "TEXT",
        "integer": "INTEGER",
        "bigint": "INTEGER",
        "float": "REAL",
        "decimal": "REAL",
        "boolean": "INTEGER",
        "date": "TEXT",
        "datetime": "TEXT",
        "time": "TEXT",
        "timestamp": "TEXT",
        "binary": "BLOB",
        "json": "TEXT",
    }
    true_literal = "1"
    false_literal = "0"

    def param(self, position: int) -> str:
        return "?"

    def auto_increment_definition(self, column: Column) -> str:
        # Only INTEGER can back a rowid alias, regardless of logical type
        return f"{self.quote(column.name)} INTEGER PRIMARY KEY AUTOINCREMENT"

    def render_limit(self, limit: int | None, offset: int | None) -> str:
        if offset is not None and limit is None:
            limit = -1
        return super().render_limit(limit, offset)

    def format_value(self, value: Any) -> Any:
        if isinstance(value, bool):
            return 1 if value else 0
        if isinstance(value, datetime):
            return value.isoformat(sep=" ")
        if isinstance(value, (date, time)):
            return value.isoformat()
        if isinstance(value, Decimal):
            return float(value)
        return super().format_value(value)

    def render_table_exists(self, table_name: str) -> Statement:
        return Statement(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
            [table_name],
        )

    def render_column_listing(self) -> Statement:
        return Statement(
            "SELECT m.name AS table_name, p.name AS column_name "
            "FROM sqlite_master AS m JOIN pragma_table_info(m.name) AS p "
            "WHERE m.type = 'table' AND m.name NOT LIKE 'sqlite_%' "
            "ORDER BY m.name, p.cid",
            [],
        )
