"""PostgreSQL dialect (shared by the direct-driver and Neon HTTP executors)."""

from sqlrecord.dialects.base import Dialect, Statement
from sqlrecord.schema.models import Column


class PostgresDialect(Dialect):
    name = "postgres"
    type_map = {
        "string": "VARCHAR(255)",
        "text": "TEXT",
        "integer": "INTEGER",
        "bigint": "BIGINT",
        "float": "DOUBLE PRECISION",
        "decimal": "DECIMAL",
        "boolean": "BOOLEAN",
        "date": "DATE",
        "datetime": "TIMESTAMP",
        "time": "TIME",
        "timestamp": "TIMESTAMP",
        "binary": "BYTEA",
        "json": "JSON",
    }
    add_column_guard = "IF NOT EXISTS "
    drop_column_guard = "IF EXISTS "

    def param(self, position: int) -> str:
        return f"${position}"

    def auto_increment_definition(self, column: Column) -> str:
        serial = "BIGSERIAL" if column.type == "bigint" else "SERIAL"
        return f"{self.quote(column.name)} {serial} PRIMARY KEY"

    def render_table_exists(self, table_name: str) -> Statement:
        return Statement(
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND table_name = $1",
            [table_name],
        )

    def render_column_listing(self) -> Statement:
        return Statement(
            "SELECT table_name, column_name FROM information_schema.columns "
            "WHERE table_schema = current_schema() "
            "ORDER BY table_name, ordinal_position",
            [],
        )
