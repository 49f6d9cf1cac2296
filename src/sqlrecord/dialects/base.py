"""Dialect base class -- pure SQL text and parameter generation.

A dialect turns table descriptors and query descriptions into SQL text plus
an ordered parameter list.  It performs no I/O.  Differences between
backends are expressed as class attributes and small overridable hooks:

- Native type names per logical column type (``type_map``)
- Parameter marker style (``?`` vs ``$1``)
- Auto-increment primary-key construct
- Boolean literal tokens for DDL defaults
- ``IF [NOT] EXISTS`` guards on column changes
- Introspection statements

Values are always passed separately from the SQL text.  Identifiers and DDL
default literals are the only things embedded, and both come from schema
definitions, never from runtime input.
"""

import json
from collections.abc import Mapping, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, ClassVar, NamedTuple

from sqlrecord.schema.models import Column, Index, TableDef


class Statement(NamedTuple):
    """SQL text and the parameters bound to its markers, in order."""

    sql: str
    params: list[Any]


OrderSpec = Sequence[tuple[str, str]]

_TRUE_STRINGS = frozenset({"t", "true", "1", "yes", "on"})


class Dialect:
    """Base dialect.  Subclasses set the class attributes below."""

    name: ClassVar[str] = "base"
    type_map: ClassVar[dict[str, str]] = {}
    true_literal: ClassVar[str] = "TRUE"
    false_literal: ClassVar[str] = "FALSE"
    add_column_guard: ClassVar[str] = ""
    drop_column_guard: ClassVar[str] = ""

    # ------------------------------------------------------------------
    # Identifiers, markers, literals
    # ------------------------------------------------------------------

    def quote(self, identifier: str) -> str:
        """Quote an identifier, doubling embedded quote characters."""
        return '"' + identifier.replace('"', '""') + '"'

    def param(self, position: int) -> str:
        """Parameter marker for the 1-based *position*."""
        raise NotImplementedError

    def literal(self, value: Any) -> str:
        """Render a DDL default value as an embedded SQL literal."""
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return self.true_literal if value else self.false_literal
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        if isinstance(value, (dict, list)):
            value = json.dumps(value)
        elif isinstance(value, (datetime, date, time)):
            value = value.isoformat()
        return "'" + str(value).replace("'", "''") + "'"

    def column_type(self, column: Column) -> str:
        """Native type for *column*, honoring precision/scale and length limit."""
        if column.type == "decimal" and (column.precision or column.scale):
            precision = column.precision or 10
            scale = column.scale or 0
            return f"DECIMAL({precision}, {scale})"
        if column.type == "string" and column.limit:
            return f"VARCHAR({column.limit})"
        return self.type_map.get(column.type, "TEXT")

    # ------------------------------------------------------------------
    # Value conversion
    # ------------------------------------------------------------------

    def format_value(self, value: Any) -> Any:
        """Convert a Python value into something the driver can bind."""
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return value

    def cast_value(self, column: Column, value: Any) -> Any:
        """Coerce a value read from the backend to the column's Python type."""
        if value is None:
            return None

        kind = column.type
        if kind in ("integer", "bigint"):
            return value if isinstance(value, int) and not isinstance(value, bool) else int(value)
        if kind == "float":
            return float(value)
        if kind == "decimal":
            return value if isinstance(value, Decimal) else Decimal(str(value))
        if kind == "boolean":
            if isinstance(value, str):
                return value.strip().lower() in _TRUE_STRINGS
            return bool(value)
        if kind in ("datetime", "timestamp"):
            if isinstance(value, str):
                return datetime.fromisoformat(value)
            return value
        if kind == "date":
            if isinstance(value, datetime):
                return value.date()
            if isinstance(value, str):
                return date.fromisoformat(value[:10])
            return value
        if kind == "time":
            if isinstance(value, str):
                return time.fromisoformat(value)
            return value
        if kind == "json":
            if isinstance(value, (str, bytes)):
                return json.loads(value)
            return value
        if kind == "binary":
            if isinstance(value, memoryview):
                return value.tobytes()
            if isinstance(value, str) and value.startswith("\\x"):
                return bytes.fromhex(value[2:])
            return value
        return value

    # ------------------------------------------------------------------
    # DDL
    # ------------------------------------------------------------------

    def auto_increment_definition(self, column: Column) -> str:
        """Column definition for the auto-increment primary key."""
        raise NotImplementedError

    def column_definition(self, column: Column) -> str:
        """Full column definition: name, type, key, nullability, default."""
        if column.primary_key and column.auto_increment:
            return self.auto_increment_definition(column)

        parts = [self.quote(column.name), self.column_type(column)]
        if column.primary_key:
            parts.append("PRIMARY KEY")
        if not column.null:
            parts.append("NOT NULL")
        if column.has_default:
            parts.append(f"DEFAULT {self.literal(column.default)}")
        return " ".join(parts)

    def render_create_table(self, table: TableDef) -> str:
        """``CREATE TABLE IF NOT EXISTS`` with columns, then foreign keys."""
        definitions = [self.column_definition(column) for column in table.columns]

        for fk in table.foreign_keys:
            clause = (
                f"FOREIGN KEY ({self.quote(fk.column)}) "
                f"REFERENCES {self.quote(fk.references)} ({self.quote(fk.primary_key)})"
            )
            if fk.on_delete:
                clause += f" ON DELETE {fk.on_delete.upper()}"
            definitions.append(clause)

        return (
            f"CREATE TABLE IF NOT EXISTS {self.quote(table.name)} "
            f"({', '.join(definitions)})"
        )

    def index_name(self, table_name: str, columns: Sequence[str]) -> str:
        """Default index name: ``idx_<table>_<col1>_<col2>``."""
        return f"idx_{table_name}_{'_'.join(columns)}"

    def render_add_index(
        self,
        table_name: str,
        columns: Sequence[str] | str,
        *,
        unique: bool = False,
        name: str | None = None,
    ) -> str:
        """``CREATE [UNIQUE] INDEX IF NOT EXISTS``."""
        if isinstance(columns, str):
            columns = [columns]
        index_name = name or self.index_name(table_name, columns)
        column_list = ", ".join(self.quote(c) for c in columns)
        prefix = "CREATE UNIQUE INDEX" if unique else "CREATE INDEX"
        return (
            f"{prefix} IF NOT EXISTS {self.quote(index_name)} "
            f"ON {self.quote(table_name)} ({column_list})"
        )

    def render_index(self, table_name: str, index: Index) -> str:
        """Render a declared ``Index`` descriptor."""
        return self.render_add_index(
            table_name, index.columns, unique=index.unique, name=index.name
        )

    def render_add_column(self, table_name: str, column: Column) -> str:
        return (
            f"ALTER TABLE {self.quote(table_name)} "
            f"ADD COLUMN {self.add_column_guard}{self.column_definition(column)}"
        )

    def render_remove_column(self, table_name: str, column_name: str) -> str:
        return (
            f"ALTER TABLE {self.quote(table_name)} "
            f"DROP COLUMN {self.drop_column_guard}{self.quote(column_name)}"
        )

    def render_drop_table(self, table_name: str) -> str:
        return f"DROP TABLE IF EXISTS {self.quote(table_name)}"

    # ------------------------------------------------------------------
    # DML
    # ------------------------------------------------------------------

    def render_where(
        self, conditions: Mapping[str, Any] | None, start: int = 1
    ) -> tuple[str, list[Any]]:
        """AND-conjunction of predicates; returns ``("", [])`` when empty.

        ``None`` renders ``IS NULL``; a list, tuple or set renders ``IN``.
        """
        if not conditions:
            return "", []

        parts: list[str] = []
        params: list[Any] = []
        position = start

        for name, value in conditions.items():
            column = self.quote(name)
            if value is None:
                parts.append(f"{column} IS NULL")
            elif isinstance(value, (list, tuple, set, frozenset)):
                values = list(value)
                if not values:
                    parts.append("1 = 0")
                    continue
                markers = []
                for item in values:
                    markers.append(self.param(position))
                    params.append(self.format_value(item))
                    position += 1
                parts.append(f"{column} IN ({', '.join(markers)})")
            else:
                parts.append(f"{column} = {self.param(position)}")
                params.append(self.format_value(value))
                position += 1

        return " WHERE " + " AND ".join(parts), params

    def render_limit(self, limit: int | None, offset: int | None) -> str:
        clause = ""
        if limit is not None:
            clause += f" LIMIT {int(limit)}"
        if offset is not None:
            clause += f" OFFSET {int(offset)}"
        return clause

    def render_order(self, order: OrderSpec | None) -> str:
        if not order:
            return ""
        parts = []
        for column, direction in order:
            direction = direction.upper()
            if direction not in ("ASC", "DESC"):
                raise ValueError(f"Invalid order direction: {direction}")
            parts.append(f"{self.quote(column)} {direction}")
        return " ORDER BY " + ", ".join(parts)

    def render_select(
        self,
        table_name: str,
        conditions: Mapping[str, Any] | None = None,
        *,
        columns: Sequence[str] | None = None,
        order: OrderSpec | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Statement:
        column_list = ", ".join(self.quote(c) for c in columns) if columns else "*"
        where, params = self.render_where(conditions)
        sql = (
            f"SELECT {column_list} FROM {self.quote(table_name)}{where}"
            f"{self.render_order(order)}{self.render_limit(limit, offset)}"
        )
        return Statement(sql, params)

    def render_count(
        self, table_name: str, conditions: Mapping[str, Any] | None = None
    ) -> Statement:
        where, params = self.render_where(conditions)
        return Statement(
            f"SELECT COUNT(*) AS count FROM {self.quote(table_name)}{where}", params
        )

    def render_insert(
        self,
        table_name: str,
        values: Mapping[str, Any],
        *,
        returning: str | None = None,
    ) -> Statement:
        """``INSERT``; appends ``RETURNING`` only when *returning* is given."""
        if values:
            columns = ", ".join(self.quote(c) for c in values)
            markers = ", ".join(self.param(i) for i in range(1, len(values) + 1))
            sql = f"INSERT INTO {self.quote(table_name)} ({columns}) VALUES ({markers})"
        else:
            sql = f"INSERT INTO {self.quote(table_name)} DEFAULT VALUES"
        if returning:
            sql += f" RETURNING {self.quote(returning)}"
        return Statement(sql, [self.format_value(v) for v in values.values()])

    def render_update(
        self,
        table_name: str,
        values: Mapping[str, Any],
        conditions: Mapping[str, Any],
    ) -> Statement:
        if not values:
            raise ValueError(f"Nothing to update in {table_name}")
        sets = []
        params: list[Any] = []
        for position, (name, value) in enumerate(values.items(), start=1):
            sets.append(f"{self.quote(name)} = {self.param(position)}")
            params.append(self.format_value(value))
        where, where_params = self.render_where(conditions, start=len(params) + 1)
        sql = f"UPDATE {self.quote(table_name)} SET {', '.join(sets)}{where}"
        return Statement(sql, params + where_params)

    def render_delete(
        self, table_name: str, conditions: Mapping[str, Any] | None
    ) -> Statement:
        where, params = self.render_where(conditions)
        return Statement(f"DELETE FROM {self.quote(table_name)}{where}", params)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def render_table_exists(self, table_name: str) -> Statement:
        """Statement returning one row when *table_name* exists."""
        raise NotImplementedError

    def render_column_listing(self) -> Statement:
        """Statement returning ``(table_name, column_name)`` rows."""
        raise NotImplementedError
