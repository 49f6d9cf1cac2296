"""Tests for SQL generation in the SQLite and Postgres dialects.

Dialects are pure, so these tests assert on the exact SQL text and the
ordered parameter list.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from sqlrecord.dialects import PostgresDialect, SQLiteDialect
from sqlrecord.schema.models import Column, ForeignKey, Index, TableDef

ITEMS = TableDef(
    name="items",
    columns=[
        Column(name="id", type="integer", primary_key=True, auto_increment=True),
        Column(name="name", type="string", null=False),
        Column(name="price", type="decimal", precision=8, scale=2),
        Column(name="active", type="boolean", default=True),
        Column(name="owner_id", type="integer"),
    ],
    foreign_keys=[ForeignKey(column="owner_id", references="owners", on_delete="cascade")],
)


# ============================================================================
# Test: Identifiers and Literals
# ============================================================================


class TestQuoting:
    """Identifier quoting and DDL default literals."""

    def test_quote_plain_identifier(self) -> None:
        """Identifiers are wrapped in double quotes."""
        assert SQLiteDialect().quote("order") == '"order"'

    def test_quote_doubles_embedded_quotes(self) -> None:
        """Embedded double quotes are doubled."""
        assert PostgresDialect().quote('we"ird') == '"we""ird"'

    def test_null_default(self) -> None:
        """A None default renders NULL in both dialects."""
        assert SQLiteDialect().literal(None) == "NULL"
        assert PostgresDialect().literal(None) == "NULL"

    def test_boolean_defaults_are_dialect_native(self) -> None:
        """Postgres renders TRUE/FALSE, SQLite renders 1/0."""
        assert PostgresDialect().literal(True) == "TRUE"
        assert PostgresDialect().literal(False) == "FALSE"
        assert SQLiteDialect().literal(True) == "1"
        assert SQLiteDialect().literal(False) == "0"

    def test_string_default_escapes_quotes(self) -> None:
        """Single quotes inside string defaults are doubled."""
        assert SQLiteDialect().literal("it's") == "'it''s'"

    def test_numeric_default(self) -> None:
        assert PostgresDialect().literal(42) == "42"
        assert PostgresDialect().literal(Decimal("1.50")) == "1.50"


# ============================================================================
# Test: Type Mapping
# ============================================================================


class TestColumnTypes:
    """Logical type -> native type mapping."""

    @pytest.mark.parametrize(
        ("logical", "sqlite", "postgres"),
        [
            ("string", "TEXT", "VARCHAR(255)"),
            ("integer", "INTEGER", "INTEGER"),
            ("bigint", "INTEGER", "BIGINT"),
            ("float", "REAL", "DOUBLE PRECISION"),
            ("boolean", "INTEGER", "BOOLEAN"),
            ("datetime", "TEXT", "TIMESTAMP"),
            ("binary", "BLOB", "BYTEA"),
            ("json", "TEXT", "JSON"),
        ],
    )
    def test_type_map(self, logical: str, sqlite: str, postgres: str) -> None:
        column = Column(name="c", type=logical)
        assert SQLiteDialect().column_type(column) == sqlite
        assert PostgresDialect().column_type(column) == postgres

    def test_decimal_precision_overrides_default(self) -> None:
        """decimal with precision/scale renders DECIMAL(p, s)."""
        column = Column(name="price", type="decimal", precision=8, scale=2)
        assert PostgresDialect().column_type(column) == "DECIMAL(8, 2)"

    def test_decimal_scale_only_defaults_precision(self) -> None:
        column = Column(name="price", type="decimal", scale=3)
        assert PostgresDialect().column_type(column) == "DECIMAL(10, 3)"

    def test_string_limit_overrides_default(self) -> None:
        """string with a limit renders VARCHAR(n)."""
        column = Column(name="code", type="string", limit=12)
        assert PostgresDialect().column_type(column) == "VARCHAR(12)"
        assert SQLiteDialect().column_type(column) == "VARCHAR(12)"


# ============================================================================
# Test: DDL
# ============================================================================


class TestCreateTable:
    """CREATE TABLE rendering."""

    def test_sqlite_create_table(self) -> None:
        sql = SQLiteDialect().render_create_table(ITEMS)
        assert sql == (
            'CREATE TABLE IF NOT EXISTS "items" ('
            '"id" INTEGER PRIMARY KEY AUTOINCREMENT, '
            '"name" TEXT NOT NULL, '
            '"price" DECIMAL(8, 2), '
            '"active" INTEGER DEFAULT 1, '
            '"owner_id" INTEGER, '
            'FOREIGN KEY ("owner_id") REFERENCES "owners" ("id") ON DELETE CASCADE)'
        )

    def test_postgres_create_table(self) -> None:
        sql = PostgresDialect().render_create_table(ITEMS)
        assert sql.startswith('CREATE TABLE IF NOT EXISTS "items" ("id" SERIAL PRIMARY KEY, ')
        assert '"name" VARCHAR(255) NOT NULL' in sql
        assert '"active" BOOLEAN DEFAULT TRUE' in sql

    def test_postgres_bigserial_for_bigint_key(self) -> None:
        table = TableDef(
            name="events",
            columns=[Column(name="id", type="bigint", primary_key=True, auto_increment=True)],
        )
        assert '"id" BIGSERIAL PRIMARY KEY' in PostgresDialect().render_create_table(table)

    def test_explicit_none_default_renders_null(self) -> None:
        """default=None given explicitly emits DEFAULT NULL; omitted emits nothing."""
        dialect = SQLiteDialect()
        assert dialect.column_definition(Column(name="x", default=None)) == '"x" TEXT DEFAULT NULL'
        assert dialect.column_definition(Column(name="x")) == '"x" TEXT'

    def test_foreign_keys_follow_columns(self) -> None:
        sql = PostgresDialect().render_create_table(ITEMS)
        assert sql.index("FOREIGN KEY") > sql.index('"owner_id" INTEGER')


class TestAlterStatements:
    """Index, column and drop statements."""

    def test_add_index_default_name(self) -> None:
        sql = SQLiteDialect().render_add_index("comments", ["article_id", "created_at"])
        assert sql == (
            'CREATE INDEX IF NOT EXISTS "idx_comments_article_id_created_at" '
            'ON "comments" ("article_id", "created_at")'
        )

    def test_add_unique_index_with_name(self) -> None:
        sql = PostgresDialect().render_index("users", Index(columns=["email"], unique=True, name="uq_email"))
        assert sql == 'CREATE UNIQUE INDEX IF NOT EXISTS "uq_email" ON "users" ("email")'

    def test_postgres_add_column_guard(self) -> None:
        sql = PostgresDialect().render_add_column("items", Column(name="sku", type="string", limit=20))
        assert sql == 'ALTER TABLE "items" ADD COLUMN IF NOT EXISTS "sku" VARCHAR(20)'

    def test_sqlite_add_column_has_no_guard(self) -> None:
        sql = SQLiteDialect().render_add_column("items", Column(name="sku"))
        assert sql == 'ALTER TABLE "items" ADD COLUMN "sku" TEXT'

    def test_remove_column(self) -> None:
        assert PostgresDialect().render_remove_column("items", "sku") == (
            'ALTER TABLE "items" DROP COLUMN IF EXISTS "sku"'
        )
        assert SQLiteDialect().render_remove_column("items", "sku") == (
            'ALTER TABLE "items" DROP COLUMN "sku"'
        )

    def test_drop_table(self) -> None:
        assert SQLiteDialect().render_drop_table("items") == 'DROP TABLE IF EXISTS "items"'


# ============================================================================
# Test: DML
# ============================================================================


class TestSelect:
    """SELECT rendering and predicates."""

    def test_select_all(self) -> None:
        statement = SQLiteDialect().render_select("items")
        assert statement.sql == 'SELECT * FROM "items"'
        assert statement.params == []

    def test_sqlite_placeholders(self) -> None:
        statement = SQLiteDialect().render_select("items", {"name": "a", "owner_id": 3})
        assert statement.sql == 'SELECT * FROM "items" WHERE "name" = ? AND "owner_id" = ?'
        assert statement.params == ["a", 3]

    def test_postgres_numbered_placeholders(self) -> None:
        statement = PostgresDialect().render_select("items", {"name": "a", "owner_id": 3})
        assert statement.sql == 'SELECT * FROM "items" WHERE "name" = $1 AND "owner_id" = $2'

    def test_none_renders_is_null(self) -> None:
        statement = PostgresDialect().render_select("items", {"owner_id": None, "name": "a"})
        assert statement.sql == 'SELECT * FROM "items" WHERE "owner_id" IS NULL AND "name" = $1'
        assert statement.params == ["a"]

    def test_sequence_renders_in(self) -> None:
        statement = PostgresDialect().render_select("items", {"id": [1, 2, 3]})
        assert statement.sql == 'SELECT * FROM "items" WHERE "id" IN ($1, $2, $3)'
        assert statement.params == [1, 2, 3]

    def test_empty_sequence_matches_nothing(self) -> None:
        statement = SQLiteDialect().render_select("items", {"id": []})
        assert statement.sql == 'SELECT * FROM "items" WHERE 1 = 0'

    def test_columns_order_limit_offset(self) -> None:
        statement = PostgresDialect().render_select(
            "items",
            columns=["id", "name"],
            order=[("name", "asc"), ("id", "desc")],
            limit=10,
            offset=20,
        )
        assert statement.sql == (
            'SELECT "id", "name" FROM "items" ORDER BY "name" ASC, "id" DESC LIMIT 10 OFFSET 20'
        )

    def test_sqlite_offset_without_limit(self) -> None:
        """SQLite requires a LIMIT before OFFSET."""
        statement = SQLiteDialect().render_select("items", offset=5)
        assert statement.sql == 'SELECT * FROM "items" LIMIT -1 OFFSET 5'

    def test_invalid_order_direction(self) -> None:
        with pytest.raises(ValueError, match="Invalid order direction"):
            SQLiteDialect().render_select("items", order=[("id", "sideways")])

    def test_count(self) -> None:
        statement = PostgresDialect().render_count("items", {"active": True})
        assert statement.sql == 'SELECT COUNT(*) AS count FROM "items" WHERE "active" = $1'
        assert statement.params == [True]


class TestWrites:
    """INSERT / UPDATE / DELETE rendering."""

    def test_insert_without_returning(self) -> None:
        statement = SQLiteDialect().render_insert("items", {"name": "a", "active": True})
        assert statement.sql == 'INSERT INTO "items" ("name", "active") VALUES (?, ?)'
        assert statement.params == ["a", 1]

    def test_insert_with_returning(self) -> None:
        statement = PostgresDialect().render_insert("items", {"name": "a"}, returning="id")
        assert statement.sql == 'INSERT INTO "items" ("name") VALUES ($1) RETURNING "id"'

    def test_insert_default_values(self) -> None:
        statement = PostgresDialect().render_insert("items", {}, returning="id")
        assert statement.sql == 'INSERT INTO "items" DEFAULT VALUES RETURNING "id"'
        assert statement.params == []

    def test_update_numbers_where_after_set(self) -> None:
        statement = PostgresDialect().render_update("items", {"name": "b", "active": False}, {"id": 7})
        assert statement.sql == 'UPDATE "items" SET "name" = $1, "active" = $2 WHERE "id" = $3'
        assert statement.params == ["b", False, 7]

    def test_update_requires_values(self) -> None:
        with pytest.raises(ValueError):
            SQLiteDialect().render_update("items", {}, {"id": 1})

    def test_delete(self) -> None:
        statement = SQLiteDialect().render_delete("items", {"id": 7})
        assert statement.sql == 'DELETE FROM "items" WHERE "id" = ?'
        assert statement.params == [7]


# ============================================================================
# Test: Value Conversion
# ============================================================================


class TestValueConversion:
    """format_value on the way in, cast_value on the way out."""

    def test_sqlite_formats_temporal_values_as_text(self) -> None:
        dialect = SQLiteDialect()
        assert dialect.format_value(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02 03:04:05"
        assert dialect.format_value(date(2024, 1, 2)) == "2024-01-02"

    def test_json_values_are_encoded(self) -> None:
        assert PostgresDialect().format_value({"a": 1}) == '{"a": 1}'

    def test_cast_boolean_from_sqlite_and_text(self) -> None:
        dialect = SQLiteDialect()
        column = Column(name="flag", type="boolean")
        assert dialect.cast_value(column, 1) is True
        assert dialect.cast_value(column, 0) is False
        assert dialect.cast_value(column, "t") is True
        assert dialect.cast_value(column, "f") is False

    def test_cast_datetime_from_text(self) -> None:
        column = Column(name="at", type="datetime")
        value = SQLiteDialect().cast_value(column, "2024-01-02 03:04:05.123456")
        assert value == datetime(2024, 1, 2, 3, 4, 5, 123456)

    def test_cast_integer_from_text(self) -> None:
        assert PostgresDialect().cast_value(Column(name="n", type="integer"), "12") == 12

    def test_cast_decimal_and_json(self) -> None:
        dialect = PostgresDialect()
        assert dialect.cast_value(Column(name="p", type="decimal"), "1.50") == Decimal("1.50")
        assert dialect.cast_value(Column(name="j", type="json"), '{"a": [1]}') == {"a": [1]}

    def test_cast_binary_from_hex_text(self) -> None:
        column = Column(name="b", type="binary")
        assert PostgresDialect().cast_value(column, "\\x4142") == b"AB"

    def test_cast_none_passes_through(self) -> None:
        assert SQLiteDialect().cast_value(Column(name="n", type="integer"), None) is None


class TestIntrospectionStatements:
    """Table-exists and column-listing statements."""

    def test_sqlite_table_exists(self) -> None:
        statement = SQLiteDialect().render_table_exists("items")
        assert "sqlite_master" in statement.sql
        assert statement.params == ["items"]

    def test_postgres_table_exists(self) -> None:
        statement = PostgresDialect().render_table_exists("items")
        assert "information_schema.tables" in statement.sql
        assert "$1" in statement.sql
        assert statement.params == ["items"]
