"""Pydantic models for table descriptors and schema validation.

This module contains schema-domain models:
- Descriptor models: Column, ForeignKey, Index, TableDef
- Validation models: ColumnDiff, SchemaValidationResult
- Connection result: ConnectionResult

Every generated statement is derived from these descriptors; only values
are runtime-derived.

Usage:
    from sqlrecord.schema.models import Column, ForeignKey, TableDef

    comments = TableDef(
        name="comments",
        columns=[
            Column(name="id", type="integer", primary_key=True, auto_increment=True),
            Column(name="article_id", type="integer", null=False),
            Column(name="body", type="text", null=False),
        ],
        foreign_keys=[ForeignKey(column="article_id", references="articles")],
    )
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


ColumnType = Literal[
    "string",
    "text",
    "integer",
    "bigint",
    "float",
    "decimal",
    "boolean",
    "date",
    "datetime",
    "time",
    "timestamp",
    "binary",
    "json",
]


# ============================================================================
# Descriptor Models
# ============================================================================


class Column(BaseModel):
    """Descriptor for one table column.

    ``default`` is only rendered when it was explicitly given, so
    ``Column(name="x", type="string", default=None)`` emits ``DEFAULT NULL``
    while ``Column(name="x", type="string")`` emits no default clause.

    Example:
        >>> col = Column(name="title", type="string", limit=120, null=False)
        >>> col.has_default
        False
    """

    name: str
    type: ColumnType = "string"
    null: bool = True
    default: Any = None
    primary_key: bool = False
    auto_increment: bool = False
    limit: int | None = None
    precision: int | None = None
    scale: int | None = None

    @property
    def has_default(self) -> bool:
        """True when a default value was explicitly declared."""
        return "default" in self.model_fields_set


class ForeignKey(BaseModel):
    """Foreign key constraint: local column -> referenced table/column."""

    column: str                     # FK column in this table
    references: str                 # referenced table name
    primary_key: str = "id"         # referenced column
    on_delete: str | None = None    # CASCADE, SET NULL, ...


class Index(BaseModel):
    """Index over one or more columns of a table."""

    columns: list[str]
    unique: bool = False
    name: str | None = None


class TableDef(BaseModel):
    """Descriptor for a table: ordered columns plus constraints and indexes."""

    name: str
    columns: list[Column]
    foreign_keys: list[ForeignKey] = Field(default_factory=list)
    indexes: list[Index] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_columns(self) -> "TableDef":
        seen: set[str] = set()
        for column in self.columns:
            if column.name in seen:
                raise ValueError(
                    f"Duplicate column '{column.name}' in table '{self.name}'"
                )
            seen.add(column.name)

        auto_keys = [c.name for c in self.columns if c.primary_key and c.auto_increment]
        if len(auto_keys) > 1:
            raise ValueError(
                f"Table '{self.name}' declares more than one auto-increment "
                f"primary key: {', '.join(auto_keys)}"
            )
        return self

    @property
    def column_names(self) -> list[str]:
        """Column names in declaration order."""
        return [c.name for c in self.columns]

    @property
    def primary_key(self) -> str:
        """Name of the primary-key column (``id`` when none is flagged)."""
        for column in self.columns:
            if column.primary_key:
                return column.name
        return "id"

    @property
    def auto_increment_key(self) -> str | None:
        """Name of the auto-increment primary key, if the table has one."""
        for column in self.columns:
            if column.primary_key and column.auto_increment:
                return column.name
        return None

    def column(self, name: str) -> Column | None:
        """Look up a column descriptor by name."""
        for column in self.columns:
            if column.name == name:
                return column
        return None


# ============================================================================
# Validation Result Models
# ============================================================================


class ColumnDiff(BaseModel):
    """A missing column detected during validation."""

    table: str
    column: str
    message: str = ""


class SchemaValidationResult(BaseModel):
    """Result of schema validation.

    Example:
        >>> result = SchemaValidationResult(valid=True)
        >>> result.error_count
        0
        >>> result.format_report()
        'Schema valid'
    """

    valid: bool
    missing_tables: list[str] = Field(default_factory=list)
    missing_columns: list[ColumnDiff] = Field(default_factory=list)
    extra_tables: list[str] = Field(default_factory=list)  # Warning only

    @property
    def error_count(self) -> int:
        """Count of critical errors (missing tables + missing columns)."""
        return len(self.missing_tables) + len(self.missing_columns)

    def format_report(self) -> str:
        """Format validation result as human-readable report."""
        if self.valid:
            return "Schema valid"

        lines = ["Schema validation failed:"]

        if self.missing_tables:
            lines.append(f"\n  Missing tables ({len(self.missing_tables)}):")
            for table in self.missing_tables:
                lines.append(f"    - {table}")

        if self.missing_columns:
            lines.append(f"\n  Missing columns ({len(self.missing_columns)}):")
            for diff in self.missing_columns:
                lines.append(f"    - {diff.table}.{diff.column}")

        if self.extra_tables:
            lines.append(f"\n  Extra tables (warning): {', '.join(self.extra_tables)}")

        return "\n".join(lines)


# ============================================================================
# Connection Result
# ============================================================================


class ConnectionResult(BaseModel):
    """Result of connect_and_validate().

    Example:
        >>> result = ConnectionResult(success=True, profile_name="dev", schema_valid=True)
        >>> result.success
        True
    """

    success: bool
    profile_name: str | None = None
    schema_valid: bool | None = None
    schema_report: SchemaValidationResult | None = None
    error: str | None = None
