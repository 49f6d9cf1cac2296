"""Table descriptors, schema introspection, and validation.

Usage:
    from sqlrecord.schema import Column, TableDef, validate_schema, SchemaIntrospector
"""

from sqlrecord.schema.comparator import expected_columns, validate_schema
from sqlrecord.schema.introspector import SchemaIntrospector
from sqlrecord.schema.models import (
    Column,
    ColumnDiff,
    ColumnType,
    ConnectionResult,
    ForeignKey,
    Index,
    SchemaValidationResult,
    TableDef,
)

__all__ = [
    "expected_columns",
    "validate_schema",
    "SchemaIntrospector",
    "Column",
    "ColumnDiff",
    "ColumnType",
    "ConnectionResult",
    "ForeignKey",
    "Index",
    "SchemaValidationResult",
    "TableDef",
]
