"""sqlrecord: async multi-backend record layer with tracked migrations.

Provides one set of model semantics (finders, persistence lifecycle,
associations) over SQLite, PostgreSQL, Neon (SQL-over-HTTP) and
Cloudflare D1, plus a migration runner that applies each version at most
once and reports whether the database was fresh.

Usage:
    from sqlrecord import Column, Database, HasMany, Record, TableDef
    from sqlrecord import AsyncSQLiteExecutor, Migration, prepare_database
    from sqlrecord import get_database, connect_and_validate, load_db_config
"""

__version__ = "0.1.0"

# Adapters
from sqlrecord.adapters.base import ExecutionResult, Executor
from sqlrecord.adapters.d1 import D1Executor
from sqlrecord.adapters.neon import NeonHTTPExecutor
from sqlrecord.adapters.postgres import AsyncPostgresExecutor
from sqlrecord.adapters.sqlite import AsyncSQLiteExecutor

# Associations / records
from sqlrecord.associations import (
    BelongsTo,
    BelongsToReference,
    CollectionProxy,
    HasMany,
    HasOne,
    HasOneReference,
    ProxyState,
)
from sqlrecord.record import Record
from sqlrecord.relation import Relation
from sqlrecord.validations import Errors, FieldError

# Config
from sqlrecord.config.loader import load_db_config
from sqlrecord.config.models import DatabaseConfig, DatabaseProfile

# Database
from sqlrecord.database import Database
from sqlrecord.registry import ModelRegistry

# Dialects
from sqlrecord.dialects import Dialect, PostgresDialect, SQLiteDialect, Statement

# Errors
from sqlrecord.errors import (
    AssociationNotLoadedError,
    ConfigurationError,
    ExecutionError,
    MigrationError,
    NotFoundError,
    SQLRecordError,
)

# Factory
from sqlrecord.factory import (
    ProfileNotFoundError,
    connect_and_validate,
    create_executor,
    get_database,
    resolve_url,
)

# Migrations
from sqlrecord.migrations import (
    Migration,
    MigrationResult,
    MigrationRunner,
    prepare_database,
)

# Schema
from sqlrecord.schema.comparator import expected_columns, validate_schema
from sqlrecord.schema.introspector import SchemaIntrospector
from sqlrecord.schema.models import Column, ForeignKey, Index, TableDef

__all__ = [
    # Adapters
    "ExecutionResult",
    "Executor",
    "AsyncPostgresExecutor",
    "AsyncSQLiteExecutor",
    "D1Executor",
    "NeonHTTPExecutor",
    # Records
    "Record",
    "Relation",
    "HasMany",
    "HasOne",
    "CollectionProxy",
    "HasOneReference",
    "BelongsTo",
    "BelongsToReference",
    "Errors",
    "FieldError",
    "ProxyState",
    # Config
    "load_db_config",
    "DatabaseConfig",
    "DatabaseProfile",
    # Database
    "Database",
    "ModelRegistry",
    # Dialects
    "Dialect",
    "PostgresDialect",
    "SQLiteDialect",
    "Statement",
    # Errors
    "SQLRecordError",
    "ConfigurationError",
    "ExecutionError",
    "NotFoundError",
    "MigrationError",
    "AssociationNotLoadedError",
    # Factory
    "get_database",
    "connect_and_validate",
    "create_executor",
    "ProfileNotFoundError",
    "resolve_url",
    # Migrations
    "Migration",
    "MigrationResult",
    "MigrationRunner",
    "prepare_database",
    # Schema
    "Column",
    "ForeignKey",
    "Index",
    "TableDef",
    "SchemaIntrospector",
    "expected_columns",
    "validate_schema",
]
