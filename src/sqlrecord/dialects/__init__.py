"""SQL dialects: pure statement generation per backend family."""

from sqlrecord.dialects.base import Dialect, Statement
from sqlrecord.dialects.postgres import PostgresDialect
from sqlrecord.dialects.sqlite import SQLiteDialect

__all__ = [
    "Dialect",
    "Statement",
    "PostgresDialect",
    "SQLiteDialect",
]
