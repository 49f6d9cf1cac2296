"""Backend executors package.

Provides the ``Executor`` Protocol, the normalized ``ExecutionResult``, and
concrete async executors for PostgreSQL, SQLite, Neon (HTTP) and
Cloudflare D1 (binding).

Usage:
    from sqlrecord.adapters import AsyncSQLiteExecutor, Executor

    executor: Executor = AsyncSQLiteExecutor("sqlite:///app.db")
"""

from sqlrecord.adapters.base import ExecutionResult, Executor
from sqlrecord.adapters.d1 import D1Executor
from sqlrecord.adapters.neon import NeonHTTPExecutor
from sqlrecord.adapters.postgres import AsyncPostgresExecutor
from sqlrecord.adapters.sqlite import AsyncSQLiteExecutor

__all__ = [
    "ExecutionResult",
    "Executor",
    "AsyncPostgresExecutor",
    "AsyncSQLiteExecutor",
    "D1Executor",
    "NeonHTTPExecutor",
]
