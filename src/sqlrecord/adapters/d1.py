"""Cloudflare D1 executor.

Provides ``D1Executor``, an implementation of the ``Executor`` protocol
over a D1 database binding as exposed to Python Workers (``env.DB``).
The binding follows the ``prepare(sql).bind(*params).all() / .run()``
pattern; reads use ``all()`` and writes use ``run()``.

D1 speaks SQLite, so the executor pairs with ``SQLiteDialect``.

Usage:
    from sqlrecord.adapters.d1 import D1Executor

    executor = D1Executor(env.DB)
    result = await executor.execute('SELECT * FROM "users" WHERE "id" = ?', [1])
"""

from collections.abc import Sequence
from typing import Any

from sqlrecord.adapters.base import ExecutionResult
from sqlrecord.dialects.sqlite import SQLiteDialect
from sqlrecord.errors import ConfigurationError, ExecutionError

_READ_PREFIXES = ("SELECT", "PRAGMA", "WITH")


def _to_py(value: Any) -> Any:
    """Convert a JS proxy object returned by the runtime into Python data."""
    to_py = getattr(value, "to_py", None)
    if callable(to_py):
        return to_py()
    return value


def _field(obj: Any, name: str) -> Any:
    """Read *name* from a mapping or an attribute-style object."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def is_read_statement(sql: str) -> bool:
    """True when the statement returns rows and must go through ``all()``."""
    head = sql.lstrip().upper()
    return head.startswith(_READ_PREFIXES) or " RETURNING " in f" {head} "


class D1Executor:
    """D1 binding implementation of the ``Executor`` protocol.

    Args:
        binding: The D1 database binding object.

    Raises:
        ConfigurationError: If no binding is supplied.
    """

    supports_returning = False

    def __init__(self, binding: Any) -> None:
        if binding is None:
            raise ConfigurationError("D1 executor requires a database binding")
        self.dialect = SQLiteDialect()
        self._binding = binding

    async def execute(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> ExecutionResult:
        read = is_read_statement(sql)
        try:
            statement = self._binding.prepare(sql)
            if params:
                statement = statement.bind(*params)
            raw = await (statement.all() if read else statement.run())
        except Exception as exc:
            raise ExecutionError(str(exc), sql=sql) from exc

        result = _to_py(raw)
        meta = _to_py(_field(result, "meta"))
        rows = [dict(_to_py(row)) for row in _field(result, "results") or []]

        inserted_id = None
        if sql.lstrip().upper().startswith("INSERT"):
            inserted_id = _field(meta, "last_row_id")

        return ExecutionResult(
            rows=rows,
            inserted_id=inserted_id,
            rows_affected=_field(meta, "changes") or 0,
        )

    async def get_connection(self) -> Any:
        return self._binding

    async def close(self) -> None:
        """No-op: the Workers runtime owns the binding's lifetime."""
