"""Exception hierarchy for sqlrecord.

All errors surface to the immediate caller unmodified -- nothing in the
library retries, recovers, or masks a partial failure.

Usage:
    from sqlrecord.errors import NotFoundError

    try:
        article = await Article.find(42)
    except NotFoundError as e:
        print(e.model, e.record_id)
"""

from typing import Any


class SQLRecordError(Exception):
    """Base class for every error raised by sqlrecord."""


class ConfigurationError(SQLRecordError):
    """Raised eagerly when connection parameters are missing or invalid."""


class ExecutionError(SQLRecordError):
    """Raised when a backend call fails (network, syntax, constraint).

    Carries the backend's original message and the statement that failed.
    """

    def __init__(self, message: str, sql: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.sql = sql


class NotFoundError(SQLRecordError):
    """Raised when a lookup by identity finds zero rows."""

    def __init__(self, model: str, record_id: Any) -> None:
        super().__init__(f"{model} not found with id={record_id}")
        self.model = model
        self.record_id = record_id


class MigrationError(SQLRecordError):
    """Raised when a migration's apply routine fails.

    Versions recorded before the failure stay recorded.
    """

    def __init__(self, version: str, reason: str) -> None:
        super().__init__(f"Migration {version} failed: {reason}")
        self.version = version
        self.reason = reason


class AssociationNotLoadedError(SQLRecordError):
    """Raised on synchronous access to an association that was never loaded."""
