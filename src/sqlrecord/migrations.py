"""Schema migrations: ordered, tracked, applied at most once.

Applied versions are recorded in the ``schema_migrations`` table (a single
``version`` text primary key).  A run reads that table, applies every
pending migration in ascending version order, and records each version
after its ``up`` routine succeeds.  The first failure stops the run;
versions recorded before it stay recorded.

Freshness -- "no version was recorded when this run started" -- is reported
on the result and is the only thing that gates seed data.

Concurrent runners against the same database are not guarded against;
deployments must serialize them.

Usage:
    from sqlrecord.migrations import Migration, prepare_database

    migrations = [
        Migration.create_tables("20240101000000", articles, comments),
        Migration(version="20240201000000", up=add_published_flag),
    ]

    result = await prepare_database(db, migrations, seeds=Seeds())
    print(result.applied, result.fresh, result.seeded)
"""

import inspect
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, Field, field_validator

from sqlrecord.errors import ConfigurationError, MigrationError
from sqlrecord.schema.models import Column, TableDef

if TYPE_CHECKING:
    from sqlrecord.database import Database

logger = logging.getLogger(__name__)

SCHEMA_MIGRATIONS = TableDef(
    name="schema_migrations",
    columns=[Column(name="version", type="text", primary_key=True, null=False)],
)


def version_key(version: str) -> tuple[int, int, str]:
    """Sort key: all-digit versions numerically, then everything else lexically."""
    if version.isdigit():
        return (0, int(version), version)
    return (1, 0, version)


# ============================================================================
# Models
# ============================================================================


class Migration(BaseModel):
    """One ordered schema change.

    ``up`` receives the ``Database`` and may be a plain function or a
    coroutine function.  ``tables`` lists the table descriptors the
    migration creates, for schema validation.
    """

    version: str
    up: Callable[..., Any]
    name: str = ""
    tables: list[TableDef] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @classmethod
    def create_tables(
        cls, version: str | int, *tables: TableDef, name: str = ""
    ) -> "Migration":
        """Migration that creates *tables* (and their declared indexes)."""

        async def up(db: "Database") -> None:
            for table in tables:
                await db.create_table(table)

        return cls(
            version=version,
            up=up,
            name=name or "create_" + "_".join(t.name for t in tables),
            tables=list(tables),
        )


class MigrationResult(BaseModel):
    """Outcome of a migration run.

    Example:
        >>> MigrationResult(applied=["0001"], fresh=True).seeded
        False
    """

    applied: list[str] = Field(default_factory=list)
    fresh: bool
    seeded: bool = False


class Seeds(Protocol):
    """Seed hook: a single ``run()`` entry point (sync or async)."""

    def run(self) -> Any: ...


# ============================================================================
# Runner
# ============================================================================


class MigrationRunner:
    """Applies pending migrations against one ``Database``.

    Args:
        db: Target database handle.
        migrations: Migration units, in any order.
        tables: Table descriptors created directly when no migrations are
            declared at all.

    Raises:
        ConfigurationError: If two migrations share a version.
    """

    def __init__(
        self,
        db: "Database",
        migrations: Iterable[Migration],
        tables: Sequence[TableDef] = (),
    ) -> None:
        self.db = db
        self.migrations = sorted(migrations, key=lambda m: version_key(m.version))
        self.tables = list(tables)

        seen: set[str] = set()
        for migration in self.migrations:
            if migration.version in seen:
                raise ConfigurationError(
                    f"Duplicate migration version: {migration.version}"
                )
            seen.add(migration.version)

    def declared_tables(self) -> list[TableDef]:
        """Every table descriptor known to this runner."""
        tables = list(self.tables)
        for migration in self.migrations:
            tables.extend(migration.tables)
        return tables

    async def _recorded_versions(self) -> set[str] | None:
        """Recorded versions, or ``None`` when the tracking table is missing."""
        if not await self.db.table_exists(SCHEMA_MIGRATIONS.name):
            return None
        rows = await self.db.select(SCHEMA_MIGRATIONS.name, columns=["version"])
        return {str(row["version"]) for row in rows}

    async def pending(self) -> list[Migration]:
        """Migrations not yet recorded, in the order ``run()`` would apply them."""
        recorded = await self._recorded_versions() or set()
        return [m for m in self.migrations if m.version not in recorded]

    async def status(self) -> dict[str, bool]:
        """Map of version -> applied, in application order."""
        recorded = await self._recorded_versions() or set()
        return {m.version: m.version in recorded for m in self.migrations}

    async def run(self) -> MigrationResult:
        """Apply every pending migration in ascending version order.

        Raises:
            MigrationError: If a migration's ``up`` routine fails.  Later
                migrations are not attempted.
        """
        if not self.migrations:
            for table in self.tables:
                await self.db.create_table(table)
            logger.info(
                "No migrations declared; created %d table(s) directly", len(self.tables)
            )
            return MigrationResult(applied=[], fresh=True)

        recorded = await self._recorded_versions()
        if recorded is None:
            await self.db.create_table(SCHEMA_MIGRATIONS)
            recorded = set()
        fresh = not recorded

        applied: list[str] = []
        for migration in self.migrations:
            if migration.version in recorded:
                continue
            await self._apply(migration)
            await self.db.insert(SCHEMA_MIGRATIONS, {"version": migration.version})
            applied.append(migration.version)
            logger.info(
                "Applied migration %s%s",
                migration.version,
                f" ({migration.name})" if migration.name else "",
            )

        return MigrationResult(applied=applied, fresh=fresh)

    async def _apply(self, migration: Migration) -> None:
        try:
            outcome = migration.up(self.db)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            logger.error("Migration %s failed: %s", migration.version, exc)
            raise MigrationError(migration.version, str(exc)) from exc


async def prepare_database(
    db: "Database",
    migrations: Iterable[Migration],
    seeds: Seeds | None = None,
    tables: Sequence[TableDef] = (),
) -> MigrationResult:
    """Run migrations, then seeds only if the database was fresh."""
    result = await MigrationRunner(db, migrations, tables).run()

    if result.fresh and seeds is not None:
        logger.info("Fresh database; running seeds")
        outcome = seeds.run()
        if inspect.isawaitable(outcome):
            await outcome
        result = result.model_copy(update={"seeded": True})

    return result
