"""Deferred, chainable query scope over one model.

A ``Relation`` describes a query without running it.  Every chain method
returns a new ``Relation``; the receiver is never modified, so a scope can
be shared and narrowed freely.  The query runs when the relation is
awaited or a terminal method (``load``, ``first``, ``last``, ``count``,
``exists``, ``find_by``) is called.

Usage:
    recent = Article.where(published=True).order(created_at="desc").limit(10)
    articles = await recent
    newest = await recent.first()
"""

from collections.abc import Generator, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sqlrecord.record import Record


class Relation:
    """Immutable query description bound to a model class."""

    def __init__(
        self,
        model: type["Record"],
        *,
        conditions: Mapping[str, Any] | None = None,
        order: tuple[tuple[str, str], ...] = (),
        limit: int | None = None,
        offset: int | None = None,
        columns: tuple[str, ...] = (),
        includes: tuple[str, ...] = (),
    ) -> None:
        self.model = model
        self._conditions: dict[str, Any] = dict(conditions or {})
        self._order = order
        self._limit = limit
        self._offset = offset
        self._columns = columns
        self._includes = includes

    def _clone(self, **changes: Any) -> "Relation":
        state = {
            "conditions": self._conditions,
            "order": self._order,
            "limit": self._limit,
            "offset": self._offset,
            "columns": self._columns,
            "includes": self._includes,
        }
        state.update(changes)
        return Relation(self.model, **state)

    def __repr__(self) -> str:
        return (
            f"<Relation {self.model.__name__} where={self._conditions!r} "
            f"order={list(self._order)!r} limit={self._limit} offset={self._offset}>"
        )

    # ------------------------------------------------------------------
    # Chain methods
    # ------------------------------------------------------------------

    def where(
        self, conditions: Mapping[str, Any] | None = None, /, **kwargs: Any
    ) -> "Relation":
        """AND the given equality predicates onto this scope."""
        merged = {**self._conditions, **(conditions or {}), **kwargs}
        return self._clone(conditions=merged)

    def order(self, *columns: str, **directions: str) -> "Relation":
        """Append ordering: ``order("name")`` or ``order(created_at="desc")``."""
        added = tuple((c, "asc") for c in columns)
        added += tuple((c, d.lower()) for c, d in directions.items())
        return self._clone(order=self._order + added)

    def limit(self, count: int) -> "Relation":
        return self._clone(limit=count)

    def offset(self, count: int) -> "Relation":
        return self._clone(offset=count)

    def select(self, *columns: str) -> "Relation":
        return self._clone(columns=self._columns + columns)

    def includes(self, *associations: str) -> "Relation":
        """Preload the named associations with one query each."""
        for name in associations:
            if name not in self.model.associations:
                raise ValueError(
                    f"{self.model.__name__} has no association named '{name}'"
                )
        return self._clone(includes=self._includes + associations)

    # ------------------------------------------------------------------
    # Terminal methods
    # ------------------------------------------------------------------

    async def load(self) -> list["Record"]:
        """Run the query and return the matching records."""
        db = self.model._db()
        rows = await db.select(
            self.model.table.name,
            self._conditions,
            columns=self._columns or None,
            order=self._order or None,
            limit=self._limit,
            offset=self._offset,
        )
        records = [self.model._from_row(row) for row in rows]

        if records:
            for name in self._includes:
                await self.model.associations[name].preload(records)
        return records

    def __await__(self) -> Generator[Any, None, list["Record"]]:
        return self.load().__await__()

    async def first(self) -> "Record | None":
        """First record by the current ordering (primary key when unordered)."""
        scope = self if self._order else self.order(self.model.table.primary_key)
        records = await scope.limit(1).load()
        return records[0] if records else None

    async def last(self) -> "Record | None":
        """Last record: the current ordering reversed (primary key when unordered)."""
        if self._order:
            reversed_order = tuple(
                (c, "asc" if d == "desc" else "desc") for c, d in self._order
            )
        else:
            reversed_order = ((self.model.table.primary_key, "desc"),)
        records = await self._clone(order=reversed_order, limit=1).load()
        return records[0] if records else None

    async def count(self) -> int:
        """Count matching rows (ordering and paging are ignored)."""
        db = self.model._db()
        return await db.count(self.model.table.name, self._conditions)

    async def exists(self) -> bool:
        return await self.count() > 0

    async def find_by(self, **conditions: Any) -> "Record | None":
        """First record matching *conditions* within this scope, or ``None``."""
        records = await self.where(**conditions).limit(1).load()
        return records[0] if records else None
