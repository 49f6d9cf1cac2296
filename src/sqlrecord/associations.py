"""Association descriptors and proxies.

``HasMany``, ``HasOne`` and ``BelongsTo`` are declared as class attributes
on a ``Record`` subclass.  Reading the attribute from an instance returns a
proxy scoped to that owner:

- ``HasMany`` -> ``CollectionProxy``
- ``HasOne`` -> ``HasOneReference``
- ``BelongsTo`` -> ``BelongsToReference``

A proxy is in one of two states.  ``LAZY`` proxies hold only the owner's
identity and run the scoped query when awaited.  ``EAGER`` proxies hold a
cached list of children, either preloaded with ``includes()`` or resolved by
an earlier await.  Synchronous reads are only valid in the ``EAGER`` state.

Usage:
    class Article(Record):
        table = articles
        comments = HasMany("Comment")

    article = await Article.find(1)
    comments = await article.comments          # one query, cached
    len(article.comments)                      # sync read from the cache
    await article.comments.create(body="Nice") # appended to the cache

    recent = article.comments.order(created_at="desc").limit(5)  # new scope
"""

import re
from collections.abc import Callable, Generator, Iterator
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from sqlrecord.errors import AssociationNotLoadedError
from sqlrecord.relation import Relation

if TYPE_CHECKING:
    from sqlrecord.record import Record

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(name: str) -> str:
    """``BlogPost`` -> ``blog_post``."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


class ProxyState(Enum):
    LAZY = "lazy"
    EAGER = "eager"


# ============================================================================
# Descriptors
# ============================================================================


class Association:
    """Base association descriptor.

    Args:
        target: Child model class or its registered name.
        foreign_key: Column on the child table holding the owner's identity.
            Defaults to ``<snake_case_owner>_id``.
    """

    kind: ClassVar[str] = "association"

    def __init__(
        self, target: "str | type[Record]", *, foreign_key: str | None = None
    ) -> None:
        self.target = target
        self._foreign_key = foreign_key
        self.name: str = ""
        self.owner: type["Record"] | None = None

    def __set_name__(self, owner: type["Record"], name: str) -> None:
        self.owner = owner
        self.name = name

    def __repr__(self) -> str:
        target = self.target if isinstance(self.target, str) else self.target.__name__
        return f"<{type(self).__name__} {self.name} -> {target}>"

    @property
    def foreign_key(self) -> str:
        if self._foreign_key:
            return self._foreign_key
        return f"{snake_case(self.owner.__name__)}_id"

    def target_model(self) -> type["Record"]:
        """Resolve the child model through the owner's registry."""
        return self.owner._db().registry.resolve(self.target)

    def scope_for(self, owner_id: Any) -> Relation:
        return self.target_model().where({self.foreign_key: owner_id})

    def _cache(self, instance: "Record") -> dict[str, Any]:
        return instance._association_cache

    async def _fetch_grouped(
        self, records: list["Record"]
    ) -> dict[Any, list["Record"]]:
        """One query for the children of every owner in *records*."""
        ids = list(dict.fromkeys(r.id for r in records if r.id is not None))
        grouped: dict[Any, list["Record"]] = {}
        if not ids:
            return grouped
        children = await self.target_model().where({self.foreign_key: ids}).load()
        for child in children:
            grouped.setdefault(getattr(child, self.foreign_key), []).append(child)
        return grouped

    async def preload(self, records: list["Record"]) -> None:
        raise NotImplementedError


class HasMany(Association):
    """One-to-many association; instances see a ``CollectionProxy``."""

    kind = "has_many"

    def __get__(self, instance: "Record | None", owner: type) -> Any:
        if instance is None:
            return self
        cache = self._cache(instance)
        if self.name not in cache:
            cache[self.name] = CollectionProxy(instance, self)
        return cache[self.name]

    async def preload(self, records: list["Record"]) -> None:
        grouped = await self._fetch_grouped(records)
        for record in records:
            self._cache(record)[self.name] = CollectionProxy(
                record, self, grouped.get(record.id, [])
            )


class HasOne(Association):
    """One-to-one association; instances see a ``HasOneReference``."""

    kind = "has_one"

    def __get__(self, instance: "Record | None", owner: type) -> Any:
        if instance is None:
            return self
        cache = self._cache(instance)
        if self.name not in cache:
            cache[self.name] = HasOneReference(instance, self)
        return cache[self.name]

    async def preload(self, records: list["Record"]) -> None:
        grouped = await self._fetch_grouped(records)
        for record in records:
            children = grouped.get(record.id)
            reference = HasOneReference(record, self)
            reference._set(children[0] if children else None)
            self._cache(record)[self.name] = reference


class BelongsTo(Association):
    """Many-to-one association; the owner's table holds the foreign key.

    Instances see a ``BelongsToReference``.  The foreign key defaults to
    ``<association_name>_id``.  Assigning a record sets the foreign key and
    caches the record as the loaded target:

        comment.article = article      # comment.article_id = article.id
    """

    kind = "belongs_to"

    @property
    def foreign_key(self) -> str:
        return self._foreign_key or f"{self.name}_id"

    def key_for(self, instance: "Record") -> Any:
        return instance._attributes.get(self.foreign_key)

    def __get__(self, instance: "Record | None", owner: type) -> Any:
        if instance is None:
            return self
        cache = self._cache(instance)
        reference = cache.get(self.name)
        if reference is None or reference.key != self.key_for(instance):
            reference = cache[self.name] = BelongsToReference(instance, self)
        return reference

    def __set__(self, instance: "Record", target: "Record | None") -> None:
        key = target.id if target is not None else None
        if target is not None and key is None:
            raise ValueError(
                f"Cannot assign an unsaved {type(target).__name__} to "
                f"{type(instance).__name__}.{self.name}"
            )
        instance._attributes[self.foreign_key] = key
        reference = BelongsToReference(instance, self)
        reference._set(target)
        self._cache(instance)[self.name] = reference

    async def preload(self, records: list["Record"]) -> None:
        keys = list(dict.fromkeys(
            key for key in (self.key_for(r) for r in records) if key is not None
        ))
        parents: dict[Any, "Record"] = {}
        if keys:
            model = self.target_model()
            for parent in await model.where({model.table.primary_key: keys}).load():
                parents[parent.id] = parent
        for record in records:
            reference = BelongsToReference(record, self)
            reference._set(parents.get(reference.key))
            self._cache(record)[self.name] = reference


# ============================================================================
# Proxies
# ============================================================================


class CollectionProxy:
    """Children of one owner through a has-many association.

    Awaiting the proxy always returns the full, unscoped child list and
    caches it.  Chain methods return a new ``Relation`` and never touch the
    cache.  Writes made elsewhere do not invalidate the cache; call
    ``reset()`` to drop it.

    Truth testing counts as a synchronous read: ``if article.comments:``
    raises ``AssociationNotLoadedError`` until the proxy is loaded, rather
    than reporting an unloaded association as empty.
    """

    def __init__(
        self,
        owner: "Record",
        association: HasMany,
        records: list["Record"] | None = None,
    ) -> None:
        self._owner = owner
        self._association = association
        self._records: list["Record"] | None = (
            list(records) if records is not None else None
        )

    def __repr__(self) -> str:
        detail = f"{len(self._records)} loaded" if self._records is not None else "not loaded"
        return (
            f"<CollectionProxy {type(self._owner).__name__}.{self._association.name} "
            f"({detail})>"
        )

    @property
    def state(self) -> ProxyState:
        return ProxyState.LAZY if self._records is None else ProxyState.EAGER

    @property
    def loaded(self) -> bool:
        return self._records is not None

    @property
    def model(self) -> type["Record"]:
        return self._association.target_model()

    def scope(self) -> Relation:
        """The foreign-key scoped query for this owner."""
        return self._association.scope_for(self._owner.id)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def load(self) -> list["Record"]:
        """Resolve the children once and cache them."""
        if self._records is None:
            if self._owner.id is None:
                self._records = []
            else:
                self._records = await self.scope().load()
        return self._records

    def __await__(self) -> Generator[Any, None, list["Record"]]:
        return self.load().__await__()

    async def count(self) -> int:
        return len(await self.load())

    async def size(self) -> int:
        return len(await self.load())

    async def first(self) -> "Record | None":
        records = await self.load()
        return records[0] if records else None

    async def last(self) -> "Record | None":
        records = await self.load()
        return records[-1] if records else None

    def reset(self) -> None:
        """Drop the cache and return to the ``LAZY`` state."""
        self._records = None

    # ------------------------------------------------------------------
    # Synchronous reads (EAGER only)
    # ------------------------------------------------------------------

    def _loaded_records(self) -> list["Record"]:
        if self._records is None:
            raise AssociationNotLoadedError(
                f"{type(self._owner).__name__}.{self._association.name} is not loaded; "
                f"await it or use includes('{self._association.name}')"
            )
        return self._records

    @property
    def records(self) -> list["Record"]:
        return list(self._loaded_records())

    def __len__(self) -> int:
        return len(self._loaded_records())

    def __bool__(self) -> bool:
        return bool(self._loaded_records())

    def __iter__(self) -> Iterator["Record"]:
        return iter(self._loaded_records())

    def __getitem__(self, index: int) -> "Record":
        return self._loaded_records()[index]

    def map(self, func: Callable[["Record"], Any]) -> list[Any]:
        return [func(record) for record in self._loaded_records()]

    def filter(self, predicate: Callable[["Record"], bool]) -> list["Record"]:
        return [record for record in self._loaded_records() if predicate(record)]

    def find(self, predicate: Callable[["Record"], bool]) -> "Record | None":
        for record in self._loaded_records():
            if predicate(record):
                return record
        return None

    # ------------------------------------------------------------------
    # Chain methods (always a new, lazy scope)
    # ------------------------------------------------------------------

    def where(self, conditions: dict[str, Any] | None = None, /, **kwargs: Any) -> Relation:
        return self.scope().where(conditions, **kwargs)

    def order(self, *columns: str, **directions: str) -> Relation:
        return self.scope().order(*columns, **directions)

    def limit(self, count: int) -> Relation:
        return self.scope().limit(count)

    def offset(self, count: int) -> Relation:
        return self.scope().offset(count)

    def select(self, *columns: str) -> Relation:
        return self.scope().select(*columns)

    def includes(self, *associations: str) -> Relation:
        return self.scope().includes(*associations)

    async def find_by(self, **conditions: Any) -> "Record | None":
        return await self.scope().find_by(**conditions)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def build(self, **attributes: Any) -> "Record":
        """New unsaved child with the foreign key set to the owner's identity."""
        attributes[self._association.foreign_key] = self._owner.id
        return self.model(**attributes)

    async def create(self, **attributes: Any) -> "Record":
        """Build and save a child; appends it to the cache when loaded."""
        child = self.build(**attributes)
        await child.save()
        if self._records is not None:
            self._records.append(child)
        return child


class Reference:
    """A single associated record, resolved on await and then cached."""

    def __init__(self, owner: "Record", association: Association) -> None:
        self._owner = owner
        self._association = association
        self._loaded = False
        self._target: "Record | None" = None

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} {type(self._owner).__name__}.{self._association.name} "
            f"({'loaded' if self._loaded else 'not loaded'})>"
        )

    def _set(self, target: "Record | None") -> None:
        self._target = target
        self._loaded = True

    @property
    def state(self) -> ProxyState:
        return ProxyState.EAGER if self._loaded else ProxyState.LAZY

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def target(self) -> "Record | None":
        if not self._loaded:
            raise AssociationNotLoadedError(
                f"{type(self._owner).__name__}.{self._association.name} is not loaded; "
                f"await it or use includes('{self._association.name}')"
            )
        return self._target

    async def _fetch(self) -> "Record | None":
        raise NotImplementedError

    async def load(self) -> "Record | None":
        if not self._loaded:
            self._set(await self._fetch())
        return self._target

    def __await__(self) -> Generator[Any, None, "Record | None"]:
        return self.load().__await__()

    def reset(self) -> None:
        self._loaded = False
        self._target = None


class HasOneReference(Reference):
    """The single child of one owner through a has-one association."""

    async def _fetch(self) -> "Record | None":
        if self._owner.id is None:
            return None
        return await self._association.scope_for(self._owner.id).first()

    def build(self, **attributes: Any) -> "Record":
        attributes[self._association.foreign_key] = self._owner.id
        return self._association.target_model()(**attributes)

    async def create(self, **attributes: Any) -> "Record":
        child = self.build(**attributes)
        await child.save()
        self._set(child)
        return child


class BelongsToReference(Reference):
    """The parent named by the owner's foreign-key column.

    The reference remembers the key it resolved; ``BelongsTo`` hands out a
    fresh reference once the owner's foreign key changes.
    """

    def __init__(self, owner: "Record", association: "BelongsTo") -> None:
        super().__init__(owner, association)
        self.key = association.key_for(owner)

    async def _fetch(self) -> "Record | None":
        if self.key is None:
            return None
        model = self._association.target_model()
        return await model.find_by(**{model.table.primary_key: self.key})
