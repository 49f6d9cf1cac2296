"""Record base class -- one row, its persistence state, and class finders.

Models subclass ``Record``, declare a ``TableDef`` and any associations,
and are bound to a ``Database`` with ``db.register(...)``.

State machine:

    new (unpersisted) --save()--> persisted --destroy()--> destroyed

Records built with ``Model(**attrs)`` start unpersisted; records returned
by finders start persisted.  ``save()`` validates, then inserts or updates
accordingly, running the model's registered callbacks around the write:

    insert: before_save, before_create, INSERT, after_create, after_save,
            after_create_commit, after_save_commit
    update: before_save, before_update, UPDATE, after_update, after_save,
            after_update_commit, after_save_commit
    destroy: before_destroy, DELETE, after_destroy, after_destroy_commit

There are no transactions, so the ``*_commit`` callbacks simply run last.

Usage:
    from sqlrecord import BelongsTo, Column, HasMany, Record, TableDef

    class Article(Record):
        table = TableDef(
            name="articles",
            columns=[
                Column(name="id", type="integer", primary_key=True, auto_increment=True),
                Column(name="title", type="string", null=False),
                Column(name="created_at", type="datetime"),
                Column(name="updated_at", type="datetime"),
            ],
        )
        comments = HasMany("Comment")

        def validate(self) -> None:
            self.validates_presence_of("title")

    @Article.before_save
    def strip_title(article: Article) -> None:
        article.title = article.title.strip()

    db.register(Article, Comment)

    article = await Article.create(title="Hello")
    same = await Article.find(article.id)
    await article.destroy()
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, ClassVar

from sqlrecord.associations import Association
from sqlrecord.errors import ConfigurationError, NotFoundError
from sqlrecord.relation import Relation
from sqlrecord.schema.models import Column, TableDef
from sqlrecord.validations import Validations

if TYPE_CHECKING:
    from sqlrecord.database import Database

logger = logging.getLogger(__name__)

Callback = Callable[[Any], Awaitable[None] | None]

CALLBACK_KINDS = (
    "before_save",
    "before_create",
    "before_update",
    "after_create",
    "after_update",
    "after_save",
    "after_create_commit",
    "after_update_commit",
    "after_save_commit",
    "before_destroy",
    "after_destroy",
    "after_destroy_commit",
)


def utcnow() -> datetime:
    """Current time as a naive UTC ``datetime``."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _registrar(kind: str) -> classmethod:
    def register(cls: type["Record"], callback: Callback) -> Callback:
        cls._callbacks[kind].append(callback)
        return callback

    register.__name__ = kind
    register.__doc__ = (
        f"Register *callback(record)* to run at {kind}; usable as a decorator."
    )
    return classmethod(register)


class Record(Validations):
    """Base class for models.

    Class attributes:
        table: Table descriptor (required on concrete models).
        database: Bound ``Database``; set by ``Database.register``.
        associations: Association descriptors collected from the class body.

    Callbacks are registered per class and copied to subclasses when the
    subclass is defined.  A callback receives the record and may be a
    plain function or a coroutine function.
    """

    table: ClassVar[TableDef]
    database: ClassVar["Database | None"] = None
    associations: ClassVar[dict[str, Association]] = {}
    _columns: ClassVar[dict[str, Column]] = {}
    _callbacks: ClassVar[dict[str, list[Callback]]] = {kind: [] for kind in CALLBACK_KINDS}

    before_save = _registrar("before_save")
    before_create = _registrar("before_create")
    before_update = _registrar("before_update")
    after_create = _registrar("after_create")
    after_update = _registrar("after_update")
    after_save = _registrar("after_save")
    after_create_commit = _registrar("after_create_commit")
    after_update_commit = _registrar("after_update_commit")
    after_save_commit = _registrar("after_save_commit")
    before_destroy = _registrar("before_destroy")
    after_destroy = _registrar("after_destroy")
    after_destroy_commit = _registrar("after_destroy_commit")

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        associations = dict(cls.associations)
        for name, value in vars(cls).items():
            if isinstance(value, Association):
                associations[name] = value
        cls.associations = associations
        cls._callbacks = {kind: list(cls._callbacks[kind]) for kind in CALLBACK_KINDS}

        table = getattr(cls, "table", None)
        if table is not None:
            cls._columns = {column.name: column for column in table.columns}

    def __init__(self, **attributes: Any) -> None:
        object.__setattr__(self, "_attributes", {})
        object.__setattr__(self, "_association_cache", {})
        object.__setattr__(self, "_persisted", False)
        object.__setattr__(self, "_destroyed", False)

        # belongs-to targets may be passed by name; they set the foreign key
        assignable = {
            name for name, assoc in self.associations.items() if hasattr(assoc, "__set__")
        }
        unknown = [
            name for name in attributes
            if name not in self._columns and name not in assignable
        ]
        if unknown:
            raise ValueError(
                f"Unknown attribute(s) for {type(self).__name__}: {', '.join(unknown)}"
            )
        for name, value in attributes.items():
            setattr(self, name, value)

    # ------------------------------------------------------------------
    # Attribute access
    # ------------------------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails
        if name.startswith("_"):
            raise AttributeError(name)
        attributes = self.__dict__.get("_attributes", {})
        if name in attributes:
            return attributes[name]
        if name in self._columns:
            return None
        raise AttributeError(f"{type(self).__name__} has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self._columns:
            self._attributes[name] = value
        else:
            object.__setattr__(self, name, value)

    def __repr__(self) -> str:
        pairs = ", ".join(f"{k}={v!r}" for k, v in self._attributes.items())
        return f"<{type(self).__name__} {pairs}>"

    @property
    def id(self) -> Any:
        """Identity value (the primary-key column)."""
        return self._attributes.get(self.table.primary_key)

    @property
    def attributes(self) -> dict[str, Any]:
        return dict(self._attributes)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._attributes)

    @property
    def persisted(self) -> bool:
        return self._persisted

    @property
    def new_record(self) -> bool:
        return not self._persisted and not self._destroyed

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    @classmethod
    def _db(cls) -> "Database":
        if cls.database is None:
            raise ConfigurationError(
                f"{cls.__name__} is not bound to a database; "
                f"call db.register({cls.__name__})"
            )
        return cls.database

    @classmethod
    def _from_row(cls, row: Mapping[str, Any]) -> "Record":
        """Build a persisted record from a result row, casting by column type."""
        dialect = cls._db().dialect
        record = cls()
        for key, value in row.items():
            column = cls._columns.get(key)
            record._attributes[key] = (
                dialect.cast_value(column, value) if column is not None else value
            )
        object.__setattr__(record, "_persisted", True)
        return record

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    async def _run_callbacks(self, kind: str) -> None:
        for callback in self._callbacks[kind]:
            outcome = callback(self)
            if inspect.isawaitable(outcome):
                await outcome

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save(self) -> bool:
        """Validate, then insert when new or update when persisted.

        ``created_at`` and ``updated_at`` are maintained only when the table
        declares them; ``created_at`` is never overwritten once set.

        Returns:
            ``False`` when validation fails (see ``errors``), else ``True``.

        Raises:
            ValueError: If the record was destroyed.
        """
        if self._destroyed:
            raise ValueError(f"Cannot save a destroyed {type(self).__name__}")

        if not self.valid():
            logger.warning(
                "%s validation failed: %s",
                type(self).__name__,
                "; ".join(self.errors.full_messages),
            )
            return False

        db = self._db()
        table = self.table
        pk = table.primary_key
        now = utcnow()

        if "updated_at" in self._columns:
            self._attributes["updated_at"] = now
        await self._run_callbacks("before_save")

        if not self._persisted:
            if "created_at" in self._columns and self._attributes.get("created_at") is None:
                self._attributes["created_at"] = now
            await self._run_callbacks("before_create")

            auto_key = table.auto_increment_key
            values = {
                k: v
                for k, v in self._attributes.items()
                if not (k == auto_key and v is None)
            }
            result = await db.insert(table, values)

            if self._attributes.get(pk) is None and result.inserted_id is not None:
                column = table.column(pk)
                self._attributes[pk] = (
                    db.dialect.cast_value(column, result.inserted_id)
                    if column is not None
                    else result.inserted_id
                )
            object.__setattr__(self, "_persisted", True)
            logger.info("%s Create (%s: %s)", type(self).__name__, pk, self.id)

            for kind in ("after_create", "after_save", "after_create_commit", "after_save_commit"):
                await self._run_callbacks(kind)
        else:
            await self._run_callbacks("before_update")

            values = {k: v for k, v in self._attributes.items() if k != pk}
            if values:
                await db.update(table, values, {pk: self.id})
            logger.info("%s Update (%s: %s)", type(self).__name__, pk, self.id)

            for kind in ("after_update", "after_save", "after_update_commit", "after_save_commit"):
                await self._run_callbacks(kind)

        return True

    async def update(self, **attributes: Any) -> bool:
        """Assign *attributes* and save."""
        for name, value in attributes.items():
            if name not in self._columns:
                raise ValueError(f"Unknown attribute for {type(self).__name__}: {name}")
            self._attributes[name] = value
        return await self.save()

    async def increment(self, attribute: str, by: int | float = 1) -> "Record":
        """Add *by* to a numeric column (unset counts as 0) and save."""
        if attribute not in self._columns:
            raise ValueError(f"Unknown attribute for {type(self).__name__}: {attribute}")
        self._attributes[attribute] = (self._attributes.get(attribute) or 0) + by
        await self.save()
        return self

    async def update_columns(self, **attributes: Any) -> bool:
        """Write *attributes* straight to the row.

        Skips validation, callbacks and timestamps.

        Raises:
            ValueError: If the record is not persisted or a name is unknown.
        """
        if not self._persisted:
            raise ValueError(
                f"Cannot update columns on an unpersisted {type(self).__name__}"
            )
        unknown = [name for name in attributes if name not in self._columns]
        if unknown:
            raise ValueError(
                f"Unknown attribute(s) for {type(self).__name__}: {', '.join(unknown)}"
            )
        self._attributes.update(attributes)
        pk = self.table.primary_key
        await self._db().update(self.table, attributes, {pk: self.id})
        return True

    async def update_column(self, attribute: str, value: Any) -> bool:
        return await self.update_columns(**{attribute: value})

    async def destroy(self) -> bool:
        """Delete the row.  Returns ``False`` if the record was never persisted."""
        if not self._persisted:
            return False

        await self._run_callbacks("before_destroy")
        pk = self.table.primary_key
        await self._db().delete(self.table.name, {pk: self.id})
        object.__setattr__(self, "_persisted", False)
        object.__setattr__(self, "_destroyed", True)
        logger.info("%s Destroy (%s: %s)", type(self).__name__, pk, self.id)

        await self._run_callbacks("after_destroy")
        await self._run_callbacks("after_destroy_commit")
        return True

    async def reload(self) -> "Record":
        """Replace attributes with a fresh copy of the row; identity unchanged.

        Association caches are kept; call ``reset()`` on a proxy to drop one.
        """
        if self.id is None:
            return self
        fresh = await type(self).find(self.id)
        object.__setattr__(self, "_attributes", fresh._attributes)
        return self

    # ------------------------------------------------------------------
    # Finders
    # ------------------------------------------------------------------

    @classmethod
    async def find(cls, record_id: Any) -> "Record":
        """Fetch by identity.

        Raises:
            NotFoundError: If no row has that identity.
        """
        pk = cls.table.primary_key
        rows = await cls._db().select(cls.table.name, {pk: record_id}, limit=1)
        if not rows:
            raise NotFoundError(cls.__name__, record_id)
        return cls._from_row(rows[0])

    @classmethod
    async def find_by(cls, **conditions: Any) -> "Record | None":
        """First row matching *conditions*, or ``None``."""
        return await Relation(cls).find_by(**conditions)

    @classmethod
    def all(cls) -> Relation:
        return Relation(cls)

    @classmethod
    def where(
        cls, conditions: Mapping[str, Any] | None = None, /, **kwargs: Any
    ) -> Relation:
        return Relation(cls).where(conditions, **kwargs)

    @classmethod
    def order(cls, *columns: str, **directions: str) -> Relation:
        return Relation(cls).order(*columns, **directions)

    @classmethod
    def limit(cls, count: int) -> Relation:
        return Relation(cls).limit(count)

    @classmethod
    def offset(cls, count: int) -> Relation:
        return Relation(cls).offset(count)

    @classmethod
    def select(cls, *columns: str) -> Relation:
        return Relation(cls).select(*columns)

    @classmethod
    def includes(cls, *associations: str) -> Relation:
        return Relation(cls).includes(*associations)

    @classmethod
    async def first(cls) -> "Record | None":
        return await Relation(cls).first()

    @classmethod
    async def last(cls) -> "Record | None":
        return await Relation(cls).last()

    @classmethod
    async def count(cls) -> int:
        return await Relation(cls).count()

    @classmethod
    async def create(cls, **attributes: Any) -> "Record":
        record = cls(**attributes)
        await record.save()
        return record
