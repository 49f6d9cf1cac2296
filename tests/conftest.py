"""Shared fixtures: a file-backed SQLite database and a small blog schema."""

from pathlib import Path

import pytest

from sqlrecord.adapters.sqlite import AsyncSQLiteExecutor
from sqlrecord.associations import BelongsTo, HasMany, HasOne
from sqlrecord.database import Database
from sqlrecord.record import Record
from sqlrecord.schema.models import Column, ForeignKey, Index, TableDef


# ============================================================================
# Table Descriptors
# ============================================================================

WIDGETS = TableDef(
    name="widgets",
    columns=[
        Column(name="id", type="integer", primary_key=True, auto_increment=True),
        Column(name="name", type="text", null=False),
        Column(name="created_at", type="datetime"),
        Column(name="updated_at", type="datetime"),
    ],
)

ARTICLES = TableDef(
    name="articles",
    columns=[
        Column(name="id", type="integer", primary_key=True, auto_increment=True),
        Column(name="title", type="string", null=False),
        Column(name="published", type="boolean", default=False),
        Column(name="created_at", type="datetime"),
        Column(name="updated_at", type="datetime"),
    ],
)

COMMENTS = TableDef(
    name="comments",
    columns=[
        Column(name="id", type="integer", primary_key=True, auto_increment=True),
        Column(name="article_id", type="integer", null=False),
        Column(name="body", type="text", null=False),
        Column(name="created_at", type="datetime"),
        Column(name="updated_at", type="datetime"),
    ],
    foreign_keys=[ForeignKey(column="article_id", references="articles", on_delete="cascade")],
    indexes=[Index(columns=["article_id"])],
)

SUMMARIES = TableDef(
    name="summaries",
    columns=[
        Column(name="id", type="integer", primary_key=True, auto_increment=True),
        Column(name="article_id", type="integer", null=False),
        Column(name="text", type="text"),
    ],
)


# ============================================================================
# Models
# ============================================================================


class Widget(Record):
    table = WIDGETS


class Article(Record):
    table = ARTICLES
    comments = HasMany("Comment")
    summary = HasOne("Summary")


class Comment(Record):
    table = COMMENTS
    article = BelongsTo("Article")


class Summary(Record):
    table = SUMMARIES


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
async def db(tmp_path: Path):
    """Empty SQLite database in a temporary file, closed after the test."""
    database = Database(AsyncSQLiteExecutor(f"sqlite:///{tmp_path / 'test.db'}"))
    yield database
    await database.close()


@pytest.fixture
async def blog_db(db: Database) -> Database:
    """Database with the blog tables created and all models registered."""
    for table in (WIDGETS, ARTICLES, COMMENTS, SUMMARIES):
        await db.create_table(table)
    db.register(Widget, Article, Comment, Summary)
    return db
