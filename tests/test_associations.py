"""Tests for has-many / has-one proxies and includes() preloading."""

from unittest.mock import patch

import pytest

from conftest import Article, Comment, Summary
from sqlrecord.associations import (
    BelongsTo,
    BelongsToReference,
    CollectionProxy,
    HasMany,
    ProxyState,
    snake_case,
)
from sqlrecord.database import Database
from sqlrecord.errors import AssociationNotLoadedError, ConfigurationError
from sqlrecord.relation import Relation


async def _article_with_comments(count: int) -> Article:
    article = await Article.create(title="Post")
    for i in range(count):
        await Comment.create(article_id=article.id, body=f"c{i}")
    return article


class TestDescriptors:
    """Declaration-time behavior."""

    def test_default_foreign_key(self) -> None:
        assert Article.comments.foreign_key == "article_id"

    def test_snake_case(self) -> None:
        assert snake_case("BlogPost") == "blog_post"
        assert snake_case("Article") == "article"

    def test_associations_collected(self) -> None:
        assert set(Article.associations) == {"comments", "summary"}
        assert isinstance(Article.associations["comments"], HasMany)

    def test_explicit_foreign_key(self) -> None:
        assert HasMany("Comment", foreign_key="post_id").foreign_key == "post_id"

    @pytest.mark.asyncio
    async def test_unregistered_target_raises(self, blog_db: Database) -> None:
        article = await Article.create(title="x")
        with patch.object(Article.comments, "target", "Missing"):
            with pytest.raises(ConfigurationError, match="Missing"):
                await article.comments


class TestLazyProxy:
    """Awaiting resolves once and caches."""

    @pytest.mark.asyncio
    async def test_await_twice_hits_backend_once(self, blog_db: Database) -> None:
        article = await _article_with_comments(2)
        proxy = article.comments
        assert proxy.state is ProxyState.LAZY

        with patch.object(blog_db, "execute", wraps=blog_db.execute) as spy:
            first = await proxy
            second = await proxy

        assert spy.await_count == 1
        assert first is second
        assert [c.body for c in first] == ["c0", "c1"]
        assert proxy.state is ProxyState.EAGER

    @pytest.mark.asyncio
    async def test_proxy_is_cached_per_instance(self, blog_db: Database) -> None:
        article = await Article.create(title="x")
        assert article.comments is article.comments

    @pytest.mark.asyncio
    async def test_sync_access_before_load_raises(self, blog_db: Database) -> None:
        article = await _article_with_comments(1)

        with pytest.raises(AssociationNotLoadedError, match="Article.comments"):
            len(article.comments)
        with pytest.raises(AssociationNotLoadedError):
            list(article.comments)
        with pytest.raises(AssociationNotLoadedError):
            article.comments.map(lambda c: c.body)

    @pytest.mark.asyncio
    async def test_sync_access_after_load(self, blog_db: Database) -> None:
        article = await _article_with_comments(3)
        await article.comments

        proxy = article.comments
        assert len(proxy) == 3
        assert proxy[0].body == "c0"
        assert proxy.map(lambda c: c.body) == ["c0", "c1", "c2"]
        assert [c.body for c in proxy.filter(lambda c: c.body != "c1")] == ["c0", "c2"]
        assert proxy.find(lambda c: c.body == "c2").body == "c2"
        assert proxy.find(lambda c: c.body == "zz") is None

    @pytest.mark.asyncio
    async def test_count_first_last_resolve(self, blog_db: Database) -> None:
        article = await _article_with_comments(2)

        assert await article.comments.count() == 2
        assert article.comments.state is ProxyState.EAGER
        assert (await article.comments.first()).body == "c0"
        assert (await article.comments.last()).body == "c1"

    @pytest.mark.asyncio
    async def test_unsaved_owner_has_no_children(self, blog_db: Database) -> None:
        await Comment.create(article_id=1, body="orphan")
        assert await Article(title="new").comments == []

    @pytest.mark.asyncio
    async def test_reset_drops_cache(self, blog_db: Database) -> None:
        article = await _article_with_comments(1)
        await article.comments
        await Comment.create(article_id=article.id, body="elsewhere")

        assert len(article.comments) == 1  # outside writes do not touch the cache
        article.comments.reset()
        assert article.comments.state is ProxyState.LAZY
        assert len(await article.comments) == 2

    @pytest.mark.asyncio
    async def test_truth_test_requires_load(self, blog_db: Database) -> None:
        empty = await Article.create(title="empty")
        busy = await _article_with_comments(1)

        with pytest.raises(AssociationNotLoadedError, match="Article.comments"):
            bool(empty.comments)

        await empty.comments
        await busy.comments
        assert not empty.comments
        assert busy.comments


class TestWritesThroughProxy:
    """build() and create()."""

    @pytest.mark.asyncio
    async def test_build_sets_foreign_key_without_saving(self, blog_db: Database) -> None:
        article = await Article.create(title="x")

        comment = article.comments.build(body="draft")

        assert isinstance(comment, Comment)
        assert comment.article_id == article.id
        assert comment.persisted is False
        assert await Comment.count() == 0

    @pytest.mark.asyncio
    async def test_create_appends_when_loaded(self, blog_db: Database) -> None:
        article = await _article_with_comments(2)
        loaded = await article.comments

        created = await article.comments.create(body="new")

        assert created.persisted is True
        assert len(loaded) == 3
        assert len(article.comments) == 3

    @pytest.mark.asyncio
    async def test_create_on_lazy_proxy_stays_lazy(self, blog_db: Database) -> None:
        article = await Article.create(title="x")

        await article.comments.create(body="new")

        assert article.comments.state is ProxyState.LAZY
        assert len(await article.comments) == 1


class TestScopes:
    """Chain methods return new lazy relations."""

    @pytest.mark.asyncio
    async def test_chain_returns_relation_and_leaves_cache(self, blog_db: Database) -> None:
        article = await _article_with_comments(3)
        await article.comments

        scope = article.comments.where(body="c1")
        matches = await scope

        assert isinstance(scope, Relation)
        assert [c.body for c in matches] == ["c1"]
        assert len(article.comments) == 3

    @pytest.mark.asyncio
    async def test_order_limit_scope(self, blog_db: Database) -> None:
        article = await _article_with_comments(3)

        latest = await article.comments.order(id="desc").limit(2)

        assert [c.body for c in latest] == ["c2", "c1"]
        assert article.comments.state is ProxyState.LAZY

    @pytest.mark.asyncio
    async def test_scope_excludes_other_owners(self, blog_db: Database) -> None:
        first = await _article_with_comments(1)
        await _article_with_comments(2)

        assert len(await first.comments) == 1
        assert await first.comments.find_by(body="c1") is None


class TestIncludes:
    """Batched preloading."""

    @pytest.mark.asyncio
    async def test_includes_installs_eager_proxies(self, blog_db: Database) -> None:
        await _article_with_comments(2)
        await _article_with_comments(0)
        await _article_with_comments(1)

        with patch.object(blog_db, "execute", wraps=blog_db.execute) as spy:
            articles = await Article.order("id").includes("comments")
            counts = [len(a.comments) for a in articles]

        assert counts == [2, 0, 1]
        assert spy.await_count == 2  # one for articles, one for all comments
        assert all(isinstance(a.comments, CollectionProxy) for a in articles)
        assert all(a.comments.state is ProxyState.EAGER for a in articles)

    @pytest.mark.asyncio
    async def test_includes_unknown_association(self, blog_db: Database) -> None:
        with pytest.raises(ValueError, match="no association named 'tags'"):
            Article.includes("tags")

    @pytest.mark.asyncio
    async def test_has_one_preload_and_lazy(self, blog_db: Database) -> None:
        with_summary = await Article.create(title="a")
        without_summary = await Article.create(title="b")
        await Summary.create(article_id=with_summary.id, text="tl;dr")

        lazy = await Article.find(with_summary.id)
        with pytest.raises(AssociationNotLoadedError):
            lazy.summary.target
        assert (await lazy.summary).text == "tl;dr"

        articles = await Article.order("id").includes("summary")
        assert articles[0].summary.target.text == "tl;dr"
        assert articles[1].summary.target is None
        assert without_summary.id == articles[1].id

    @pytest.mark.asyncio
    async def test_has_one_create(self, blog_db: Database) -> None:
        article = await Article.create(title="a")

        summary = await article.summary.create(text="short")

        assert summary.article_id == article.id
        assert article.summary.target is summary


class TestBelongsTo:
    """Many-to-one references resolved through the registry."""

    def test_default_foreign_key(self) -> None:
        assert isinstance(Comment.associations["article"], BelongsTo)
        assert Comment.article.foreign_key == "article_id"
        assert BelongsTo("Article", foreign_key="post_id").foreign_key == "post_id"

    @pytest.mark.asyncio
    async def test_await_loads_once(self, blog_db: Database) -> None:
        article = await Article.create(title="Post")
        created = await Comment.create(article_id=article.id, body="hi")
        comment = await Comment.find(created.id)

        reference = comment.article
        assert isinstance(reference, BelongsToReference)
        assert reference.state is ProxyState.LAZY
        with pytest.raises(AssociationNotLoadedError, match="Comment.article"):
            reference.target

        with patch.object(blog_db, "execute", wraps=blog_db.execute) as spy:
            first = await comment.article
            second = await comment.article

        assert spy.await_count == 1
        assert first is second
        assert first.title == "Post"
        assert comment.article.target is first

    @pytest.mark.asyncio
    async def test_changed_foreign_key_refreshes_reference(self, blog_db: Database) -> None:
        first = await Article.create(title="first")
        second = await Article.create(title="second")
        comment = await Comment.create(article_id=first.id, body="hi")
        await comment.article

        comment.article_id = second.id

        assert comment.article.loaded is False
        assert (await comment.article).title == "second"

    @pytest.mark.asyncio
    async def test_missing_or_dangling_key_resolves_none(self, blog_db: Database) -> None:
        dangling = await Comment.create(article_id=999, body="orphan")

        assert await Comment(body="new").article is None
        assert await dangling.article is None

    @pytest.mark.asyncio
    async def test_assignment_sets_foreign_key(self, blog_db: Database) -> None:
        article = await Article.create(title="Post")

        comment = Comment(body="hi", article=article)

        assert comment.article_id == article.id
        assert comment.article.target is article
        assert await comment.save() is True
        assert (await Comment.find(comment.id)).article_id == article.id

    @pytest.mark.asyncio
    async def test_assignment_of_none_clears_key(self, blog_db: Database) -> None:
        article = await Article.create(title="Post")
        comment = Comment(body="hi", article=article)

        comment.article = None

        assert comment.article_id is None
        assert comment.article.target is None

    @pytest.mark.asyncio
    async def test_assigning_unsaved_record_raises(self, blog_db: Database) -> None:
        with pytest.raises(ValueError, match="unsaved Article"):
            Comment(body="hi", article=Article(title="draft"))

    @pytest.mark.asyncio
    async def test_includes_batches_parents(self, blog_db: Database) -> None:
        first = await Article.create(title="first")
        second = await Article.create(title="second")
        for article_id in (first.id, second.id, first.id, 999):
            await Comment.create(article_id=article_id, body="c")

        with patch.object(blog_db, "execute", wraps=blog_db.execute) as spy:
            comments = await Comment.order("id").includes("article")

        assert spy.await_count == 2
        assert [c.article.target.title if c.article.target else None for c in comments] == [
            "first",
            "second",
            "first",
            None,
        ]
        assert comments[0].article.target is comments[2].article.target
