"""Repository over saved articles, their summaries and daily digests.

The orchestration code depends only on the ``ArticleRepository`` protocol;
``SqlArticleRepository`` is the SQLAlchemy-backed implementation.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import AsyncIterator, Protocol

from sqlalchemy import delete, exists, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from article_store.connection import ArticleStore
from article_store.models import Article, ArticleSummary, DailyDigest, DigestArticle, User
from common.errors import StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserRecord:
    id: int
    uid: str
    name: str


@dataclass(frozen=True)
class ArticleRecord:
    id: int
    user_id: int
    url: str
    title: str | None
    created_at: datetime


@dataclass(frozen=True)
class DigestRecord:
    id: int
    user_id: int
    summary: str
    generated_date: date
    audio_url: str | None


class ArticleRepository(Protocol):
    """Store capabilities needed by the summarizer, digest builder and batch driver."""

    async def find_unsummarized(self, user_id: int | None = None) -> list[ArticleRecord]: ...

    async def upsert_summary(self, article_id: int, summary: str) -> None: ...

    async def find_digest(self, user_id: int, generated_date: date) -> DigestRecord | None: ...

    async def find_undigested(self, user_id: int, limit: int) -> list[ArticleRecord]: ...

    async def create_digest_with_links(
        self,
        user_id: int,
        generated_date: date,
        summary: str,
        article_ids: list[int],
    ) -> DigestRecord: ...

    async def update_digest_audio(self, digest_id: int, audio_url: str) -> None: ...

    async def find_users_with_undigested_articles(self) -> list[int]: ...


def _to_article_record(row: Article) -> ArticleRecord:
    return ArticleRecord(
        id=row.id,
        user_id=row.user_id,
        url=row.url,
        title=row.title,
        created_at=row.created_at,
    )


def _to_digest_record(row: DailyDigest) -> DigestRecord:
    return DigestRecord(
        id=row.id,
        user_id=row.user_id,
        summary=row.summary,
        generated_date=row.generated_date,
        audio_url=row.audio_url,
    )


def _not_summarized():
    return ~exists().where(ArticleSummary.article_id == Article.id)


def _not_digested():
    return ~exists().where(DigestArticle.article_id == Article.id)


class SqlArticleRepository:
    """ArticleRepository backed by an ArticleStore.

    Every call opens its own session, so concurrent callers never share one.
    SQLAlchemy errors surface as StoreError naming the failed operation.
    """

    def __init__(self, store: ArticleStore) -> None:
        self.store = store

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.store.session() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("Store operation %s failed: %s", operation, exc)
            raise StoreError(operation, str(exc)) from exc

    async def find_unsummarized(self, user_id: int | None = None) -> list[ArticleRecord]:
        """Articles without a summary, oldest first, for one user or all users."""
        stmt = select(Article).where(_not_summarized())
        if user_id is not None:
            stmt = stmt.where(Article.user_id == user_id)
        stmt = stmt.order_by(Article.created_at, Article.id)

        async with self._session("find_unsummarized") as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_to_article_record(row) for row in rows]

    async def upsert_summary(self, article_id: int, summary: str) -> None:
        async with self._session("upsert_summary") as session:
            result = await session.execute(
                update(ArticleSummary)
                .where(ArticleSummary.article_id == article_id)
                .values(summary=summary)
            )
            if not result.rowcount:
                await session.execute(
                    insert(ArticleSummary).values(article_id=article_id, summary=summary)
                )
            await session.commit()

    async def get_summary(self, article_id: int) -> str | None:
        async with self._session("get_summary") as session:
            return await session.scalar(
                select(ArticleSummary.summary).where(ArticleSummary.article_id == article_id)
            )

    async def find_digest(self, user_id: int, generated_date: date) -> DigestRecord | None:
        async with self._session("find_digest") as session:
            row = await session.scalar(
                select(DailyDigest).where(
                    DailyDigest.user_id == user_id,
                    DailyDigest.generated_date == generated_date,
                )
            )
        return _to_digest_record(row) if row is not None else None

    async def find_undigested(self, user_id: int, limit: int) -> list[ArticleRecord]:
        """Up to `limit` of the user's articles not yet folded into a digest, oldest first."""
        stmt = (
            select(Article)
            .where(Article.user_id == user_id, _not_digested())
            .order_by(Article.created_at, Article.id)
            .limit(limit)
        )
        async with self._session("find_undigested") as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_to_article_record(row) for row in rows]

    async def create_digest_with_links(
        self,
        user_id: int,
        generated_date: date,
        summary: str,
        article_ids: list[int],
    ) -> DigestRecord:
        """Insert a digest (without audio) and its article links in one transaction."""
        async with self._session("create_digest_with_links") as session:
            async with session.begin():
                digest = DailyDigest(
                    user_id=user_id,
                    summary=summary,
                    generated_date=generated_date,
                    audio_url=None,
                )
                session.add(digest)
                await session.flush()

                session.add_all(
                    DigestArticle(digest_id=digest.id, article_id=article_id)
                    for article_id in article_ids
                )

        logger.info(
            "Created digest %d for user %d on %s with %d articles",
            digest.id, user_id, generated_date.isoformat(), len(article_ids),
        )
        return _to_digest_record(digest)

    async def update_digest_audio(self, digest_id: int, audio_url: str) -> None:
        async with self._session("update_digest_audio") as session:
            result = await session.execute(
                update(DailyDigest)
                .where(DailyDigest.id == digest_id)
                .values(audio_url=audio_url)
            )
            await session.commit()
        if not result.rowcount:
            raise StoreError("update_digest_audio", f"digest {digest_id} not found")

    async def find_users_with_undigested_articles(self) -> list[int]:
        stmt = (
            select(Article.user_id)
            .where(_not_digested())
            .distinct()
            .order_by(Article.user_id)
        )
        async with self._session("find_users_with_undigested_articles") as session:
            return list((await session.execute(stmt)).scalars().all())

    async def list_digests(self, user_id: int) -> list[DigestRecord]:
        """All digests of a user, newest first."""
        async with self._session("list_digests") as session:
            rows = (
                await session.execute(
                    select(DailyDigest)
                    .where(DailyDigest.user_id == user_id)
                    .order_by(DailyDigest.generated_date.desc())
                )
            ).scalars().all()
        return [_to_digest_record(row) for row in rows]

    async def list_digest_article_ids(self, digest_id: int) -> list[int]:
        async with self._session("list_digest_article_ids") as session:
            rows = await session.execute(
                select(DigestArticle.article_id)
                .where(DigestArticle.digest_id == digest_id)
                .order_by(DigestArticle.article_id)
            )
            return list(rows.scalars().all())

    async def find_user(self, uid: str) -> UserRecord | None:
        async with self._session("find_user") as session:
            user = await session.scalar(select(User).where(User.uid == uid))
        return UserRecord(id=user.id, uid=user.uid, name=user.name) if user is not None else None

    async def get_or_create_user(self, uid: str, name: str = "") -> UserRecord:
        async with self._session("get_or_create_user") as session:
            user = await session.scalar(select(User).where(User.uid == uid))
            if user is None:
                user = User(uid=uid, name=name)
                session.add(user)
                await session.commit()
                logger.info("Created user %d (uid=%s)", user.id, uid)
            elif name and user.name != name:
                user.name = name
                await session.commit()
        return UserRecord(id=user.id, uid=user.uid, name=user.name)

    async def get_article(self, article_id: int) -> ArticleRecord | None:
        async with self._session("get_article") as session:
            row = await session.get(Article, article_id)
        return _to_article_record(row) if row is not None else None

    async def find_article_by_url(self, user_id: int, url: str) -> ArticleRecord | None:
        async with self._session("find_article_by_url") as session:
            row = await session.scalar(
                select(Article).where(Article.user_id == user_id, Article.url == url)
            )
        return _to_article_record(row) if row is not None else None

    async def list_articles(self, user_id: int) -> list[ArticleRecord]:
        """All saved articles of a user, oldest first."""
        async with self._session("list_articles") as session:
            rows = (
                await session.execute(
                    select(Article)
                    .where(Article.user_id == user_id)
                    .order_by(Article.created_at, Article.id)
                )
            ).scalars().all()
        return [_to_article_record(row) for row in rows]

    async def save_article(
        self,
        user_id: int,
        url: str,
        title: str | None = None,
    ) -> ArticleRecord | None:
        """Save a URL for a user. Returns None when the user already saved it.

        Any other constraint failure, such as an unknown user, raises StoreError.
        """
        duplicate = select(Article.id).where(Article.user_id == user_id, Article.url == url)
        async with self._session("save_article") as session:
            if await session.scalar(duplicate) is None:
                article = Article(user_id=user_id, url=url, title=title)
                session.add(article)
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    # A concurrent save of the same URL is still a duplicate
                    if await session.scalar(duplicate) is None:
                        raise
                else:
                    return _to_article_record(article)
        logger.warning("Skipped duplicate article: user_id=%d url=%s", user_id, url)
        return None

    async def update_article(
        self,
        article_id: int,
        url: str,
        title: str | None = None,
    ) -> ArticleRecord | None:
        """Point an article at a new URL and title. Returns None when it does not exist."""
        async with self._session("update_article") as session:
            article = await session.get(Article, article_id)
            if article is None:
                return None
            article.url = url
            article.title = title
            await session.commit()
        logger.info("Updated article %d: %s", article_id, url)
        return _to_article_record(article)

    async def delete_article(self, article_id: int) -> bool:
        """Delete an article together with its summary and digest link."""
        async with self._session("delete_article") as session:
            async with session.begin():
                await session.execute(
                    delete(DigestArticle).where(DigestArticle.article_id == article_id)
                )
                await session.execute(
                    delete(ArticleSummary).where(ArticleSummary.article_id == article_id)
                )
                result = await session.execute(delete(Article).where(Article.id == article_id))
        return bool(result.rowcount)
