"""Manage the URLs on a user's reading list."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from article_store.connection import ArticleStore
from article_store.repository import ArticleRecord, SqlArticleRepository
from common.config import PipelineConfig, get_config
from save_articles.fetch_page_title import fetch_page_title

logger = logging.getLogger(__name__)

TitleFetcher = Callable[[str], Optional[str]]


def _check_url(url: str) -> None:
    if not url.startswith(("http://", "https://")):
        raise ValueError(f"url must be http(s): {url}")


async def save_article_for_user(
    repository: SqlArticleRepository,
    uid: str,
    url: str,
    name: str = "",
    title: str | None = None,
    fetch_title: TitleFetcher = fetch_page_title,
) -> ArticleRecord | None:
    """Get or create the user and save `url` for them.

    The page title is fetched when `title` is not given; a page without a
    usable title is saved with no title. Returns None when the user already
    saved the URL.
    """
    _check_url(url)

    user = await repository.get_or_create_user(uid, name)
    if title is None:
        title = await asyncio.to_thread(fetch_title, url)
        logger.info("Fetched title for %s: %s", url, title or "none")

    article = await repository.save_article(user.id, url, title)
    if article is not None:
        logger.info("Saved article %d for user %d: %s", article.id, user.id, url)
    return article


async def list_articles_for_user(repository: SqlArticleRepository, uid: str) -> list[ArticleRecord]:
    """Saved articles of a user, oldest first; empty for an unknown user."""
    user = await repository.find_user(uid)
    if user is None:
        logger.warning("Unknown user: %s", uid)
        return []
    return await repository.list_articles(user.id)


async def update_saved_article(
    repository: SqlArticleRepository,
    article_id: int,
    url: str,
    title: str | None = None,
    fetch_title: TitleFetcher = fetch_page_title,
) -> ArticleRecord | None:
    """Point a saved article at a new URL. Returns None when the article does not exist.

    Raises:
        ValueError: The URL is not http(s), or the owner already saved it
            as another article.
    """
    _check_url(url)

    article = await repository.get_article(article_id)
    if article is None:
        return None
    other = await repository.find_article_by_url(article.user_id, url)
    if other is not None and other.id != article_id:
        raise ValueError(f"article {other.id} already has url {url}")

    if title is None:
        title = await asyncio.to_thread(fetch_title, url)
    return await repository.update_article(article_id, url, title)


async def remove_saved_article(repository: SqlArticleRepository, article_id: int) -> bool:
    removed = await repository.delete_article(article_id)
    if removed:
        logger.info("Removed article %d", article_id)
    else:
        logger.warning("Article %d not found", article_id)
    return removed


@asynccontextmanager
async def open_repository(
    config: PipelineConfig | None = None,
    create_schema: bool = False,
) -> AsyncIterator[SqlArticleRepository]:
    config = config or get_config()
    async with ArticleStore(config.database_url) as store:
        if create_schema:
            await store.create_schema()
        yield SqlArticleRepository(store)


async def run_save_article(
    uid: str,
    url: str,
    name: str = "",
    title: str | None = None,
    config: PipelineConfig | None = None,
    create_schema: bool = False,
) -> ArticleRecord | None:
    async with open_repository(config, create_schema) as repository:
        return await save_article_for_user(repository, uid, url, name=name, title=title)
