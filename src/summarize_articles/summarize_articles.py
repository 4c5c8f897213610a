"""Generate and store a summary for every saved article that lacks one."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from article_store.connection import ArticleStore
from article_store.repository import ArticleRecord, ArticleRepository, SqlArticleRepository
from common.config import PipelineConfig, get_config
from common.errors import ArticleFetchError, StoreError
from common.utils import chunked, elapsed_ms
from generation.prompts import build_article_summary_prompt
from generation.text_generator import TextGenerator, build_text_generator

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY_LIMIT = 3


@dataclass
class SummaryResult:
    processed_articles: int
    successful_articles: int
    failed_articles: int
    processing_time_ms: int


class ArticleSummarizer:
    """Summarizes unsummarized articles in chunks of `concurrency_limit`.

    Chunks run one after another; the articles in a chunk are summarized
    concurrently and the chunk finishes once every one of them has settled.
    A failing article is logged and counted, never raised.
    """

    def __init__(
        self,
        repository: ArticleRepository,
        text_generator: TextGenerator,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
    ) -> None:
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be >= 1, got {concurrency_limit}")
        self.repository = repository
        self.text_generator = text_generator
        self.concurrency_limit = concurrency_limit

    async def execute(self, user_id: int | None = None) -> SummaryResult:
        """Summarize articles for one user, or for all users when user_id is None.

        Raises:
            ArticleFetchError: If the candidate articles cannot be loaded.
        """
        start = time.monotonic()
        target = f"user {user_id}" if user_id is not None else "all users"
        logger.info("Starting article summarization for %s", target)

        try:
            articles = await self.repository.find_unsummarized(user_id)
        except StoreError as exc:
            logger.error("Failed to load unsummarized articles for %s: %s", target, exc)
            raise ArticleFetchError(f"Could not load unsummarized articles for {target}") from exc

        if not articles:
            logger.info("No articles to summarize for %s", target)
            return SummaryResult(0, 0, 0, elapsed_ms(start))

        logger.info("Summarizing %d articles for %s", len(articles), target)

        successful = 0
        failed = 0
        for index, chunk in enumerate(chunked(articles, self.concurrency_limit), 1):
            results = await asyncio.gather(
                *(self._summarize_article(article) for article in chunk),
                return_exceptions=True,
            )
            chunk_successful = sum(1 for result in results if result is True)
            successful += chunk_successful
            failed += len(results) - chunk_successful
            logger.debug(
                "Chunk %d done: %d succeeded, %d failed",
                index, chunk_successful, len(results) - chunk_successful,
            )

        elapsed = elapsed_ms(start)
        logger.info(
            "Summarized articles for %s: %d succeeded, %d failed (%d ms)",
            target, successful, failed, elapsed,
        )
        return SummaryResult(
            processed_articles=len(articles),
            successful_articles=successful,
            failed_articles=failed,
            processing_time_ms=elapsed,
        )

    async def _summarize_article(self, article: ArticleRecord) -> bool:
        try:
            logger.info("Generating summary for article %d (%s)", article.id, article.url)
            summary = await self.text_generator.generate(build_article_summary_prompt(article.url))
            if not summary:
                logger.warning("Empty summary for article %d", article.id)
                return False

            await self.repository.upsert_summary(article.id, summary)
            logger.info("Saved summary for article %d", article.id)
            return True
        except Exception as e:
            logger.error("Failed to summarize article %d: %s", article.id, e)
            return False


async def run_summarization(
    config: PipelineConfig | None = None,
    user_id: int | None = None,
) -> SummaryResult:
    """Open the store, build the text generator from config and summarize.

    Falls back to ``summarizer.user_id`` from the config when `user_id` is None;
    when that is unset too, every user's articles are summarized.
    """
    config = config or get_config()
    if user_id is None:
        user_id = config.summarizer.user_id

    async with ArticleStore(config.database_url) as store:
        summarizer = ArticleSummarizer(
            SqlArticleRepository(store),
            build_text_generator(config.generation),
            concurrency_limit=config.summarizer.concurrency_limit,
        )
        return await summarizer.execute(user_id)
