"""Run the daily digest for every user with undigested articles."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from article_store.connection import ArticleStore
from article_store.repository import ArticleRepository, SqlArticleRepository
from common.config import PipelineConfig, get_config
from common.errors import AudioGenerationError
from common.utils import chunked
from generate_digests.daily_digest import DailyDigestBuilder, DigestResult
from generation.speech import build_speech_generator
from generation.text_generator import build_text_generator

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 10


@dataclass
class UserFailure:
    user_id: int
    error: str
    partial: bool = False


@dataclass
class BatchResult:
    total_users: int = 0
    successful_users: int = 0
    failed_users: int = 0
    partial_users: int = 0
    results: dict[int, DigestResult] = field(default_factory=dict)
    failures: list[UserFailure] = field(default_factory=list)


class DigestBatchRunner:
    """Processes eligible users one at a time, isolating per-user failures.

    Users run sequentially, never concurrently: each user already makes several
    generation and speech calls, and provider quotas are shared. Chunks only
    group users for progress logging.
    """

    def __init__(
        self,
        repository: ArticleRepository,
        builder: DailyDigestBuilder,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        self.repository = repository
        self.builder = builder
        self.chunk_size = chunk_size

    async def run(
        self,
        target_date: date | None = None,
        user_ids: list[int] | None = None,
    ) -> BatchResult:
        """Build digests for `user_ids`, or for every eligible user when omitted.

        A failure to list eligible users propagates; a failure for one user is
        logged, counted and does not stop the run.
        """
        if user_ids is None:
            user_ids = await self.repository.find_users_with_undigested_articles()

        result = BatchResult(total_users=len(user_ids))
        if not user_ids:
            logger.info("No users with undigested articles")
            return result

        logger.info("Processing %d users in chunks of %d", len(user_ids), self.chunk_size)

        for index, chunk in enumerate(chunked(user_ids, self.chunk_size), 1):
            logger.info(
                "Starting chunk %d (%d users, first user %d)", index, len(chunk), chunk[0]
            )
            chunk_successful = 0
            chunk_failed = 0

            for user_id in chunk:
                try:
                    digest = await self.builder.execute(user_id, target_date)
                except AudioGenerationError as e:
                    logger.error("User %d digest saved without audio: %s", user_id, e)
                    result.partial_users += 1
                    result.failures.append(UserFailure(user_id, str(e), partial=True))
                    chunk_failed += 1
                    continue
                except Exception as e:
                    logger.error("Failed to build digest for user %d: %s", user_id, e)
                    result.failed_users += 1
                    result.failures.append(UserFailure(user_id, str(e)))
                    chunk_failed += 1
                    continue

                result.successful_users += 1
                result.results[user_id] = digest
                chunk_successful += 1
                logger.info(
                    "User %d: %d articles, digest generated=%s, audio=%s (%d ms)",
                    user_id,
                    digest.processed_articles,
                    digest.daily_digest_generated,
                    digest.audio_url or "none",
                    digest.processing_time_ms,
                )

            logger.info(
                "Finished chunk %d: %d succeeded, %d failed",
                index, chunk_successful, chunk_failed,
            )

        logger.info(
            "Digest batch complete: %d succeeded, %d failed, %d without audio",
            result.successful_users, result.failed_users, result.partial_users,
        )
        return result


async def run_batch(
    config: PipelineConfig | None = None,
    target_date: date | None = None,
    user_ids: list[int] | None = None,
) -> BatchResult:
    """Open the store, build clients from config and run the digest batch.

    The batch covers every eligible user unless `user_ids` is given or
    ``digest.user_id`` is set in the config.
    """
    config = config or get_config()
    if user_ids is None and config.digest.user_id is not None:
        user_ids = [config.digest.user_id]

    async with ArticleStore(config.database_url) as store:
        repository = SqlArticleRepository(store)
        builder = DailyDigestBuilder(
            repository,
            text_generator=build_text_generator(config.generation),
            speech_generator=build_speech_generator(config.speech, config.storage),
            article_limit=config.digest.article_limit,
            audio_prefix=config.storage.audio_prefix,
        )
        runner = DigestBatchRunner(repository, builder, chunk_size=config.digest.user_chunk_size)
        return await runner.run(target_date=target_date, user_ids=user_ids)
