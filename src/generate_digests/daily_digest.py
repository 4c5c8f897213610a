"""Build one user's daily digest: combined summary text plus spoken audio."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timezone

from article_store.repository import ArticleRecord, ArticleRepository, DigestRecord
from common.aws import build_audio_key
from common.errors import (
    ArticleFetchError,
    AudioGenerationError,
    DigestGenerationError,
    DigestPersistenceError,
    StoreError,
)
from common.utils import elapsed_ms
from generation.prompts import build_daily_digest_prompt, build_talk_script_prompt
from generation.speech import SpeechGenerator
from generation.text_generator import TextGenerator

logger = logging.getLogger(__name__)

DEFAULT_ARTICLE_LIMIT = 5


@dataclass
class DigestResult:
    processed_articles: int
    daily_digest_generated: bool
    audio_url: str | None = None
    digest_id: int | None = None
    processing_time_ms: int = 0


class DailyDigestBuilder:
    """Creates at most one digest per user and day from not-yet-digested articles.

    The digest row and its article links are committed before any audio work
    starts, so a digest is readable (with ``audio_url`` still None) while the
    slower speech step runs. The audio locator is written in a second update.
    """

    def __init__(
        self,
        repository: ArticleRepository,
        text_generator: TextGenerator,
        speech_generator: SpeechGenerator,
        article_limit: int = DEFAULT_ARTICLE_LIMIT,
        audio_prefix: str = "audio",
    ) -> None:
        if article_limit < 1:
            raise ValueError(f"article_limit must be >= 1, got {article_limit}")
        self.repository = repository
        self.text_generator = text_generator
        self.speech_generator = speech_generator
        self.article_limit = article_limit
        self.audio_prefix = audio_prefix

    async def execute(self, user_id: int, target_date: date | None = None) -> DigestResult:
        """Generate the digest for `user_id` on `target_date` (default: today, UTC).

        Raises:
            DigestPersistenceError: A digest read or write failed.
            ArticleFetchError: Candidate articles could not be loaded.
            DigestGenerationError: The digest text could not be generated.
            AudioGenerationError: The digest was saved but its audio was not.
        """
        start = time.monotonic()
        generated_date = target_date or datetime.now(timezone.utc).date()
        logger.info("Building daily digest for user %d on %s", user_id, generated_date.isoformat())

        existing = await self._find_existing(user_id, generated_date)
        if existing is not None:
            logger.info(
                "Digest %d already exists for user %d on %s, skipping",
                existing.id, user_id, generated_date.isoformat(),
            )
            return DigestResult(
                processed_articles=0,
                daily_digest_generated=False,
                audio_url=existing.audio_url,
                digest_id=existing.id,
                processing_time_ms=elapsed_ms(start),
            )

        articles = await self._fetch_articles(user_id)
        if not articles:
            logger.info("No undigested articles for user %d", user_id)
            return DigestResult(
                processed_articles=0,
                daily_digest_generated=False,
                processing_time_ms=elapsed_ms(start),
            )

        urls = [article.url for article in articles]
        logger.info("Generating digest for user %d from %d articles", user_id, len(urls))

        summary = await self._generate_summary(user_id, urls)
        digest = await self._save_digest(user_id, generated_date, summary, articles)
        audio_url = await self._generate_audio(user_id, digest.id, urls)

        if audio_url:
            await self._save_audio_url(user_id, digest.id, audio_url)

        elapsed = elapsed_ms(start)
        logger.info("Finished digest %d for user %d (%d ms)", digest.id, user_id, elapsed)
        return DigestResult(
            processed_articles=len(articles),
            daily_digest_generated=True,
            audio_url=audio_url,
            digest_id=digest.id,
            processing_time_ms=elapsed,
        )

    async def _find_existing(self, user_id: int, generated_date: date) -> DigestRecord | None:
        try:
            return await self.repository.find_digest(user_id, generated_date)
        except StoreError as exc:
            logger.error("Failed to check existing digest for user %d: %s", user_id, exc)
            raise DigestPersistenceError(user_id, f"existing digest lookup failed: {exc}") from exc

    async def _fetch_articles(self, user_id: int) -> list[ArticleRecord]:
        try:
            return await self.repository.find_undigested(user_id, self.article_limit)
        except StoreError as exc:
            logger.error("Failed to load undigested articles for user %d: %s", user_id, exc)
            raise ArticleFetchError(f"Could not load undigested articles for user {user_id}") from exc

    async def _generate_summary(self, user_id: int, urls: list[str]) -> str:
        try:
            summary = await self.text_generator.generate(build_daily_digest_prompt(urls))
        except Exception as exc:
            logger.error("Digest generation failed for user %d: %s", user_id, exc)
            raise DigestGenerationError(user_id, str(exc)) from exc

        if not summary:
            logger.error("Digest generation returned no text for user %d", user_id)
            raise DigestGenerationError(user_id, "generator returned no text")
        return summary

    async def _save_digest(
        self,
        user_id: int,
        generated_date: date,
        summary: str,
        articles: list[ArticleRecord],
    ) -> DigestRecord:
        try:
            return await self.repository.create_digest_with_links(
                user_id,
                generated_date,
                summary,
                [article.id for article in articles],
            )
        except StoreError as exc:
            logger.error("Failed to save digest for user %d: %s", user_id, exc)
            raise DigestPersistenceError(user_id, f"digest save failed: {exc}") from exc

    async def _generate_audio(self, user_id: int, digest_id: int, urls: list[str]) -> str | None:
        """Generate the talk script and its audio; returns the first part's locator."""
        try:
            script = await self.text_generator.generate(build_talk_script_prompt(urls))
        except Exception as exc:
            logger.error("Talk script generation failed for digest %d: %s", digest_id, exc)
            raise AudioGenerationError(user_id, digest_id, f"talk script failed: {exc}") from exc

        if not script:
            logger.error("Talk script generation returned no text for digest %d", digest_id)
            raise AudioGenerationError(user_id, digest_id, "talk script generator returned no text")

        identifier = build_audio_key(self.audio_prefix, user_id, digest_id)
        try:
            locators = await self.speech_generator.generate(script, identifier)
        except Exception as exc:
            logger.error("Speech generation failed for digest %d: %s", digest_id, exc)
            raise AudioGenerationError(user_id, digest_id, f"speech failed: {exc}") from exc

        if not locators:
            logger.warning("Speech generation produced no audio for digest %d", digest_id)
            return None

        # Multi-part audio is referenced by its first part; all parts share the key prefix
        logger.info("Generated %d audio parts for digest %d", len(locators), digest_id)
        return locators[0]

    async def _save_audio_url(self, user_id: int, digest_id: int, audio_url: str) -> None:
        # The digest row is already committed, so a failed update leaves it without audio
        try:
            await self.repository.update_digest_audio(digest_id, audio_url)
        except StoreError as exc:
            logger.error("Failed to save audio for digest %d: %s", digest_id, exc)
            raise AudioGenerationError(user_id, digest_id, f"audio update failed: {exc}") from exc