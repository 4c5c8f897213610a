"""Shared fakes for summarizer and digest tests."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from article_store.repository import ArticleRecord, DigestRecord
from common.errors import StoreError

BASE_TIME = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


class InMemoryArticleRepository:
    """ArticleRepository kept in dicts, with per-operation failure injection.

    Set ``fail_on["find_undigested"] = StoreError(...)`` (or any exception) to
    make that operation raise.
    """

    def __init__(self) -> None:
        self.articles: dict[int, ArticleRecord] = {}
        self.summaries: dict[int, str] = {}
        self.digests: dict[int, DigestRecord] = {}
        self.digest_links: dict[int, int] = {}
        self.fail_on: dict[str, Exception] = {}
        self.calls: list[str] = []
        self._next_article_id = 1
        self._next_digest_id = 1

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise self.fail_on[operation]

    def add_article(self, user_id: int, url: str | None = None) -> ArticleRecord:
        article_id = self._next_article_id
        self._next_article_id += 1
        article = ArticleRecord(
            id=article_id,
            user_id=user_id,
            url=url or f"https://example.com/{user_id}/{article_id}",
            title=None,
            created_at=BASE_TIME + timedelta(minutes=article_id),
        )
        self.articles[article_id] = article
        return article

    async def find_unsummarized(self, user_id: int | None = None) -> list[ArticleRecord]:
        self._record("find_unsummarized")
        return [
            a for a in self.articles.values()
            if a.id not in self.summaries and (user_id is None or a.user_id == user_id)
        ]

    async def upsert_summary(self, article_id: int, summary: str) -> None:
        self._record("upsert_summary")
        await asyncio.sleep(0)
        self.summaries[article_id] = summary

    async def find_digest(self, user_id: int, generated_date: date) -> DigestRecord | None:
        self._record("find_digest")
        for digest in self.digests.values():
            if digest.user_id == user_id and digest.generated_date == generated_date:
                return digest
        return None

    async def find_undigested(self, user_id: int, limit: int) -> list[ArticleRecord]:
        self._record("find_undigested")
        pending = [
            a for a in self.articles.values()
            if a.user_id == user_id and a.id not in self.digest_links
        ]
        return sorted(pending, key=lambda a: (a.created_at, a.id))[:limit]

    async def create_digest_with_links(
        self,
        user_id: int,
        generated_date: date,
        summary: str,
        article_ids: list[int],
    ) -> DigestRecord:
        self._record("create_digest_with_links")
        if await self.find_digest(user_id, generated_date) is not None:
            raise StoreError("create_digest_with_links", "duplicate digest")
        if any(article_id in self.digest_links for article_id in article_ids):
            raise StoreError("create_digest_with_links", "article already linked")

        digest = DigestRecord(
            id=self._next_digest_id,
            user_id=user_id,
            summary=summary,
            generated_date=generated_date,
            audio_url=None,
        )
        self._next_digest_id += 1
        self.digests[digest.id] = digest
        for article_id in article_ids:
            self.digest_links[article_id] = digest.id
        return digest

    async def update_digest_audio(self, digest_id: int, audio_url: str) -> None:
        self._record("update_digest_audio")
        if digest_id not in self.digests:
            raise StoreError("update_digest_audio", f"digest {digest_id} not found")
        old = self.digests[digest_id]
        self.digests[digest_id] = DigestRecord(
            id=old.id,
            user_id=old.user_id,
            summary=old.summary,
            generated_date=old.generated_date,
            audio_url=audio_url,
        )

    async def find_users_with_undigested_articles(self) -> list[int]:
        self._record("find_users_with_undigested_articles")
        return sorted({a.user_id for a in self.articles.values() if a.id not in self.digest_links})


class ScriptedTextGenerator:
    """Returns canned text per prompt kind and records every prompt."""

    def __init__(self, digest: str = "digest text", script: str = "Speaker1: hi\nSpeaker2: hello",
                 summary: str = "article summary") -> None:
        self.responses = {"digest": digest, "script": script, "summary": summary}
        self.errors: dict[str, Exception] = {}
        self.prompts: list[str] = []

    @staticmethod
    def kind(prompt: str) -> str:
        if "talk script" in prompt:
            return "script"
        if "daily digest" in prompt:
            return "digest"
        return "summary"

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        kind = self.kind(prompt)
        if kind in self.errors:
            raise self.errors[kind]
        return self.responses[kind]


class RecordingSpeechGenerator:
    def __init__(self, parts: int = 1, error: Exception | None = None) -> None:
        self.parts = parts
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def generate(self, script: str, identifier: str) -> list[str]:
        self.calls.append((script, identifier))
        if self.error is not None:
            raise self.error
        return [f"s3://bucket/{identifier}_{i}.wav" for i in range(self.parts)]


@pytest.fixture
def repository() -> InMemoryArticleRepository:
    return InMemoryArticleRepository()


@pytest.fixture
def text_generator() -> ScriptedTextGenerator:
    return ScriptedTextGenerator()


@pytest.fixture
def speech_generator() -> RecordingSpeechGenerator:
    return RecordingSpeechGenerator()
