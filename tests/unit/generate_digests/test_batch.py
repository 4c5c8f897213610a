"""Tests for generate_digests.batch module."""

import asyncio
from datetime import date
from pathlib import Path

import pytest

from article_store.connection import ArticleStore
from article_store.repository import SqlArticleRepository
from common.config import (
    DigestConfig,
    GenerationConfig,
    PipelineConfig,
    SpeechConfig,
    StorageConfig,
)
from common.errors import StoreError
from generate_digests.batch import DigestBatchRunner, run_batch
from generate_digests.daily_digest import DailyDigestBuilder

DAY = date(2024, 5, 1)


class FailingForUsers:
    """Speech generator that fails for identifiers of selected users."""

    def __init__(self, user_ids: set[int]) -> None:
        self.user_ids = user_ids

    async def generate(self, script: str, identifier: str) -> list[str]:
        user_id = int(identifier.split("/")[1])
        if user_id in self.user_ids:
            raise RuntimeError("tts down")
        return [f"s3://bucket/{identifier}_0.wav"]


class TestDigestBatchRunner:
    def test_processes_every_eligible_user(self, repository, text_generator, speech_generator) -> None:
        for user_id in (1, 2, 3):
            repository.add_article(user_id=user_id)
        builder = DailyDigestBuilder(repository, text_generator, speech_generator)

        result = asyncio.run(DigestBatchRunner(repository, builder, chunk_size=2).run(DAY))

        assert result.total_users == 3
        assert result.successful_users == 3
        assert result.failed_users == 0
        assert sorted(result.results) == [1, 2, 3]

    def test_failures_are_isolated(self, repository, text_generator) -> None:
        for user_id in (1, 2, 3):
            repository.add_article(user_id=user_id)
        builder = DailyDigestBuilder(repository, text_generator, FailingForUsers({2}))

        result = asyncio.run(DigestBatchRunner(repository, builder).run(DAY))

        assert result.successful_users == 2
        assert result.partial_users == 1
        assert result.failed_users == 0
        assert result.failures[0].user_id == 2
        assert result.failures[0].partial is True
        # Partial users still got their digest text
        assert {d.user_id for d in repository.digests.values()} == {1, 2, 3}

    def test_generation_failure_counts_as_failed(self, repository, text_generator, speech_generator) -> None:
        repository.add_article(user_id=1)
        text_generator.errors["digest"] = RuntimeError("quota")
        builder = DailyDigestBuilder(repository, text_generator, speech_generator)

        result = asyncio.run(DigestBatchRunner(repository, builder).run(DAY))

        assert result.failed_users == 1
        assert result.partial_users == 0
        assert result.failures[0].partial is False
        assert "quota" in result.failures[0].error

    def test_failing_user_does_not_block_later_users(self, repository, speech_generator) -> None:
        for user_id in (1, 2, 3):
            repository.add_article(user_id=user_id, url=f"https://user{user_id}.example/a")

        class FailsForUserTwo:
            async def generate(self, prompt: str) -> str:
                if "user2.example" in prompt:
                    raise RuntimeError("quota")
                return "text"

        builder = DailyDigestBuilder(repository, FailsForUserTwo(), speech_generator)

        result = asyncio.run(DigestBatchRunner(repository, builder, chunk_size=1).run(DAY))

        assert result.successful_users == 2
        assert result.failed_users == 1
        assert [f.user_id for f in result.failures] == [2]
        assert sorted(result.results) == [1, 3]

    def test_explicit_user_ids(self, repository, text_generator, speech_generator) -> None:
        for user_id in (1, 2):
            repository.add_article(user_id=user_id)
        builder = DailyDigestBuilder(repository, text_generator, speech_generator)

        result = asyncio.run(DigestBatchRunner(repository, builder).run(DAY, user_ids=[2]))

        assert list(result.results) == [2]
        assert "find_users_with_undigested_articles" not in repository.calls

    def test_no_eligible_users(self, repository, text_generator, speech_generator) -> None:
        builder = DailyDigestBuilder(repository, text_generator, speech_generator)

        result = asyncio.run(DigestBatchRunner(repository, builder).run(DAY))

        assert result.total_users == 0
        assert result.results == {}

    def test_eligible_user_query_failure_propagates(self, repository, text_generator, speech_generator) -> None:
        repository.fail_on["find_users_with_undigested_articles"] = StoreError("find_users", "down")
        builder = DailyDigestBuilder(repository, text_generator, speech_generator)

        with pytest.raises(StoreError):
            asyncio.run(DigestBatchRunner(repository, builder).run(DAY))

    def test_rejects_zero_chunk_size(self, repository, text_generator, speech_generator) -> None:
        builder = DailyDigestBuilder(repository, text_generator, speech_generator)
        with pytest.raises(ValueError):
            DigestBatchRunner(repository, builder, chunk_size=0)


class TestAudioUpdateFailure:
    def test_failed_audio_update_counts_as_partial(self, tmp_path, text_generator, speech_generator) -> None:
        database_url = f"sqlite+aiosqlite:///{tmp_path / 'digests.db'}"

        async def scenario():
            async with ArticleStore(database_url) as store:
                await store.create_schema()
                repo = SqlArticleRepository(store)
                user = await repo.get_or_create_user("alice")
                await repo.save_article(user.id, "https://example.com/a")

                async def failing_update(digest_id: int, audio_url: str) -> None:
                    raise StoreError("update_digest_audio", "connection lost")

                repo.update_digest_audio = failing_update
                builder = DailyDigestBuilder(repo, text_generator, speech_generator)
                result = await DigestBatchRunner(repo, builder).run(DAY)
                return result, await repo.list_digests(user.id)

        result, digests = asyncio.run(scenario())

        assert result.successful_users == 0
        assert result.failed_users == 0
        assert result.partial_users == 1
        assert result.failures[0].partial is True
        assert len(digests) == 1
        assert digests[0].audio_url is None


class TestRunBatch:
    def test_end_to_end_with_local_fakes(self, tmp_path) -> None:
        database_url = f"sqlite+aiosqlite:///{tmp_path / 'digests.db'}"
        config = PipelineConfig(
            database_url=database_url,
            digest=DigestConfig(article_limit=5, user_chunk_size=1),
            generation=GenerationConfig(provider="fake"),
            speech=SpeechConfig(provider="fake", max_chars=20),
            storage=StorageConfig(output_dir=str(tmp_path / "output")),
        )

        async def seed() -> list[int]:
            async with ArticleStore(database_url) as store:
                await store.create_schema()
                repo = SqlArticleRepository(store)
                user_ids = []
                for uid in ("alice", "bob"):
                    user = await repo.get_or_create_user(uid)
                    await repo.save_article(user.id, f"https://example.com/{uid}/1")
                    await repo.save_article(user.id, f"https://example.com/{uid}/2")
                    user_ids.append(user.id)
                return user_ids

        async def digests_for(user_id: int):
            async with ArticleStore(database_url) as store:
                return await SqlArticleRepository(store).list_digests(user_id)

        user_ids = asyncio.run(seed())
        result = asyncio.run(run_batch(config, target_date=DAY))

        assert result.successful_users == 2
        for user_id in user_ids:
            digest_result = result.results[user_id]
            assert digest_result.processed_articles == 2
            assert digest_result.audio_url.startswith("file://")
            assert Path(digest_result.audio_url[len("file://"):]).exists()
            digests = asyncio.run(digests_for(user_id))
            assert [d.audio_url for d in digests] == [digest_result.audio_url]

        again = asyncio.run(run_batch(config, target_date=DAY))
        assert again.total_users == 0

    def test_config_user_id_limits_batch(self, tmp_path) -> None:
        database_url = f"sqlite+aiosqlite:///{tmp_path / 'digests.db'}"
        config = PipelineConfig(
            database_url=database_url,
            digest=DigestConfig(user_id=42),
            generation=GenerationConfig(provider="fake"),
            speech=SpeechConfig(provider="fake"),
            storage=StorageConfig(output_dir=str(tmp_path / "output")),
        )

        async def create_schema() -> None:
            async with ArticleStore(database_url) as store:
                await store.create_schema()

        asyncio.run(create_schema())
        result = asyncio.run(run_batch(config, target_date=DAY))

        assert result.total_users == 1
        assert result.results[42].daily_digest_generated is False
