"""Tests for generation.text_generator module."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

from common.config import GenerationConfig
from generation.prompts import SYSTEM_INSTRUCTIONS
from generation.text_generator import (
    FakeTextGenerator,
    OpenAITextGenerator,
    build_text_generator,
)


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestOpenAITextGenerator:
    @patch("generation.text_generator.AsyncOpenAI")
    def test_returns_stripped_content(self, mock_openai) -> None:
        create = AsyncMock(return_value=_completion("  summary text \n"))
        mock_openai.return_value.chat.completions.create = create

        result = asyncio.run(OpenAITextGenerator(model="gpt-4o-mini", api_key="k").generate("prompt"))

        assert result == "summary text"
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"] == [
            {"role": "system", "content": SYSTEM_INSTRUCTIONS},
            {"role": "user", "content": "prompt"},
        ]

    @patch("generation.text_generator.AsyncOpenAI")
    def test_no_choices_returns_empty(self, mock_openai) -> None:
        mock_openai.return_value.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(choices=[])
        )
        assert asyncio.run(OpenAITextGenerator(api_key="k").generate("prompt")) == ""

    @patch("generation.text_generator.AsyncOpenAI")
    def test_null_content_returns_empty(self, mock_openai) -> None:
        mock_openai.return_value.chat.completions.create = AsyncMock(return_value=_completion(None))
        assert asyncio.run(OpenAITextGenerator(api_key="k").generate("prompt")) == ""


class TestFakeTextGenerator:
    def test_deterministic_per_prompt(self) -> None:
        generator = FakeTextGenerator()
        first = asyncio.run(generator.generate("Line one\nLine two"))
        second = asyncio.run(generator.generate("Line one\nLine two"))
        other = asyncio.run(generator.generate("Something else"))

        assert first == second
        assert first != other
        assert first.startswith("[fake] ")
        assert first.endswith("Line one")


class TestBuildTextGenerator:
    def test_fake_provider(self) -> None:
        assert isinstance(build_text_generator(GenerationConfig(provider="fake")), FakeTextGenerator)

    @patch("generation.text_generator.AsyncOpenAI")
    def test_openai_provider(self, mock_openai) -> None:
        generator = build_text_generator(GenerationConfig(provider="openai", model="gpt-4o"))
        assert isinstance(generator, OpenAITextGenerator)
        assert generator.model == "gpt-4o"
