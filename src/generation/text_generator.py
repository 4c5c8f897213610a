"""Text generation clients."""

from __future__ import annotations

import hashlib
import logging
import os
from typing import Protocol

from openai import AsyncOpenAI

from common.config import GenerationConfig
from generation.prompts import SYSTEM_INSTRUCTIONS

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str:
        """Return generated text, or an empty string when nothing was produced."""
        ...


class OpenAITextGenerator:
    def __init__(self, model: str = "gpt-4o-mini", api_key: str | None = None) -> None:
        self.model = model
        self.client = AsyncOpenAI(api_key=api_key or os.environ.get("OPENAI_API_KEY"))

    async def generate(self, prompt: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_INSTRUCTIONS},
                {"role": "user", "content": prompt},
            ],
        )
        if not response.choices:
            logger.warning("Model %s returned no choices", self.model)
            return ""
        content = response.choices[0].message.content or ""
        return content.strip()


class FakeTextGenerator:
    """Deterministic offline generator keyed on the prompt text."""

    def __init__(self, prefix: str = "[fake]") -> None:
        self.prefix = prefix

    async def generate(self, prompt: str) -> str:
        digest = hashlib.sha256(prompt.encode()).hexdigest()[:12]
        first_line = prompt.strip().splitlines()[0] if prompt.strip() else ""
        return f"{self.prefix} {digest} {first_line}".strip()


def build_text_generator(config: GenerationConfig) -> TextGenerator:
    if config.provider == "fake":
        logger.info("Using fake text generator")
        return FakeTextGenerator()
    return OpenAITextGenerator(model=config.model)
