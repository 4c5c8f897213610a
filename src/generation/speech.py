"""Text-to-speech clients that turn a talk script into stored audio files."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Protocol

from openai import AsyncOpenAI

from common.aws import get_s3_client, upload_bytes_to_s3
from common.config import SpeechConfig, StorageConfig
from generation.wav import encode_audio

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    "wav": "audio/wav",
    "mp3": "audio/mpeg",
    "opus": "audio/opus",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "ogg": "audio/ogg",
    "m4a": "audio/mp4",
}


class SpeechGenerator(Protocol):
    async def generate(self, script: str, identifier: str) -> list[str]:
        """Synthesize `script` and return one storage locator per stored audio part."""
        ...


def split_script(script: str, max_chars: int) -> list[str]:
    """Split a script into line-aligned chunks of at most `max_chars` characters.

    A single line longer than `max_chars` is cut into fixed-size pieces.
    """
    chunks: list[str] = []
    current: list[str] = []
    current_len = 0

    for line in (line.strip() for line in script.splitlines()):
        if not line:
            continue
        pieces = [line[i:i + max_chars] for i in range(0, len(line), max_chars)]
        for piece in pieces:
            added = len(piece) + (1 if current else 0)
            if current and current_len + added > max_chars:
                chunks.append("\n".join(current))
                current, current_len = [], 0
                added = len(piece)
            current.append(piece)
            current_len += added

    if current:
        chunks.append("\n".join(current))
    return chunks


def mime_type_for_format(response_format: str, sample_rate: int) -> str:
    if response_format == "pcm":
        # Headerless 16-bit little-endian mono samples
        return f"audio/L16;rate={sample_rate}"
    return CONTENT_TYPES[response_format]


class OpenAISpeechGenerator:
    """Synthesizes each script chunk with OpenAI TTS and uploads it to S3."""

    def __init__(
        self,
        config: SpeechConfig,
        bucket: str,
        api_key: str | None = None,
        s3: Any = None,
    ) -> None:
        if not bucket:
            raise ValueError("OpenAISpeechGenerator requires an S3 bucket")
        self.config = config
        self.bucket = bucket
        self.client = AsyncOpenAI(api_key=api_key or os.environ.get("OPENAI_API_KEY"))
        self.s3 = s3 or get_s3_client()

    async def _synthesize(self, text: str) -> bytes:
        response = await self.client.audio.speech.create(
            model=self.config.model,
            voice=self.config.voice,
            input=text,
            instructions=self.config.instructions,
            response_format=self.config.response_format,
        )
        return response.content

    async def generate(self, script: str, identifier: str) -> list[str]:
        chunks = split_script(script, self.config.max_chars)
        mime_type = mime_type_for_format(self.config.response_format, self.config.sample_rate)
        logger.info("Synthesizing %d audio parts for %s", len(chunks), identifier)

        locators = []
        for index, chunk in enumerate(chunks):
            raw = await self._synthesize(chunk)
            if not raw:
                logger.warning("Empty audio for part %d of %s", index, identifier)
                continue

            payload, extension = encode_audio(raw, mime_type)
            key = f"{identifier}_{index}.{extension}"
            locator = await asyncio.to_thread(
                upload_bytes_to_s3,
                payload,
                self.bucket,
                key,
                CONTENT_TYPES.get(extension, "application/octet-stream"),
                self.s3,
            )
            locators.append(locator)

        return locators


class FakeSpeechGenerator:
    """Writes a short silent WAV per script chunk to the local filesystem."""

    def __init__(
        self,
        output_dir: str = "output",
        max_chars: int = 4000,
        sample_rate: int = 24000,
        clip_seconds: float = 0.25,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.max_chars = max_chars
        self.sample_rate = sample_rate
        self.clip_seconds = clip_seconds

    async def generate(self, script: str, identifier: str) -> list[str]:
        chunks = split_script(script, self.max_chars)
        silence = bytes(int(self.sample_rate * self.clip_seconds) * 2)
        mime_type = mime_type_for_format("pcm", self.sample_rate)

        locators = []
        for index, _ in enumerate(chunks):
            payload, extension = encode_audio(silence, mime_type)
            path = self.output_dir / f"{identifier}_{index}.{extension}"
            await asyncio.to_thread(_write_file, path, payload)
            locators.append(path.resolve().as_uri())

        logger.info("Wrote %d fake audio parts for %s", len(locators), identifier)
        return locators


def _write_file(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)


def build_speech_generator(config: SpeechConfig, storage: StorageConfig) -> SpeechGenerator:
    if config.provider == "fake":
        logger.info("Using fake speech generator (output: %s)", storage.output_dir)
        return FakeSpeechGenerator(
            output_dir=storage.output_dir,
            max_chars=config.max_chars,
            sample_rate=config.sample_rate,
        )
    return OpenAISpeechGenerator(config, bucket=storage.bucket)
