"""Wrap raw PCM speech output in a WAV container.

Speech providers return either an already-encoded file (mp3, wav, ...) or
headerless linear PCM described only by its MIME type, e.g.
``audio/L16;rate=24000``. PCM payloads get a canonical 44-byte RIFF header
(http://soundfile.sapp.org/doc/WaveFormat) so the result plays on its own.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

DEFAULT_SAMPLE_RATE = 24000
DEFAULT_BITS_PER_SAMPLE = 16
DEFAULT_NUM_CHANNELS = 1

WAV_HEADER_SIZE = 44
PCM_FORMAT_TAG = 1

ENCODED_AUDIO_EXTENSIONS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/wave": "wav",
    "audio/x-wav": "wav",
    "audio/ogg": "ogg",
    "audio/opus": "opus",
    "audio/aac": "aac",
    "audio/flac": "flac",
    "audio/mp4": "m4a",
}


@dataclass(frozen=True)
class WavOptions:
    num_channels: int = DEFAULT_NUM_CHANNELS
    sample_rate: int = DEFAULT_SAMPLE_RATE
    bits_per_sample: int = DEFAULT_BITS_PER_SAMPLE

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.num_channels * self.bits_per_sample // 8

    @property
    def block_align(self) -> int:
        return self.num_channels * self.bits_per_sample // 8


def _media_type(mime_type: str) -> str:
    return mime_type.split(";", 1)[0].strip().lower()


def parse_audio_mime_type(mime_type: str) -> WavOptions:
    """Read channel count, sample rate and bit depth from a PCM MIME type.

    ``audio/L16;rate=24000`` -> mono, 24000 Hz, 16 bit. Missing values fall
    back to mono / 24000 Hz / 16 bit.
    """
    media_type, *params = [part.strip() for part in mime_type.split(";")]
    _, _, subtype = media_type.partition("/")

    bits = DEFAULT_BITS_PER_SAMPLE
    if subtype[:1] in ("L", "l") and subtype[1:].isdigit():
        bits = int(subtype[1:])

    rate = DEFAULT_SAMPLE_RATE
    channels = DEFAULT_NUM_CHANNELS
    for param in params:
        key, _, value = param.partition("=")
        key = key.strip().lower()
        value = value.strip()
        if key == "rate" and value.isdigit():
            rate = int(value)
        elif key == "channels" and value.isdigit():
            channels = int(value)

    return WavOptions(num_channels=channels, sample_rate=rate, bits_per_sample=bits)


def create_wav_header(data_length: int, options: WavOptions) -> bytes:
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_length,  # chunk size
        b"WAVE",
        b"fmt ",
        16,  # fmt sub-chunk size for PCM
        PCM_FORMAT_TAG,
        options.num_channels,
        options.sample_rate,
        options.byte_rate,
        options.block_align,
        options.bits_per_sample,
        b"data",
        data_length,
    )


def convert_to_wav(raw: bytes, mime_type: str) -> bytes:
    options = parse_audio_mime_type(mime_type)
    return create_wav_header(len(raw), options) + raw


def encoded_extension(mime_type: str) -> str | None:
    """File extension for an already-encoded audio MIME type, else None."""
    return ENCODED_AUDIO_EXTENSIONS.get(_media_type(mime_type))


def encode_audio(raw: bytes, mime_type: str) -> tuple[bytes, str]:
    """Return a playable payload and its file extension.

    Encoded formats pass through untouched; anything else is treated as raw
    PCM and wrapped as WAV.
    """
    extension = encoded_extension(mime_type)
    if extension:
        return raw, extension
    return convert_to_wav(raw, mime_type), "wav"
