"""YAML configuration for the summarization and digest pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Generic, TypeVar

import yaml
from dotenv import load_dotenv

T = TypeVar("T")

# Config directory at the repository root
CONFIG_DIR = Path(__file__).resolve().parents[2] / "configs"

CONFIG_ENV_VAR = "DIGEST_CONFIG"
DEFAULT_CONFIG_NAME = "prod"

PROVIDERS = ("openai", "fake")
SPEECH_FORMATS = ("pcm", "wav", "mp3", "opus", "aac", "flac")


@dataclass
class SummarizerConfig:
    """Configuration for per-article summarization."""

    concurrency_limit: int = 3
    user_id: int | None = None

    def __post_init__(self) -> None:
        if self.concurrency_limit < 1:
            raise ValueError(
                f"summarizer.concurrency_limit must be >= 1, got {self.concurrency_limit}"
            )


@dataclass
class DigestConfig:
    """Configuration for daily digests and the batch driver."""

    article_limit: int = 5
    user_chunk_size: int = 10
    user_id: int | None = None

    def __post_init__(self) -> None:
        if self.article_limit < 1:
            raise ValueError(f"digest.article_limit must be >= 1, got {self.article_limit}")
        if self.user_chunk_size < 1:
            raise ValueError(
                f"digest.user_chunk_size must be >= 1, got {self.user_chunk_size}"
            )


@dataclass
class GenerationConfig:
    provider: str = "openai"
    model: str = "gpt-4o-mini"

    def __post_init__(self) -> None:
        if self.provider not in PROVIDERS:
            raise ValueError(
                f"Invalid generation.provider: {self.provider}. Must be one of {list(PROVIDERS)}"
            )


@dataclass
class SpeechConfig:
    provider: str = "openai"
    model: str = "gpt-4o-mini-tts"
    voice: str = "coral"
    instructions: str = (
        "Read aloud in a warm, welcoming tone. "
        "Give Speaker1 and Speaker2 clearly distinct deliveries."
    )
    response_format: str = "pcm"
    sample_rate: int = 24000
    max_chars: int = 4000

    def __post_init__(self) -> None:
        if self.provider not in PROVIDERS:
            raise ValueError(
                f"Invalid speech.provider: {self.provider}. Must be one of {list(PROVIDERS)}"
            )
        if self.response_format not in SPEECH_FORMATS:
            raise ValueError(
                f"Invalid speech.response_format: {self.response_format}. "
                f"Must be one of {list(SPEECH_FORMATS)}"
            )
        if self.max_chars < 1:
            raise ValueError(f"speech.max_chars must be >= 1, got {self.max_chars}")


@dataclass
class StorageConfig:
    """Where generated audio is written."""

    bucket: str = ""
    audio_prefix: str = "audio"
    output_dir: str = "output"
    url_expiration_minutes: int = 60


@dataclass
class PipelineConfig:
    database_url: str
    summarizer: SummarizerConfig = field(default_factory=SummarizerConfig)
    digest: DigestConfig = field(default_factory=DigestConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url is required (set DATABASE_URL)")
        # Real speech output goes to S3
        if self.speech.provider == "openai" and not self.storage.bucket:
            raise ValueError("openai speech provider requires AUDIO_BUCKET_NAME")


def find_config_path(
    config_name: str | None,
    config_dir: Path = CONFIG_DIR,
    default_name: str = DEFAULT_CONFIG_NAME,
    env_var: str | None = CONFIG_ENV_VAR,
) -> Path:
    """Find config file path, checking env var and defaults.

    Args:
        config_name: Name of config (without .yaml), a path to a YAML file,
            or None for the default
        config_dir: Directory containing config files
        default_name: Default config name if config_name is None
        env_var: Environment variable to check for config name

    Returns:
        Path to the config file

    Raises:
        FileNotFoundError: If config file doesn't exist
    """
    if config_name is None:
        config_name = os.environ.get(env_var, default_name) if env_var else default_name

    if "/" in config_name or config_name.endswith((".yaml", ".yml")):
        config_path = Path(config_name)
    else:
        config_path = config_dir / f"{config_name}.yaml"

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return config_path


def load_yaml(path: Path) -> dict:
    """Load YAML file and return dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_config(data: dict) -> PipelineConfig:
    """Build a PipelineConfig from parsed YAML, filling secrets from the environment."""
    storage_data = dict(data.get("storage") or {})
    storage_data.setdefault("bucket", os.getenv("AUDIO_BUCKET_NAME", ""))

    return PipelineConfig(
        database_url=os.getenv("DATABASE_URL") or data.get("database_url", ""),
        summarizer=SummarizerConfig(**(data.get("summarizer") or {})),
        digest=DigestConfig(**(data.get("digest") or {})),
        generation=GenerationConfig(**(data.get("generation") or {})),
        speech=SpeechConfig(**(data.get("speech") or {})),
        storage=StorageConfig(**storage_data),
        log_level=data.get("log_level", "INFO"),
    )


def load_config(name: str | None = None) -> PipelineConfig:
    """Load pipeline config by name (e.g., 'local' or 'prod') or path."""
    load_dotenv()
    return parse_config(load_yaml(find_config_path(name)))


class ConfigSingleton(Generic[T]):
    """Generic config singleton manager.

    Provides get/set/reset pattern for managing a global config instance.
    """

    def __init__(self, loader: Callable[[], T] | None = None):
        self._config: T | None = None
        self._loader = loader

    def get(self) -> T:
        """Get the config, loading it lazily if needed."""
        if self._config is None:
            if self._loader is None:
                raise RuntimeError("No config loaded and no loader set")
            self._config = self._loader()
        return self._config

    def set(self, config: T) -> None:
        """Set the config directly."""
        self._config = config

    def reset(self) -> None:
        """Reset the config, forcing reload on next get()."""
        self._config = None


_manager: ConfigSingleton[PipelineConfig] = ConfigSingleton(load_config)
get_config = _manager.get
set_config = _manager.set
reset_config = _manager.reset
