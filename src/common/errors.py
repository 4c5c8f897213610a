"""Exceptions raised by the summarization and digest pipeline."""

from __future__ import annotations


class StoreError(RuntimeError):
    """A read or write against the article store failed."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


class StoreNotOpenError(StoreError):
    """The article store was used before open() or after close()."""

    def __init__(self) -> None:
        super().__init__("session", "article store is not open")


class DigestPipelineError(RuntimeError):
    """Base class for per-invocation failures in the digest pipeline."""


class ArticleFetchError(DigestPipelineError):
    """Candidate articles could not be loaded."""


class DigestGenerationError(DigestPipelineError):
    """The combined digest text could not be generated."""

    def __init__(self, user_id: int, message: str) -> None:
        super().__init__(f"Digest generation failed for user {user_id}: {message}")
        self.user_id = user_id


class DigestPersistenceError(DigestPipelineError):
    """A digest read or write against the store failed."""

    def __init__(self, user_id: int, message: str) -> None:
        super().__init__(f"Digest persistence failed for user {user_id}: {message}")
        self.user_id = user_id


class AudioGenerationError(DigestPipelineError):
    """Talk script or speech generation failed after the digest was saved.

    The digest row exists without audio, so callers treat this as a partial
    success.
    """

    def __init__(self, user_id: int, digest_id: int, message: str) -> None:
        super().__init__(
            f"Audio generation failed for user {user_id} (digest {digest_id}): {message}"
        )
        self.user_id = user_id
        self.digest_id = digest_id
