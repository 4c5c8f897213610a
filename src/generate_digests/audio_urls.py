"""Presigned download URLs for digest audio stored in S3."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from botocore.exceptions import ClientError

from common.aws import (
    build_audio_key,
    build_s3_uri,
    build_user_audio_prefix,
    delete_s3_object,
    generate_presigned_url,
    get_s3_client,
    list_s3_objects,
    parse_s3_uri,
    s3_object_exists,
    s3_prefix_exists,
)

logger = logging.getLogger(__name__)

DEFAULT_EXPIRATION_MINUTES = 60


@dataclass
class AudioFileUrl:
    key: str
    locator: str
    signed_url: str
    size: int | None = None
    last_modified: datetime | None = None


class AudioUrlService:
    """Looks up, signs and deletes the audio parts of stored digests."""

    def __init__(
        self,
        bucket: str,
        audio_prefix: str = "audio",
        url_expiration_minutes: int = DEFAULT_EXPIRATION_MINUTES,
        s3: Any = None,
    ) -> None:
        if not bucket:
            raise ValueError("AudioUrlService requires an S3 bucket")
        if url_expiration_minutes < 1:
            raise ValueError(
                f"url_expiration_minutes must be >= 1, got {url_expiration_minutes}"
            )
        self.bucket = bucket
        self.audio_prefix = audio_prefix
        self.url_expiration_minutes = url_expiration_minutes
        self.s3 = s3 or get_s3_client()

    @property
    def expires_in(self) -> int:
        return self.url_expiration_minutes * 60

    def _sign(self, key: str, obj: dict[str, Any] | None = None) -> AudioFileUrl:
        obj = obj or {}
        return AudioFileUrl(
            key=key,
            locator=build_s3_uri(self.bucket, key),
            signed_url=generate_presigned_url(self.bucket, key, self.expires_in, s3=self.s3),
            size=obj.get("Size"),
            last_modified=obj.get("LastModified"),
        )

    def _key_in_bucket(self, locator: str) -> str:
        bucket, key = parse_s3_uri(locator)
        if bucket != self.bucket:
            raise ValueError(f"Locator {locator} is not in bucket {self.bucket}")
        return key

    def list_digest_audio_urls(self, user_id: int, digest_id: int) -> list[AudioFileUrl]:
        """Sign every audio part of one digest, ordered by key."""
        prefix = build_audio_key(self.audio_prefix, user_id, digest_id) + "_"
        files = [self._sign(obj["Key"], obj) for obj in list_s3_objects(self.bucket, prefix, s3=self.s3)]
        logger.info(
            "Signed %d audio files for user %d, digest %d", len(files), user_id, digest_id
        )
        return files

    def list_user_audio_urls(self, user_id: int) -> list[AudioFileUrl]:
        """Sign every audio file of a user, newest first."""
        prefix = build_user_audio_prefix(self.audio_prefix, user_id)
        objects = list_s3_objects(self.bucket, prefix, s3=self.s3)
        # Keys stay the tie-breaker since the sort is stable
        objects.sort(key=lambda obj: obj["LastModified"], reverse=True)
        files = [self._sign(obj["Key"], obj) for obj in objects]
        logger.info("Signed %d audio files for user %d", len(files), user_id)
        return files

    def has_audio_files(self, user_id: int, digest_id: int) -> bool:
        prefix = build_audio_key(self.audio_prefix, user_id, digest_id) + "_"
        return s3_prefix_exists(self.bucket, prefix, s3=self.s3)

    def get_signed_url(self, locator: str) -> AudioFileUrl | None:
        """Sign a single s3:// locator; None when the object does not exist."""
        key = self._key_in_bucket(locator)
        if not s3_object_exists(self.bucket, key, s3=self.s3):
            logger.warning("Audio file does not exist: %s", locator)
            return None
        return self._sign(key)

    def get_signed_urls(self, locators: list[str]) -> list[AudioFileUrl]:
        """Sign several locators in order, leaving out the ones that do not exist."""
        files = []
        for locator in locators:
            audio_file = self.get_signed_url(locator)
            if audio_file is not None:
                files.append(audio_file)
        return files

    def delete_audio_file(self, locator: str) -> bool:
        """Delete one audio object. Returns False when it was already gone."""
        key = self._key_in_bucket(locator)
        try:
            if not s3_object_exists(self.bucket, key, s3=self.s3):
                logger.warning("Audio file to delete does not exist: %s", locator)
                return False
            delete_s3_object(self.bucket, key, s3=self.s3)
        except ClientError as exc:
            logger.error("Failed to delete audio file %s: %s", locator, exc)
            raise
        return True
