import logging
from typing import Any

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

S3_SCHEME = "s3://"


def get_s3_client():
    """Create S3 client."""
    return boto3.client("s3")


def build_user_audio_prefix(prefix: str, user_id: int) -> str:
    return f"{prefix.strip('/')}/{user_id}/"


def build_audio_key(prefix: str, user_id: int, digest_id: int) -> str:
    """Build the key prefix shared by all audio parts of one digest.

    Parts are stored as ``<prefix>/<user_id>/tts-<digest_id>_<index>.<ext>``.
    """
    return f"{build_user_audio_prefix(prefix, user_id)}tts-{digest_id}"


def build_s3_uri(bucket: str, key: str) -> str:
    return f"{S3_SCHEME}{bucket}/{key}"


def parse_s3_uri(uri: str) -> tuple[str, str]:
    """Split ``s3://bucket/key`` into (bucket, key)."""
    if not uri.startswith(S3_SCHEME):
        raise ValueError(f"Not an S3 URI: {uri}")
    bucket, _, key = uri[len(S3_SCHEME):].partition("/")
    if not bucket or not key:
        raise ValueError(f"S3 URI must include bucket and key: {uri}")
    return bucket, key


def upload_bytes_to_s3(
    body: bytes,
    bucket: str,
    key: str,
    content_type: str,
    s3: Any = None,
) -> str:
    """Upload an in-memory payload to S3 and return its s3:// locator."""
    s3 = s3 or get_s3_client()
    s3.put_object(
        Bucket=bucket,
        Key=key,
        Body=body,
        ContentType=content_type,
    )
    logger.info("Uploaded %d bytes to s3://%s/%s", len(body), bucket, key)
    return build_s3_uri(bucket, key)


def list_s3_objects(bucket: str, prefix: str, s3: Any = None) -> list[dict[str, Any]]:
    """List the object summaries under an S3 prefix, sorted by key."""
    s3 = s3 or get_s3_client()
    objects = []
    paginator = s3.get_paginator("list_objects_v2")

    for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
        objects.extend(page.get("Contents", []))

    return sorted(objects, key=lambda obj: obj["Key"])


def s3_prefix_exists(bucket: str, prefix: str, s3: Any = None) -> bool:
    """True when at least one key starts with the prefix."""
    s3 = s3 or get_s3_client()
    response = s3.list_objects_v2(Bucket=bucket, Prefix=prefix, MaxKeys=1)
    return response.get("KeyCount", 0) > 0


def s3_object_exists(bucket: str, key: str, s3: Any = None) -> bool:
    s3 = s3 or get_s3_client()
    try:
        s3.head_object(Bucket=bucket, Key=key)
    except ClientError as exc:
        if exc.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
            return False
        raise
    return True


def generate_presigned_url(
    bucket: str,
    key: str,
    expires_in: int,
    s3: Any = None,
) -> str:
    """Create a time-limited GET URL for an S3 object."""
    s3 = s3 or get_s3_client()
    return s3.generate_presigned_url(
        "get_object",
        Params={"Bucket": bucket, "Key": key},
        ExpiresIn=expires_in,
    )


def delete_s3_object(bucket: str, key: str, s3: Any = None) -> None:
    s3 = s3 or get_s3_client()
    s3.delete_object(Bucket=bucket, Key=key)
    logger.info("Deleted s3://%s/%s", bucket, key)
