"""S3 media storage for cover images and videos."""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from dataclasses import dataclass
from typing import Literal

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from cmsadmin.config import missing, settings
from cmsadmin.errors import ValidationError

logger = logging.getLogger(__name__)

MediaType = Literal["image", "video"]

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp")
ALLOWED_VIDEO_TYPES = ("video/mp4", "video/webm", "video/ogg", "video/quicktime")

_FOLDERS: dict[str, str] = {"image": "images", "video": "videos"}
_ALLOWED: dict[str, tuple[str, ...]] = {"image": ALLOWED_IMAGE_TYPES, "video": ALLOWED_VIDEO_TYPES}

# Retryable S3 error codes
_RETRYABLE_CODES = {"RequestTimeout", "ServiceUnavailable", "ThrottlingException", "Throttling", "SlowDown"}

_SUFFIX_CHARS = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class UploadResult:
    url: str
    key: str


def check_content_type(media_type: MediaType, content_type: str) -> None:
    """
    Raises:
        ValidationError: If the MIME type is not allowed for the media type
    """
    allowed = _ALLOWED[media_type]
    if content_type not in allowed:
        raise ValidationError(f"Invalid {media_type} type. Allowed types: {', '.join(allowed)}")


def object_key(media_type: MediaType, filename: str, now_ms: int | None = None, suffix: str | None = None) -> str:
    """
    Collision-resistant key: {images|videos}/{epoch_ms}_{random}.{ext}

    The extension is whatever follows the filename's last dot.
    """
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    suffix = suffix or "".join(secrets.choice(_SUFFIX_CHARS) for _ in range(13))
    extension = filename.rsplit(".", 1)[-1] if "." in filename else ""
    return f"{_FOLDERS[media_type]}/{now_ms}_{suffix}.{extension}"


def public_url(bucket: str, region: str, key: str) -> str:
    """Public object URL. us-east-1 has no region in the host."""
    if region == "us-east-1":
        return f"https://{bucket}.s3.amazonaws.com/{key}"
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


async def _backoff(attempt: int, error: Exception) -> None:
    wait_time = 2**attempt
    logger.warning("media: upload error (attempt %d), retrying in %ds: %s", attempt + 1, wait_time, error)
    await asyncio.sleep(wait_time)


class MediaStorage:
    """
    Uploads and deletes media objects in one S3 bucket.

    Raises:
        RuntimeError: If credentials or the bucket name are missing
    """

    def __init__(
        self,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        bucket: str | None = None,
        region: str | None = None,
        session: aioboto3.Session | None = None,
    ):
        self.access_key_id = settings.AWS_ACCESS_KEY_ID if access_key_id is None else access_key_id
        self.secret_access_key = settings.AWS_SECRET_ACCESS_KEY if secret_access_key is None else secret_access_key
        self.bucket = settings.AWS_S3_BUCKET_NAME if bucket is None else bucket
        self.region = (settings.AWS_REGION if region is None else region) or "us-east-1"
        absent = missing(
            AWS_ACCESS_KEY_ID=self.access_key_id,
            AWS_SECRET_ACCESS_KEY=self.secret_access_key,
            AWS_S3_BUCKET_NAME=self.bucket,
        )
        if absent:
            raise RuntimeError(
                f"AWS S3 credentials are not configured. Missing: {', '.join(absent)}. "
                "Set these environment variables and restart."
            )
        self.session = session or aioboto3.Session()

    def _client(self):
        return self.session.client(
            "s3",
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    async def upload(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        media_type: MediaType,
        max_retries: int = 1,
    ) -> UploadResult:
        """
        Upload one file with retry on transient S3 errors.

        Args:
            data: File contents
            filename: Original filename, used for the extension only
            content_type: MIME type, checked against the allow list
            media_type: "image" or "video"
            max_retries: Number of retries on transient failures (default 1)

        Returns:
            UploadResult with the public URL and the object key

        Raises:
            ValidationError: Disallowed MIME type
            ClientError: Non-retryable S3 error, or retries exhausted
            BotoCoreError: Connection or timeout failure after retries
        """
        check_content_type(media_type, content_type)
        key = object_key(media_type, filename)

        for attempt in range(max_retries + 1):
            try:
                async with self._client() as s3:
                    await s3.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
                break
            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "")
                if error_code not in _RETRYABLE_CODES or attempt >= max_retries:
                    logger.error("media: upload of %s failed: %s", key, e)
                    raise
                await _backoff(attempt, e)
            except (BotoCoreError, OSError, TimeoutError) as e:
                # Connection failures and timeouts
                if attempt >= max_retries:
                    logger.error("media: upload of %s failed: %s", key, e)
                    raise
                await _backoff(attempt, e)

        logger.info("media: uploaded %s (%d bytes)", key, len(data))
        return UploadResult(url=public_url(self.bucket, self.region, key), key=key)

    async def delete(self, key: str) -> None:
        """Delete an object by key."""
        async with self._client() as s3:
            await s3.delete_object(Bucket=self.bucket, Key=key)
        logger.info("media: deleted %s", key)
