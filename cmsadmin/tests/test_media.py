"""Tests for media keys, URLs and content-type checks."""

from __future__ import annotations

import re

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from cmsadmin.client import media
from cmsadmin.client.media import MediaStorage, check_content_type, object_key, public_url
from cmsadmin.errors import ValidationError


def test_object_key_format():
    assert object_key("image", "cover.photo.PNG", now_ms=123, suffix="abc") == "images/123_abc.PNG"
    assert object_key("video", "clip.mp4", now_ms=5, suffix="xyz") == "videos/5_xyz.mp4"


def test_object_key_random_suffix():
    key = object_key("image", "a.png")

    assert re.fullmatch(r"images/\d+_[a-z0-9]{13}\.png", key)
    assert key != object_key("image", "a.png")


def test_public_url():
    assert public_url("media", "us-east-1", "images/1_a.png") == "https://media.s3.amazonaws.com/images/1_a.png"
    url = public_url("media", "eu-west-1", "images/1_a.png")
    assert url == "https://media.s3.eu-west-1.amazonaws.com/images/1_a.png"


def test_check_content_type():
    check_content_type("image", "image/webp")
    check_content_type("video", "video/quicktime")

    with pytest.raises(ValidationError, match="Invalid image type. Allowed types: image/jpeg"):
        check_content_type("image", "video/mp4")
    with pytest.raises(ValidationError, match="Invalid video type"):
        check_content_type("video", "image/png")


def test_missing_credentials():
    with pytest.raises(RuntimeError, match="AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_S3_BUCKET_NAME"):
        MediaStorage(access_key_id="", secret_access_key="", bucket="", region="us-east-1")


def test_region_defaults_to_us_east_1():
    storage = MediaStorage(access_key_id="k", secret_access_key="s", bucket="media", region="")

    assert storage.region == "us-east-1"


async def test_upload_rejects_type_before_network():
    storage = MediaStorage(access_key_id="k", secret_access_key="s", bucket="media", region="us-east-1")

    with pytest.raises(ValidationError):
        await storage.upload(b"data", "a.exe", "application/octet-stream", "image")


class FakeS3:
    """Async context manager standing in for an aioboto3 S3 client."""

    def __init__(self, failures: list[Exception]):
        self.failures = failures
        self.puts: list[dict] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def put_object(self, **kwargs):
        if self.failures:
            raise self.failures.pop(0)
        self.puts.append(kwargs)


class FakeSession:
    def __init__(self, s3: FakeS3):
        self.s3 = s3

    def client(self, service_name, **kwargs):
        return self.s3


@pytest.fixture
def no_backoff(monkeypatch):
    waits: list[int] = []

    async def backoff(attempt, error):
        waits.append(attempt)

    monkeypatch.setattr(media, "_backoff", backoff)
    return waits


def _storage(s3: FakeS3) -> MediaStorage:
    return MediaStorage(
        access_key_id="k", secret_access_key="s", bucket="media", region="eu-west-1", session=FakeSession(s3)
    )


async def test_upload_retries_connection_errors(no_backoff):
    s3 = FakeS3([EndpointConnectionError(endpoint_url="https://s3.eu-west-1.amazonaws.com")])

    result = await _storage(s3).upload(b"png", "cover.png", "image/png", "image")

    assert no_backoff == [0]
    assert s3.puts[0]["Key"] == result.key
    assert result.url == f"https://media.s3.eu-west-1.amazonaws.com/{result.key}"


async def test_upload_retries_throttling(no_backoff):
    s3 = FakeS3([ClientError({"Error": {"Code": "SlowDown"}}, "PutObject")])

    await _storage(s3).upload(b"png", "cover.png", "image/png", "image")

    assert len(s3.puts) == 1


async def test_upload_gives_up_after_retries(no_backoff):
    s3 = FakeS3([TimeoutError(), TimeoutError()])

    with pytest.raises(TimeoutError):
        await _storage(s3).upload(b"png", "cover.png", "image/png", "image", max_retries=1)
    assert s3.puts == []


async def test_upload_does_not_retry_access_denied(no_backoff):
    s3 = FakeS3([ClientError({"Error": {"Code": "AccessDenied"}}, "PutObject")])

    with pytest.raises(ClientError):
        await _storage(s3).upload(b"png", "cover.png", "image/png", "image")
    assert no_backoff == []
