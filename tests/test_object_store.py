"""Tests for S3 uploads and URL downloads."""

import asyncio
from pathlib import Path

import pytest
from botocore.exceptions import ClientError

from reelcast.storage.object_store import (
    S3ObjectStore, content_type_for, extension_from_url, parse_s3_url
)
from reelcast.utils.config import ServiceCredentials, StorageConfig
from reelcast.utils.errors import DownloadError, ExternalServiceError


class FakeS3:
    def __init__(self, error=None):
        self.error = error
        self.uploads = []
        self.objects = []

    def upload_file(self, filename, bucket, key, ExtraArgs=None):
        if self.error is not None:
            raise self.error
        self.uploads.append((filename, bucket, key, ExtraArgs))

    def put_object(self, **kwargs):
        self.objects.append(kwargs)

    def download_file(self, bucket, key, filename):
        if self.error is not None:
            raise self.error
        Path(filename).write_bytes(f"{bucket}/{key}".encode())


def make_store(s3):
    return S3ObjectStore(
        StorageConfig(region="us-west-1", bucket="reels"), ServiceCredentials(), s3_client=s3
    )


def not_found():
    return ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")


def test_parse_s3_url() -> None:
    assert parse_s3_url("https://s3.us-west-1.amazonaws.com/reels/u1/audio/a%20b.mp3") == (
        "us-west-1", "reels", "u1/audio/a b.mp3"
    )
    assert parse_s3_url("https://fal.media/files/cat.jpg") is None


def test_extension_from_url() -> None:
    assert extension_from_url("https://fal.media/files/cat.png?sig=1") == ".png"
    assert extension_from_url("https://fal.media/files/cat") == ".jpg"


def test_content_type_for() -> None:
    assert content_type_for("slideshows", ".mp4") == "video/mp4"
    assert content_type_for("final-videos", ".mp4") == "video/mp4"
    assert content_type_for("audio", ".mp3") == "audio/mpeg"
    assert content_type_for("images", ".jpg") == "image/jpeg"


def test_upload_file_uses_user_scoped_key(tmp_path) -> None:
    s3 = FakeS3()
    clip = tmp_path / "slideshow.mp4"
    clip.write_bytes(b"video")

    url = asyncio.run(make_store(s3).upload_file(clip, "u1", "slideshows"))

    filename, bucket, key, extra = s3.uploads[0]
    assert filename == str(clip)
    assert bucket == "reels"
    assert key.startswith("u1/slideshows/") and key.endswith(".mp4")
    assert extra == {"ContentType": "video/mp4"}
    assert url == f"https://s3.us-west-1.amazonaws.com/reels/{key}"


def test_upload_failure_raises_service_error(tmp_path) -> None:
    clip = tmp_path / "merged.mp4"
    clip.write_bytes(b"video")

    with pytest.raises(ExternalServiceError):
        asyncio.run(make_store(FakeS3(error=not_found())).upload_file(clip, "u1", "final-videos"))


def test_upload_bytes_sets_content_type() -> None:
    s3 = FakeS3()

    url = asyncio.run(make_store(s3).upload_bytes(b"mp3", "u1", "audio", ".mp3", "audio/mpeg"))

    sent = s3.objects[0]
    assert sent["Bucket"] == "reels"
    assert sent["ContentType"] == "audio/mpeg"
    assert url.endswith(sent["Key"])


def test_s3_download_goes_through_boto(tmp_path) -> None:
    url = "https://s3.us-west-1.amazonaws.com/reels/u1/video/me.mp4"

    path = asyncio.run(make_store(FakeS3()).download(url, tmp_path))

    assert path.parent == tmp_path
    assert path.suffix == ".mp4"
    assert path.read_bytes() == b"reels/u1/video/me.mp4"


def test_failed_download_leaves_no_file(tmp_path) -> None:
    url = "https://s3.us-west-1.amazonaws.com/reels/u1/video/gone.mp4"

    with pytest.raises(DownloadError):
        asyncio.run(make_store(FakeS3(error=not_found())).download(url, tmp_path))

    assert list(tmp_path.iterdir()) == []


def test_storage_dependencies_are_declared() -> None:
    pyproject = (Path(__file__).resolve().parent.parent / "pyproject.toml").read_text(encoding="utf-8")

    # object_store imports both distributions directly
    assert '"boto3' in pyproject
    assert '"botocore' in pyproject
