"""
Object Store

S3 uploads and URL downloads. Keys follow <user>/<kind>/<uuid><ext> and are
addressed by path-style URLs, https://s3.<region>.amazonaws.com/<bucket>/<key>.
S3 URLs are fetched through boto3, anything else over plain HTTP.
"""

import asyncio
import logging
import re
import uuid
from pathlib import Path
from typing import Any, Optional, Tuple, Union
from urllib.parse import unquote, urlparse

import aiohttp
import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..automation.ports import IObjectStore
from ..utils.config import ServiceCredentials, StorageConfig
from ..utils.errors import DownloadError, ExternalServiceError

S3_URL_PATTERN = re.compile(r"^https://s3\.([\w-]+)\.amazonaws\.com/([\w.-]+)/(.+)$")
DEFAULT_EXTENSION = ".jpg"
CHUNK_SIZE = 1024 * 256


def content_type_for(kind: str, extension: str = "") -> str:
    """MIME type recorded on upload"""
    extension = extension.lower()
    if "video" in kind or "slideshow" in kind or extension in (".mp4", ".mov"):
        return "video/mp4"
    if "audio" in kind or extension in (".mp3", ".mpeg"):
        return "audio/mpeg"
    return "image/jpeg"


def extension_from_url(url: str) -> str:
    suffix = Path(unquote(urlparse(url).path)).suffix
    return suffix if suffix and len(suffix) <= 5 else DEFAULT_EXTENSION


def parse_s3_url(url: str) -> Optional[Tuple[str, str, str]]:
    """(region, bucket, key) for a path-style S3 URL, else None"""
    match = S3_URL_PATTERN.match(url)
    if not match:
        return None
    region, bucket, key = match.groups()
    return region, bucket, unquote(key)


class S3ObjectStore(IObjectStore):
    """Durable storage for run outputs and the fetcher for remote inputs"""

    def __init__(self,
                 storage: StorageConfig,
                 credentials: ServiceCredentials,
                 http_timeout_seconds: float = 120.0,
                 s3_client: Optional[Any] = None):
        self.storage = storage
        self.logger = logging.getLogger(__name__)
        self.http_timeout = aiohttp.ClientTimeout(total=http_timeout_seconds)
        self.s3_client = s3_client or boto3.client(
            's3',
            region_name=storage.region,
            aws_access_key_id=credentials.aws_access_key_id or None,
            aws_secret_access_key=credentials.aws_secret_access_key or None,
        )

        if not storage.bucket:
            self.logger.warning("No S3 bucket configured - uploads will fail")

    def public_url(self, key: str) -> str:
        return f"https://s3.{self.storage.region}.amazonaws.com/{self.storage.bucket}/{key}"

    def make_key(self, user_id: str, kind: str, extension: str) -> str:
        return f"{user_id}/{kind}/{uuid.uuid4()}{extension}"

    async def upload_file(self, path: Union[str, Path], user_id: str, kind: str) -> str:
        path = Path(path)
        key = self.make_key(user_id, kind, path.suffix)
        try:
            await asyncio.to_thread(
                self.s3_client.upload_file,
                str(path),
                self.storage.bucket,
                key,
                ExtraArgs={'ContentType': content_type_for(kind, path.suffix)},
            )
        except (BotoCoreError, ClientError, OSError) as e:
            raise ExternalServiceError("storage", f"upload of {path.name} failed: {e}") from e

        url = self.public_url(key)
        self.logger.info(f"Uploaded {path.name} to {url}")
        return url

    async def upload_bytes(self, data: bytes, user_id: str, kind: str,
                           extension: str, content_type: Optional[str] = None) -> str:
        key = self.make_key(user_id, kind, extension)
        try:
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.storage.bucket,
                Key=key,
                Body=data,
                ContentType=content_type or content_type_for(kind, extension),
            )
        except (BotoCoreError, ClientError) as e:
            raise ExternalServiceError("storage", f"upload of {kind} bytes failed: {e}") from e

        url = self.public_url(key)
        self.logger.info(f"Uploaded {len(data)} bytes to {url}")
        return url

    async def download(self, url: str, dest_dir: Union[str, Path]) -> Path:
        dest_dir = Path(dest_dir)
        target = dest_dir / f"download_{uuid.uuid4().hex}{extension_from_url(url)}"

        s3_location = parse_s3_url(url)
        if s3_location:
            await self._download_s3(url, s3_location, target)
        else:
            await self._download_http(url, target)

        self.logger.debug(f"Downloaded {url} -> {target}")
        return target

    async def _download_s3(self, url: str, location: Tuple[str, str, str], target: Path) -> None:
        _, bucket, key = location
        try:
            await asyncio.to_thread(self.s3_client.download_file, bucket, key, str(target))
        except (BotoCoreError, ClientError, OSError) as e:
            target.unlink(missing_ok=True)
            raise DownloadError(url, str(e)) from e

    async def _download_http(self, url: str, target: Path) -> None:
        try:
            async with aiohttp.ClientSession(timeout=self.http_timeout) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise DownloadError(url, f"HTTP {response.status} {response.reason}")
                    with open(target, 'wb') as f:
                        async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                            f.write(chunk)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            target.unlink(missing_ok=True)
            raise DownloadError(url, str(e)) from e
