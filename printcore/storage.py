"""Durable object storage for print assets."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from printcore.config import AppConfig, get_config
from printcore.errors import StorageUploadError

EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/tiff": "tif",
}


def extension_for(mime_type: str) -> str:
    return EXTENSIONS.get(mime_type, "png")


@dataclass(frozen=True)
class StoredObject:
    url: str
    path: str
    size: int


class ObjectStorage:
    """Interface: put(path, data, content_type) -> StoredObject"""

    backend = "base"

    def put(self, path: str, data: bytes, content_type: str) -> StoredObject:
        raise NotImplementedError


class LocalStorage(ObjectStorage):
    """Stores objects under a directory on disk."""

    backend = "local"

    def __init__(self, root: str, base_url: Optional[str] = None):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/") if base_url else None

    def put(self, path: str, data: bytes, content_type: str) -> StoredObject:
        target = self.root / path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageUploadError(path, self.backend, str(e))

        if self.base_url:
            url = f"{self.base_url}/{path}"
        else:
            url = target.resolve().as_uri()

        logger.info(f"Saved {path} ({len(data):,} bytes, {content_type})")
        return StoredObject(url=url, path=path, size=len(data))


class S3Storage(ObjectStorage):
    """Stores objects in an S3 bucket with public-read URLs."""

    backend = "s3"

    def __init__(self, bucket: str, region: str = None, public_url: str = None, client=None):
        self.bucket = bucket
        self.region = region
        self.public_url = public_url.rstrip("/") if public_url else None
        self.client = client or boto3.client("s3", region_name=region)

    def put(self, path: str, data: bytes, content_type: str) -> StoredObject:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageUploadError(path, self.backend, str(e))

        if self.public_url:
            url = f"{self.public_url}/{path}"
        elif self.region:
            url = f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{path}"
        else:
            url = f"https://{self.bucket}.s3.amazonaws.com/{path}"

        logger.info(f"Uploaded s3://{self.bucket}/{path} ({len(data):,} bytes)")
        return StoredObject(url=url, path=path, size=len(data))


def create_storage(config: AppConfig = None) -> ObjectStorage:
    """Build the configured storage backend."""
    config = config or get_config()
    if config.STORAGE_BACKEND == "s3":
        if not config.S3_BUCKET:
            raise ValueError("STORAGE_BACKEND=s3 requires S3_BUCKET")
        return S3Storage(config.S3_BUCKET, config.AWS_REGION, config.S3_PUBLIC_URL)
    return LocalStorage(config.STORAGE_ROOT, config.STORAGE_BASE_URL)
