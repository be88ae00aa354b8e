import asyncio
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from config import Settings, get_optional_setting
from constants import PHOTO_TYPES
from services.errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_URL_EXPIRY_SECONDS = 300


@dataclass(frozen=True)
class UploadTarget:
    upload_url: str
    storage_key: str
    expires_in: int


@dataclass(frozen=True)
class StoredObject:
    storage_key: str


def build_storage_key(owner_id: str, photo_type: str) -> str:
    """Keys are ``{owner}/{photo_type}/{uuid}`` so ownership is visible in the path."""
    if photo_type not in PHOTO_TYPES:
        raise StorageError(f"Unknown photo type: {photo_type}")
    return f"{owner_id}/{photo_type}/{uuid.uuid4()}"


class PhotoStorage(Protocol):
    """Private photo storage reachable only through short-lived URLs."""

    async def create_upload_url(
        self, owner_id: str, photo_type: str, content_type: str
    ) -> UploadTarget:
        ...

    async def create_download_url(self, storage_key: str) -> str:
        ...

    async def upload_buffer(
        self, owner_id: str, photo_type: str, data: bytes, content_type: str
    ) -> StoredObject:
        ...


class LocalPhotoStorage:
    """Local filesystem storage for development.

    Files are served back through the app's ``/storage`` mount, and uploads go
    through the API's local upload route instead of a presigned URL.
    """

    def __init__(
        self,
        base_dir: Path,
        public_base_url: str,
        *,
        expires_in: int = DEFAULT_URL_EXPIRY_SECONDS,
    ):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")
        self.expires_in = expires_in
        logger.info("Local storage initialized at %s", self.base_dir)

    def resolve_path(self, storage_key: str) -> Path:
        file_path = self.base_dir / storage_key.lstrip("/")
        # SECURITY: Validate path to prevent directory traversal attacks
        try:
            file_path.resolve().relative_to(self.base_dir.resolve())
        except ValueError:
            raise StorageError("Invalid path: path traversal attempt detected")
        return file_path

    async def create_upload_url(
        self, owner_id: str, photo_type: str, content_type: str
    ) -> UploadTarget:
        storage_key = build_storage_key(owner_id, photo_type)
        self.resolve_path(storage_key)
        return UploadTarget(
            upload_url=f"{self.public_base_url}/api/v1/physique/uploads/{storage_key}",
            storage_key=storage_key,
            expires_in=self.expires_in,
        )

    async def create_download_url(self, storage_key: str) -> str:
        self.resolve_path(storage_key)
        return f"{self.public_base_url}/storage/{storage_key.lstrip('/')}"

    async def write_bytes(self, storage_key: str, data: bytes) -> None:
        file_path = self.resolve_path(storage_key)
        await asyncio.to_thread(file_path.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(file_path.write_bytes, data)
        logger.info("Saved file locally: %s (%d bytes)", storage_key, len(data))

    async def upload_buffer(
        self, owner_id: str, photo_type: str, data: bytes, content_type: str
    ) -> StoredObject:
        storage_key = build_storage_key(owner_id, photo_type)
        await self.write_bytes(storage_key, data)
        return StoredObject(storage_key=storage_key)


class S3PhotoStorage:
    """S3 photo storage with presigned URLs.

    Supports AWS S3 and S3-compatible stores (Cloudflare R2, MinIO) through
    ``endpoint_url``. Objects are written with AES256 server-side encryption.
    """

    def __init__(
        self,
        bucket: str,
        *,
        region: str = "us-east-1",
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        prefix: str = "",
        expires_in: int = DEFAULT_URL_EXPIRY_SECONDS,
        client: object = None,
    ):
        if not bucket:
            raise StorageError("S3_BUCKET is required")
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.expires_in = expires_in
        self.endpoint_url = endpoint_url

        if client is None:
            client_kwargs = {
                "aws_access_key_id": access_key_id,
                "aws_secret_access_key": secret_access_key,
                "region_name": region,
                "config": Config(signature_version="s3v4"),
            }
            if endpoint_url:
                client_kwargs["endpoint_url"] = endpoint_url
            client = boto3.client("s3", **client_kwargs)
        self.client = client

        logger.info(
            "S3 storage initialized (bucket=%s, prefix=%s, endpoint=%s)",
            self.bucket,
            self.prefix or "<none>",
            self.endpoint_url or "AWS S3",
        )

    def _object_key(self, storage_key: str) -> str:
        storage_key = storage_key.lstrip("/")
        if self.prefix:
            return f"{self.prefix}/{storage_key}"
        return storage_key

    def _presign(self, operation: str, params: dict) -> str:
        try:
            return self.client.generate_presigned_url(
                operation, Params=params, ExpiresIn=self.expires_in
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to generate presigned URL: %s", str(e))
            raise StorageError("Failed to generate storage URL") from e

    async def create_upload_url(
        self, owner_id: str, photo_type: str, content_type: str
    ) -> UploadTarget:
        storage_key = build_storage_key(owner_id, photo_type)
        upload_url = self._presign(
            "put_object",
            {
                "Bucket": self.bucket,
                "Key": self._object_key(storage_key),
                "ContentType": content_type,
                "ServerSideEncryption": "AES256",
                "Metadata": {"owner-id": owner_id, "photo-type": photo_type},
            },
        )
        return UploadTarget(
            upload_url=upload_url, storage_key=storage_key, expires_in=self.expires_in
        )

    async def create_download_url(self, storage_key: str) -> str:
        return self._presign(
            "get_object",
            {"Bucket": self.bucket, "Key": self._object_key(storage_key)},
        )

    async def upload_buffer(
        self, owner_id: str, photo_type: str, data: bytes, content_type: str
    ) -> StoredObject:
        storage_key = build_storage_key(owner_id, photo_type)
        s3_key = self._object_key(storage_key)
        try:
            logger.info("Uploading to S3: bucket=%s, key=%s", self.bucket, s3_key)
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=s3_key,
                Body=data,
                ContentType=content_type,
                ServerSideEncryption="AES256",
                Metadata={"owner-id": owner_id, "photo-type": photo_type},
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "S3 upload failed: bucket=%s, key=%s, error=%s", self.bucket, s3_key, str(e)
            )
            raise StorageError("Failed to upload to storage") from e
        return StoredObject(storage_key=storage_key)


def create_photo_storage(settings: Settings) -> PhotoStorage:
    """Build the storage backend selected by ``STORAGE_BACKEND``."""
    if settings.STORAGE_BACKEND == "s3":
        return S3PhotoStorage(
            settings.S3_BUCKET,
            region=settings.S3_REGION or "us-east-1",
            access_key_id=get_optional_setting(settings, "S3_ACCESS_KEY_ID"),
            secret_access_key=get_optional_setting(settings, "S3_SECRET_ACCESS_KEY"),
            endpoint_url=get_optional_setting(settings, "S3_ENDPOINT_URL"),
            prefix=settings.S3_PREFIX,
            expires_in=settings.SIGNED_URL_EXPIRY_SECONDS,
        )
    if settings.STORAGE_BACKEND == "local":
        return LocalPhotoStorage(
            Path(settings.LOCAL_STORAGE_DIR),
            settings.PUBLIC_BASE_URL,
            expires_in=settings.SIGNED_URL_EXPIRY_SECONDS,
        )
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")
