"""
Blob Store Gateway

Thin wrapper over the MinIO client for the operations the lifecycle engine
consumes:
- Upload URLs (PUT) and download URLs (GET) with capped expiration
- Server-side object copy
- Object delete
- Object stat (size, last modified, etag)

Every failure of the object store surfaces as BlobStoreUnavailableError
(NotFoundError for a missing key on stat). Callers decide whether a failure
is fatal; the gateway never retries.
"""
import logging
import re
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterator, Optional

import urllib3
from minio import Minio
from minio.commonconfig import CopySource
from minio.error import InvalidResponseError, S3Error, ServerError

from drivecore.core.errors import BlobStoreUnavailableError, NotFoundError
from drivecore.metrics import record_storage_operation
from drivecore.models.base import utcnow

logger = logging.getLogger(__name__)

# Errors the MinIO client raises for protocol and transport failures
BLOB_STORE_ERRORS = (S3Error, ServerError, InvalidResponseError, urllib3.exceptions.HTTPError)

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


@dataclass
class PresignedURL:
    """
    Presigned URL with metadata
    """
    url: str
    object_name: str
    bucket_name: str
    method: str  # GET, PUT
    expires_in_seconds: int
    created_at: datetime
    expires_at: datetime

    def is_expired(self) -> bool:
        """Check if URL has expired"""
        return utcnow() > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'url': self.url,
            'object_name': self.object_name,
            'bucket_name': self.bucket_name,
            'method': self.method,
            'expires_in_seconds': self.expires_in_seconds,
            'created_at': self.created_at.isoformat(),
            'expires_at': self.expires_at.isoformat(),
            'is_expired': self.is_expired()
        }


@dataclass
class BlobStat:
    """
    Object metadata returned by stat
    """
    key: str
    size: int
    last_modified: Optional[datetime]
    etag: Optional[str]


class BlobStoreGateway:
    """
    MinIO-backed blob store capability

    Features:
    - Caller-generated, globally unique object keys
    - Presigned upload/download URLs with a 7 day ceiling
    - Copy, delete and stat on single objects
    - Per-operation metrics and logging
    """

    DEFAULT_DOWNLOAD_EXPIRY = timedelta(hours=1)
    DEFAULT_UPLOAD_EXPIRY = timedelta(hours=1)
    MAX_EXPIRY = timedelta(days=7)

    def __init__(
        self,
        minio_client: Minio,
        bucket_name: str,
        default_download_expiry: Optional[timedelta] = None,
        default_upload_expiry: Optional[timedelta] = None
    ):
        """
        Initialize blob store gateway

        Args:
            minio_client: MinIO client instance
            bucket_name: Target bucket name
            default_download_expiry: Default download URL expiration
            default_upload_expiry: Default upload URL expiration
        """
        self.client = minio_client
        self.bucket_name = bucket_name
        self.default_download_expiry = default_download_expiry or self.DEFAULT_DOWNLOAD_EXPIRY
        self.default_upload_expiry = default_upload_expiry or self.DEFAULT_UPLOAD_EXPIRY

        logger.info(
            f"BlobStoreGateway initialized for bucket '{bucket_name}' "
            f"(download: {self.default_download_expiry}, upload: {self.default_upload_expiry})"
        )

    @classmethod
    def from_settings(cls) -> "BlobStoreGateway":
        """Build a gateway from MINIO_* and *_URL_EXPIRY_SECONDS settings."""
        from drivecore.core.config import settings
        from drivecore.core.minio_client import get_minio_client

        return cls(
            get_minio_client(),
            settings.MINIO_BUCKET,
            default_download_expiry=timedelta(seconds=settings.DOWNLOAD_URL_EXPIRY_SECONDS),
            default_upload_expiry=timedelta(seconds=settings.UPLOAD_URL_EXPIRY_SECONDS),
        )

    @staticmethod
    def generate_key(filename: str) -> str:
        """
        Generate a fresh object key for a file name.

        Args:
            filename: Display name the key is derived from

        Returns:
            ``<uuid4>-<epoch ms>-<sanitized filename>``
        """
        safe_name = _UNSAFE_KEY_CHARS.sub("_", filename) or "blob"
        return f"{uuid.uuid4()}-{int(time.time() * 1000)}-{safe_name}"

    @contextmanager
    def _operation(self, operation: str, key: str) -> Iterator[None]:
        """Time one client call and translate its failures."""
        started = time.perf_counter()
        try:
            yield
        except S3Error as e:
            record_storage_operation(operation, False, time.perf_counter() - started)
            if operation == "stat" and e.code in ("NoSuchKey", "NoSuchObject"):
                raise NotFoundError(f"Object '{key}' not found in blob store") from e
            logger.error(f"Blob store {operation} failed for '{key}': {e}")
            raise BlobStoreUnavailableError(
                f"Blob store {operation} failed for '{key}': {e.code}", key=key
            ) from e
        except BLOB_STORE_ERRORS as e:
            record_storage_operation(operation, False, time.perf_counter() - started)
            logger.error(f"Blob store {operation} failed for '{key}': {e}")
            raise BlobStoreUnavailableError(
                f"Blob store unavailable during {operation} of '{key}'", key=key
            ) from e
        else:
            record_storage_operation(operation, True, time.perf_counter() - started)

    def _cap_expiry(self, expires: timedelta) -> timedelta:
        if expires > self.MAX_EXPIRY:
            logger.warning(f"Expiry time {expires} exceeds maximum {self.MAX_EXPIRY}, capping")
            return self.MAX_EXPIRY
        return expires

    def _presigned(self, method: str, key: str, url: str, expires: timedelta) -> PresignedURL:
        created_at = utcnow()
        return PresignedURL(
            url=url,
            object_name=key,
            bucket_name=self.bucket_name,
            method=method,
            expires_in_seconds=int(expires.total_seconds()),
            created_at=created_at,
            expires_at=created_at + expires
        )

    def issue_upload_url(
        self,
        key: str,
        expires: Optional[timedelta] = None
    ) -> PresignedURL:
        """
        Generate presigned URL for uploading an object

        Args:
            key: Object key in bucket
            expires: URL expiration time (default: 1 hour)

        Returns:
            PresignedURL object with upload URL

        Raises:
            BlobStoreUnavailableError: If the URL cannot be signed
        """
        expires = self._cap_expiry(expires or self.default_upload_expiry)

        with self._operation("presign_put", key):
            url = self.client.presigned_put_object(
                self.bucket_name,
                key,
                expires=expires
            )

        logger.info(
            f"Generated upload URL for '{key}' "
            f"(expires in {expires.total_seconds() / 60:.1f}m)"
        )
        return self._presigned('PUT', key, url, expires)

    def issue_download_url(
        self,
        key: str,
        expires: Optional[timedelta] = None,
        filename: Optional[str] = None
    ) -> PresignedURL:
        """
        Generate presigned URL for downloading an object

        Args:
            key: Object key in bucket
            expires: URL expiration time (default: 1 hour)
            filename: Optional download name sent as an attachment disposition

        Returns:
            PresignedURL object with download URL

        Raises:
            BlobStoreUnavailableError: If the URL cannot be signed
        """
        expires = self._cap_expiry(expires or self.default_download_expiry)

        kwargs: Dict[str, Any] = {'expires': expires}
        if filename:
            kwargs['response_headers'] = {
                'response-content-disposition': f'attachment; filename="{filename}"'
            }

        with self._operation("presign_get", key):
            url = self.client.presigned_get_object(self.bucket_name, key, **kwargs)

        logger.info(
            f"Generated download URL for '{key}' "
            f"(expires in {expires.total_seconds() / 3600:.1f}h)"
        )
        return self._presigned('GET', key, url, expires)

    def copy_object(self, source_key: str, destination_key: str) -> None:
        """
        Server-side copy of one object to a new key

        Raises:
            BlobStoreUnavailableError: If the copy did not complete
        """
        with self._operation("copy", source_key):
            self.client.copy_object(
                self.bucket_name,
                destination_key,
                CopySource(self.bucket_name, source_key)
            )
        logger.debug(f"Copied object from {source_key} to {destination_key}")

    def delete_object(self, key: str) -> None:
        """
        Delete one object

        Raises:
            BlobStoreUnavailableError: If the store rejected the delete
        """
        with self._operation("delete", key):
            self.client.remove_object(self.bucket_name, key)
        logger.debug(f"Deleted object with key: {key}")

    def stat_object(self, key: str) -> BlobStat:
        """
        Fetch object size, last-modified time and etag

        Raises:
            NotFoundError: If the key does not exist
            BlobStoreUnavailableError: On any other store failure
        """
        with self._operation("stat", key):
            stat = self.client.stat_object(self.bucket_name, key)

        return BlobStat(
            key=key,
            size=stat.size,
            last_modified=stat.last_modified,
            etag=stat.etag
        )

    def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist yet."""
        with self._operation("ensure_bucket", self.bucket_name):
            if not self.client.bucket_exists(self.bucket_name):
                self.client.make_bucket(self.bucket_name)
                logger.info(f"Created bucket: {self.bucket_name}")

    def health_check(self) -> bool:
        """Check the store answers a bucket lookup."""
        try:
            self.client.bucket_exists(self.bucket_name)
            return True
        except BLOB_STORE_ERRORS as e:
            logger.error(f"Blob store health check failed: {e}")
            return False
