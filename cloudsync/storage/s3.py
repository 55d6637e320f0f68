"""S3 storage backend."""

import hashlib
import logging
from typing import BinaryIO
from urllib.parse import urlparse

import boto3
from botocore.exceptions import ClientError

from cloudsync.config import Settings
from cloudsync.models import RemoteEntry
from cloudsync.storage.base import (
    CONTENT_MD5_KEY,
    WRITER_ID_KEY,
    Backend,
    NotFoundError,
    StorageError,
)

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")


def _is_not_found(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES


class S3Backend(Backend):
    """Handles all S3 operations for one bucket/prefix root."""

    def __init__(
        self,
        bucket: str,
        prefix: str,
        client_id: str,
        settings: Settings | None = None,
    ):
        """Initialize S3 client.

        Args:
            bucket: Bucket name
            prefix: Key prefix acting as the remote root (may be empty)
            client_id: Writer tag stamped on every object this backend writes
            settings: Credentials and endpoint; defaults to Settings()
        """
        if settings is None:
            settings = Settings()

        self.s3 = boto3.client(
            "s3",
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
            endpoint_url=settings.s3_endpoint_url,
        )
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.client_id = client_id

    @property
    def base_path(self) -> str:
        """Key prefix including the trailing slash, or "" for the bucket root."""
        return f"{self.prefix}/" if self.prefix else ""

    def _make_key(self, path: str) -> str:
        """Convert a relative path to an S3 key with prefix."""
        return self.base_path + path.lstrip("/")

    def _entry(self, path: str, head: dict) -> RemoteEntry:
        metadata = head.get("Metadata", {}) or {}
        md5 = metadata.get(CONTENT_MD5_KEY) or head.get("ETag", "").strip('"')
        return RemoteEntry(
            path=path,
            md5=md5,
            last_modified=head["LastModified"],
            writer_id=metadata.get(WRITER_ID_KEY),
            base_path=self.base_path,
        )

    def list_all(self) -> dict[str, RemoteEntry]:
        """List every object under the prefix.

        ``list_objects_v2`` does not return user metadata, so each key is
        followed by a ``head_object`` to read the writer tag.
        """
        entries = {}
        try:
            paginator = self.s3.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self.base_path):
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    if key.endswith("/"):
                        continue
                    path = key[len(self.base_path) :]
                    try:
                        head = self.s3.head_object(Bucket=self.bucket, Key=key)
                    except ClientError as e:
                        if _is_not_found(e):
                            # Deleted between list and head
                            continue
                        raise
                    entries[path] = self._entry(path, head)
        except ClientError as e:
            logger.error(f"Error listing s3://{self.bucket}/{self.base_path}: {e}")
            raise StorageError(f"Failed to list objects: {e}") from e

        logger.debug(f"Listed {len(entries)} remote objects")
        return entries

    def get_meta(self, path: str) -> RemoteEntry:
        key = self._make_key(path)
        try:
            head = self.s3.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise NotFoundError(f"File not found: {path}") from e
            raise StorageError(f"Failed to read metadata for {path}: {e}") from e
        return self._entry(path, head)

    def get(self, path: str) -> tuple[RemoteEntry, BinaryIO]:
        key = self._make_key(path)
        try:
            response = self.s3.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise NotFoundError(f"File not found: {path}") from e
            logger.error(f"Error reading file {path}: {e}")
            raise StorageError(f"Failed to read file: {e}") from e
        return self._entry(path, response), response["Body"]

    def put(self, path: str, stream: BinaryIO) -> RemoteEntry:
        key = self._make_key(path)
        try:
            content = stream.read()
        finally:
            stream.close()

        md5 = hashlib.md5(content).hexdigest()
        logger.info(f"Writing to s3://{self.bucket}/{key}")
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType="application/octet-stream",
                Metadata={
                    CONTENT_MD5_KEY: md5,
                    WRITER_ID_KEY: self.client_id,
                },
            )
        except ClientError as e:
            logger.error(f"Error writing file {path}: {e}")
            raise StorageError(f"Failed to write file: {e}") from e
        return self.get_meta(path)

    def delete(self, path: str) -> None:
        key = self._make_key(path)
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise NotFoundError(f"File not found: {path}") from e
            logger.error(f"Error deleting file {path}: {e}")
            raise StorageError(f"Failed to delete file: {e}") from e
        logger.info(f"Deleted s3://{self.bucket}/{key}")


def parse_remote_url(url: str) -> tuple[str, str]:
    """Split an ``s3://bucket/prefix`` URL into (bucket, prefix)."""
    parsed = urlparse(url)
    if parsed.scheme != "s3":
        raise ValueError(f"Unsupported remote URL scheme (expected s3://): {url}")
    if not parsed.netloc:
        raise ValueError(f"Remote URL is missing a bucket: {url}")
    return parsed.netloc, parsed.path.strip("/")


def create_backend(
    url: str, client_id: str, settings: Settings | None = None
) -> S3Backend:
    """Build the backend for a remote URL."""
    bucket, prefix = parse_remote_url(url)
    return S3Backend(bucket, prefix, client_id=client_id, settings=settings)
