import logging
import os
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """An object storage call failed."""


@dataclass
class StoredObject:
    key: str
    body: bytes
    content_type: str = "application/octet-stream"
    etag: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


class ObjectStorage:
    """Thin wrapper over an S3-compatible bucket (AWS S3, Cloudflare R2, MinIO)."""

    def __init__(self, bucket_name: Optional[str] = None, client=None):
        self.s3_client = client or boto3.client(
            's3',
            endpoint_url=settings.S3_ENDPOINT_URL,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            region_name=settings.AWS_REGION
        )
        self.bucket_name = bucket_name or settings.S3_BUCKET

    @staticmethod
    def generate_key(file_name: str, folder: str = "uploads") -> str:
        """
        Unique key for a new upload.

        Args:
            file_name: Original filename; only its extension is kept
            folder: Key prefix

        Returns:
            Key such as "uploads/3f0c...e1.jpg"
        """
        file_extension = os.path.splitext(file_name or "")[1].lower()
        return f"{folder.strip('/')}/{uuid.uuid4()}{file_extension}"

    def put(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
                Metadata=metadata or {},
                # No ACL: public access is granted by the bucket policy
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to store {key}: {e}") from e
        return key

    def get(self, key: str) -> Optional[StoredObject]:
        """The stored object, or None when the key does not exist."""
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                return None
            raise StorageError(f"Failed to read {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

        return StoredObject(
            key=key,
            body=response["Body"].read(),
            content_type=response.get("ContentType") or "application/octet-stream",
            etag=response.get("ETag"),
            metadata=response.get("Metadata") or {},
        )

    def delete(self, key: str) -> None:
        """Idempotent: deleting a missing key succeeds."""
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e
        logger.info("Deleted stored object %s", key)


# Singleton instance
storage = ObjectStorage()


def get_storage() -> ObjectStorage:
    return storage
