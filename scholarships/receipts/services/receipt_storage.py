"""
Receipt Storage

Stores generated receipt PDFs and returns a URL for them.

Backends:
- S3 (or any S3 compatible endpoint such as Wasabi / MinIO) when
  `RECEIPT_S3_BUCKET` is configured, through boto3.
- Django's `default_storage` otherwise (local media folder in development
  and tests).

Author: GradVillage Development Team
Version: 1.0.0
"""

import logging
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage

logger = logging.getLogger(__name__)


class ReceiptStorageError(Exception):
    """Raised when a receipt PDF could not be written to storage."""


class ReceiptStorage:
    """
    Writes receipt PDFs to `<folder>/<receipt_number>.pdf`.

    Args:
        bucket: S3 bucket name; empty means Django default storage
        folder: Key prefix inside the bucket / storage
    """

    def __init__(self, bucket: Optional[str] = None, folder: Optional[str] = None) -> None:
        self.bucket = settings.RECEIPT_S3_BUCKET if bucket is None else bucket
        self.folder = (folder or settings.RECEIPT_S3_FOLDER).strip("/")
        self.region = settings.AWS_REGION
        self.endpoint_url = settings.AWS_S3_ENDPOINT_URL or None

    @property
    def uses_s3(self) -> bool:
        return bool(self.bucket)

    def get_s3_client(self):
        """Creates a boto3 S3 client for the configured endpoint."""
        return boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            region_name=self.region,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            config=Config(s3={"addressing_style": "virtual"}),
        )

    def key_for(self, receipt_number: str) -> str:
        return f"{self.folder}/{receipt_number}.pdf"

    def save(self, receipt_number: str, content: bytes) -> str:
        """
        Store the PDF and return its URL. Existing files for the same receipt
        number are overwritten.

        Raises:
            ReceiptStorageError: upload or write failed
        """
        key = self.key_for(receipt_number)
        if self.uses_s3:
            return self._save_s3(key, content)
        return self._save_local(key, content)

    def _save_s3(self, key: str, content: bytes) -> str:
        try:
            self.get_s3_client().put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType="application/pdf",
                ContentDisposition="inline",
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Receipt upload to s3://%s/%s failed: %s", self.bucket, key, exc)
            raise ReceiptStorageError(f"Failed to upload receipt: {exc}") from exc

        logger.info("Receipt uploaded to s3://%s/%s", self.bucket, key)
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def _save_local(self, key: str, content: bytes) -> str:
        try:
            if default_storage.exists(key):
                default_storage.delete(key)
            name = default_storage.save(key, ContentFile(content))
        except OSError as exc:
            logger.error("Receipt write to %s failed: %s", key, exc)
            raise ReceiptStorageError(f"Failed to store receipt: {exc}") from exc
        return default_storage.url(name)
