"""AWS S3 adapter backed by boto3."""

from __future__ import annotations

import logging
from typing import Any

from file_report.paths import split_bucket_key
from file_report.storage.base import StorageError

logger = logging.getLogger(__name__)


class S3Writer:
    """Upload objects with ``put_object``; S3 has no directories to create."""

    def __init__(
        self,
        *,
        client: Any | None = None,
        endpoint_url: str | None = None,
        region_name: str | None = None,
    ) -> None:
        self._client = client
        self.endpoint_url = endpoint_url or None
        self.region_name = region_name or None

    @property
    def client(self) -> Any:
        if self._client is None:
            boto3 = self._load_boto3()
            self._client = boto3.client(
                "s3",
                endpoint_url=self.endpoint_url,
                region_name=self.region_name,
            )
        return self._client

    def ensure_parent(self, uri: str) -> None:
        logger.debug("file_report event=implicit_prefix scheme=s3 uri=%s", uri)

    def write(self, uri: str, data: bytes) -> None:
        bucket, key = split_bucket_key(uri)
        if not key:
            raise StorageError(f"S3 URI has no object key: {uri}")
        self.client.put_object(
            Bucket=bucket,
            Key=key,
            Body=data,
            ContentType="application/json",
        )
        logger.debug("file_report event=s3_write bucket=%s key=%s bytes=%s", bucket, key, len(data))

    @staticmethod
    def _load_boto3() -> Any:
        """Import boto3 with a friendly install hint on failure."""
        try:
            import boto3
        except ImportError as exc:  # pragma: no cover - exercised only without dependency
            raise StorageError(
                "S3 destinations require boto3. Install with: python -m pip install boto3"
            ) from exc
        return boto3
