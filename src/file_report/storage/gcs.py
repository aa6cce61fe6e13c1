"""Google Cloud Storage adapter."""

from __future__ import annotations

import logging
from typing import Any

from file_report.paths import split_bucket_key
from file_report.storage.base import StorageError

logger = logging.getLogger(__name__)


class GcsWriter:
    """Upload blobs through ``google-cloud-storage``; prefixes are implicit."""

    def __init__(self, *, client: Any | None = None, project: str | None = None) -> None:
        self._client = client
        self.project = project or None

    @property
    def client(self) -> Any:
        if self._client is None:
            storage = self._load_gcs()
            self._client = storage.Client(project=self.project)
        return self._client

    def ensure_parent(self, uri: str) -> None:
        logger.debug("file_report event=implicit_prefix scheme=gcs uri=%s", uri)

    def write(self, uri: str, data: bytes) -> None:
        bucket_name, key = split_bucket_key(uri)
        if not key:
            raise StorageError(f"GCS URI has no object name: {uri}")
        blob = self.client.bucket(bucket_name).blob(key)
        blob.upload_from_string(data, content_type="application/json")
        logger.debug(
            "file_report event=gcs_write bucket=%s key=%s bytes=%s", bucket_name, key, len(data)
        )

    @staticmethod
    def _load_gcs() -> Any:
        try:
            from google.cloud import storage
        except ImportError as exc:  # pragma: no cover - exercised only without dependency
            raise StorageError(
                "GCS destinations require google-cloud-storage. Install with: "
                "python -m pip install google-cloud-storage"
            ) from exc
        return storage
