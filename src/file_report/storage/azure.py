"""Azure Blob Storage adapter."""

from __future__ import annotations

import logging
import threading
from typing import Any

from file_report.paths import scheme_prefix
from file_report.storage.base import StorageError

logger = logging.getLogger(__name__)


def parse_azure_uri(uri: str) -> tuple[str, str | None, str]:
    """Split an Azure URI into ``(container, account, blob_name)``.

    ``abfs://container@account.dfs.core.windows.net/path`` carries the storage
    account in its authority; ``azure://container/path`` and
    ``az://container/path`` rely on the configured account.
    """
    prefix = scheme_prefix(uri)
    if prefix not in {"abfs://", "azure://", "az://"}:
        raise ValueError(f"Not an Azure URI: {uri}")
    authority, _sep, blob_name = uri[len(prefix):].partition("/")
    if not authority:
        raise ValueError(f"Missing container in URI: {uri}")
    account: str | None = None
    container = authority
    if "@" in authority:
        container, host = authority.split("@", 1)
        account = host.split(".", 1)[0] or None
    return container, account, blob_name


class AzureBlobWriter:
    """Upload blobs with ``azure-storage-blob``; containers hold implicit prefixes."""

    def __init__(
        self,
        *,
        account_url: str | None = None,
        connection_string: str | None = None,
        service_client: Any | None = None,
    ) -> None:
        self.account_url = account_url or None
        self.connection_string = connection_string or None
        self._default_service = service_client
        self._services: dict[str, Any] = {}
        self._lock = threading.Lock()

    def ensure_parent(self, uri: str) -> None:
        logger.debug("file_report event=implicit_prefix scheme=azure uri=%s", uri)

    def write(self, uri: str, data: bytes) -> None:
        container, account, blob_name = parse_azure_uri(uri)
        if not blob_name:
            raise StorageError(f"Azure URI has no blob name: {uri}")
        service = self._service_for(account)
        blob = service.get_blob_client(container=container, blob=blob_name)
        blob.upload_blob(data, overwrite=True)
        logger.debug(
            "file_report event=azure_write container=%s blob=%s bytes=%s",
            container,
            blob_name,
            len(data),
        )

    def _service_for(self, account: str | None) -> Any:
        if self._default_service is not None:
            return self._default_service
        if self.connection_string:
            key = "connection-string"
        elif account:
            key = f"https://{account}.blob.core.windows.net"
        elif self.account_url:
            key = self.account_url
        else:
            raise StorageError(
                "Azure destinations need an account. Set FILE_REPORT_AZURE_ACCOUNT_URL "
                "or FILE_REPORT_AZURE_CONNECTION_STRING, or use abfs://container@account/..."
            )
        with self._lock:
            service = self._services.get(key)
            if service is None:
                service = self._create_service(key)
                self._services[key] = service
        return service

    def _create_service(self, key: str) -> Any:
        blob_service_client, default_credential = self._load_azure()
        if key == "connection-string":
            return blob_service_client.from_connection_string(conn_str=self.connection_string)
        return blob_service_client(account_url=key, credential=default_credential())

    @staticmethod
    def _load_azure() -> tuple[Any, Any]:
        try:
            from azure.identity import DefaultAzureCredential
            from azure.storage.blob import BlobServiceClient
        except ImportError as exc:  # pragma: no cover - exercised only without dependency
            raise StorageError(
                "Azure destinations require azure-storage-blob and azure-identity. Install with: "
                "python -m pip install azure-storage-blob azure-identity"
            ) from exc
        return BlobServiceClient, DefaultAzureCredential
