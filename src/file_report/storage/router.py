"""Route writes to the adapter that owns the destination's storage scheme."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from file_report.config.settings import Settings
from file_report.paths import Scheme, classify
from file_report.storage.azure import AzureBlobWriter
from file_report.storage.base import ObjectWriter, UnsupportedSchemeError, WriteError
from file_report.storage.gcs import GcsWriter
from file_report.storage.local import LocalWriter
from file_report.storage.platform import PlatformUploader, PlatformWriter
from file_report.storage.s3 import S3Writer

logger = logging.getLogger(__name__)


class StorageRouter:
    """Storage-agnostic ``write(uri, bytes)`` keyed by URI scheme."""

    def __init__(self, adapters: Mapping[Scheme, ObjectWriter]) -> None:
        self.adapters: dict[Scheme, ObjectWriter] = dict(adapters)

    def write(self, destination: str, data: bytes) -> str:
        """Write ``data`` and return the normalized destination actually used.

        Any backend failure is re-raised as ``WriteError`` carrying the
        destination; callers decide whether to log and continue.
        """
        try:
            target = classify(destination)
        except ValueError as exc:
            raise WriteError(str(destination), str(exc)) from exc

        adapter = self.adapters.get(target.scheme)
        if adapter is None:
            raise UnsupportedSchemeError(
                f"No storage adapter registered for scheme '{target.scheme.value}': {destination}"
            )

        try:
            adapter.ensure_parent(target.normalized)
            adapter.write(target.normalized, data)
        except Exception as exc:  # noqa: BLE001
            raise WriteError(target.normalized, str(exc) or type(exc).__name__) from exc
        return target.normalized


def build_router(
    settings: Settings,
    *,
    platform_uploader: PlatformUploader | None = None,
    overrides: Mapping[Scheme, ObjectWriter] | None = None,
) -> StorageRouter:
    """Default adapters for every scheme, configured from settings.

    Cloud clients are created lazily on first write, so building a router never
    touches the network or requires credentials.
    """
    adapters: dict[Scheme, ObjectWriter] = {
        Scheme.LOCAL: LocalWriter(),
        Scheme.S3: S3Writer(
            endpoint_url=settings.s3_endpoint_url,
            region_name=settings.s3_region,
        ),
        Scheme.GCS: GcsWriter(project=settings.gcs_project),
        Scheme.AZURE: AzureBlobWriter(
            account_url=settings.azure_account_url,
            connection_string=settings.azure_connection_string,
        ),
        Scheme.PLATFORM: PlatformWriter(platform_uploader),
    }
    if overrides:
        adapters.update(overrides)
    return StorageRouter(adapters)
