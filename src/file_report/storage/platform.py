"""Content-addressed platform (``latch://``) adapter.

The platform has no public object-store SDK in this project's stack. The
adapter delegates to an uploader callable supplied by the host, which receives
the full ``latch://`` URI and the payload.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from file_report.paths import PLATFORM_PREFIX, reconstruct_platform_uri
from file_report.storage.base import StorageError

logger = logging.getLogger(__name__)

PlatformUploader = Callable[[str, bytes], None]


class PlatformWriter:
    def __init__(self, uploader: PlatformUploader | None = None) -> None:
        self.uploader = uploader

    def ensure_parent(self, uri: str) -> None:
        logger.debug("file_report event=implicit_prefix scheme=platform uri=%s", uri)

    def write(self, uri: str, data: bytes) -> None:
        full_uri = reconstruct_platform_uri(uri)
        if not full_uri.startswith(PLATFORM_PREFIX):
            raise StorageError(f"Not a platform URI: {uri}")
        if self.uploader is None:
            raise StorageError(
                f"No platform uploader configured; cannot write {full_uri}"
            )
        self.uploader(full_uri, data)
        logger.debug("file_report event=platform_write uri=%s bytes=%s", full_uri, len(data))
