"""Local filesystem adapter."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class LocalWriter:
    """Writes bytes to local paths. Parent directories are created on demand."""

    def ensure_parent(self, uri: str) -> None:
        Path(uri).parent.mkdir(parents=True, exist_ok=True)

    def write(self, uri: str, data: bytes) -> None:
        Path(uri).write_bytes(data)
        logger.debug("file_report event=local_write path=%s bytes=%s", uri, len(data))
