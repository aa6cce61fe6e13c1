"""Observer factory used by the host at session creation."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from importlib import metadata
from typing import Any

from file_report.config.settings import FileReportConfig, Settings, is_enabled
from file_report.reporting.emitter import FileReportEmitter
from file_report.storage.router import StorageRouter

logger = logging.getLogger(__name__)

DISTRIBUTION_NAME = "file-report"


def package_version() -> str:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "unknown"


def create_observers(
    session_config: Mapping[str, Any] | None,
    *,
    settings: Settings | None = None,
    router: StorageRouter | None = None,
) -> list[FileReportEmitter]:
    """Return the observers enabled by a session configuration.

    The file report emitter is created only when ``theia.fileReport`` is set;
    it arrives configured, so the host does not have to call ``on_run_start``
    with the same block again.
    """
    logger.info("file_report event=plugin_version version=%s", package_version())
    if not is_enabled(session_config):
        return []

    logger.info("file_report event=observer_created observer=FileReportEmitter")
    emitter = FileReportEmitter(settings=settings, router=router)
    emitter.on_run_start(FileReportConfig.from_session_config(session_config))
    return [emitter]
