"""Drive report emission from host lifecycle events.

Beginner terms used in this file:
- Individual report: ``<process>_<tag>.json`` written to each publish
  directory of a task as soon as the task succeeds.
- Backfill: at run end every individual report is re-synced against the
  publish correlator and rewritten, because files are often published after
  their task's completion event was handled.
- Collated report: one file with every task report, written to the common
  base of all publish directories.

Reporting never fails the host run: every write and build error is logged at
its boundary and processing moves on.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from file_report.config.settings import FileReportConfig, Settings, get_settings
from file_report.paths import join_location, normalize_location
from file_report.reporting.builder import build_task_report, collate, resync_report
from file_report.reporting.correlator import PublishCorrelator
from file_report.reporting.destinations import collation_targets
from file_report.reporting.models import CollatedReport, CompletedTask, TaskReport
from file_report.storage.router import StorageRouter, build_router

logger = logging.getLogger(__name__)

WORK_DIR_REPORT_FOLDER = "reportfile"


@dataclass
class ReportEntry:
    """One written report and everything needed to rewrite it later."""

    key: str
    report: TaskReport
    file_name: str
    publish_dirs: list[str]
    work_dir: str
    # Serializes the initial write and the end-of-run backfill of this task.
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class FileReportEmitter:
    """Run-scoped observer that builds, writes and backfills task file reports."""

    def __init__(
        self,
        *,
        router: StorageRouter | None = None,
        settings: Settings | None = None,
        config: FileReportConfig | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.router = router or build_router(self.settings)
        self.config = config or FileReportConfig()
        self.run_work_dir: str | None = self.settings.run_work_dir or None
        self.correlator = PublishCorrelator()
        self._entries: dict[str, ReportEntry] = {}
        self._publish_dirs: dict[str, None] = {}
        self._lock = threading.Lock()
        self._run_complete = False

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def run_completed(self) -> bool:
        return self._run_complete

    def on_run_start(
        self,
        configuration: FileReportConfig | Mapping[str, Any] | None = None,
        *,
        run_work_dir: str | None = None,
    ) -> None:
        """Start a fresh run: new correlator, no reports, new configuration."""
        if configuration is None:
            config = self.settings.default_report_config()
        elif isinstance(configuration, FileReportConfig):
            config = configuration
        else:
            config = FileReportConfig.model_validate(configuration)

        with self._lock:
            self.config = config
            self.correlator = PublishCorrelator()
            self._entries = {}
            self._publish_dirs = {}
            self._run_complete = False
            if run_work_dir:
                self.run_work_dir = run_work_dir

        if not config.enabled:
            logger.info("file_report event=run_start enabled=false")
            return
        logger.info(
            "file_report event=run_start enabled=true collate=%s write_to_work_dir=%s "
            "collated_file_name=%s",
            config.collate,
            config.write_to_work_dir,
            config.collated_file_name,
        )

    def on_task_complete(
        self,
        task: CompletedTask,
        success: bool | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> ReportEntry | None:
        """Build and immediately write the report of a successful task."""
        if not self._accepting("task_complete"):
            return None

        task = _apply_metadata(task, success=success, metadata=metadata)
        logger.debug("file_report event=task_complete task=%s success=%s", task.name, task.success)
        if not task.success:
            logger.debug("file_report event=skip_failed_task task=%s", task.name)
            return None

        try:
            report = build_task_report(task, self.correlator)
            if report is None:
                return None
            publish_dirs = list(
                dict.fromkeys(normalize_location(path) for path in task.enabled_publish_dirs())
            )
        except Exception:  # noqa: BLE001
            logger.warning("file_report event=report_build_failed task=%s", task.name, exc_info=True)
            return None

        entry = ReportEntry(
            key=task.work_dir or task.name,
            report=report,
            file_name=task.report_file_name(),
            publish_dirs=publish_dirs,
            work_dir=task.work_dir,
        )
        with self._lock:
            if self._run_complete:
                logger.debug("file_report event=ignored_after_run_complete kind=task_complete")
                return None
            if entry.key in self._entries:
                logger.debug("file_report event=report_replaced task=%s", task.name)
                self._entries.pop(entry.key)
            self._entries[entry.key] = entry
            for path in publish_dirs:
                self._publish_dirs[path] = None

        if not publish_dirs:
            logger.debug("file_report event=no_publish_dirs task=%s", task.name)
        self._write_entry(entry, resync=False)
        return entry

    def on_file_published(self, source_path: object, destination_path: object) -> None:
        """Record a publish event; report writing is decoupled from it."""
        if not self._accepting("file_published"):
            return
        try:
            self.correlator.record(source_path, destination_path)
        except Exception:  # noqa: BLE001
            logger.warning(
                "file_report event=publish_record_failed source=%s destination=%s",
                source_path,
                destination_path,
                exc_info=True,
            )

    def on_run_complete(self) -> CollatedReport | None:
        """Backfill every individual report, then write the collated report if enabled."""
        if not self._accepting("run_complete"):
            return None

        with self._lock:
            self._run_complete = True
            entries = list(self._entries.values())

        collated: CollatedReport | None = None
        try:
            logger.info("file_report event=backfill_start reports=%s", len(entries))
            for entry in entries:
                self._write_entry(entry, resync=True)
            if self.config.collate:
                collated = self._write_collated(entries)
        except Exception:  # noqa: BLE001
            logger.error("file_report event=run_complete_failed", exc_info=True)
        return collated

    def reports(self) -> list[TaskReport]:
        """Deep copies of current reports in completion order."""
        with self._lock:
            entries = list(self._entries.values())
        return [self._snapshot(entry) for entry in entries]

    def report_for(self, task_name: str) -> TaskReport | None:
        for report in self.reports():
            if report.task_name == task_name:
                return report
        return None

    def publish_dirs(self) -> list[str]:
        with self._lock:
            return list(self._publish_dirs)

    def collated_preview(self) -> CollatedReport:
        """Collated report against the correlator's current state, without writing."""
        return collate(self.reports(), self.correlator)

    def _accepting(self, event: str) -> bool:
        if not self.enabled:
            return False
        if self._run_complete:
            logger.debug("file_report event=ignored_after_run_complete kind=%s", event)
            return False
        return True

    def _write_entry(self, entry: ReportEntry, *, resync: bool) -> int:
        """Write one report to each destination; returns the number of successful writes."""
        with entry.lock:
            if resync:
                resync_report(entry.report, self.correlator)
            payload = entry.report.to_json_bytes()
            written = 0
            for destination in self._entry_destinations(entry):
                if self._safe_write(destination, payload, task=entry.report.task_name):
                    written += 1
        return written

    def _entry_destinations(self, entry: ReportEntry) -> list[str]:
        destinations = [join_location(path, entry.file_name) for path in entry.publish_dirs]
        if self.config.write_to_work_dir and entry.work_dir:
            destinations.append(
                join_location(join_location(entry.work_dir, WORK_DIR_REPORT_FOLDER), entry.file_name)
            )
        return destinations

    def _write_collated(self, entries: list[ReportEntry]) -> CollatedReport:
        collated = collate([self._snapshot(entry) for entry in entries], self.correlator)
        payload = collated.to_json_bytes()
        file_name = self.config.collated_file_name

        with self._lock:
            publish_dirs = list(self._publish_dirs)
        targets = collation_targets(publish_dirs)
        if self.run_work_dir and (self.config.write_to_work_dir or not targets):
            targets.append(normalize_location(self.run_work_dir))
        if not targets:
            logger.warning(
                "file_report event=collated_skipped reason=no_destination tasks=%s",
                collated.workflow.total_tasks,
            )
            return collated

        for target in dict.fromkeys(targets):
            destination = join_location(target, file_name)
            if self._safe_write(destination, payload, task="<collated>"):
                logger.info(
                    "file_report event=collated_written tasks=%s destination=%s",
                    collated.workflow.total_tasks,
                    destination,
                )
        return collated

    def _safe_write(self, destination: str, payload: bytes, *, task: str) -> bool:
        try:
            written_to = self.router.write(destination, payload)
        except Exception:  # noqa: BLE001
            logger.warning(
                "file_report event=write_failed task=%s destination=%s",
                task,
                destination,
                exc_info=True,
            )
            return False
        logger.debug("file_report event=report_written task=%s destination=%s", task, written_to)
        return True

    @staticmethod
    def _snapshot(entry: ReportEntry) -> TaskReport:
        with entry.lock:
            return entry.report.model_copy(deep=True)


def _apply_metadata(
    task: CompletedTask,
    *,
    success: bool | None,
    metadata: Mapping[str, Any] | None,
) -> CompletedTask:
    update: dict[str, Any] = {}
    if success is not None:
        update["success"] = success
    if metadata:
        process = metadata.get("processName") or metadata.get("process")
        if process:
            update["process"] = str(process)
        if "tag" in metadata:
            tag = metadata.get("tag")
            update["tag"] = str(tag) if tag not in (None, "") else None
    if not update:
        return task
    return task.model_copy(update=update)
