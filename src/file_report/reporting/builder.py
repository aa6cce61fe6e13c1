"""Assemble per-task reports and the whole-run collated report."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from file_report.reporting.correlator import PublishCorrelator
from file_report.reporting.grouping import group_outputs
from file_report.reporting.models import (
    CollatedReport,
    CompletedTask,
    TaskOutputGroup,
    TaskReport,
    WorkflowSummary,
)

logger = logging.getLogger(__name__)


def build_task_report(task: CompletedTask, correlator: PublishCorrelator) -> TaskReport | None:
    """Build the report for one finished task, or None when it produced no files.

    Published files are filled from whatever the correlator knows right now;
    anything published later is picked up by ``resync_report``.
    """
    grouped = group_outputs(task.declarations, task.outputs)
    if not grouped:
        logger.debug("file_report event=no_output_files task=%s", task.name)
        return None

    outputs = {
        name: TaskOutputGroup(
            work_dir_files=list(files),
            published_files=correlator.lookup_many(files),
        )
        for name, files in grouped.items()
    }
    report = TaskReport(
        process=task.process,
        tag=task.tag or None,
        task_name=task.name,
        work_dir=task.work_dir,
        outputs=outputs,
    )
    logger.debug(
        "file_report event=report_built task=%s outputs=%s files=%s",
        task.name,
        len(outputs),
        sum(len(files) for files in grouped.values()),
    )
    return report


def resync_report(report: TaskReport, correlator: PublishCorrelator) -> TaskReport:
    """Replace every group's published files with the correlator's current view."""
    for name, group in report.outputs.items():
        group.published_files = correlator.lookup_many(group.work_dir_files)
        logger.debug(
            "file_report event=report_resynced task=%s output=%s published=%s",
            report.task_name,
            name,
            len(group.published_files),
        )
    return report


def collate(reports: Iterable[TaskReport], correlator: PublishCorrelator) -> CollatedReport:
    """Resync every report and wrap them with a run summary, keeping input order."""
    tasks = [resync_report(report, correlator) for report in reports]
    return CollatedReport(workflow=WorkflowSummary(total_tasks=len(tasks)), tasks=tasks)
