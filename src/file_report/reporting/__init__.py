"""Output grouping, publish correlation and report emission."""

from file_report.reporting.builder import build_task_report, collate, resync_report
from file_report.reporting.correlator import PublishCorrelator
from file_report.reporting.destinations import collation_targets
from file_report.reporting.emitter import FileReportEmitter, ReportEntry
from file_report.reporting.grouping import group_outputs
from file_report.reporting.models import (
    CollatedReport,
    CompletedTask,
    OutputDeclaration,
    ProducedOutput,
    PublishTarget,
    TaskOutputGroup,
    TaskReport,
    WorkflowSummary,
)

__all__ = [
    "CollatedReport",
    "CompletedTask",
    "FileReportEmitter",
    "OutputDeclaration",
    "ProducedOutput",
    "PublishCorrelator",
    "PublishTarget",
    "ReportEntry",
    "TaskOutputGroup",
    "TaskReport",
    "WorkflowSummary",
    "build_task_report",
    "collate",
    "collation_targets",
    "group_outputs",
    "resync_report",
]
