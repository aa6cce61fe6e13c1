"""Pydantic models for host task descriptions and the persisted JSON reports.

Beginner terms used in this file:
- Alias: the JSON key a field is written under (camelCase), while Python code
  keeps snake_case attribute names.
- Declaration: one output line of a process signature, known before any file
  is produced.
- Produced output: the values the host resolved for a declaration after the
  task ran; tuple outputs may arrive flattened into several of these.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

DeclarationKind = Literal["path", "tuple", "val", "env", "stdout"]


def utc_timestamp() -> str:
    return datetime.now(tz=UTC).isoformat()


class ReportModel(BaseModel):
    """Base for persisted shapes: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_json_bytes(self) -> bytes:
        return json.dumps(self.to_json_dict(), indent=2, ensure_ascii=False).encode("utf-8")


class TaskOutputGroup(ReportModel):
    """Work-dir files of one logical output and where they were published."""

    work_dir_files: list[str] = Field(default_factory=list, alias="workDirFiles")
    published_files: list[str] = Field(default_factory=list, alias="publishedFiles")


class TaskReport(ReportModel):
    """One report per successful task. Key order matches the JSON file."""

    process: str
    tag: str | None = None
    task_name: str = Field(alias="taskName")
    work_dir: str = Field(alias="workDir")
    outputs: dict[str, TaskOutputGroup] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=utc_timestamp)


class WorkflowSummary(ReportModel):
    total_tasks: int = Field(alias="totalTasks")
    timestamp: str = Field(default_factory=utc_timestamp)


class CollatedReport(ReportModel):
    workflow: WorkflowSummary
    tasks: list[TaskReport] = Field(default_factory=list)


class PublishTarget(BaseModel):
    """One publish destination configured for a process."""

    path: str
    enabled: bool = True


class OutputDeclaration(BaseModel):
    """Typed declaration contract: position in the process signature plus emit name."""

    index: int = Field(ge=0)
    name: str | None = None
    kind: DeclarationKind = "path"

    @property
    def carries_files(self) -> bool:
        return self.kind in {"path", "tuple"}


class ProducedOutput(BaseModel):
    """Resolved values of one output parameter after the task finished.

    ``description`` is the host's label for the parameter. Flattened tuple
    members embed ``<declIndex:subIndex>`` in it when the host decomposed a
    tuple before handing it over. ``declaration_index`` wins when set.
    """

    description: str = ""
    declaration_index: int | None = Field(default=None, ge=0)
    values: list[Any] = Field(default_factory=list)


class CompletedTask(BaseModel):
    """Everything the host tells us about one finished task."""

    name: str
    process: str
    tag: str | None = None
    work_dir: str
    success: bool = True
    publish_dirs: list[PublishTarget] = Field(default_factory=list)
    declarations: list[OutputDeclaration] | None = None
    outputs: list[ProducedOutput] = Field(default_factory=list)

    def enabled_publish_dirs(self) -> list[str]:
        return [target.path for target in self.publish_dirs if target.enabled]

    def report_file_name(self) -> str:
        if self.tag:
            return f"{self.process}_{self.tag}.json"
        return f"{self.process}.json"
