"""Typed host lifecycle events and their dispatch to an emitter.

The HTTP intake and the JSON-lines replay tool both feed events through
``dispatch`` so the emitter sees the same calls either way.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from file_report.config.settings import FileReportConfig
from file_report.reporting.emitter import FileReportEmitter
from file_report.reporting.models import CompletedTask

logger = logging.getLogger(__name__)


class EventModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TaskMetadata(EventModel):
    process_name: str | None = Field(default=None, alias="processName")
    tag: str | None = None

    def as_mapping(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.process_name:
            payload["processName"] = self.process_name
        if "tag" in self.model_fields_set:
            payload["tag"] = self.tag
        return payload


class RunStartEvent(EventModel):
    event: Literal["run_start"] = "run_start"
    configuration: FileReportConfig | None = None
    session_config: dict[str, Any] | None = Field(default=None, alias="sessionConfig")
    run_work_dir: str | None = Field(default=None, alias="runWorkDir")

    def resolved_config(self) -> FileReportConfig | None:
        if self.configuration is not None:
            return self.configuration
        if self.session_config is not None:
            return FileReportConfig.from_session_config(self.session_config)
        return None


class TaskCompleteEvent(EventModel):
    event: Literal["task_complete"] = "task_complete"
    task: CompletedTask
    success: bool | None = None
    metadata: TaskMetadata | None = None


class FilePublishedEvent(EventModel):
    event: Literal["file_published"] = "file_published"
    source: str = Field(min_length=1, validation_alias=AliasChoices("source", "sourcePath"))
    destination: str = Field(
        min_length=1,
        validation_alias=AliasChoices("destination", "destinationPath"),
    )


class RunCompleteEvent(EventModel):
    event: Literal["run_complete"] = "run_complete"


HostEvent = Annotated[
    Union[RunStartEvent, TaskCompleteEvent, FilePublishedEvent, RunCompleteEvent],
    Field(discriminator="event"),
]

_EVENT_ADAPTER: TypeAdapter[Any] = TypeAdapter(HostEvent)


def parse_event(payload: dict[str, Any]) -> Any:
    return _EVENT_ADAPTER.validate_python(payload)


def dispatch(emitter: FileReportEmitter, event: Any) -> None:
    """Forward one parsed event to the matching emitter hook."""
    if isinstance(event, RunStartEvent):
        emitter.on_run_start(event.resolved_config(), run_work_dir=event.run_work_dir)
    elif isinstance(event, TaskCompleteEvent):
        metadata = event.metadata.as_mapping() if event.metadata else None
        emitter.on_task_complete(event.task, success=event.success, metadata=metadata)
    elif isinstance(event, FilePublishedEvent):
        emitter.on_file_published(event.source, event.destination)
    elif isinstance(event, RunCompleteEvent):
        emitter.on_run_complete()
    else:
        raise TypeError(f"Unsupported event type: {type(event)!r}")


def replay(emitter: FileReportEmitter, lines: Iterable[str]) -> int:
    """Dispatch every event of a JSON-lines log; returns how many were dispatched.

    Blank lines are ignored. Malformed lines are logged and skipped so one bad
    record does not lose the rest of the run.
    """
    dispatched = 0
    for line_number, line in enumerate(lines, 1):
        text = line.strip()
        if not text:
            continue
        try:
            event = parse_event(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("file_report event=replay_skip line=%s error=%s", line_number, exc)
            continue
        dispatch(emitter, event)
        dispatched += 1
    logger.info("file_report event=replay_done dispatched=%s", dispatched)
    return dispatched
