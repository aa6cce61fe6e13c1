from __future__ import annotations

import json
import threading
from collections.abc import Callable
from typing import Any

import pytest

from file_report.config.settings import FileReportConfig, Settings
from file_report.paths import Scheme
from file_report.reporting.emitter import FileReportEmitter
from file_report.reporting.models import (
    CompletedTask,
    OutputDeclaration,
    ProducedOutput,
    PublishTarget,
)
from file_report.storage.router import StorageRouter


class RecordingWriter:
    """Test-only adapter that keeps every write in memory."""

    def __init__(self, *, fail_on: Callable[[str], bool] | None = None) -> None:
        self.writes: list[tuple[str, bytes]] = []
        self.parents: list[str] = []
        self.fail_on = fail_on
        self._lock = threading.Lock()

    def ensure_parent(self, uri: str) -> None:
        with self._lock:
            self.parents.append(uri)

    def write(self, uri: str, data: bytes) -> None:
        if self.fail_on is not None and self.fail_on(uri):
            raise PermissionError(f"denied: {uri}")
        with self._lock:
            self.writes.append((uri, data))

    def uris(self) -> list[str]:
        with self._lock:
            return [uri for uri, _data in self.writes]

    def latest_json(self, uri: str) -> dict[str, Any]:
        with self._lock:
            matching = [data for written, data in self.writes if written == uri]
        assert matching, f"nothing written to {uri}"
        return json.loads(matching[-1].decode("utf-8"))


@pytest.fixture
def recorder() -> RecordingWriter:
    return RecordingWriter()


@pytest.fixture
def router(recorder: RecordingWriter) -> StorageRouter:
    return StorageRouter({scheme: recorder for scheme in Scheme})


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def make_emitter(
    router: StorageRouter, settings: Settings
) -> Callable[..., FileReportEmitter]:
    def _make(**config: Any) -> FileReportEmitter:
        emitter = FileReportEmitter(router=router, settings=settings)
        emitter.on_run_start(FileReportConfig(enabled=True, **config))
        return emitter

    return _make


def make_task(
    *,
    process: str = "ANALYZE",
    tag: str | None = "s1",
    work_dir: str = "/work/ab/123456",
    publish_dirs: list[str] | None = None,
    outputs: dict[int, list[Any]] | None = None,
    names: dict[int, str | None] | None = None,
    success: bool = True,
) -> CompletedTask:
    """Build a CompletedTask with one declaration per output index."""
    outputs = outputs if outputs is not None else {0: [f"{work_dir}/a.txt"]}
    names = names or {}
    declarations = [
        OutputDeclaration(index=index, name=names.get(index)) for index in sorted(outputs)
    ]
    produced = [
        ProducedOutput(description=f"path:<{index}:0>", values=values)
        for index, values in outputs.items()
    ]
    label = f"{process} ({tag})" if tag else process
    return CompletedTask(
        name=label,
        process=process,
        tag=tag,
        work_dir=work_dir,
        success=success,
        publish_dirs=[PublishTarget(path=path) for path in publish_dirs or []],
        declarations=declarations,
        outputs=produced,
    )


@pytest.fixture
def task_factory() -> Callable[..., CompletedTask]:
    return make_task
