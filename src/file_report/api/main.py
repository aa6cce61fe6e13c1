"""FastAPI app that receives host lifecycle events over HTTP.

Beginner terms used in this file:
- Event intake: the host posts each lifecycle event (run start, task
  complete, file published, run complete) as JSON; handlers forward it to the
  emitter stored in ``app.state``.
- Preview: ``GET /reports`` shows the collated report as it would look now,
  without writing anything.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, Request

from file_report.config.settings import Settings, get_settings
from file_report.events import (
    FilePublishedEvent,
    RunCompleteEvent,
    RunStartEvent,
    TaskCompleteEvent,
    dispatch,
)
from file_report.reporting.emitter import FileReportEmitter


def create_app(
    *,
    emitter: FileReportEmitter | None = None,
    settings_override: Settings | None = None,
) -> FastAPI:
    settings = settings_override or get_settings()
    app = FastAPI(title=settings.app_name)
    # One emitter per app; a new run start resets its run-scoped state.
    app.state.emitter = emitter or FileReportEmitter(settings=settings)
    app.state.settings = settings

    def _emitter(request: Request) -> FileReportEmitter:
        return request.app.state.emitter

    @app.get("/health")
    def health(request: Request) -> dict[str, Any]:
        return {
            "status": "ok",
            "service": settings.app_name,
            "reporting": _emitter(request).enabled,
        }

    @app.post("/events/run-start")
    def run_start(payload: RunStartEvent, request: Request) -> dict[str, Any]:
        current = _emitter(request)
        dispatch(current, payload)
        return {"accepted": True, "enabled": current.enabled}

    @app.post("/events/task-complete")
    def task_complete(payload: TaskCompleteEvent, request: Request) -> dict[str, Any]:
        current = _emitter(request)
        dispatch(current, payload)
        report = current.report_for(payload.task.name)
        return {"accepted": True, "reported": report is not None}

    @app.post("/events/file-published")
    def file_published(payload: FilePublishedEvent, request: Request) -> dict[str, bool]:
        dispatch(_emitter(request), payload)
        return {"accepted": True}

    @app.post("/events/run-complete")
    def run_complete(request: Request) -> dict[str, Any]:
        current = _emitter(request)
        dispatch(current, RunCompleteEvent())
        return {"accepted": True, "reports": len(current.reports())}

    @app.get("/reports")
    def collated_preview(request: Request) -> dict[str, Any]:
        return _emitter(request).collated_preview().to_json_dict()

    @app.get("/reports/{task_name}")
    def task_report(task_name: str, request: Request) -> dict[str, Any]:
        report = _emitter(request).report_for(task_name)
        if report is None:
            raise HTTPException(status_code=404, detail="Report not found")
        return report.to_json_dict()

    return app


app = create_app()
