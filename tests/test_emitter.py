from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor

from file_report.config.settings import FileReportConfig
from file_report.paths import Scheme
from file_report.reporting import emitter as emitter_module
from file_report.reporting.emitter import FileReportEmitter
from file_report.storage.local import LocalWriter
from file_report.storage.router import StorageRouter


def test_report_is_written_at_task_completion_and_backfilled(
    make_emitter, recorder, task_factory
) -> None:
    emitter = make_emitter()
    task = task_factory(publish_dirs=["/out/run/s1"])

    emitter.on_task_complete(task)

    destination = "/out/run/s1/ANALYZE_s1.json"
    assert recorder.uris() == [destination]
    first = recorder.latest_json(destination)
    assert first["outputs"]["output_0"]["publishedFiles"] == []

    emitter.on_file_published("/work/ab/123456/a.txt", "/out/run/s1/a.txt")
    emitter.on_run_complete()

    assert recorder.uris() == [destination, destination]
    final = recorder.latest_json(destination)
    assert final["taskName"] == "ANALYZE (s1)"
    assert final["outputs"]["output_0"] == {
        "workDirFiles": ["/work/ab/123456/a.txt"],
        "publishedFiles": ["/out/run/s1/a.txt"],
    }


def test_final_report_does_not_depend_on_publish_timing(
    make_emitter, recorder, task_factory
) -> None:
    early = make_emitter()
    early.on_file_published("/work/ab/123456/a.txt", "/out/run/s1/a.txt")
    early.on_task_complete(task_factory(publish_dirs=["/out/run/s1"]))
    early.on_run_complete()
    early_report = early.report_for("ANALYZE (s1)")

    late = make_emitter()
    late.on_task_complete(task_factory(publish_dirs=["/out/run/s1"]))
    late.on_file_published("/work/ab/123456/a.txt", "/out/run/s1/a.txt")
    late.on_run_complete()
    late_report = late.report_for("ANALYZE (s1)")

    assert early_report is not None and late_report is not None
    assert early_report.outputs == late_report.outputs


def test_collated_report_goes_to_common_publish_root(make_emitter, recorder, task_factory) -> None:
    emitter = make_emitter(collate=True)
    emitter.on_task_complete(
        task_factory(tag="sampleA", work_dir="/w/1", publish_dirs=["/out/run/sampleA"])
    )
    emitter.on_task_complete(
        task_factory(tag="sampleB", work_dir="/w/2", publish_dirs=["/out/run/sampleB"])
    )
    emitter.on_file_published("/w/2/a.txt", "/out/run/sampleB/a.txt")

    collated = emitter.on_run_complete()

    assert collated is not None
    assert "/out/run/workflow_files.json" in recorder.uris()
    payload = recorder.latest_json("/out/run/workflow_files.json")
    assert payload["workflow"]["totalTasks"] == 2
    assert [task["tag"] for task in payload["tasks"]] == ["sampleA", "sampleB"]
    assert payload["tasks"][1]["outputs"]["output_0"]["publishedFiles"] == [
        "/out/run/sampleB/a.txt"
    ]
    collated_uris = [uri for uri in recorder.uris() if uri.endswith("workflow_files.json")]
    assert collated_uris == ["/out/run/workflow_files.json"]


def test_collated_file_name_is_configurable(make_emitter, recorder, task_factory) -> None:
    emitter = make_emitter(collate=True, collated_file_name="all_outputs.json")
    emitter.on_task_complete(task_factory(publish_dirs=["/out/run"]))
    emitter.on_run_complete()

    assert "/out/run/all_outputs.json" in recorder.uris()


def test_collation_disabled_writes_only_individual_reports(
    make_emitter, recorder, task_factory
) -> None:
    emitter = make_emitter()
    emitter.on_task_complete(task_factory(publish_dirs=["/out/run"]))

    assert emitter.on_run_complete() is None
    assert all(not uri.endswith("workflow_files.json") for uri in recorder.uris())


def test_failed_write_does_not_stop_other_destinations(
    make_emitter, recorder, task_factory, caplog
) -> None:
    recorder.fail_on = lambda uri: uri.startswith("/denied")
    emitter = make_emitter(collate=True)

    with caplog.at_level(logging.WARNING):
        entry = emitter.on_task_complete(
            task_factory(publish_dirs=["/denied/s1", "/out/run/s1"])
        )
        emitter.on_run_complete()

    assert entry is not None
    assert "/out/run/s1/ANALYZE_s1.json" in recorder.uris()
    assert "event=write_failed" in caplog.text
    assert emitter.run_completed


def test_failed_task_is_skipped(make_emitter, recorder, task_factory) -> None:
    emitter = make_emitter()

    assert emitter.on_task_complete(task_factory(success=False, publish_dirs=["/out"])) is None
    assert emitter.on_task_complete(task_factory(publish_dirs=["/out"]), success=False) is None
    assert recorder.writes == []
    assert emitter.reports() == []


def test_task_without_files_writes_nothing(make_emitter, recorder, task_factory) -> None:
    emitter = make_emitter()

    assert emitter.on_task_complete(task_factory(outputs={0: ["label", 7]})) is None
    assert recorder.writes == []


def test_disabled_emitter_is_inert(router, settings, recorder, task_factory) -> None:
    emitter = FileReportEmitter(router=router, settings=settings)
    emitter.on_run_start(FileReportConfig())

    assert not emitter.enabled
    assert emitter.on_task_complete(task_factory(publish_dirs=["/out"])) is None
    emitter.on_file_published("/work/ab/123456/a.txt", "/out/a.txt")
    assert emitter.on_run_complete() is None
    assert recorder.writes == []
    assert len(emitter.correlator) == 0


def test_run_start_without_configuration_uses_settings(router, settings) -> None:
    settings.report_enabled = True
    settings.report_collate = True
    emitter = FileReportEmitter(router=router, settings=settings)

    emitter.on_run_start()

    assert emitter.enabled
    assert emitter.config.collate


def test_run_start_accepts_a_mapping(router, settings) -> None:
    emitter = FileReportEmitter(router=router, settings=settings)

    emitter.on_run_start({"enabled": True, "writeToWorkDir": True, "collatedFileName": "x.json"})

    assert emitter.config.write_to_work_dir
    assert emitter.config.collated_file_name == "x.json"


def test_work_dir_copies_and_run_work_dir_collation(router, settings, recorder, task_factory) -> None:
    emitter = FileReportEmitter(router=router, settings=settings)
    emitter.on_run_start(
        FileReportConfig(enabled=True, collate=True, write_to_work_dir=True),
        run_work_dir="/work/run",
    )
    emitter.on_task_complete(task_factory(publish_dirs=["/out/run/s1"]))
    emitter.on_run_complete()

    uris = recorder.uris()
    assert "/work/ab/123456/reportfile/ANALYZE_s1.json" in uris
    assert "/out/run/s1/workflow_files.json" in uris
    assert "/work/run/workflow_files.json" in uris


def test_collated_report_falls_back_to_run_work_dir(router, settings, recorder, task_factory) -> None:
    emitter = FileReportEmitter(router=router, settings=settings)
    emitter.on_run_start(FileReportConfig(enabled=True, collate=True), run_work_dir="/work/run")
    emitter.on_task_complete(task_factory())
    emitter.on_run_complete()

    assert recorder.uris() == ["/work/run/workflow_files.json"]


def test_collated_report_skipped_without_any_destination(
    make_emitter, recorder, task_factory, caplog
) -> None:
    emitter = make_emitter(collate=True)
    emitter.on_task_complete(task_factory())

    with caplog.at_level(logging.WARNING):
        collated = emitter.on_run_complete()

    assert collated is not None
    assert collated.workflow.total_tasks == 1
    assert recorder.writes == []
    assert "reason=no_destination" in caplog.text


def test_metadata_overrides_process_and_tag(make_emitter, recorder, task_factory) -> None:
    emitter = make_emitter()

    emitter.on_task_complete(
        task_factory(publish_dirs=["/out"]),
        metadata={"processName": "ALIGN", "tag": "lane2"},
    )
    emitter.on_task_complete(
        task_factory(work_dir="/w/other", publish_dirs=["/out"]),
        metadata={"tag": None},
    )

    assert recorder.uris() == ["/out/ALIGN_lane2.json", "/out/ANALYZE.json"]


def test_events_after_run_complete_are_ignored(make_emitter, recorder, task_factory) -> None:
    emitter = make_emitter()
    emitter.on_run_complete()

    assert emitter.on_task_complete(task_factory(publish_dirs=["/out"])) is None
    emitter.on_file_published("/work/ab/123456/a.txt", "/out/a.txt")
    assert emitter.on_run_complete() is None
    assert recorder.writes == []
    assert len(emitter.correlator) == 0


def test_task_finishing_while_run_completes_is_not_left_unbackfilled(
    make_emitter, recorder, task_factory, monkeypatch
) -> None:
    emitter = make_emitter(collate=True)
    real_build = emitter_module.build_task_report

    def build_then_complete_run(task, correlator):
        report = real_build(task, correlator)
        emitter.on_run_complete()
        return report

    monkeypatch.setattr(emitter_module, "build_task_report", build_then_complete_run)

    assert emitter.on_task_complete(task_factory(publish_dirs=["/out"])) is None
    assert emitter.reports() == []
    assert recorder.writes == []


def test_run_start_resets_run_state(make_emitter, task_factory) -> None:
    emitter = make_emitter()
    emitter.on_task_complete(task_factory(publish_dirs=["/out"]))
    emitter.on_file_published("/work/ab/123456/a.txt", "/out/a.txt")
    emitter.on_run_complete()

    emitter.on_run_start(FileReportConfig(enabled=True))

    assert emitter.reports() == []
    assert emitter.publish_dirs() == []
    assert len(emitter.correlator) == 0
    assert not emitter.run_completed


def test_repeated_completion_of_one_work_dir_keeps_one_report(make_emitter, task_factory) -> None:
    emitter = make_emitter()
    emitter.on_task_complete(task_factory(publish_dirs=["/out"]))
    emitter.on_task_complete(task_factory(publish_dirs=["/out"]))

    assert len(emitter.reports()) == 1
    assert emitter.publish_dirs() == ["/out"]


def test_reports_are_copies(make_emitter, task_factory) -> None:
    emitter = make_emitter()
    emitter.on_task_complete(task_factory(publish_dirs=["/out"]))

    emitter.reports()[0].outputs.clear()

    assert emitter.report_for("ANALYZE (s1)").outputs
    assert emitter.report_for("missing") is None


def test_preview_reflects_current_publications(make_emitter, recorder, task_factory) -> None:
    emitter = make_emitter(collate=True)
    emitter.on_task_complete(task_factory(publish_dirs=["/out"]))
    emitter.on_file_published("/work/ab/123456/a.txt", "/out/a.txt")

    preview = emitter.collated_preview()

    assert preview.tasks[0].outputs["output_0"].published_files == ["/out/a.txt"]
    assert len(recorder.writes) == 1


def test_concurrent_tasks_and_publications_are_all_backfilled(
    make_emitter, recorder, task_factory
) -> None:
    emitter = make_emitter(collate=True)
    tasks = [
        task_factory(tag=f"s{number}", work_dir=f"/w/{number}", publish_dirs=[f"/out/run/s{number}"])
        for number in range(40)
    ]

    def complete(number: int) -> None:
        emitter.on_task_complete(tasks[number])

    def publish(number: int) -> None:
        emitter.on_file_published(f"/w/{number}/a.txt", f"/out/run/s{number}/a.txt")

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [pool.submit(complete, number) for number in range(40)]
        futures += [pool.submit(publish, number) for number in range(40)]
        for future in futures:
            future.result()
    emitter.on_run_complete()

    for number in range(40):
        payload = recorder.latest_json(f"/out/run/s{number}/ANALYZE_s{number}.json")
        assert payload["outputs"]["output_0"]["publishedFiles"] == [f"/out/run/s{number}/a.txt"]
    collated = recorder.latest_json("/out/run/workflow_files.json")
    assert collated["workflow"]["totalTasks"] == 40


def test_end_to_end_on_local_filesystem(settings, task_factory, tmp_path) -> None:
    emitter = FileReportEmitter(
        router=StorageRouter({Scheme.LOCAL: LocalWriter()}),
        settings=settings,
    )
    emitter.on_run_start(FileReportConfig(enabled=True, collate=True))
    results = tmp_path / "results"
    for sample in ("s1", "s2"):
        work_dir = tmp_path / "work" / sample
        emitter.on_task_complete(
            task_factory(
                tag=sample,
                work_dir=str(work_dir),
                publish_dirs=[str(results / sample)],
                outputs={0: [str(work_dir / "counts.tsv")]},
                names={0: "counts"},
            )
        )
        emitter.on_file_published(work_dir / "counts.tsv", results / sample / "counts.tsv")
    emitter.on_run_complete()

    report = json.loads((results / "s2" / "ANALYZE_s2.json").read_text(encoding="utf-8"))
    assert report["outputs"]["counts"]["publishedFiles"] == [str(results / "s2" / "counts.tsv")]
    collated = json.loads((results / "workflow_files.json").read_text(encoding="utf-8"))
    assert collated["workflow"]["totalTasks"] == 2
    assert not (results / "s1" / "workflow_files.json").exists()
