from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from file_report.config.settings import FileReportConfig, get_settings
from file_report.events import replay
from file_report.reporting.emitter import FileReportEmitter


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Replay a JSON-lines host event log and write the file reports."
    )
    parser.add_argument("--events", type=Path, required=True, help="Input JSONL event log.")
    parser.add_argument(
        "--collate",
        action="store_true",
        help="Enable collation for logs that carry no run_start event.",
    )
    parser.add_argument(
        "--run-work-dir",
        default=None,
        help="Fallback location for the collated report when no publish directory is known.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the final collated report to stdout.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    emitter = FileReportEmitter(settings=get_settings())
    emitter.on_run_start(
        FileReportConfig(enabled=True, collate=args.collate),
        run_work_dir=args.run_work_dir,
    )
    with args.events.open("r", encoding="utf-8") as handle:
        dispatched = replay(emitter, handle)
    if not emitter.run_completed:
        emitter.on_run_complete()

    if args.json:
        print(json.dumps(emitter.collated_preview().to_json_dict(), indent=2))
    else:
        print(f"Replayed {dispatched} events; {len(emitter.reports())} task reports.")


if __name__ == "__main__":
    main()
