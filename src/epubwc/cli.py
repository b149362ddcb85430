from __future__ import annotations

import argparse
import json
import sys
import threading
from importlib import metadata
from pathlib import Path
from typing import TextIO

import tomllib
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from . import aggregate
from .aggregate import AggregateReport
from .core import FileResult
from .counting import CountMode
from .library import iter_epub_paths
from .log import set_debug_logging

EXIT_OK = 0
EXIT_NO_INPUT = 1
EXIT_INTERRUPTED = 130


def _read_local_version() -> str | None:
    try:
        pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    except IndexError:  # pragma: no cover - installed without a source tree
        return None
    try:
        with pyproject_path.open("rb") as fh:
            data = tomllib.load(fh)
    except (FileNotFoundError, tomllib.TOMLDecodeError):
        return None
    return data.get("project", {}).get("version")


try:
    __version__ = metadata.version("epubwc")
except metadata.PackageNotFoundError:
    __version__ = _read_local_version() or "0.0.0+unknown"


def _add_version_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"epubwc {__version__}",
    )


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {parsed}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="epubwc",
        description="Count the words in EPUB files, walking directories recursively.",
    )
    _add_version_flag(ap)
    ap.add_argument(
        "paths",
        nargs="+",
        help="EPUB files or directories to search for .epub files",
    )
    ap.add_argument(
        "-j",
        "--jobs",
        type=_positive_int,
        default=None,
        help=f"Number of files counted in parallel (default: ${aggregate.JOBS_ENV} or CPU count).",
    )
    ap.add_argument(
        "-m",
        "--mode",
        choices=[mode.value for mode in CountMode],
        default=CountMode.WORDS.value,
        help=(
            "Counting rule: 'words' (default) counts CJK ideographs and kana individually and "
            "other scripts per word; 'chars' counts every non-whitespace character."
        ),
    )
    ap.add_argument(
        "--exclude-nonlinear",
        action="store_true",
        help="Skip spine items marked linear=\"no\" (covers, notes and similar auxiliary pages).",
    )
    ap.add_argument(
        "--per-document",
        action="store_true",
        help="Also list the count of every content document in reading order.",
    )
    ap.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON instead of text.",
    )
    ap.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar.",
    )
    ap.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging on stderr.",
    )
    return ap


class _RichProgress:
    def __init__(self, enabled: bool) -> None:
        self.console = Console(stderr=True)
        self.enabled = enabled and self.console.is_terminal
        self.lock = threading.Lock()
        self.done = 0
        self.failed = 0
        if not self.enabled:
            self.progress: Progress | None = None
            self.task = None
            return
        self.progress = Progress(
            TextColumn("{task.description}", justify="left"),
            BarColumn(bar_width=None),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            TextColumn("{task.fields[detail]}", justify="left"),
            console=self.console,
            auto_refresh=True,
            transient=True,
        )
        self.progress.start()
        # Total is unknown while the directory walk is still running.
        self.task = self.progress.add_task("Counting", total=None, detail="")

    @staticmethod
    def _truncate(text: str, width: int = 32) -> str:
        text = text.strip()
        if len(text) <= width:
            return text
        return text[: max(0, width - 1)] + "…"

    def handle(self, result: FileResult) -> None:
        with self.lock:
            self.done += 1
            if not result.ok:
                self.failed += 1
            if self.progress is None or self.task is None:
                return
            detail = self._truncate(result.path.name)
            if self.failed:
                detail = f"{detail} ({self.failed} failed)"
            self.progress.update(self.task, completed=self.done, detail=detail)

    def close(self) -> None:
        if self.progress is not None:
            self.progress.stop()
            self.progress = None


def _result_payload(result: FileResult, per_document: bool) -> dict[str, object]:
    payload: dict[str, object] = {
        "path": str(result.path),
        "ok": result.ok,
        "total": result.count.total if result.count is not None else None,
        "cjk": result.count.cjk if result.count is not None else None,
        "other": result.count.other if result.count is not None else None,
        "reason": result.failure.reason.value if result.failure is not None else None,
        "message": result.failure.message if result.failure is not None else None,
    }
    if per_document:
        payload["documents"] = [
            {"source": doc.source, "total": doc.count.total, "cjk": doc.count.cjk, "other": doc.count.other}
            for doc in result.documents
        ]
    return payload


def report_to_payload(report: AggregateReport, per_document: bool = False) -> dict[str, object]:
    return {
        "mode": report.mode.value,
        "total": report.total,
        "files": [_result_payload(result, per_document) for result in report.results],
        "succeeded": len(report.succeeded),
        "failed": len(report.failed),
        "skipped": report.skipped,
        "cancelled": report.cancelled,
    }


def format_report(report: AggregateReport, per_document: bool = False) -> str:
    lines: list[str] = []
    for result in report.results:
        if result.failure is not None:
            lines.append(f"ERROR\t{result.path}\t{result.failure}")
            continue
        lines.append(f"{result.total}\t{result.path}")
        if per_document:
            for doc in result.documents:
                lines.append(f"  {doc.count.total}\t{doc.source}")
    files = len(report.succeeded)
    summary = f"Total: {report.total} {report.mode.unit} in {files} file{'s' if files != 1 else ''}"
    failed = len(report.failed)
    if failed:
        summary += f" ({failed} failed)"
    if report.cancelled:
        summary += " [interrupted]"
    lines.append(summary)
    return "\n".join(lines)


def _emit_report(report: AggregateReport, args: argparse.Namespace, out: TextIO) -> None:
    if args.json:
        json.dump(report_to_payload(report, args.per_document), out, ensure_ascii=False, indent=2)
        out.write("\n")
    else:
        out.write(format_report(report, args.per_document) + "\n")


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    args = parser.parse_args(argv)
    set_debug_logging(bool(args.debug))

    console = Console(stderr=True)

    def _warn_missing(path: Path) -> None:
        console.print(f"[yellow]Path not found: {path}[/]")

    progress = _RichProgress(enabled=not args.no_progress and not args.debug)
    try:
        report = aggregate.run(
            iter_epub_paths(args.paths, on_missing=_warn_missing),
            args.jobs,
            mode=CountMode(args.mode),
            include_nonlinear=not args.exclude_nonlinear,
            on_result=progress.handle,
        )
    finally:
        progress.close()

    if report.no_input:
        console.print("[red]No .epub files found.[/]")
        return EXIT_NO_INPUT

    _emit_report(report, args, sys.stdout)
    if report.cancelled:
        return EXIT_INTERRUPTED
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
