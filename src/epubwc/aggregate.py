from __future__ import annotations

import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from .core import FileResult, count_file
from .counting import CountMode, WordCount
from .log import debug_log

EPUB_SUFFIX = ".epub"
JOBS_ENV = "EPUBWC_JOBS"
MAX_JOBS = 64


def default_jobs() -> int:
    env_jobs = os.getenv(JOBS_ENV)
    if env_jobs:
        try:
            parsed = int(env_jobs)
            if parsed > 0:
                return min(parsed, MAX_JOBS)
        except ValueError:
            pass
    return max(1, min(os.cpu_count() or 1, MAX_JOBS))


def is_candidate(path: str | Path) -> bool:
    return Path(path).suffix.lower() == EPUB_SUFFIX


@dataclass(frozen=True, slots=True)
class AggregateReport:
    results: tuple[FileResult, ...] = ()
    skipped: int = 0
    cancelled: bool = False
    mode: CountMode = CountMode.WORDS

    @property
    def succeeded(self) -> tuple[FileResult, ...]:
        return tuple(result for result in self.results if result.ok)

    @property
    def failed(self) -> tuple[FileResult, ...]:
        return tuple(result for result in self.results if not result.ok)

    @property
    def word_count(self) -> WordCount:
        return sum((result.count for result in self.results if result.count is not None), WordCount())

    @property
    def total(self) -> int:
        return self.word_count.total

    @property
    def no_input(self) -> bool:
        """True when no candidate EPUB was found at all."""
        return not self.results and not self.cancelled

    @property
    def all_failed(self) -> bool:
        return bool(self.results) and not self.succeeded


class _PathCursor:
    """Shared lazy cursor over the discovered paths."""

    def __init__(self, paths: Iterable[str | Path]) -> None:
        self._iter = iter(paths)
        self._lock = threading.Lock()
        self._next_index = 0
        self.skipped = 0
        self.exhausted = False

    def claim(self) -> tuple[int, Path] | None:
        with self._lock:
            if self.exhausted:
                return None
            for raw in self._iter:
                path = Path(raw)
                if not is_candidate(path):
                    self.skipped += 1
                    continue
                index = self._next_index
                self._next_index += 1
                return index, path
            self.exhausted = True
            return None


def run(
    paths: Iterable[str | Path],
    concurrency: int | None = None,
    *,
    mode: CountMode = CountMode.WORDS,
    include_nonlinear: bool = True,
    on_result: Callable[[FileResult], None] | None = None,
    cancel_event: threading.Event | None = None,
) -> AggregateReport:
    """
    Count every candidate EPUB in ``paths`` with a fixed pool of workers.

    Results are reported in discovery order regardless of completion order.
    Setting ``cancel_event`` (or interrupting the calling thread) stops
    dispatching new files; files already being counted finish first.
    """
    jobs = default_jobs() if concurrency is None else concurrency
    if jobs < 1:
        raise ValueError(f"concurrency must be at least 1, got {jobs}")
    cancel = cancel_event if cancel_event is not None else threading.Event()
    cursor = _PathCursor(paths)
    results: dict[int, FileResult] = {}
    publish_lock = threading.Lock()

    def _worker() -> None:
        while not cancel.is_set():
            claimed = cursor.claim()
            if claimed is None:
                return
            index, path = claimed
            result = count_file(path, mode=mode, include_nonlinear=include_nonlinear)
            with publish_lock:
                results[index] = result
            if on_result is not None:
                on_result(result)

    debug_log(f"Counting with {jobs} worker(s)")
    with ThreadPoolExecutor(max_workers=jobs, thread_name_prefix="epubwc") as executor:
        futures = [executor.submit(_worker) for _ in range(jobs)]
        try:
            for future in futures:
                future.result()
        except KeyboardInterrupt:
            cancel.set()
            debug_log("Interrupted; waiting for in-flight files")
        except BaseException:
            cancel.set()
            raise

    with publish_lock:
        ordered = tuple(results[index] for index in sorted(results))
    return AggregateReport(
        results=ordered,
        skipped=cursor.skipped,
        cancelled=not cursor.exhausted,
        mode=mode,
    )


__all__ = ["AggregateReport", "default_jobs", "is_candidate", "run", "JOBS_ENV"]
