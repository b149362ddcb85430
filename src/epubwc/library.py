from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Iterable, Iterator


def _sort_key(name: str) -> tuple[str, str]:
    return name.casefold(), name


def iter_epub_paths(
    inputs: Iterable[str | Path],
    *,
    on_missing: Callable[[Path], None] | None = None,
) -> Iterator[Path]:
    """
    Lazily yield file paths under ``inputs``.

    Files are yielded as given; directories are walked recursively in a
    stable, case-insensitive order. Extension filtering is left to the
    caller so non-EPUB files can be counted as skipped.
    """
    for raw in inputs:
        root = Path(raw)
        if root.is_file():
            yield root
            continue
        if not root.is_dir():
            if on_missing is not None:
                on_missing(root)
            continue
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort(key=_sort_key)
            base = Path(dirpath)
            for name in sorted(filenames, key=_sort_key):
                yield base / name


__all__ = ["iter_epub_paths"]
