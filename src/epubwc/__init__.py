from .aggregate import AggregateReport, run
from .core import DocumentCount, Failure, FileResult, count_file
from .counting import CountMode, WordCount, count_text, count_words
from .errors import (
    ArchiveIOError,
    DanglingSpineReferenceError,
    DecompressError,
    EntryNotFoundError,
    EpubCountError,
    FailureReason,
    MalformedMarkupError,
    MalformedPackageError,
    MissingRootFileError,
    NotAnArchiveError,
)
from .library import iter_epub_paths

__all__ = [
    "AggregateReport",
    "run",
    "FileResult",
    "DocumentCount",
    "Failure",
    "count_file",
    "CountMode",
    "WordCount",
    "count_text",
    "count_words",
    "iter_epub_paths",
    "FailureReason",
    "EpubCountError",
    "NotAnArchiveError",
    "ArchiveIOError",
    "MissingRootFileError",
    "MalformedPackageError",
    "DanglingSpineReferenceError",
    "EntryNotFoundError",
    "DecompressError",
    "MalformedMarkupError",
]
