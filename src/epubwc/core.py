from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .archive import EpubContainer, open_container
from .counting import CountMode, WordCount, count_text
from .errors import EpubCountError, FailureReason
from .extract import extract_text
from .log import debug_log
from .package import resolve_package


@dataclass(frozen=True, slots=True)
class Failure:
    reason: FailureReason
    message: str

    def __str__(self) -> str:
        return f"{self.reason.value}: {self.message}"


@dataclass(frozen=True, slots=True)
class DocumentCount:
    source: str
    count: WordCount


@dataclass(frozen=True, slots=True)
class FileResult:
    path: Path
    count: WordCount | None = None
    failure: Failure | None = None
    documents: tuple[DocumentCount, ...] = ()

    def __post_init__(self) -> None:
        if (self.count is None) == (self.failure is None):
            raise ValueError("FileResult needs exactly one of count or failure")

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def total(self) -> int:
        return self.count.total if self.count is not None else 0

    @classmethod
    def failed(cls, path: Path, exc: EpubCountError) -> "FileResult":
        return cls(path=path, failure=Failure(reason=exc.reason, message=str(exc)))


def count_document(
    container: EpubContainer,
    entry: str,
    mode: CountMode = CountMode.WORDS,
) -> DocumentCount:
    content = extract_text(container, entry)
    return DocumentCount(source=entry, count=count_text(content.text, mode))


def count_file(
    path: str | Path,
    *,
    mode: CountMode = CountMode.WORDS,
    include_nonlinear: bool = True,
) -> FileResult:
    """
    Count the words of one EPUB.

    Any structural failure is returned as a failed FileResult; a file never
    reports the count of only part of its documents.
    """
    epub_path = Path(path)
    try:
        with open_container(epub_path) as container:
            reading_order = resolve_package(container, include_nonlinear=include_nonlinear)
            documents = tuple(count_document(container, entry, mode) for entry in reading_order)
    except EpubCountError as exc:
        debug_log(f"{epub_path}: failed ({exc.reason.value}) {exc}")
        return FileResult.failed(epub_path, exc)
    total = sum((doc.count for doc in documents), WordCount())
    debug_log(f"{epub_path}: {total.total} {mode.unit} across {len(documents)} documents")
    return FileResult(path=epub_path, count=total, documents=documents)


__all__ = ["Failure", "DocumentCount", "FileResult", "count_document", "count_file"]
