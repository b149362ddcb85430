from __future__ import annotations

from enum import Enum


class FailureReason(str, Enum):
    NOT_AN_ARCHIVE = "not-an-archive"
    IO_ERROR = "io-error"
    MISSING_ROOT_FILE = "missing-root-file"
    MALFORMED_PACKAGE = "malformed-package"
    DANGLING_SPINE_REFERENCE = "dangling-spine-reference"
    ENTRY_NOT_FOUND = "entry-not-found"
    DECOMPRESS_ERROR = "decompress-error"
    MALFORMED_MARKUP = "malformed-markup"


class EpubCountError(RuntimeError):
    """Base class for failures that abort counting a single EPUB."""

    reason: FailureReason


class NotAnArchiveError(EpubCountError):
    """Raised when a file does not open as a ZIP container."""

    reason = FailureReason.NOT_AN_ARCHIVE


class ArchiveIOError(EpubCountError):
    """Raised when the file cannot be read from disk."""

    reason = FailureReason.IO_ERROR


class MissingRootFileError(EpubCountError):
    """Raised when META-INF/container.xml does not lead to a package document."""

    reason = FailureReason.MISSING_ROOT_FILE


class MalformedPackageError(EpubCountError):
    """Raised when the OPF package document cannot be parsed."""

    reason = FailureReason.MALFORMED_PACKAGE


class DanglingSpineReferenceError(EpubCountError):
    """Raised when a spine itemref does not resolve to an entry in the archive."""

    reason = FailureReason.DANGLING_SPINE_REFERENCE


class EntryNotFoundError(EpubCountError):
    """Raised when a named entry is missing from the archive."""

    reason = FailureReason.ENTRY_NOT_FOUND


class DecompressError(EpubCountError):
    """Raised when an archive entry fails to decompress."""

    reason = FailureReason.DECOMPRESS_ERROR


class MalformedMarkupError(EpubCountError):
    """Raised when a content document cannot be parsed as markup."""

    reason = FailureReason.MALFORMED_MARKUP


__all__ = [
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
