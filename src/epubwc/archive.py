from __future__ import annotations

import zipfile
import zlib
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .errors import (
    ArchiveIOError,
    DecompressError,
    EntryNotFoundError,
    NotAnArchiveError,
)
from .log import debug_log


class EpubContainer:
    """An opened EPUB archive.

    Entries are only reachable by name through :meth:`read_entry`, so nothing
    read from the archive holds on to the underlying ZIP handle once the
    container is closed.
    """

    def __init__(self, path: Path, zf: zipfile.ZipFile) -> None:
        self.path = path
        self._zf: zipfile.ZipFile | None = zf
        self.entries: frozenset[str] = frozenset(
            info.filename for info in zf.infolist() if not info.is_dir()
        )

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __enter__(self) -> "EpubContainer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._zf is None

    def read_entry(self, name: str) -> bytes:
        zf = self._zf
        if zf is None:
            raise ValueError(f"Container already closed: {self.path}")
        if name not in self.entries:
            raise EntryNotFoundError(f"Entry not found in archive: {name}")
        try:
            with zf.open(name, "r") as handle:
                return handle.read()
        except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError, ValueError) as exc:
            raise DecompressError(f"Failed to decompress {name}: {exc}") from exc
        except RuntimeError as exc:
            # zipfile reports encrypted members as a bare RuntimeError
            raise DecompressError(f"Cannot read {name}: {exc}") from exc
        except OSError as exc:
            raise ArchiveIOError(f"Failed to read {name} from {self.path}: {exc}") from exc

    def close(self) -> None:
        if self._zf is not None:
            self._zf.close()
            self._zf = None


def _open_zip(path: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(path, "r")
    except (zipfile.BadZipFile, NotImplementedError, ValueError, EOFError) as exc:
        # ValueError covers UnicodeDecodeError from mangled entry names
        raise NotAnArchiveError(f"Not a ZIP archive: {path}: {exc}") from exc
    except OSError as exc:
        raise ArchiveIOError(f"Cannot open {path}: {exc}") from exc


@contextmanager
def open_container(path: str | Path) -> Iterator[EpubContainer]:
    epub_path = Path(path)
    container = EpubContainer(epub_path, _open_zip(epub_path))
    debug_log(f"Opened {epub_path} ({len(container.entries)} entries)")
    try:
        yield container
    finally:
        container.close()


__all__ = ["EpubContainer", "open_container"]
