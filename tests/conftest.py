from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Callable, Mapping, Sequence

import pytest

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{rootfile}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

OPF_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<package version="3.0" unique-identifier="BookId" xmlns="http://www.idpf.org/2007/opf">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:title>Sample Book</dc:title>
  </metadata>
  <manifest>
{manifest}
  </manifest>
  <spine>
{spine}
  </spine>
</package>
"""


def xhtml(body: str, title: str = "Chapter") -> str:
    return f"""<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
  <head><title>{title}</title></head>
  <body>
{body}
  </body>
</html>
"""


def build_epub(
    target: Path,
    chapters: Sequence[tuple[str, str]],
    *,
    rootfile: str = "OEBPS/content.opf",
    spine: Sequence[str] | None = None,
    nonlinear: Sequence[str] = (),
    extra_entries: Mapping[str, str | bytes] | None = None,
) -> Path:
    """Write a minimal EPUB whose spine lists ``chapters`` (id, body) in order."""
    manifest_lines = [
        f'    <item id="{item_id}" href="{item_id}.xhtml" media-type="application/xhtml+xml"/>'
        for item_id, _ in chapters
    ]
    spine_ids = list(spine) if spine is not None else [item_id for item_id, _ in chapters]
    spine_lines = [
        f'    <itemref idref="{item_id}"' + (' linear="no"' if item_id in nonlinear else "") + "/>"
        for item_id in spine_ids
    ]
    opf_xml = OPF_TEMPLATE.format(manifest="\n".join(manifest_lines), spine="\n".join(spine_lines))
    base = rootfile.rsplit("/", 1)[0] + "/" if "/" in rootfile else ""
    target.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
        zf.writestr("META-INF/container.xml", CONTAINER_XML.format(rootfile=rootfile))
        zf.writestr(rootfile, opf_xml)
        for item_id, body in chapters:
            zf.writestr(f"{base}{item_id}.xhtml", xhtml(body))
        for name, data in (extra_entries or {}).items():
            zf.writestr(name, data)
    return target


@pytest.fixture
def make_epub(tmp_path: Path) -> Callable[..., Path]:
    def _make(name: str, chapters: Sequence[tuple[str, str]], **kwargs: object) -> Path:
        return build_epub(tmp_path / name, chapters, **kwargs)  # type: ignore[arg-type]

    return _make
