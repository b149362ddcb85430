from __future__ import annotations

import posixpath
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Mapping
from urllib.parse import unquote

from .archive import EpubContainer
from .errors import (
    DanglingSpineReferenceError,
    EntryNotFoundError,
    MalformedPackageError,
    MissingRootFileError,
)
from .log import debug_log

CONTAINER_PATH = "META-INF/container.xml"
OPF_MEDIA_TYPE = "application/oebps-package+xml"
HTML_EXTS = (".xhtml", ".html", ".htm", ".xml", ".svg")


@dataclass(frozen=True, slots=True)
class ManifestItem:
    id: str
    path: str
    media_type: str | None = None


@dataclass(frozen=True, slots=True)
class SpineItem:
    idref: str
    path: str
    media_type: str | None = None
    linear: bool = True


@dataclass(frozen=True, slots=True)
class PackageDocument:
    rootfile: str
    manifest: Mapping[str, ManifestItem] = field(default_factory=dict)
    spine: tuple[SpineItem, ...] = ()

    def reading_order(self, include_nonlinear: bool = True) -> tuple[str, ...]:
        return tuple(
            item.path
            for item in self.spine
            if (include_nonlinear or item.linear) and _is_markup(item)
        )


def _strip_tag(tag: str) -> str:
    return tag.split("}", 1)[-1] if "}" in tag else tag


def _get_attr(elem: ET.Element, name: str) -> str | None:
    for attr, value in elem.attrib.items():
        if _strip_tag(attr) == name:
            return value
    return None


def _children(elem: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in elem if _strip_tag(child.tag) == name]


def _find_first(root: ET.Element, name: str) -> ET.Element | None:
    for elem in root.iter():
        if _strip_tag(elem.tag) == name:
            return elem
    return None


def _is_markup(item: SpineItem) -> bool:
    media_type = (item.media_type or "").lower()
    if media_type:
        return "html" in media_type or "xml" in media_type
    return item.path.lower().endswith(HTML_EXTS)


def _resolve_href(base_file: str, href: str) -> str:
    href = unquote(href.split("#", 1)[0])
    base = posixpath.dirname(base_file)
    combined = posixpath.join(base, href) if base else href
    return posixpath.normpath(combined)


def find_rootfile(container: EpubContainer) -> str:
    try:
        data = container.read_entry(CONTAINER_PATH)
    except EntryNotFoundError as exc:
        raise MissingRootFileError(f"{CONTAINER_PATH} is missing") from exc
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise MissingRootFileError(f"{CONTAINER_PATH} is not valid XML: {exc}") from exc

    candidates: list[tuple[str, str | None]] = []
    for elem in root.iter():
        if _strip_tag(elem.tag) != "rootfile":
            continue
        full_path = (_get_attr(elem, "full-path") or "").strip()
        if full_path:
            candidates.append((full_path, _get_attr(elem, "media-type")))
    if not candidates:
        raise MissingRootFileError(f"{CONTAINER_PATH} declares no rootfile full-path")

    rootfile = next(
        (path for path, media_type in candidates if media_type == OPF_MEDIA_TYPE),
        candidates[0][0],
    )
    rootfile = posixpath.normpath(unquote(rootfile.lstrip("/")))
    if rootfile not in container:
        raise MissingRootFileError(f"Package document not found in archive: {rootfile}")
    return rootfile


def parse_package_document(container: EpubContainer, rootfile: str) -> PackageDocument:
    try:
        root = ET.fromstring(container.read_entry(rootfile))
    except ET.ParseError as exc:
        raise MalformedPackageError(f"{rootfile} is not valid XML: {exc}") from exc

    manifest_elem = _find_first(root, "manifest")
    if manifest_elem is None:
        raise MalformedPackageError(f"{rootfile} has no <manifest>")
    spine_elem = _find_first(root, "spine")
    if spine_elem is None:
        raise MalformedPackageError(f"{rootfile} has no <spine>")

    manifest: dict[str, ManifestItem] = {}
    for item in _children(manifest_elem, "item"):
        item_id = _get_attr(item, "id")
        href = _get_attr(item, "href")
        if not item_id or not href:
            continue
        manifest[item_id] = ManifestItem(
            id=item_id,
            path=_resolve_href(rootfile, href),
            media_type=_get_attr(item, "media-type"),
        )

    spine: list[SpineItem] = []
    for itemref in _children(spine_elem, "itemref"):
        idref = _get_attr(itemref, "idref") or ""
        entry = manifest.get(idref)
        if entry is None:
            raise DanglingSpineReferenceError(
                f"Spine references unknown manifest id {idref!r} in {rootfile}"
            )
        if entry.path not in container:
            raise DanglingSpineReferenceError(
                f"Manifest item {idref!r} points to missing entry {entry.path}"
            )
        linear = (_get_attr(itemref, "linear") or "yes").strip().lower() != "no"
        spine.append(
            SpineItem(idref=idref, path=entry.path, media_type=entry.media_type, linear=linear)
        )

    return PackageDocument(rootfile=rootfile, manifest=manifest, spine=tuple(spine))


def resolve_package(container: EpubContainer, *, include_nonlinear: bool = True) -> tuple[str, ...]:
    """Return the content documents of ``container`` in spine order."""
    rootfile = find_rootfile(container)
    package = parse_package_document(container, rootfile)
    order = package.reading_order(include_nonlinear=include_nonlinear)
    debug_log(f"{container.path.name}: rootfile {rootfile}, {len(order)} of {len(package.spine)} spine items")
    return order


__all__ = [
    "CONTAINER_PATH",
    "ManifestItem",
    "SpineItem",
    "PackageDocument",
    "find_rootfile",
    "parse_package_document",
    "resolve_package",
]
