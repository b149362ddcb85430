from __future__ import annotations

import codecs
import re
import unicodedata
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from bs4 import (
    BeautifulSoup,
    CData,
    Comment,
    Declaration,
    Doctype,
    FeatureNotFound,
    NavigableString,
    ProcessingInstruction,
    Tag,
    XMLParsedAsHTMLWarning,
)  # type: ignore

from .archive import EpubContainer
from .errors import MalformedMarkupError

# Elements whose text is never prose.
SKIP_TAGS = {"script", "style", "title", "template", "rp", "rt"}

# Block elements that separate words on both sides.
BLOCK_LEVEL_TAGS = {
    "[document]",
    "address",
    "article",
    "aside",
    "blockquote",
    "body",
    "caption",
    "dd",
    "details",
    "dialog",
    "div",
    "dl",
    "dt",
    "figcaption",
    "figure",
    "footer",
    "form",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "head",
    "header",
    "hgroup",
    "html",
    "li",
    "main",
    "nav",
    "ol",
    "p",
    "pre",
    "section",
    "summary",
    "table",
    "tbody",
    "td",
    "tfoot",
    "th",
    "thead",
    "tr",
    "ul",
}
BREAK_TAGS = {"br", "hr", "img", "image"}

_XML_DECL_ENCODING = re.compile(rb"""^<\?xml[^>]*?encoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")
_HTML_META_CHARSET = re.compile(rb"""<meta[^>]+charset\s*=\s*["']?([A-Za-z0-9._-]+)""", re.IGNORECASE)
_NAMED_ENTITY = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")
_XML_ENTITIES = {"amp", "lt", "gt", "quot", "apos"}
_FALLBACK_ENCODINGS = ("utf-8", "cp932", "shift_jis", "euc_jp", "gb18030", "big5")


class ElementKind(Enum):
    SKIP = "skip"
    BLOCK = "block"
    BREAK = "break"
    INLINE = "inline"


def element_kind(name: str) -> ElementKind:
    name = name.rsplit(":", 1)[-1].lower()
    if name in SKIP_TAGS:
        return ElementKind.SKIP
    if name in BLOCK_LEVEL_TAGS:
        return ElementKind.BLOCK
    if name in BREAK_TAGS:
        return ElementKind.BREAK
    return ElementKind.INLINE


@dataclass(slots=True)
class TextNode:
    text: str


@dataclass(slots=True)
class CommentNode:
    text: str


@dataclass(slots=True)
class ElementNode:
    name: str
    kind: ElementKind
    children: list["Node"] = field(default_factory=list)


Node = Union[ElementNode, TextNode, CommentNode]


@dataclass(frozen=True, slots=True)
class ContentText:
    source: str
    segments: tuple[str, ...] = ()

    @property
    def text(self) -> str:
        return " ".join(self.segments)


def _declared_encoding(data: bytes) -> str | None:
    head = data[:1024]
    match = _XML_DECL_ENCODING.match(head.lstrip()) or _HTML_META_CHARSET.search(head)
    if not match:
        return None
    return match.group(1).decode("ascii")


def decode_markup(data: bytes) -> str:
    if data.startswith(codecs.BOM_UTF8):
        candidates: tuple[str, ...] = ("utf-8-sig",)
    elif data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        candidates = ("utf-16",)
    else:
        declared = _declared_encoding(data)
        candidates = ((declared,) if declared else ()) + _FALLBACK_ENCODINGS
    for enc in candidates:
        try:
            text = data.decode(enc)
        except (UnicodeDecodeError, LookupError):
            continue
        if "\x00" in text:
            raise MalformedMarkupError("Content document contains NUL bytes")
        return text
    raise MalformedMarkupError("Content document is not decodable text")


def _looks_like_xml(html: str) -> bool:
    stripped = html.lstrip()
    lower_head = stripped[:200].lower()
    if not (stripped.startswith("<?xml") or ("<html" in lower_head and "xmlns" in lower_head)):
        return False
    # The XML parser drops HTML-only entities such as &nbsp; and would glue words together.
    return all(name in _XML_ENTITIES for name in _NAMED_ENTITY.findall(html))


def parse_markup(data: bytes) -> BeautifulSoup:
    html = decode_markup(data)
    parsers = ("lxml-xml", "lxml", "html.parser") if _looks_like_xml(html) else ("lxml", "html.parser")
    last_error: Exception | None = None
    for parser in parsers:
        try:
            with warnings.catch_warnings():
                warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)
                return BeautifulSoup(html, parser)
        except FeatureNotFound:
            continue
        except Exception as exc:  # parser internals raise assorted types
            last_error = exc
            continue
    raise MalformedMarkupError(f"Unparsable markup: {last_error}") from last_error


def _convert_string(node: NavigableString) -> Node | None:
    if isinstance(node, Comment):
        return CommentNode(str(node))
    if isinstance(node, CData):
        return TextNode(str(node))
    if isinstance(node, (Doctype, Declaration, ProcessingInstruction)):
        return None
    return TextNode(str(node))


def build_tree(soup: BeautifulSoup) -> ElementNode:
    """Convert a parsed document into a typed node tree."""
    root = ElementNode(name="[document]", kind=ElementKind.BLOCK)
    stack: list[tuple[Tag, ElementNode]] = [(soup, root)]
    while stack:
        tag, node = stack.pop()
        for child in tag.children:
            if isinstance(child, Tag):
                name = child.name or ""
                element = ElementNode(name=name, kind=element_kind(name))
                node.children.append(element)
                if element.kind is not ElementKind.SKIP:
                    stack.append((child, element))
            elif isinstance(child, NavigableString):
                converted = _convert_string(child)
                if converted is not None:
                    node.children.append(converted)
    return root


_CLOSE = object()


def collect_segments(tree: ElementNode) -> list[str]:
    """Walk ``tree`` in document order and return its prose as text runs."""
    segments: list[str] = []
    buffer: list[str] = []

    def flush() -> None:
        if not buffer:
            return
        text = " ".join(unicodedata.normalize("NFKC", "".join(buffer)).split())
        buffer.clear()
        if text:
            segments.append(text)

    stack: list[object] = [tree]
    while stack:
        item = stack.pop()
        if item is _CLOSE:
            flush()
            continue
        if isinstance(item, TextNode):
            buffer.append(item.text)
        elif isinstance(item, ElementNode):
            if item.kind is ElementKind.SKIP:
                flush()
                continue
            if item.kind in (ElementKind.BLOCK, ElementKind.BREAK):
                flush()
            if item.kind is not ElementKind.INLINE or item.children:
                stack.append(_CLOSE)
            stack.extend(reversed(item.children))
    flush()
    return segments


def extract_text(container: EpubContainer, entry: str) -> ContentText:
    soup = parse_markup(container.read_entry(entry))
    return ContentText(source=entry, segments=tuple(collect_segments(build_tree(soup))))


__all__ = [
    "ElementKind",
    "ElementNode",
    "TextNode",
    "CommentNode",
    "ContentText",
    "element_kind",
    "decode_markup",
    "parse_markup",
    "build_tree",
    "collect_segments",
    "extract_text",
]
