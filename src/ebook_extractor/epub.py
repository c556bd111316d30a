"""
Read-only view of an EPUB archive shaped the way the conversion pipeline
consumes it: a manifest, the linear reading order, the native table of
contents and raw access to chapter markup and image payloads.
"""

from __future__ import annotations

import posixpath
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol, Sequence
from urllib.parse import unquote

import ebooklib
from ebooklib import epub


class EpubOpenError(RuntimeError):
    """Raised when a file cannot be read as an EPUB."""


@dataclass(frozen=True, slots=True)
class ManifestItem:
    href: str
    media_type: str


@dataclass(frozen=True, slots=True)
class FlowEntry:
    id: str
    title: str
    href: str


@dataclass(frozen=True, slots=True)
class NavPoint:
    title: str
    href: str = ""


class EpubReader(Protocol):
    manifest: Mapping[str, ManifestItem]
    flow: Sequence[FlowEntry]
    toc: Sequence[NavPoint]

    def get_chapter_raw(self, chapter_id: str) -> str:  # pragma: no cover - interface
        ...

    def get_image(self, manifest_id: str) -> tuple[bytes, str]:  # pragma: no cover - interface
        ...


def flatten_toc(toc_list, into: list[NavPoint] | None = None) -> list[NavPoint]:  # type: ignore[no-untyped-def]
    """Flatten ebooklib's nested ``Link``/``(Section, children)`` TOC."""
    result = into if into is not None else []
    for item in toc_list:
        if isinstance(item, tuple):
            section, children = item
            result.append(NavPoint(title=section.title or "", href=getattr(section, "href", "") or ""))
            flatten_toc(children, result)
        elif isinstance(item, (epub.Link, epub.Section)):
            result.append(NavPoint(title=item.title or "", href=getattr(item, "href", "") or ""))
    return result


def _file_href(href: str) -> str:
    return posixpath.normpath(unquote(href.split("#", 1)[0])) if href else ""


class EbookLibReader:
    def __init__(self, book: epub.EpubBook) -> None:
        self._book = book
        self.manifest: dict[str, ManifestItem] = {
            item.get_id(): ManifestItem(href=item.get_name(), media_type=item.media_type or "")
            for item in book.get_items()
            if item.get_id()
        }
        self.toc: list[NavPoint] = flatten_toc(book.toc)
        self.flow: list[FlowEntry] = self._build_flow()

    def _build_flow(self) -> list[FlowEntry]:
        titles: dict[str, str] = {}
        for point in self.toc:
            titles.setdefault(_file_href(point.href), point.title.strip())
        flow: list[FlowEntry] = []
        for item_id, _linear in self._book.spine:
            entry = self.manifest.get(item_id)
            href = entry.href if entry else ""
            flow.append(FlowEntry(id=item_id or "", title=titles.get(_file_href(href), ""), href=href))
        return flow

    def get_chapter_raw(self, chapter_id: str) -> str:
        item = self._book.get_item_with_id(chapter_id)
        if item is None:
            raise KeyError(chapter_id)
        return item.get_content().decode("utf-8", errors="ignore")

    def get_image(self, manifest_id: str) -> tuple[bytes, str]:
        item = self._book.get_item_with_id(manifest_id)
        if item is None:
            raise KeyError(manifest_id)
        media_type = item.media_type or ""
        if item.get_type() == ebooklib.ITEM_COVER and not media_type:
            media_type = "image/png"
        return item.get_content(), media_type


def open_epub(path: Path) -> EbookLibReader:
    try:
        book = epub.read_epub(str(path), {"ignore_ncx": False})
    except (epub.EpubException, zipfile.BadZipFile, KeyError, OSError, SyntaxError, ValueError) as exc:
        raise EpubOpenError(f"Cannot read EPUB {path.name}: {exc}") from exc
    return EbookLibReader(book)


__all__ = [
    "EbookLibReader",
    "EpubOpenError",
    "EpubReader",
    "FlowEntry",
    "ManifestItem",
    "NavPoint",
    "flatten_toc",
    "open_epub",
]
