from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from html import unescape
from pathlib import Path
from typing import Mapping
from urllib.parse import unquote

from .epub import EpubReader, ManifestItem
from .utils import atomic_write_bytes, safe_resource_name

IMG_SUBDIR = "__IMG__"
IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg"})
IMG_SRC_RE = re.compile(r"""<img[^>]+src\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
DEFAULT_IMAGE_EXTENSION = "png"


def is_image_manifest_item(href: str, media_type: str) -> bool:
    if not href:
        return False
    if media_type.lower().startswith("image/"):
        return True
    return posixpath.splitext(href)[1].lower() in IMAGE_EXTENSIONS


def normalize_href(href: str) -> str:
    return posixpath.normpath(href.replace("\\", "/"))


def resolve_chapter_relative(chapter_href: str, src: str) -> str:
    """Resolve an ``<img src>`` against the chapter's location in the archive."""
    base_dir = posixpath.dirname(chapter_href.replace("\\", "/"))
    return normalize_href(posixpath.join(base_dir, src.replace("\\", "/")))


def extract_img_srcs(html: str) -> list[str]:
    return IMG_SRC_RE.findall(html)


def extension_for_mime(mime: str | None) -> str:
    if not mime or not mime.startswith("image/"):
        return DEFAULT_IMAGE_EXTENSION
    subtype = mime.split("/", 1)[1].split(";", 1)[0].split("+", 1)[0].strip()
    return subtype or DEFAULT_IMAGE_EXTENSION


def rewrite_markdown_image_urls(markdown: str, src_to_path: Mapping[str, str]) -> str:
    for src, new_path in src_to_path.items():
        pattern = re.compile(r"(!\[[^\]]*\]\()" + re.escape(src) + r"(\))")
        markdown = pattern.sub(lambda m, p=new_path: m.group(1) + p + m.group(2), markdown)
    return markdown


def build_image_index(manifest: Mapping[str, ManifestItem]) -> tuple[dict[str, str], dict[str, str]]:
    """Map normalized href and bare file name of every image resource to its id."""
    by_href: dict[str, str] = {}
    by_name: dict[str, str] = {}
    for manifest_id, item in manifest.items():
        if not is_image_manifest_item(item.href, item.media_type):
            continue
        href = normalize_href(item.href)
        by_href[href] = manifest_id
        by_name.setdefault(posixpath.basename(href), manifest_id)
    return by_href, by_name


@dataclass(slots=True)
class ImageCollector:
    """Saves each referenced image once per run and remembers how to relink it."""

    source: EpubReader
    image_dir: Path
    prefix: str = IMG_SUBDIR
    by_href: dict[str, str] = field(init=False)
    by_name: dict[str, str] = field(init=False)
    saved: dict[str, str] = field(default_factory=dict)
    src_to_path: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.by_href, self.by_name = build_image_index(self.source.manifest)

    def lookup(self, resolved: str) -> str | None:
        candidates = (resolved, unquote(resolved), unescape(resolved))
        for candidate in candidates:
            if candidate in self.by_href:
                return self.by_href[candidate]
        for candidate in candidates:
            name = posixpath.basename(candidate)
            if name in self.by_name:
                return self.by_name[name]
        return None

    def collect(self, chapter_html: str, chapter_href: str) -> dict[str, str]:
        """Save the chapter's images and return the accumulated ``src -> path`` map."""
        for src in extract_img_srcs(chapter_html):
            manifest_id = self.lookup(resolve_chapter_relative(chapter_href, src))
            if manifest_id is None:
                continue
            new_path = self.saved.get(manifest_id) or self._save(manifest_id, src)
            if new_path:
                self.src_to_path[src] = new_path
        return self.src_to_path

    def _save(self, manifest_id: str, src: str) -> str | None:
        try:
            data, mime = self.source.get_image(manifest_id)
            file_name = f"{safe_resource_name(manifest_id)}.{extension_for_mime(mime)}"
            atomic_write_bytes(self.image_dir / file_name, data)
        except Exception as exc:
            self.warnings.append(f"IMAGE_SKIPPED: {src} ({exc})")
            return None
        new_path = f"{self.prefix}/{file_name}"
        self.saved[manifest_id] = new_path
        return new_path


__all__ = [
    "IMG_SUBDIR",
    "ImageCollector",
    "build_image_index",
    "extension_for_mime",
    "extract_img_srcs",
    "is_image_manifest_item",
    "resolve_chapter_relative",
    "rewrite_markdown_image_urls",
]
