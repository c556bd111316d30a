"""Shared fixtures: an in-memory book for pipeline tests and a real EPUB on disk."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest
from ebooklib import epub

from ebook_extractor.config import AppConfig, RuntimeConfig
from ebook_extractor.epub import FlowEntry, ManifestItem, NavPoint
from ebook_extractor.settings import get_settings

# 1x1 transparent PNG
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\rIDATx\x9cc\xf8\xff\xff?\x00\x05\xfe\x02\xfe\xa7\x35\x81\x84\x00\x00\x00\x00IEND\xaeB`\x82"
)


@dataclass
class FakeEpub:
    manifest: dict[str, ManifestItem] = field(default_factory=dict)
    flow: list[FlowEntry] = field(default_factory=list)
    toc: list[NavPoint] = field(default_factory=list)
    chapters: dict[str, str] = field(default_factory=dict)
    images: dict[str, tuple[bytes, str]] = field(default_factory=dict)
    image_requests: list[str] = field(default_factory=list)

    def add_chapter(self, chapter_id: str, html: str, title: str = "", href: str | None = None) -> None:
        href = href or f"OEBPS/text/{chapter_id}.xhtml"
        self.manifest[chapter_id] = ManifestItem(href=href, media_type="application/xhtml+xml")
        self.flow.append(FlowEntry(id=chapter_id, title=title, href=href))
        self.chapters[chapter_id] = html

    def add_image(self, image_id: str, href: str, data: bytes = PNG_BYTES, media_type: str = "image/png") -> None:
        self.manifest[image_id] = ManifestItem(href=href, media_type=media_type)
        self.images[image_id] = (data, media_type)

    def get_chapter_raw(self, chapter_id: str) -> str:
        return self.chapters[chapter_id]

    def get_image(self, manifest_id: str) -> tuple[bytes, str]:
        self.image_requests.append(manifest_id)
        return self.images[manifest_id]


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("EBOOKX_CONFIG_PATH", raising=False)
    monkeypatch.delenv("EBOOKX_OUTPUT_DIR", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def three_chapter_book() -> FakeEpub:
    book = FakeEpub()
    book.add_chapter("c1", "<html><body><p>First &amp; foremost</p></body></html>")
    book.add_chapter("c2", "<html><body><p>Second—part</p></body></html>", title="Intro")
    book.add_chapter("c3", "<html><body><p>Third</p></body></html>")
    book.toc = [NavPoint("Opening", "OEBPS/text/c1.xhtml"), NavPoint("Intro", "OEBPS/text/c2.xhtml")]
    return book


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    path = tmp_path / "book.epub"
    path.write_bytes(b"placeholder")
    return path


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(runtime=RuntimeConfig(output_dir=tmp_path / "out"))


def build_sample_epub(path: Path) -> Path:
    book = epub.EpubBook()
    book.set_identifier("sample-book")
    book.set_title("Sample Book")
    book.set_language("en")

    image = epub.EpubItem(uid="pic", file_name="images/pic.png", media_type="image/png", content=PNG_BYTES)
    book.add_item(image)

    intro = epub.EpubHtml(uid="intro", title="Intro", file_name="text/intro.xhtml", lang="en")
    intro.content = '<h1>Intro</h1><p>Hello world</p><p><img src="../images/pic.png" alt="pic"/></p>'
    body = epub.EpubHtml(uid="body", title="Body", file_name="text/body.xhtml", lang="en")
    body.content = "<h1>Body</h1><p>Second chapter text</p>"
    book.add_item(intro)
    book.add_item(body)

    book.toc = [epub.Link("text/intro.xhtml", "Intro", "intro"), epub.Link("text/body.xhtml", "Body", "body")]
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = [intro, body]
    epub.write_epub(str(path), book)
    return path


@pytest.fixture
def sample_epub(tmp_path: Path) -> Path:
    return build_sample_epub(tmp_path / "sample.epub")
