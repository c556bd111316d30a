"""Domain models for EPUB extraction runs."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Literal

from .logging import BatchSummary

ChapterTitleStyleTxt = Literal["separated", "inline"]
NewlinesHandling = Literal["keep", "one", "two"]
ChapterFileNameStyle = Literal["same", "chapter", "custom"]
HtmlStyle = Literal["none", "styled", "custom"]


class OutputFormat(str, Enum):
    TXT = "txt"
    MD = "md"
    JSON = "json"
    HTML = "html"

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @property
    def supports_images(self) -> bool:
        return self is not OutputFormat.TXT


@dataclass(frozen=True, slots=True)
class HtmlTheme:
    background: str = "#f8f8f8"
    text: str = "#1a1a1a"
    heading_color: str = "#1a1a1a"
    heading_font: str = "system-ui, -apple-system, Segoe UI, Roboto, sans-serif"
    body_font: str = "system-ui, -apple-system, Segoe UI, Roboto, sans-serif"


@dataclass(frozen=True, slots=True)
class Labels:
    """Already-translated strings written into generated output."""

    chapter: str = "Chapter"
    table_of_contents: str = "Table of contents"
    back_to_index: str = "← Back to index"
    extracted_with: str = "Extracted with"
    tool_name: str = "ebook-x"
    tool_url: str = "https://jsr.io/@ritual/ebook-x/"

    def chapter_heading(self, index: int, title: str = "") -> str:
        heading = f"{self.chapter} {index}"
        return f"{heading} - {title}" if title else heading


@dataclass(frozen=True, slots=True)
class ConvertOptions:
    """Configuration for a single conversion run."""

    include_images: bool = False
    add_chapter_titles: bool = False
    chapter_title_style_txt: ChapterTitleStyleTxt = "separated"
    em_dash_to_hyphen: bool = False
    sanitize_whitespace: bool = False
    newlines_handling: NewlinesHandling = "keep"
    keep_toc: bool = False
    md_toc_for_chapters: bool = False
    split_chapters: bool = False
    chapter_file_name_style: ChapterFileNameStyle = "same"
    chapter_file_name_custom_prefix: str = ""
    index_toc_for_chapters: bool = False
    add_back_link_to_chapters: bool = False
    chapter_indices: frozenset[int] | None = None
    html_style: HtmlStyle = "none"
    html_theme: HtmlTheme | None = None

    def for_format(self, fmt: OutputFormat) -> ConvertOptions:
        """Switch off the features ``fmt`` cannot express."""
        if fmt.supports_images:
            return self
        return replace(
            self,
            include_images=False,
            md_toc_for_chapters=False,
            index_toc_for_chapters=False,
            add_back_link_to_chapters=False,
        )

    def wants_chapter(self, index: int) -> bool:
        return self.chapter_indices is None or index in self.chapter_indices


@dataclass(slots=True)
class Chapter:
    """A reading-order entry while it is being processed."""

    id: str
    index: int
    title: str
    raw_html: str
    source_href: str


@dataclass(frozen=True, slots=True)
class TocEntry:
    index: int
    title: str


@dataclass(slots=True)
class RenderedChapter:
    index: int
    title: str
    body: str


@dataclass(frozen=True, slots=True)
class ChapterInfo:
    index: int
    title: str
    href: str


@dataclass(slots=True)
class ConvertResult:
    """Summary of a finished conversion run."""

    output_path: Path
    output_dir: Path
    total_chapters: int
    chapter_files: list[Path] = field(default_factory=list)
    images: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    summary: str = ""


@dataclass(slots=True)
class BatchItem:
    source: Path
    basename: str
    result: ConvertResult | None = None
    error_code: str | None = None


@dataclass(slots=True)
class BatchConversionResult:
    """Aggregate results for a batch conversion request."""

    items: list[BatchItem]
    summary: BatchSummary


__all__ = [
    "BatchConversionResult",
    "BatchItem",
    "Chapter",
    "ChapterFileNameStyle",
    "ChapterInfo",
    "ChapterTitleStyleTxt",
    "ConvertOptions",
    "ConvertResult",
    "HtmlStyle",
    "HtmlTheme",
    "Labels",
    "NewlinesHandling",
    "OutputFormat",
    "RenderedChapter",
    "TocEntry",
]
