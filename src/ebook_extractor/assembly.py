from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .adapters import BaseFormatAdapter, ChapterLink, RenderContext
from .models import ConvertOptions, RenderedChapter, TocEntry
from .utils import atomic_write, sanitize_chapter_prefix

CHAPTERS_DIR = "chapters"


class FileNameCollisionError(ValueError):
    """Two chapters would be written to the same file."""


@dataclass(slots=True)
class AssemblyResult:
    output_path: Path
    chapter_files: list[Path] = field(default_factory=list)


def chapter_file_name(basename: str, number: int, options: ConvertOptions, extension: str) -> str:
    style = options.chapter_file_name_style
    if style == "same":
        return f"{basename}-chapter-{number}{extension}"
    if style == "chapter":
        return f"chapter-{number}{extension}"
    if style == "custom":
        return f"{sanitize_chapter_prefix(options.chapter_file_name_custom_prefix)}{number}{extension}"
    raise ValueError(f"Unsupported chapter file name style: {style!r}")


def chapter_file_names(
    basename: str, chapters: Sequence[RenderedChapter], options: ConvertOptions, extension: str
) -> list[str]:
    names = [chapter_file_name(basename, chapter.index, options, extension) for chapter in chapters]
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise FileNameCollisionError(f"Chapter file name used twice: {name}")
        seen.add(name)
    return names


class OutputAssembler:
    """Writes rendered chapters into the book directory."""

    def __init__(self, adapter: BaseFormatAdapter, ctx: RenderContext, book_dir: Path) -> None:
        self._adapter = adapter
        self._ctx = ctx
        self._book_dir = book_dir

    @property
    def main_path(self) -> Path:
        return self._book_dir / f"{self._ctx.basename}{self._adapter.output_format.extension}"

    def assemble(
        self,
        chapters: Sequence[RenderedChapter],
        toc: Sequence[TocEntry],
        native_toc: Sequence[str],
    ) -> AssemblyResult:
        if self._ctx.options.split_chapters:
            return self.write_split(chapters, toc)
        return self.write_single(chapters, toc, native_toc)

    def write_single(
        self,
        chapters: Sequence[RenderedChapter],
        toc: Sequence[TocEntry],
        native_toc: Sequence[str],
    ) -> AssemblyResult:
        document = self._adapter.single_document(chapters, toc, native_toc, self._ctx)
        atomic_write(self.main_path, document)
        return AssemblyResult(output_path=self.main_path)

    def write_split(self, chapters: Sequence[RenderedChapter], toc: Sequence[TocEntry]) -> AssemblyResult:
        adapter, ctx = self._adapter, self._ctx
        options = ctx.options
        extension = adapter.output_format.extension
        chapters_dir = self._book_dir / CHAPTERS_DIR
        chapters_dir.mkdir(parents=True, exist_ok=True)

        with_index = options.index_toc_for_chapters and adapter.supports_index
        back_link = f"../{self.main_path.name}" if with_index and options.add_back_link_to_chapters else None

        names = chapter_file_names(ctx.basename, chapters, options, extension)
        written: list[Path] = []
        for chapter, name in zip(chapters, names):
            path = chapters_dir / name
            atomic_write(path, adapter.chapter_document(chapter, back_link, ctx))
            written.append(path)

        if with_index:
            # toc holds one entry per rendered chapter, in the same order
            links = [
                ChapterLink(entry=entry, file_name=f"{CHAPTERS_DIR}/{name}")
                for entry, name in zip(toc, names)
            ]
            index_document = adapter.index_document(links, ctx)
            if index_document is not None:
                atomic_write(self.main_path, index_document)
                return AssemblyResult(output_path=self.main_path, chapter_files=written)
        return AssemblyResult(output_path=chapters_dir, chapter_files=written)


__all__ = [
    "AssemblyResult",
    "CHAPTERS_DIR",
    "FileNameCollisionError",
    "OutputAssembler",
    "chapter_file_name",
    "chapter_file_names",
]
