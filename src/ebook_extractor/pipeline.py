from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterator

from .adapters import BaseFormatAdapter, RenderContext
from .epub import EpubReader
from .images import ImageCollector
from .models import Chapter, RenderedChapter, TocEntry
from .text import decode_html_entities

ProgressCallback = Callable[[int, int], None]


class ChapterNotFoundError(LookupError):
    def __init__(self, chapter_id: str) -> None:
        super().__init__(f"Chapter not found in EPUB: {chapter_id}")
        self.chapter_id = chapter_id


@dataclass(slots=True)
class PipelineOutput:
    chapters: list[RenderedChapter] = field(default_factory=list)
    toc: list[TocEntry] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class ChapterPipeline:
    """Walks the reading order and renders every wanted chapter in the target format."""

    def __init__(
        self,
        source: EpubReader,
        adapter: BaseFormatAdapter,
        ctx: RenderContext,
        images: ImageCollector | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self._source = source
        self._adapter = adapter
        self._ctx = ctx
        self._images = images
        self._progress = progress or (lambda _done, _total: None)

    def iter_chapters(self, output: PipelineOutput) -> Iterator[Chapter]:
        options = self._ctx.options
        for position, entry in enumerate(self._source.flow, start=1):
            if not entry.id:
                output.warnings.append(f"CHAPTER_SKIPPED_NO_ID: {position}")
                continue
            if not options.wants_chapter(position):
                continue
            try:
                raw_html = self._source.get_chapter_raw(entry.id)
            except KeyError as exc:
                raise ChapterNotFoundError(entry.id) from exc
            yield Chapter(
                id=entry.id,
                index=position,
                title=(entry.title or "").strip(),
                raw_html=raw_html,
                source_href=entry.href,
            )

    def render(self, chapter: Chapter) -> RenderedChapter:
        adapter, ctx = self._adapter, self._ctx
        options = ctx.options
        use_images = adapter.supports_images and options.include_images and self._images is not None

        src_to_path: dict[str, str] = {}
        if use_images:
            src_to_path = self._images.collect(chapter.raw_html, chapter.source_href)

        content = adapter.transform(chapter.raw_html)
        if use_images:
            if src_to_path:
                content = adapter.relink_images(content, src_to_path)
        elif adapter.supports_images:
            content = adapter.strip_images(content)

        if adapter.decode_entities:
            content = decode_html_entities(content)
        content = adapter.post_process(content, options)

        if options.add_chapter_titles:
            content = adapter.with_title(content, chapter.index, chapter.title, ctx)
        return RenderedChapter(index=chapter.index, title=chapter.title, body=content)

    def run(self) -> PipelineOutput:
        output = PipelineOutput()
        total = len(self._source.flow)
        for chapter in self.iter_chapters(output):
            output.chapters.append(self.render(chapter))
            output.toc.append(TocEntry(index=chapter.index, title=chapter.title))
            self._progress(chapter.index, total)
        if self._images is not None:
            output.warnings.extend(self._images.warnings)
        return output


__all__ = ["ChapterNotFoundError", "ChapterPipeline", "PipelineOutput", "ProgressCallback"]
