from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

from ..models import ConvertOptions, Labels, OutputFormat, RenderedChapter, TocEntry
from ..text import apply_post_options
from ..utils import anchor_slug

FOOTER_SEPARATOR = "\n\n---\n\n"


@dataclass(slots=True)
class RenderContext:
    options: ConvertOptions
    labels: Labels = field(default_factory=Labels)
    basename: str = "output"


@dataclass(slots=True)
class ChapterLink:
    entry: TocEntry
    file_name: str


class BaseFormatAdapter:
    """Shared behaviour of the text-like formats.

    Subclasses override the hooks that differ: how chapter HTML becomes text, how
    images are relinked or dropped, and how the final documents are laid out.
    """

    output_format: OutputFormat
    decode_entities: bool = True

    @property
    def supports_images(self) -> bool:
        return self.output_format.supports_images

    @property
    def supports_index(self) -> bool:
        return self.output_format.supports_images

    def transform(self, raw_html: str) -> str:
        raise NotImplementedError

    def relink_images(self, content: str, src_to_path: Mapping[str, str]) -> str:
        return content

    def strip_images(self, content: str) -> str:
        return content

    def nest_image_paths(self, content: str) -> str:
        return content

    def post_process(self, content: str, options: ConvertOptions) -> str:
        return apply_post_options(content, options)

    def title_block(self, index: int, title: str, ctx: RenderContext) -> str:
        return f"### {ctx.labels.chapter_heading(index, title)}"

    def with_title(self, content: str, index: int, title: str, ctx: RenderContext) -> str:
        return self.title_block(index, title, ctx) + "\n\n" + content

    def native_toc_block(self, titles: Sequence[str], ctx: RenderContext) -> str | None:
        lines = [title.strip() for title in titles if title.strip()]
        if not lines:
            return None
        return f"{ctx.labels.table_of_contents}\n\n" + "\n".join(lines)

    def chapter_toc_block(self, toc: Sequence[TocEntry], ctx: RenderContext) -> str | None:
        return None

    def footer(self, ctx: RenderContext) -> str:
        labels = ctx.labels
        return f"{FOOTER_SEPARATOR}{labels.extracted_with} {labels.tool_name}. {labels.tool_url}"

    def single_document(
        self,
        chapters: Sequence[RenderedChapter],
        toc: Sequence[TocEntry],
        native_toc: Sequence[str],
        ctx: RenderContext,
    ) -> str:
        parts: list[str] = []
        if ctx.options.keep_toc:
            native_block = self.native_toc_block(native_toc, ctx)
            if native_block:
                parts.append(native_block)
        parts.extend(chapter.body for chapter in chapters)
        body = "\n\n".join(parts)
        if ctx.options.md_toc_for_chapters and toc:
            toc_block = self.chapter_toc_block(toc, ctx)
            if toc_block:
                body = toc_block + "\n\n" + body
        return body + self.footer(ctx)

    def chapter_document(
        self, chapter: RenderedChapter, back_link: str | None, ctx: RenderContext
    ) -> str:
        return self.nest_image_paths(chapter.body) + self.footer(ctx)

    def index_document(self, links: Sequence[ChapterLink], ctx: RenderContext) -> str | None:
        return None


def heading_anchor(entry: TocEntry, labels: Labels) -> tuple[str, str]:
    heading = labels.chapter_heading(entry.index, entry.title)
    return heading, anchor_slug(heading)


__all__ = [
    "BaseFormatAdapter",
    "ChapterLink",
    "FOOTER_SEPARATOR",
    "RenderContext",
    "heading_anchor",
]
