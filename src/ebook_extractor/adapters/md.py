from __future__ import annotations

import re
from typing import Mapping, Sequence

from .base import FOOTER_SEPARATOR, BaseFormatAdapter, ChapterLink, RenderContext, heading_anchor
from ..images import IMG_SUBDIR, rewrite_markdown_image_urls
from ..models import OutputFormat, RenderedChapter, TocEntry
from ..text import html_to_markdown, remove_image_links_from_markdown

NESTED_IMAGE_RE = re.compile(r"\]\(\s*" + re.escape(IMG_SUBDIR) + "/")


class MDAdapter(BaseFormatAdapter):
    output_format = OutputFormat.MD

    def transform(self, raw_html: str) -> str:
        return html_to_markdown(raw_html)

    def relink_images(self, content: str, src_to_path: Mapping[str, str]) -> str:
        return rewrite_markdown_image_urls(content, src_to_path)

    def strip_images(self, content: str) -> str:
        return remove_image_links_from_markdown(content)

    def nest_image_paths(self, content: str) -> str:
        return NESTED_IMAGE_RE.sub(f"](../{IMG_SUBDIR}/", content)

    def native_toc_block(self, titles: Sequence[str], ctx: RenderContext) -> str | None:
        lines = [f"- {title.strip()}" for title in titles if title.strip()]
        if not lines:
            return None
        return f"## {ctx.labels.table_of_contents}\n\n" + "\n".join(lines)

    def chapter_toc_block(self, toc: Sequence[TocEntry], ctx: RenderContext) -> str | None:
        lines = []
        for entry in toc:
            heading, slug = heading_anchor(entry, ctx.labels)
            lines.append(f"- [{heading}](#{slug})")
        return f"## {ctx.labels.table_of_contents}\n\n" + "\n".join(lines)

    def footer(self, ctx: RenderContext) -> str:
        labels = ctx.labels
        return f"{FOOTER_SEPARATOR}*{labels.extracted_with} [{labels.tool_name}]({labels.tool_url}).*"

    def chapter_document(
        self, chapter: RenderedChapter, back_link: str | None, ctx: RenderContext
    ) -> str:
        content = self.nest_image_paths(chapter.body)
        if back_link:
            content += f"\n\n[{ctx.labels.back_to_index}]({back_link})\n"
        return content + self.footer(ctx)

    def index_document(self, links: Sequence[ChapterLink], ctx: RenderContext) -> str | None:
        lines = [
            f"- [{ctx.labels.chapter_heading(link.entry.index, link.entry.title)}]({link.file_name})"
            for link in links
        ]
        return f"## {ctx.labels.table_of_contents}\n\n" + "\n".join(lines) + "\n" + self.footer(ctx)
