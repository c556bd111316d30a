from __future__ import annotations

import json
from typing import Any, Sequence

from .base import ChapterLink, RenderContext
from .md import MDAdapter
from ..models import OutputFormat, RenderedChapter, TocEntry


class JSONAdapter(MDAdapter):
    """Markdown chapter bodies serialized into JSON documents."""

    output_format = OutputFormat.JSON

    def _attribution(self, ctx: RenderContext) -> dict[str, str]:
        return {"name": ctx.labels.tool_name, "url": ctx.labels.tool_url}

    def _dump(self, payload: dict[str, Any]) -> str:
        return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"

    def single_document(
        self,
        chapters: Sequence[RenderedChapter],
        toc: Sequence[TocEntry],
        native_toc: Sequence[str],
        ctx: RenderContext,
    ) -> str:
        payload: dict[str, Any] = {"title": ctx.basename}
        if ctx.options.keep_toc:
            titles = [title.strip() for title in native_toc if title.strip()]
            if titles:
                payload["toc"] = titles
        if ctx.options.md_toc_for_chapters and toc:
            payload["chapter_toc"] = [{"index": entry.index, "title": entry.title} for entry in toc]
        payload["chapters"] = [
            {"index": chapter.index, "title": chapter.title, "content": chapter.body}
            for chapter in chapters
        ]
        payload["extracted_with"] = self._attribution(ctx)
        return self._dump(payload)

    def chapter_document(
        self, chapter: RenderedChapter, back_link: str | None, ctx: RenderContext
    ) -> str:
        payload: dict[str, Any] = {
            "index": chapter.index,
            "title": chapter.title,
            "content": self.nest_image_paths(chapter.body),
        }
        if back_link:
            payload["index_file"] = back_link
        payload["extracted_with"] = self._attribution(ctx)
        return self._dump(payload)

    def index_document(self, links: Sequence[ChapterLink], ctx: RenderContext) -> str | None:
        payload = {
            "title": ctx.basename,
            "chapters": [
                {"index": link.entry.index, "title": link.entry.title, "file": link.file_name}
                for link in links
            ],
            "extracted_with": self._attribution(ctx),
        }
        return self._dump(payload)
