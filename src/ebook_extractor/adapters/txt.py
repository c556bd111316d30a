from __future__ import annotations

from .base import BaseFormatAdapter, RenderContext
from ..models import OutputFormat
from ..text import html_to_plain_text


class TXTAdapter(BaseFormatAdapter):
    output_format = OutputFormat.TXT

    def transform(self, raw_html: str) -> str:
        return html_to_plain_text(raw_html)

    def title_block(self, index: int, title: str, ctx: RenderContext) -> str:
        if ctx.options.chapter_title_style_txt == "inline":
            return ctx.labels.chapter_heading(index, title)
        heading = ctx.labels.chapter_heading(index)
        return f"{heading}\n\n{title}" if title else heading
