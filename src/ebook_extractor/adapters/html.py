from __future__ import annotations

import re
from html import escape, unescape
from typing import Mapping, Sequence

from bs4 import BeautifulSoup, Comment

from .base import BaseFormatAdapter, ChapterLink, RenderContext, heading_anchor
from ..images import IMG_SUBDIR
from ..models import ConvertOptions, HtmlTheme, OutputFormat, RenderedChapter, TocEntry
from ..text import replace_em_dash

NESTED_IMAGE_RE = re.compile(r"""(src\s*=\s*["'])\s*""" + re.escape(IMG_SUBDIR) + "/")
DROPPED_TAGS = ["script", "style", "iframe", "video", "form", "button", "input"]

LAYOUT_CSS = """
  body { margin-left: auto; margin-right: auto; padding: 1.5em 1em; box-sizing: border-box; }
  img { display: block; max-width: 100%; height: auto; margin: 1.5em auto; }
  figure { margin: 1.5em 0; text-align: center; }
  figure img { margin: 0 auto; }
  ul, ol { padding-left: 1.5em; }
  p { margin: 0.75em 0; }
  h1, h2, h3, h4, h5, h6 { margin: 1em 0 0.5em; }
"""


def _css_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def build_minimal_document(body: str, title: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(title)}</title>
</head>
<body>
{body}
</body>
</html>
"""


def build_themed_document(body: str, title: str, theme: HtmlTheme) -> str:
    heading_color = _css_string(theme.heading_color or theme.text)
    css = f"""
  :root {{ --bg: {_css_string(theme.background)}; --text: {_css_string(theme.text)}; --heading: {heading_color}; --font-heading: {_css_string(theme.heading_font)}; --font-body: {_css_string(theme.body_font)}; }}
  body {{ background: var(--bg); color: var(--text); font-family: var(--font-body); line-height: 1.6; max-width: 42em; }}
  h1, h2, h3, h4, h5, h6 {{ font-family: var(--font-heading); color: var(--heading); }}
  a {{ color: inherit; }}
  {LAYOUT_CSS}
"""
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(title)}</title>
  <style>{css.strip()}</style>
</head>
<body>
{body}
</body>
</html>
"""


class HTMLAdapter(BaseFormatAdapter):
    """Keeps chapter markup, cleaned of scripts and other interactive elements."""

    output_format = OutputFormat.HTML
    decode_entities = False

    def transform(self, raw_html: str) -> str:
        soup = BeautifulSoup(raw_html, "html.parser")
        for tag in soup(DROPPED_TAGS):
            tag.decompose()
        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()
        body = soup.find("body")
        if body:
            return "".join(str(node) for node in body.contents).strip()
        return str(soup).strip()

    def relink_images(self, content: str, src_to_path: Mapping[str, str]) -> str:
        # sources were captured from raw markup, the parser hands back decoded attributes
        targets = {unescape(src): path for src, path in src_to_path.items()}
        soup = BeautifulSoup(content, "html.parser")
        for img in soup.find_all("img"):
            src = img.get("src")
            if src in targets:
                img["src"] = targets[src]
        return str(soup)

    def strip_images(self, content: str) -> str:
        soup = BeautifulSoup(content, "html.parser")
        for img in soup.find_all("img"):
            img.decompose()
        return str(soup)

    def nest_image_paths(self, content: str) -> str:
        return NESTED_IMAGE_RE.sub(rf"\g<1>../{IMG_SUBDIR}/", content)

    def post_process(self, content: str, options: ConvertOptions) -> str:
        # whitespace options would collapse <pre> blocks, only the dash option applies
        return replace_em_dash(content) if options.em_dash_to_hyphen else content

    def title_block(self, index: int, title: str, ctx: RenderContext) -> str:
        heading, slug = heading_anchor(TocEntry(index=index, title=title), ctx.labels)
        return f'<h3 id="{slug}">{escape(heading)}</h3>'

    def native_toc_block(self, titles: Sequence[str], ctx: RenderContext) -> str | None:
        items = [f"  <li>{escape(title.strip())}</li>" for title in titles if title.strip()]
        if not items:
            return None
        return f"<h2>{escape(ctx.labels.table_of_contents)}</h2>\n<ul>\n" + "\n".join(items) + "\n</ul>"

    def chapter_toc_block(self, toc: Sequence[TocEntry], ctx: RenderContext) -> str | None:
        items = []
        for entry in toc:
            heading, slug = heading_anchor(entry, ctx.labels)
            items.append(f'  <li><a href="#{slug}">{escape(heading)}</a></li>')
        return f"<h2>{escape(ctx.labels.table_of_contents)}</h2>\n<ul>\n" + "\n".join(items) + "\n</ul>"

    def footer(self, ctx: RenderContext) -> str:
        labels = ctx.labels
        return (
            f"\n<hr>\n<p><em>{escape(labels.extracted_with)} "
            f'<a href="{escape(labels.tool_url)}">{escape(labels.tool_name)}</a>.</em></p>'
        )

    def document(self, body: str, title: str, ctx: RenderContext) -> str:
        options = ctx.options
        if options.html_style == "none":
            return build_minimal_document(body, title)
        # "styled" is the built-in look, "custom" the theme from [html_theme]
        theme = options.html_theme if options.html_style == "custom" and options.html_theme else HtmlTheme()
        return build_themed_document(body, title, theme)

    def single_document(
        self,
        chapters: Sequence[RenderedChapter],
        toc: Sequence[TocEntry],
        native_toc: Sequence[str],
        ctx: RenderContext,
    ) -> str:
        body = super().single_document(chapters, toc, native_toc, ctx)
        return self.document(body, ctx.basename, ctx)

    def chapter_document(
        self, chapter: RenderedChapter, back_link: str | None, ctx: RenderContext
    ) -> str:
        content = self.nest_image_paths(chapter.body)
        if back_link:
            content += f'\n<p><a href="{escape(back_link)}">{escape(ctx.labels.back_to_index)}</a></p>'
        title = ctx.labels.chapter_heading(chapter.index, chapter.title)
        return self.document(content + self.footer(ctx), title, ctx)

    def index_document(self, links: Sequence[ChapterLink], ctx: RenderContext) -> str | None:
        items = [
            f'  <li><a href="{escape(link.file_name)}">'
            f"{escape(ctx.labels.chapter_heading(link.entry.index, link.entry.title))}</a></li>"
            for link in links
        ]
        body = (
            f"<h2>{escape(ctx.labels.table_of_contents)}</h2>\n<ul>\n"
            + "\n".join(items)
            + "\n</ul>"
            + self.footer(ctx)
        )
        return self.document(body, ctx.basename, ctx)
