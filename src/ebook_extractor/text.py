from __future__ import annotations

import io
import re
import sys
from functools import lru_cache
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ConvertOptions, NewlinesHandling


SURROGATE_FIRST, SURROGATE_LAST = 0xD800, 0xDFFF
ENTITY_DECIMAL_RE = re.compile(r"&#(\d+);")
ENTITY_HEX_RE = re.compile(r"&#x([0-9a-fA-F]+);")
ENTITY_NAMED_RE = re.compile(r"&([a-z#0-9]+);", re.IGNORECASE)
NAMED_ENTITIES: dict[str, str] = {
    "nbsp": "\u00a0",
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "apos": "'",
    "#39": "'",
    "mdash": "—",
    "ndash": "–",
    "hellip": "…",
    "copy": "©",
    "reg": "®",
    "trade": "™",
}

STYLE_BLOCK_RE = re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
SCRIPT_BLOCK_RE = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
BLOCK_CLOSE_RE = re.compile(r"</(h[1-6]|p|div|li|tr)\s*>", re.IGNORECASE)
BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]+>")
HORIZONTAL_WS_RE = re.compile(r"[ \t]+")
EXTRA_NEWLINES_RE = re.compile(r"\n{3,}")
LINE_EDGE_WS_RE = re.compile(r"^[ \t]+|[ \t]+$", re.MULTILINE)
LINE_BREAK_RE = re.compile(r"\r\n?|\n")
MARKDOWN_IMAGE_RE = re.compile(r"!\[[^\]]*\]\([^)]+\)")


def _char_or_original(match: re.Match[str], base: int) -> str:
    try:
        code_point = int(match.group(1), base)
    except ValueError:
        return match.group(0)
    # surrogates cannot be encoded on their own
    if code_point > sys.maxunicode or SURROGATE_FIRST <= code_point <= SURROGATE_LAST:
        return match.group(0)
    return chr(code_point)


def _named_entity(match: re.Match[str]) -> str:
    return NAMED_ENTITIES.get(match.group(1).lower(), match.group(0))


def decode_html_entities(text: str) -> str:
    text = ENTITY_DECIMAL_RE.sub(lambda m: _char_or_original(m, 10), text)
    text = ENTITY_HEX_RE.sub(lambda m: _char_or_original(m, 16), text)
    text = ENTITY_NAMED_RE.sub(_named_entity, text)
    return text.replace("\u00a0", " ")


def html_to_plain_text(html: str) -> str:
    """Strip markup while keeping block elements as paragraphs."""
    text = STYLE_BLOCK_RE.sub("", html)
    text = SCRIPT_BLOCK_RE.sub("", text)
    text = BLOCK_CLOSE_RE.sub("\n\n", text)
    text = BR_RE.sub("\n", text)
    text = TAG_RE.sub(" ", text)
    text = HORIZONTAL_WS_RE.sub(" ", text)
    text = EXTRA_NEWLINES_RE.sub("\n\n", text)
    text = LINE_EDGE_WS_RE.sub("", text)
    return decode_html_entities(text.strip())


@lru_cache(maxsize=1)
def _markitdown():  # type: ignore[no-untyped-def]
    try:
        from markitdown import MarkItDown
    except ModuleNotFoundError as exc:  # pragma: no cover - import guard
        raise RuntimeError("markitdown dependency is required for Markdown output") from exc
    return MarkItDown()


def html_to_markdown(html: str) -> str:
    if not html.strip():
        return ""
    converter = _markitdown()
    from markitdown import StreamInfo

    result = converter.convert_stream(
        io.BytesIO(html.encode("utf-8")),
        stream_info=StreamInfo(mimetype="text/html", extension=".html", charset="utf-8"),
    )
    return str(result.text_content)


def replace_em_dash(text: str) -> str:
    return text.replace("\u2014", "-")


def sanitize_whitespace(text: str) -> str:
    text = text.replace("\u00a0", " ")
    text = LINE_BREAK_RE.sub("\n", text)
    text = HORIZONTAL_WS_RE.sub(" ", text)
    text = EXTRA_NEWLINES_RE.sub("\n\n", text)
    text = LINE_EDGE_WS_RE.sub("", text)
    return text.strip()


def handle_newlines(text: str, handling: NewlinesHandling) -> str:
    if handling == "keep":
        return text
    if handling == "one":
        return EXTRA_NEWLINES_RE.sub("\n", text)
    return EXTRA_NEWLINES_RE.sub("\n\n", text)


def remove_image_links_from_markdown(markdown: str) -> str:
    return EXTRA_NEWLINES_RE.sub("\n\n", MARKDOWN_IMAGE_RE.sub("", markdown))


def apply_post_options(text: str, options: ConvertOptions) -> str:
    # sanitize_whitespace replaces newline handling, the two never compose
    if options.em_dash_to_hyphen:
        text = replace_em_dash(text)
    if options.sanitize_whitespace:
        return sanitize_whitespace(text)
    return handle_newlines(text, options.newlines_handling)


__all__ = [
    "apply_post_options",
    "decode_html_entities",
    "handle_newlines",
    "html_to_markdown",
    "html_to_plain_text",
    "remove_image_links_from_markdown",
    "replace_em_dash",
    "sanitize_whitespace",
]
