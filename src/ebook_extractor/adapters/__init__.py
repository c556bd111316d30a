from __future__ import annotations

from functools import lru_cache
from typing import Dict, Type

from .base import BaseFormatAdapter, ChapterLink, RenderContext
from .html import HTMLAdapter
from .json import JSONAdapter
from .md import MDAdapter
from .txt import TXTAdapter
from ..models import OutputFormat

_ADAPTER_CLASSES: Dict[OutputFormat, Type[BaseFormatAdapter]] = {
    OutputFormat.TXT: TXTAdapter,
    OutputFormat.MD: MDAdapter,
    OutputFormat.JSON: JSONAdapter,
    OutputFormat.HTML: HTMLAdapter,
}


@lru_cache(maxsize=len(_ADAPTER_CLASSES))
def get_adapter(output_format: OutputFormat) -> BaseFormatAdapter:
    adapter_cls = _ADAPTER_CLASSES.get(output_format)
    if not adapter_cls:
        raise KeyError(f"No adapter registered for {output_format}")
    return adapter_cls()


__all__ = [
    "BaseFormatAdapter",
    "ChapterLink",
    "RenderContext",
    "get_adapter",
]
