"""Extract EPUB chapters into plain text, Markdown, JSON or HTML."""

from .config import AppConfig, load_config
from .core import ConversionError, ConversionService, convert_epub, resolve_output_dir
from .models import ConvertOptions, ConvertResult, OutputFormat

__all__ = [
    "AppConfig",
    "load_config",
    "ConversionError",
    "ConversionService",
    "ConvertOptions",
    "ConvertResult",
    "OutputFormat",
    "convert_epub",
    "resolve_output_dir",
]
