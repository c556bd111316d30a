from __future__ import annotations

from pathlib import Path

DEFAULT_CONFIG_PATH = Path("config.toml")
DEFAULT_OUTPUT_DIR = Path("output")
ENV_PREFIX = "EBOOKX_"

__all__ = ["DEFAULT_CONFIG_PATH", "DEFAULT_OUTPUT_DIR", "ENV_PREFIX"]
