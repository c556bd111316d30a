from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from .constraint import DEFAULT_CONFIG_PATH, ENV_PREFIX


@dataclass(frozen=True, slots=True)
class Settings:
    """Application runtime settings sourced from environment variables."""

    config_path: Path = DEFAULT_CONFIG_PATH
    output_dir: Path | None = None


def _read_settings() -> Settings:
    config_env = os.getenv(f"{ENV_PREFIX}CONFIG_PATH")
    output_env = os.getenv(f"{ENV_PREFIX}OUTPUT_DIR")
    config_path = Path(config_env) if config_env else DEFAULT_CONFIG_PATH
    output_dir = Path(output_env) if output_env and output_env.strip() else None
    return Settings(config_path=config_path, output_dir=output_dir)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return _read_settings()


__all__ = ["Settings", "get_settings"]
