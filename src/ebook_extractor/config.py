from __future__ import annotations

import json
import tomllib
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Iterable, Mapping

from .constraint import DEFAULT_OUTPUT_DIR
from .models import ConvertOptions, HtmlTheme, Labels, OutputFormat
from .settings import get_settings

TITLE_STYLES = ("separated", "inline")
NEWLINE_MODES = ("keep", "one", "two")
FILE_NAME_STYLES = ("same", "chapter", "custom")
HTML_STYLES = ("none", "styled", "custom")


@dataclass(slots=True)
class RuntimeConfig:
    output_dir: Path = DEFAULT_OUTPUT_DIR
    log_file: str = "log.jsonl"
    summary_csv: str = "summary.csv"
    default_format: OutputFormat = OutputFormat.TXT


@dataclass(slots=True)
class DefaultsConfig:
    """Per-run option defaults, as a fresh install ships them."""

    add_chapter_titles: bool = True
    chapter_title_style_txt: str = "separated"
    em_dash_to_hyphen: bool = True
    sanitize_whitespace: bool = True
    newlines_handling: str = "two"
    keep_toc: bool = False
    split_chapters: bool = False
    chapter_file_name_style: str = "same"
    chapter_file_name_custom_prefix: str = ""
    md_toc_for_chapters: bool = False
    include_images: bool = False
    index_toc_for_chapters: bool = False
    add_back_link_to_chapters: bool = False
    html_style: str = "none"


@dataclass(slots=True)
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    labels: Labels = field(default_factory=Labels)
    html_theme: HtmlTheme = field(default_factory=HtmlTheme)

    def options_for(self, fmt: OutputFormat, **overrides: object) -> ConvertOptions:
        """Build run options from the configured defaults, downgraded for ``fmt``."""
        values: dict[str, object] = asdict(self.defaults)
        values.update({key: value for key, value in overrides.items() if value is not None})
        values["html_theme"] = self.html_theme
        return ConvertOptions(**values).for_format(fmt)  # type: ignore[arg-type]


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _choice(value: object, allowed: Iterable[str], key: str) -> str:
    text = str(value)
    if text not in allowed:
        raise ValueError(f"Unsupported value for {key}: {value!r}")
    return text


def _build_runtime(data: Mapping[str, object] | None, output_override: Path | None) -> RuntimeConfig:
    data = data or {}
    output_dir = output_override or Path(str(data.get("output_dir", DEFAULT_OUTPUT_DIR)))
    return RuntimeConfig(
        output_dir=output_dir,
        log_file=str(data.get("log_file", "log.jsonl")),
        summary_csv=str(data.get("summary_csv", "summary.csv")),
        default_format=OutputFormat(str(data.get("default_format", OutputFormat.TXT.value))),
    )


def _build_defaults(data: Mapping[str, object] | None) -> DefaultsConfig:
    if not data:
        return DefaultsConfig()
    base = DefaultsConfig()
    return DefaultsConfig(
        add_chapter_titles=bool(data.get("add_chapter_titles", base.add_chapter_titles)),
        chapter_title_style_txt=_choice(
            data.get("chapter_title_style_txt", base.chapter_title_style_txt), TITLE_STYLES, "chapter_title_style_txt"
        ),
        em_dash_to_hyphen=bool(data.get("em_dash_to_hyphen", base.em_dash_to_hyphen)),
        sanitize_whitespace=bool(data.get("sanitize_whitespace", base.sanitize_whitespace)),
        newlines_handling=_choice(data.get("newlines_handling", base.newlines_handling), NEWLINE_MODES, "newlines_handling"),
        keep_toc=bool(data.get("keep_toc", base.keep_toc)),
        split_chapters=bool(data.get("split_chapters", base.split_chapters)),
        chapter_file_name_style=_choice(
            data.get("chapter_file_name_style", base.chapter_file_name_style), FILE_NAME_STYLES, "chapter_file_name_style"
        ),
        chapter_file_name_custom_prefix=str(
            data.get("chapter_file_name_custom_prefix", base.chapter_file_name_custom_prefix)
        ),
        md_toc_for_chapters=bool(data.get("md_toc_for_chapters", base.md_toc_for_chapters)),
        include_images=bool(data.get("include_images", base.include_images)),
        index_toc_for_chapters=bool(data.get("index_toc_for_chapters", base.index_toc_for_chapters)),
        add_back_link_to_chapters=bool(data.get("add_back_link_to_chapters", base.add_back_link_to_chapters)),
        html_style=_choice(data.get("html_style", base.html_style), HTML_STYLES, "html_style"),
    )


def _build_strings(cls, data: Mapping[str, object] | None):  # type: ignore[no-untyped-def]
    if not data:
        return cls()
    known = {item.name for item in fields(cls)}
    return cls(**{key: str(value) for key, value in data.items() if key in known})


def load_config(path: Path | None = None) -> AppConfig:
    settings = get_settings()
    path = path or settings.config_path
    raw = _read_toml(path)
    sections = {
        name: raw.get(name) if isinstance(raw.get(name), Mapping) else None
        for name in ("runtime", "defaults", "labels", "html_theme")
    }
    return AppConfig(
        runtime=_build_runtime(sections["runtime"], settings.output_dir),  # type: ignore[arg-type]
        defaults=_build_defaults(sections["defaults"]),  # type: ignore[arg-type]
        labels=_build_strings(Labels, sections["labels"]),  # type: ignore[arg-type]
        html_theme=_build_strings(HtmlTheme, sections["html_theme"]),  # type: ignore[arg-type]
    )


def dump_config(config: AppConfig) -> str:
    payload = {
        "runtime": {
            "output_dir": str(config.runtime.output_dir),
            "log_file": config.runtime.log_file,
            "summary_csv": config.runtime.summary_csv,
            "default_format": config.runtime.default_format.value,
        },
        "defaults": asdict(config.defaults),
        "labels": asdict(config.labels),
        "html_theme": asdict(config.html_theme),
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)
