from __future__ import annotations

import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from .adapters import BaseFormatAdapter, RenderContext, get_adapter
from .assembly import AssemblyResult, FileNameCollisionError, OutputAssembler
from .config import AppConfig
from .constraint import DEFAULT_OUTPUT_DIR
from .epub import EpubOpenError, EpubReader, open_epub
from .images import IMG_SUBDIR, ImageCollector
from .logging import BatchSummary, RunLogEntry, RunLogger, StageTimings, append_summary_row
from .models import BatchConversionResult, BatchItem, ChapterInfo, ConvertOptions, ConvertResult, OutputFormat
from .pipeline import ChapterNotFoundError, ChapterPipeline, PipelineOutput, ProgressCallback
from .utils import generate_run_id, iter_epub_files, sanitize_output_basename, unique_output_basename

EpubOpener = Callable[[Path], EpubReader]


class ConversionError(RuntimeError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


@dataclass(slots=True)
class _RunContext:
    run_id: str
    source_path: Path
    basename: str
    output_format: OutputFormat
    book_dir: Path
    logger: RunLogger
    started: float


def resolve_output_dir(custom: str | Path | None = None) -> Path:
    """Resolve and create the output root; blank means ``./output``."""
    text = str(custom).strip() if custom is not None else ""
    directory = Path(text).expanduser() if text else Path.cwd() / DEFAULT_OUTPUT_DIR
    directory.mkdir(parents=True, exist_ok=True)
    return directory.resolve()


def parse_format(value: str | OutputFormat) -> OutputFormat:
    try:
        return OutputFormat(value)
    except ValueError as exc:
        raise ConversionError("UNSUPPORTED_FORMAT", f"Unsupported output format: {value}") from exc


class ConversionService:
    def __init__(self, config: AppConfig, *, opener: EpubOpener = open_epub) -> None:
        self._config = config
        self._opener = opener

    @property
    def config(self) -> AppConfig:
        return self._config

    def convert_epub(
        self,
        source_path: Path,
        output_basename: str,
        output_format: str | OutputFormat,
        options: ConvertOptions,
        output_dir: Path | None = None,
        *,
        progress: ProgressCallback | None = None,
    ) -> ConvertResult:
        fmt = parse_format(output_format)
        options = options.for_format(fmt)
        root = resolve_output_dir(output_dir or self._config.runtime.output_dir)
        basename = sanitize_output_basename(output_basename)
        context = _RunContext(
            run_id=generate_run_id(),
            source_path=source_path,
            basename=basename,
            output_format=fmt,
            book_dir=root / basename,
            logger=RunLogger(root / self._config.runtime.log_file),
            started=time.perf_counter(),
        )
        try:
            return self._convert_internal(context, options, progress)
        except ConversionError as exc:
            self._log_failure(context, exc)
            raise

    def _convert_internal(
        self, context: _RunContext, options: ConvertOptions, progress: ProgressCallback | None
    ) -> ConvertResult:
        open_start = time.perf_counter()
        source = self._open_source(context.source_path)
        open_ms = (time.perf_counter() - open_start) * 1000

        adapter = get_adapter(context.output_format)
        render_ctx = RenderContext(options=options, labels=self._config.labels, basename=context.basename)
        try:
            context.book_dir.mkdir(parents=True, exist_ok=True)
            images = self._image_collector(source, adapter, options, context.book_dir)
        except OSError as exc:
            raise ConversionError("WRITE_FAILED", f"Cannot create {context.book_dir}: {exc}") from exc

        convert_start = time.perf_counter()
        output = self._run_pipeline(ChapterPipeline(source, adapter, render_ctx, images, progress))
        convert_ms = (time.perf_counter() - convert_start) * 1000

        write_start = time.perf_counter()
        native_toc = [point.title for point in source.toc]
        assembled = self._assemble(OutputAssembler(adapter, render_ctx, context.book_dir), output, native_toc)
        write_ms = (time.perf_counter() - write_start) * 1000

        saved_images = dict(images.saved) if images else {}
        elapsed = time.perf_counter() - context.started
        result = ConvertResult(
            output_path=assembled.output_path,
            output_dir=context.book_dir,
            total_chapters=len(output.chapters),
            chapter_files=assembled.chapter_files,
            images=saved_images,
            warnings=output.warnings,
            summary=(
                f"Converted {context.source_path.name} -> {assembled.output_path} "
                f"({len(output.chapters)} chapters) in {elapsed:.2f}s"
            ),
        )
        self._log_success(context, result, StageTimings(open_ms=open_ms, convert_ms=convert_ms, write_ms=write_ms))
        return result

    def _open_source(self, path: Path) -> EpubReader:
        if not path.exists():
            raise ConversionError("NOT_FOUND", f"Source file does not exist: {path}")
        try:
            return self._opener(path)
        except EpubOpenError as exc:
            raise ConversionError("EPUB_OPEN_FAILED", str(exc)) from exc

    def _image_collector(
        self, source: EpubReader, adapter: BaseFormatAdapter, options: ConvertOptions, book_dir: Path
    ) -> ImageCollector | None:
        if not (adapter.supports_images and options.include_images):
            return None
        image_dir = book_dir / IMG_SUBDIR
        image_dir.mkdir(parents=True, exist_ok=True)
        return ImageCollector(source=source, image_dir=image_dir)

    def _run_pipeline(self, pipeline: ChapterPipeline) -> PipelineOutput:
        try:
            return pipeline.run()
        except ChapterNotFoundError as exc:
            raise ConversionError("CHAPTER_NOT_FOUND", str(exc)) from exc

    def _assemble(
        self, assembler: OutputAssembler, output: PipelineOutput, native_toc: list[str]
    ) -> AssemblyResult:
        try:
            return assembler.assemble(output.chapters, output.toc, native_toc)
        except FileNameCollisionError as exc:
            raise ConversionError("NAME_COLLISION", str(exc)) from exc
        except (OSError, UnicodeError) as exc:
            raise ConversionError("WRITE_FAILED", f"Cannot write output: {exc}") from exc

    def _log_success(self, context: _RunContext, result: ConvertResult, timings: StageTimings) -> None:
        context.logger.append(
            RunLogEntry(
                run_id=context.run_id,
                source=str(context.source_path),
                basename=context.basename,
                output_format=context.output_format.value,
                status="success",
                error_code=None,
                warnings=result.warnings,
                timings=timings,
                output_path=str(result.output_path),
                chapters=result.total_chapters,
                images=sorted(result.images.values()),
            )
        )

    def _log_failure(self, context: _RunContext, exc: ConversionError) -> None:
        context.logger.append(
            RunLogEntry(
                run_id=context.run_id,
                source=str(context.source_path),
                basename=context.basename,
                output_format=context.output_format.value,
                status="failure",
                error_code=exc.code,
                warnings=[],
                timings=StageTimings(0, 0, 0),
                output_path=str(context.book_dir),
                chapters=0,
                images=[],
            )
        )

    def list_chapters(self, source_path: Path) -> list[ChapterInfo]:
        source = self._open_source(source_path)
        return [
            ChapterInfo(index=position, title=(entry.title or "").strip(), href=entry.href)
            for position, entry in enumerate(source.flow, start=1)
            if entry.id
        ]

    def batch_convert(
        self,
        inputs: Sequence[Path],
        output_format: str | OutputFormat,
        options: ConvertOptions,
        output_dir: Path | None = None,
        *,
        replace_existing: bool = False,
    ) -> BatchConversionResult:
        root = resolve_output_dir(output_dir or self._config.runtime.output_dir)
        paths = list(iter_epub_files(inputs))
        summary = BatchSummary(total=len(paths))
        items: list[BatchItem] = []
        used: list[str] = []
        for path in paths:
            basename = unique_output_basename(path, used)
            used.append(basename)
            item = BatchItem(source=path, basename=basename)
            items.append(item)
            book_dir = root / basename
            if book_dir.exists():
                if not replace_existing:
                    item.error_code = "OUTPUT_EXISTS"
                    summary.failures += 1
                    continue
                shutil.rmtree(book_dir)
            try:
                item.result = self.convert_epub(path, basename, output_format, options, root)
            except ConversionError as exc:
                item.error_code = exc.code
                summary.failures += 1
                continue
            summary.successes += 1
            summary.chapters += item.result.total_chapters
            summary.add_warnings(item.result.warnings)
        if paths:
            append_summary_row(root / self._config.runtime.summary_csv, summary.as_row(generate_run_id("batch")))
        return BatchConversionResult(items=items, summary=summary)


def convert_epub(
    source_path: Path,
    output_basename: str,
    output_format: str | OutputFormat,
    options: ConvertOptions,
    output_dir: Path,
    *,
    config: AppConfig | None = None,
    progress: ProgressCallback | None = None,
) -> ConvertResult:
    service = ConversionService(config or AppConfig())
    return service.convert_epub(
        Path(source_path), output_basename, output_format, options, Path(output_dir), progress=progress
    )


__all__ = [
    "ConversionError",
    "ConversionService",
    "ConvertResult",
    "ConvertOptions",
    "convert_epub",
    "parse_format",
    "resolve_output_dir",
]
