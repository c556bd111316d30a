from __future__ import annotations

import shutil
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.prompt import Confirm
from rich.table import Table

from ..config import AppConfig, dump_config, load_config
from ..core import ConversionError, ConversionService, resolve_output_dir
from ..models import ConvertOptions, OutputFormat
from ..utils import sanitize_output_basename

console = Console()

app = typer.Typer(help="Extract EPUB chapters into txt, Markdown, JSON or HTML")


def _load_config(path: Path | None) -> AppConfig:
    return load_config(path)


def parse_chapter_selection(value: str | None) -> frozenset[int] | None:
    """Parse ``"1,3-5"`` into chapter numbers."""
    if value is None or not value.strip():
        return None
    numbers: set[int] = set()
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            if "-" in part:
                start, end = (int(bound) for bound in part.split("-", 1))
                numbers.update(range(min(start, end), max(start, end) + 1))
            else:
                numbers.add(int(part))
        except ValueError as exc:
            raise typer.BadParameter(f"Invalid chapter selection: {part!r}") from exc
    if any(number < 1 for number in numbers):
        raise typer.BadParameter("Chapter numbers start at 1")
    return frozenset(numbers)


def _choice(value: str | None, allowed: tuple[str, ...], name: str) -> str | None:
    if value is not None and value not in allowed:
        raise typer.BadParameter(f"{name} must be one of: {', '.join(allowed)}")
    return value


def _build_options(
    cfg: AppConfig,
    fmt: OutputFormat,
    *,
    images: bool | None,
    titles: bool | None,
    title_style: str | None,
    em_dash: bool | None,
    sanitize: bool | None,
    newlines: str | None,
    keep_toc: bool | None,
    chapter_toc: bool | None,
    split: bool | None,
    file_names: str | None,
    prefix: str | None,
    index: bool | None,
    back_links: bool | None,
    html_style: str | None,
    chapters: str | None,
) -> ConvertOptions:
    return cfg.options_for(
        fmt,
        include_images=images,
        add_chapter_titles=titles,
        chapter_title_style_txt=_choice(title_style, ("separated", "inline"), "--title-style"),
        em_dash_to_hyphen=em_dash,
        sanitize_whitespace=sanitize,
        newlines_handling=_choice(newlines, ("keep", "one", "two"), "--newlines"),
        keep_toc=keep_toc,
        md_toc_for_chapters=chapter_toc,
        split_chapters=split,
        chapter_file_name_style=_choice(file_names, ("same", "chapter", "custom"), "--file-names"),
        chapter_file_name_custom_prefix=prefix,
        index_toc_for_chapters=index,
        add_back_link_to_chapters=back_links,
        html_style=_choice(html_style, ("none", "styled", "custom"), "--html-style"),
        chapter_indices=parse_chapter_selection(chapters),
    )


@app.command()
def convert(
    file: Path,
    fmt: OutputFormat | None = typer.Option(None, "--format", "-f", help="Output format"),
    name: str | None = typer.Option(None, "--name", "-n", help="Output basename (defaults to the file name)"),
    output_dir: Path | None = typer.Option(None, "--output-dir", "-o", help="Output root directory"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
    force: bool = typer.Option(False, "--force", help="Replace an existing book directory without asking"),
    images: bool | None = typer.Option(None, "--images/--no-images", help="Extract and link images"),
    titles: bool | None = typer.Option(None, "--titles/--no-titles", help="Prepend chapter titles"),
    title_style: str | None = typer.Option(None, "--title-style", help="separated | inline (txt)"),
    em_dash: bool | None = typer.Option(None, "--em-dash-to-hyphen/--keep-em-dash"),
    sanitize: bool | None = typer.Option(None, "--sanitize-whitespace/--no-sanitize-whitespace"),
    newlines: str | None = typer.Option(None, "--newlines", help="keep | one | two"),
    keep_toc: bool | None = typer.Option(None, "--toc/--no-toc", help="Include the book's table of contents"),
    chapter_toc: bool | None = typer.Option(None, "--chapter-toc/--no-chapter-toc", help="Linked chapter list"),
    split: bool | None = typer.Option(None, "--split/--single", help="One file per chapter"),
    file_names: str | None = typer.Option(None, "--file-names", help="same | chapter | custom"),
    prefix: str | None = typer.Option(None, "--prefix", help="Chapter file prefix for --file-names custom"),
    index: bool | None = typer.Option(None, "--index/--no-index", help="Index file for split output"),
    back_links: bool | None = typer.Option(None, "--back-links/--no-back-links"),
    html_style: str | None = typer.Option(None, "--html-style", help="none | styled | custom"),
    chapters: str | None = typer.Option(None, "--chapters", help="Chapter selection, e.g. 1,3-5"),
) -> None:
    cfg = _load_config(config)
    output_format = fmt or cfg.runtime.default_format
    options = _build_options(
        cfg,
        output_format,
        images=images,
        titles=titles,
        title_style=title_style,
        em_dash=em_dash,
        sanitize=sanitize,
        newlines=newlines,
        keep_toc=keep_toc,
        chapter_toc=chapter_toc,
        split=split,
        file_names=file_names,
        prefix=prefix,
        index=index,
        back_links=back_links,
        html_style=html_style,
        chapters=chapters,
    )
    basename = sanitize_output_basename(name or file.stem)
    root = resolve_output_dir(output_dir or cfg.runtime.output_dir)
    book_dir = root / basename
    if book_dir.exists():
        if not force and not Confirm.ask(
            f"Directory already exists: {book_dir}. Remove and recreate?", default=False, console=console
        ):
            console.print("Skipped.")
            raise typer.Exit()
        shutil.rmtree(book_dir)

    service = ConversionService(cfg)
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Converting chapters", total=None)

        def on_progress(done: int, total: int) -> None:
            progress.update(task, completed=done, total=total)

        try:
            result = service.convert_epub(file, basename, output_format, options, root, progress=on_progress)
        except ConversionError as exc:
            console.print(f"[red]Conversion failed[/red]: {exc.code} - {exc}")
            raise typer.Exit(1) from exc

    console.print(f"[green]Success[/green]: {result.summary}")
    console.print(f"Output directory: {result.output_dir}")
    console.print(f"Chapters: {result.total_chapters}")
    for warning in result.warnings:
        console.print(f"[yellow]Warning[/yellow]: {warning}")


@app.command()
def batch(
    path: list[Path],
    fmt: OutputFormat | None = typer.Option(None, "--format", "-f", help="Output format"),
    output_dir: Path | None = typer.Option(None, "--output-dir", "-o", help="Output root directory"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
    replace: bool = typer.Option(False, "--replace", help="Replace existing book directories"),
) -> None:
    cfg = _load_config(config)
    output_format = fmt or cfg.runtime.default_format
    service = ConversionService(cfg)
    batch_result = service.batch_convert(
        path, output_format, cfg.options_for(output_format), output_dir, replace_existing=replace
    )
    table = Table(title="Batch summary")
    table.add_column("Source")
    table.add_column("Output")
    table.add_column("Chapters")
    table.add_column("Status")
    for item in batch_result.items:
        if item.result is not None:
            table.add_row(item.source.name, str(item.result.output_path), str(item.result.total_chapters), "ok")
        else:
            table.add_row(item.source.name, item.basename, "-", item.error_code or "failed")
    console.print(table)
    summary = batch_result.summary
    console.print(
        f"Processed {summary.total} books: {summary.successes} succeeded, {summary.failures} failed."
    )
    if summary.failures:
        raise typer.Exit(1)


@app.command("chapters")
def list_chapters(
    file: Path,
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    service = ConversionService(cfg)
    try:
        chapters = service.list_chapters(file)
    except ConversionError as exc:
        console.print(f"[red]Cannot read book[/red]: {exc.code} - {exc}")
        raise typer.Exit(1) from exc
    table = Table(title=file.name)
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("File")
    for chapter in chapters:
        table.add_row(str(chapter.index), chapter.title or "-", chapter.href)
    console.print(table)


@app.command("show-config")
def show_config(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    typer.echo(dump_config(_load_config(config)))


if __name__ == "__main__":
    app()
