from __future__ import annotations

import json
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from ebook_extractor.cli import app, parse_chapter_selection

runner = CliRunner()


def test_parse_chapter_selection() -> None:
    assert parse_chapter_selection("1, 3-5") == frozenset({1, 3, 4, 5})
    assert parse_chapter_selection("") is None
    with pytest.raises(typer.BadParameter):
        parse_chapter_selection("one")
    with pytest.raises(typer.BadParameter):
        parse_chapter_selection("0")


def test_convert_command(sample_epub: Path, tmp_path: Path) -> None:
    out = tmp_path / "out"
    result = runner.invoke(
        app,
        ["convert", str(sample_epub), "--format", "txt", "--output-dir", str(out), "--config", str(tmp_path / "none.toml")],
    )
    assert result.exit_code == 0, result.output
    text = (out / "sample" / "sample.txt").read_text(encoding="utf-8")
    assert "Chapter 1\n\nIntro" in text
    assert "Hello world" in text
    assert "Second chapter text" in text


def test_convert_command_extracts_images(sample_epub: Path, tmp_path: Path) -> None:
    out = tmp_path / "out"
    result = runner.invoke(
        app,
        [
            "convert",
            str(sample_epub),
            "--format",
            "html",
            "--name",
            "book",
            "--images",
            "--output-dir",
            str(out),
            "--config",
            str(tmp_path / "none.toml"),
        ],
    )
    assert result.exit_code == 0, result.output
    assert (out / "book" / "__IMG__" / "pic.png").exists()
    assert 'src="__IMG__/pic.png"' in (out / "book" / "book.html").read_text(encoding="utf-8")


def test_convert_command_declines_overwrite(sample_epub: Path, tmp_path: Path) -> None:
    out = tmp_path / "out"
    (out / "sample").mkdir(parents=True)
    marker = out / "sample" / "keep.txt"
    marker.write_text("x", encoding="utf-8")
    result = runner.invoke(
        app,
        ["convert", str(sample_epub), "--output-dir", str(out), "--config", str(tmp_path / "none.toml")],
        input="n\n",
    )
    assert result.exit_code == 0
    assert marker.exists()


def test_convert_command_force_replaces(sample_epub: Path, tmp_path: Path) -> None:
    out = tmp_path / "out"
    (out / "sample").mkdir(parents=True)
    marker = out / "sample" / "keep.txt"
    marker.write_text("x", encoding="utf-8")
    result = runner.invoke(
        app,
        ["convert", str(sample_epub), "--output-dir", str(out), "--force", "--config", str(tmp_path / "none.toml")],
    )
    assert result.exit_code == 0, result.output
    assert not marker.exists()
    assert (out / "sample" / "sample.txt").exists()


def test_convert_command_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["convert", str(tmp_path / "missing.epub"), "--output-dir", str(tmp_path / "out"), "--config", str(tmp_path / "none.toml")],
    )
    assert result.exit_code == 1
    assert "NOT_FOUND" in result.output


def test_chapters_command(sample_epub: Path, tmp_path: Path) -> None:
    result = runner.invoke(app, ["chapters", str(sample_epub), "--config", str(tmp_path / "none.toml")])
    assert result.exit_code == 0, result.output
    assert "Intro" in result.output
    assert "Body" in result.output


def test_batch_command(sample_epub: Path, tmp_path: Path) -> None:
    out = tmp_path / "out"
    result = runner.invoke(
        app,
        ["batch", str(sample_epub), "--format", "md", "--output-dir", str(out), "--config", str(tmp_path / "none.toml")],
    )
    assert result.exit_code == 0, result.output
    assert (out / "sample" / "sample.md").exists()
    assert (out / "summary.csv").exists()


def test_show_config_command(tmp_path: Path) -> None:
    result = runner.invoke(app, ["show-config", "--config", str(tmp_path / "none.toml")])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["labels"]["chapter"] == "Chapter"
