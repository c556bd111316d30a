import pytest

from ebook_extractor.assembly import FileNameCollisionError, chapter_file_name, chapter_file_names
from ebook_extractor.models import ConvertOptions, RenderedChapter


def test_chapter_file_name_styles() -> None:
    assert chapter_file_name("book", 3, ConvertOptions(), ".txt") == "book-chapter-3.txt"
    assert chapter_file_name("book", 3, ConvertOptions(chapter_file_name_style="chapter"), ".md") == "chapter-3.md"
    custom = ConvertOptions(chapter_file_name_style="custom", chapter_file_name_custom_prefix="part_")
    assert chapter_file_name("book", 1, custom, ".md") == "part_1.md"


def test_chapter_file_names_reject_duplicates() -> None:
    chapters = [RenderedChapter(index=1, title="A", body="a"), RenderedChapter(index=1, title="B", body="b")]
    with pytest.raises(FileNameCollisionError, match="book-chapter-1.md"):
        chapter_file_names("book", chapters, ConvertOptions(), ".md")
