from __future__ import annotations

from pathlib import Path

from docstruct.extraction.markdown_extractor import MarkdownDocumentParser, decode_markdown, split_into_units
from docstruct.extraction.markdown_tokens import read_header, repair_code_fences, tokenize_markdown
from docstruct.structure.config import ParseOptions


def _build_markdown() -> str:
    return "\n".join(
        [
            "# My Book",
            "",
            "Author: Jane Doe",
            "Date: 2024-01-01",
            "",
            "Intro paragraph.",
            "",
            "## First Chapter",
            "",
            "Some text here. Another sentence.",
            "",
            "### Details",
            "",
            "Sub heading text.",
            "",
            "> A quote.",
            "",
            "- item one",
            "- item two",
            "",
            "```python",
            'print("hi")',
            "```",
            "",
            "| A | B |",
            "|---|---|",
            "| 1 | 2 |",
            "",
            "## Second Chapter",
            "",
            "Final words.",
            "",
        ]
    )


def test_unclosed_fence_is_closed_before_next_heading() -> None:
    repaired = repair_code_fences("```python\nprint(1)\n## Next\ntext")

    assert repaired == "```python\nprint(1)\n```\n## Next\ntext"


def test_closed_fence_with_hash_comment_is_untouched() -> None:
    source = "```\n# comment\nx = 1\n```\n## Next"

    assert repair_code_fences(source) == source


def test_fence_open_at_end_of_text_is_closed() -> None:
    assert repair_code_fences("~~~\ncode") == "~~~\ncode\n~~~"


def test_header_fields_are_read_from_top_lines() -> None:
    header = read_header("Title line\nBy: Ann Lee\nLang: en\nUpdated: 2024-02-02\n\nBody: not a field")

    assert header.author == "Ann Lee"
    assert header.language == "en"
    assert header.modified == "2024-02-02"
    assert header.date is None
    assert header.line_numbers == {1, 2, 3}


def test_tokens_cover_block_types() -> None:
    tokens = tokenize_markdown(_build_markdown())

    assert [token.type for token in tokens] == [
        "heading",
        "paragraph",
        "paragraph",
        "heading",
        "paragraph",
        "heading",
        "paragraph",
        "blockquote",
        "list",
        "code",
        "table",
        "heading",
        "paragraph",
    ]
    assert tokens[0].depth == 1
    list_token = next(token for token in tokens if token.type == "list")
    assert list_token.items == ["item one", "item two"]
    code_token = next(token for token in tokens if token.type == "code")
    assert code_token.text == 'print("hi")'


def test_chapters_follow_configured_header_levels() -> None:
    structure = MarkdownDocumentParser().parse_text(_build_markdown(), ParseOptions())

    assert structure.metadata.title == "My Book"
    assert structure.metadata.author == "Jane Doe"
    assert structure.metadata.date == "2024-01-01"
    assert structure.metadata.format == "markdown"
    assert [chapter.title for chapter in structure.chapters] == ["My Book", "First Chapter", "Second Chapter"]
    assert [chapter.id for chapter in structure.chapters] == ["chapter-1", "chapter-2", "chapter-3"]

    first_chapter = structure.chapters[1]
    assert [paragraph.type for paragraph in first_chapter.paragraphs] == [
        "text",
        "text",
        "text",
        "blockquote",
        "list",
        "code",
        "table",
    ]
    by_type = {paragraph.type: paragraph for paragraph in first_chapter.paragraphs}
    assert by_type["table"].raw_text == "[Table]"
    assert by_type["table"].include_in_audio is False
    assert by_type["code"].include_in_audio is False
    assert by_type["code"].confidence == 1.0
    assert by_type["blockquote"].include_in_audio is True
    assert by_type["list"].raw_text == "item one item two"
    assert all("Author:" not in paragraph.raw_text for chapter in structure.chapters for paragraph in chapter.paragraphs)
    assert structure.statistics.table_count == 1


def test_include_flags_change_audio_inclusion() -> None:
    options = ParseOptions(
        include_code_blocks=True,
        include_tables=True,
        include_blockquotes=False,
        include_lists=False,
    )

    structure = MarkdownDocumentParser().parse_text(_build_markdown(), options)
    by_type = {paragraph.type: paragraph for paragraph in structure.chapters[1].paragraphs}

    assert by_type["code"].include_in_audio is True
    assert by_type["table"].include_in_audio is True
    assert by_type["blockquote"].include_in_audio is False
    assert by_type["list"].include_in_audio is False


def test_deeper_levels_open_nested_chapters() -> None:
    structure = MarkdownDocumentParser().parse_text(
        _build_markdown(),
        ParseOptions(chapter_header_levels=(2, 3)),
    )

    assert [chapter.title for chapter in structure.chapters] == ["My Book", "First Chapter", "Details", "Second Chapter"]
    assert [chapter.level for chapter in structure.chapters] == [1, 1, 2, 1]


def test_document_without_headings_is_untitled() -> None:
    structure = MarkdownDocumentParser().parse_text("Just a paragraph.", ParseOptions())

    assert structure.metadata.title == "Untitled Document"
    assert len(structure.chapters) == 1
    assert structure.chapters[0].title == "Untitled Document"
    assert structure.total_word_count == 3


def test_empty_token_stream_yields_one_empty_unit() -> None:
    units = split_into_units([], (2,), "Doc")

    assert len(units) == 1
    assert units[0].title == "Doc"
    assert units[0].tokens == []


def test_markdown_file_parse(tmp_path: Path) -> None:
    sample = tmp_path / "notes.md"
    sample.write_text("## Only Chapter\n\nBody text here.\n", encoding="utf-8")

    parser = MarkdownDocumentParser()
    structure = parser.parse(sample, ParseOptions())

    assert parser.supports(sample)
    assert not parser.supports(tmp_path / "notes.txt")
    assert [chapter.title for chapter in structure.chapters] == ["Only Chapter"]
    assert structure.metadata.custom["source_path"] == str(sample)
    assert structure.table_of_contents[0].href == "#chapter-1"


def test_decode_markdown_handles_utf8() -> None:
    text = "# Caf\u00e9\n\nBody text with accents: \u00e9t\u00e9, na\u00efve, fa\u00e7ade, r\u00e9sum\u00e9 and more prose.\n"

    assert decode_markdown(text.encode("utf-8")) == text
