from __future__ import annotations

import pytest

from docstruct.structure.config import DEFAULT_CHAPTER_HEADER_LEVELS, ParseOptions


def test_defaults_without_environment() -> None:
    options = ParseOptions.from_env({})

    assert options == ParseOptions()
    assert options.sample_size_structure == 5
    assert options.sample_size_content == 3
    assert options.reading_speed_wpm == 200
    assert options.chapter_header_levels == DEFAULT_CHAPTER_HEADER_LEVELS
    assert options.validation_level == "standard"
    assert options.include_tables is False
    assert options.include_blockquotes is True
    assert options.enable_fallbacks is True


def test_options_load_from_env() -> None:
    options = ParseOptions.from_env(
        {
            "DOCSTRUCT_PRESERVE_HTML": "yes",
            "DOCSTRUCT_STRICT_MODE": "1",
            "DOCSTRUCT_INCLUDE_LISTS": "off",
            "DOCSTRUCT_READING_SPEED_WPM": "150",
            "DOCSTRUCT_CHAPTER_HEADER_LEVELS": "3, 2,3",
            "DOCSTRUCT_VALIDATION_LEVEL": "Strict",
        }
    )

    assert options.preserve_html is True
    assert options.strict_mode is True
    assert options.include_lists is False
    assert options.reading_speed_wpm == 150
    assert options.chapter_header_levels == (2, 3)
    assert options.validation_level == "strict"


@pytest.mark.parametrize(
    ("environ", "match"),
    [
        ({"DOCSTRUCT_STRICT_MODE": "maybe"}, "DOCSTRUCT_STRICT_MODE"),
        ({"DOCSTRUCT_READING_SPEED_WPM": "0"}, "DOCSTRUCT_READING_SPEED_WPM"),
        ({"DOCSTRUCT_CHAPTER_HEADER_LEVELS": "7"}, "DOCSTRUCT_CHAPTER_HEADER_LEVELS"),
        ({"DOCSTRUCT_CHAPTER_HEADER_LEVELS": ", ,"}, "DOCSTRUCT_CHAPTER_HEADER_LEVELS"),
        ({"DOCSTRUCT_VALIDATION_LEVEL": "paranoid"}, "DOCSTRUCT_VALIDATION_LEVEL"),
    ],
)
def test_invalid_env_values_fail_fast(environ: dict[str, str], match: str) -> None:
    with pytest.raises(ValueError, match=match):
        ParseOptions.from_env(environ)


def test_constructor_validates_values() -> None:
    with pytest.raises(ValueError, match="sample sizes"):
        ParseOptions(sample_size_content=0)
    with pytest.raises(ValueError, match="reading_speed_wpm"):
        ParseOptions(reading_speed_wpm=0)
    with pytest.raises(ValueError, match="validation_level"):
        ParseOptions(validation_level="loose")


def test_overrides_skip_unset_values() -> None:
    base = ParseOptions(strict_mode=True)

    updated = base.with_overrides(strict_mode=None, include_tables=True)

    assert updated.strict_mode is True
    assert updated.include_tables is True
    assert base.include_tables is False
