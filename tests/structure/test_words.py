from __future__ import annotations

import pytest

from docstruct.structure.words import (
    count_token,
    count_words,
    estimate_duration_seconds,
    reading_time_minutes,
)


def test_count_words_handles_empty_and_plain_text() -> None:
    assert count_words("") == 0
    assert count_words(None) == 0
    assert count_words("   \n\t ") == 0
    assert count_words("Hello, world!") == 2
    assert count_words("Price is 12.99 dollars.") == 4


def test_url_tokens_are_capped_at_three_words() -> None:
    assert count_words("https://example.com/a/b/c") == 3
    assert count_words("https://example.com") == 1
    assert count_words("see https://example.com/docs now") == 4


def test_hyphenated_compounds_and_punctuation_only_tokens() -> None:
    assert count_token("well-known") == 1
    assert count_token("a-b-c-d-e") == 3
    assert count_token("--") == 0
    assert count_token("...") == 0
    assert count_words("a well-known fact - indeed") == 4


def test_emoji_only_tokens_contribute_nothing() -> None:
    assert count_words("Great job \U0001F389") == 2
    assert count_words("\u2764 \U0001F600") == 0


def test_word_count_is_deterministic() -> None:
    text = "Visit https://example.com/a/b today, it's state-of-the-art \U0001F680!"
    assert count_words(text) == count_words(text)


def test_reading_time_and_duration() -> None:
    assert reading_time_minutes(0) == 0
    assert reading_time_minutes(200) == 1
    assert reading_time_minutes(201) == 2
    assert estimate_duration_seconds(200, 200) == pytest.approx(60.0)
    assert estimate_duration_seconds(50, 100) == pytest.approx(30.0)

    with pytest.raises(ValueError):
        reading_time_minutes(10, 0)
    with pytest.raises(ValueError):
        estimate_duration_seconds(10, -1)
