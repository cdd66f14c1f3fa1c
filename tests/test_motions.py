import pytest

from vimos.motions import (
    VerticalDirection,
    end_of_word,
    first_non_whitespace,
    inner_object_range,
    line_end,
    line_range,
    line_start,
    next_occurrence,
    next_word_start,
    prev_word_start,
    to_code_units,
    vertical_index,
    visual_line_end,
)


@pytest.mark.parametrize(("index", "expected"), [(0, 1), (1, 6), (3, 6)])
def test_end_of_word_lands_on_last_character(index: int, expected: int) -> None:
    assert end_of_word("my name is John", index) == expected


def test_end_of_word_edges() -> None:
    assert end_of_word("abc", 2) == 2
    assert end_of_word("ab   ", 1) == 4


def test_word_starts_follow_character_classes() -> None:
    assert next_word_start("foo bar", 0) == 4
    assert next_word_start("foo.bar", 0) == 3
    assert next_word_start("foo", 1) == 3
    assert next_word_start("foo", 3) == 3

    assert prev_word_start("foo bar", 5) == 4
    assert prev_word_start("foo bar", 4) == 0
    assert prev_word_start("foo bar", 0) == 0


def test_prev_word_start_returns_to_isolated_word() -> None:
    text = "hello"
    for index in range(len(text)):
        assert prev_word_start(text, next_word_start(text, index)) == 0


def test_line_boundaries() -> None:
    text = "ab\ncd"
    assert line_end(text, 0) == 2
    assert line_start(text, 4) == 3
    assert line_start(text, 3) == 3
    for index in range(len(text) + 1):
        assert line_start(text, line_end(text, index)) == line_start(text, index)

    assert visual_line_end("abc\nd", 0) == 2
    assert visual_line_end("\nx", 0) == 0
    assert line_range(text, 0) == (0, 2)
    assert line_range(text, 0, include_terminator=True) == (0, 3)
    assert line_range(text, 4, include_terminator=True) == (3, 5)


def test_first_non_whitespace_stops_at_terminator() -> None:
    assert first_non_whitespace("  foo", 4) == 2
    assert first_non_whitespace("   \nx", 1) == 3


def test_vertical_index_preserves_column_with_clamping() -> None:
    assert vertical_index("ab\nabcdef", 1, VerticalDirection.DOWN) == 4
    assert vertical_index("ab\nx", 1, VerticalDirection.DOWN) == 3
    assert vertical_index("ab\nabcdef", 4, VerticalDirection.UP) == 1
    assert vertical_index("abcdef\nab", 5, VerticalDirection.DOWN) == 8


def test_vertical_index_stays_put_at_document_edges() -> None:
    assert vertical_index("abc", 2, VerticalDirection.UP) == 2
    assert vertical_index("abc\nde", 5, VerticalDirection.DOWN) == 5


def test_next_occurrence_find_and_till() -> None:
    text = "hello world"
    assert next_occurrence(text, 0, "o") == 4
    assert next_occurrence(text, 0, "o", stop_before=True) == 3
    assert next_occurrence(text, 4, "o") == 7
    assert next_occurrence(text, 0, "z") == 0


def test_quote_object_covers_interior() -> None:
    assert inner_object_range('say "hi" now', 5, '"') == (5, 6)
    assert inner_object_range('say "hi" now', 0, '"') == (5, 6)
    assert inner_object_range("say “hi” now", 5, '"') == (5, 6)
    assert inner_object_range('say "hi" now', 9, '"') is None


def test_quote_object_is_limited_to_current_line() -> None:
    assert inner_object_range('"a\nb"', 1, '"') is None


def test_bracket_object_respects_nesting() -> None:
    text = "f(a, (b))"
    assert inner_object_range(text, 6, "(") == (6, 6)
    assert inner_object_range(text, 2, ")") == (2, 7)
    assert inner_object_range(text, 2, "b") == (2, 7)
    assert inner_object_range("(ab)", 3, "(") == (1, 2)


def test_bracket_object_looks_ahead_and_handles_empty() -> None:
    assert inner_object_range("x (abc)", 0, "(") == (3, 5)
    assert inner_object_range("x {abc}", 0, "B") == (3, 5)
    assert inner_object_range("()", 0, "(") == (1, 0)
    assert inner_object_range("abc", 1, "(") is None
    assert inner_object_range("(abc", 1, "(") is None
    assert inner_object_range("abc", 3, "(") is None


def test_offsets_are_utf16_code_units() -> None:
    units = to_code_units("a\U0001F600 b")
    assert len(units) == 5
    assert next_word_start(units, 0) == 1
    assert next_word_start("a\U0001F600 b", 1) == 4
