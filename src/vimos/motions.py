"""Vim motion and text-object functions.

Every function here is pure: it takes a text snapshot and a cursor index and
returns a new index (or a range). Snapshots are UTF-16 code-unit sequences so
offsets line up with the selection ranges reported by text fields. A plain
``str`` is accepted as well and converted on the way in.
"""

from __future__ import annotations

import sys
from array import array
from collections.abc import Sequence
from enum import Enum

TextSnapshot = Sequence[int]
TextLike = str | Sequence[int]

NEWLINE = 0x0A
WHITESPACE = frozenset({0x20, 0x09, 0x0A, 0x0D})

_UTF16 = "utf-16-le" if sys.byteorder == "little" else "utf-16-be"

QUOTE_FAMILIES: dict[int, frozenset[int]] = {}
for _family in (
    frozenset({0x22, 0x201C, 0x201D}),  # " and smart double quotes
    frozenset({0x27, 0x2018, 0x2019}),  # ' and smart single quotes
    frozenset({0x60}),  # backtick
):
    for _marker in _family:
        QUOTE_FAMILIES[_marker] = _family

BRACKET_PAIRS: dict[int, tuple[int, int]] = {
    ord("("): (ord("("), ord(")")),
    ord(")"): (ord("("), ord(")")),
    ord("b"): (ord("("), ord(")")),
    ord("{"): (ord("{"), ord("}")),
    ord("}"): (ord("{"), ord("}")),
    ord("B"): (ord("{"), ord("}")),
    ord("["): (ord("["), ord("]")),
    ord("]"): (ord("["), ord("]")),
    ord("<"): (ord("<"), ord(">")),
    ord(">"): (ord("<"), ord(">")),
}


class CharClass(Enum):
    WHITESPACE = "whitespace"
    ALNUM = "alnum"
    PUNCTUATION = "punctuation"


class VerticalDirection(Enum):
    UP = "up"
    DOWN = "down"


def to_code_units(text: str) -> TextSnapshot:
    """Encode TEXT as an immutable UTF-16 code-unit snapshot."""
    return tuple(array("H", text.encode(_UTF16, "surrogatepass")))


def from_code_units(units: Sequence[int]) -> str:
    return array("H", units).tobytes().decode(_UTF16, "surrogatepass")


def char_class(unit: int) -> CharClass:
    if unit in WHITESPACE:
        return CharClass.WHITESPACE
    if 0x30 <= unit <= 0x39 or 0x41 <= unit <= 0x5A or 0x61 <= unit <= 0x7A or unit == 0x5F:
        return CharClass.ALNUM
    return CharClass.PUNCTUATION


def _units(text: TextLike) -> TextSnapshot:
    if isinstance(text, str):
        return to_code_units(text)
    return text


def _target_unit(target: str | int) -> int | None:
    if isinstance(target, int):
        return target
    if not target:
        return None
    return to_code_units(target)[0]


def next_word_start(text: TextLike, index: int) -> int:
    """Index of the start of the next word (``w``)."""
    units = _units(text)
    count = len(units)
    if index >= count:
        return index

    i = index
    start_class = char_class(units[i])
    while i < count and char_class(units[i]) is start_class:
        i += 1
    while i < count and char_class(units[i]) is CharClass.WHITESPACE:
        i += 1
    return i


def prev_word_start(text: TextLike, index: int) -> int:
    """Index of the start of the previous word (``b``)."""
    units = _units(text)
    if index <= 0 or not units:
        return 0

    i = min(index, len(units)) - 1
    while i > 0 and char_class(units[i]) is CharClass.WHITESPACE:
        i -= 1

    target_class = char_class(units[i])
    while i > 0 and char_class(units[i - 1]) is target_class:
        i -= 1
    return i


def end_of_word(text: TextLike, index: int) -> int:
    """Index of the last character of the current or next word (``e``)."""
    units = _units(text)
    count = len(units)
    if index + 1 >= count:
        return index

    i = index + 1
    while i < count and char_class(units[i]) is CharClass.WHITESPACE:
        i += 1
    if i >= count:
        return count - 1

    start_class = char_class(units[i])
    while i < count and char_class(units[i]) is start_class:
        i += 1
    return i - 1


def line_start(text: TextLike, index: int) -> int:
    units = _units(text)
    i = max(0, min(index, len(units)))
    while i > 0 and units[i - 1] != NEWLINE:
        i -= 1
    return i


def line_end(text: TextLike, index: int) -> int:
    """Index of the line terminator, or the text length on the last line."""
    units = _units(text)
    count = len(units)
    i = max(0, index)
    while i < count and units[i] != NEWLINE:
        i += 1
    return min(i, count)


def visual_line_end(text: TextLike, index: int) -> int:
    """Last real character of the line (``$``)."""
    return max(0, line_end(text, index) - 1)


def first_non_whitespace(text: TextLike, index: int) -> int:
    """First non-blank character of the line (``^``)."""
    units = _units(text)
    i = line_start(units, index)
    while i < len(units) and units[i] != NEWLINE and char_class(units[i]) is CharClass.WHITESPACE:
        i += 1
    return i


def line_range(text: TextLike, index: int, *, include_terminator: bool = False) -> tuple[int, int]:
    """Half-open ``(start, end)`` of the line containing INDEX."""
    units = _units(text)
    start = line_start(units, index)
    end = line_end(units, index)
    if include_terminator and end < len(units):
        end += 1
    return start, end


def vertical_index(text: TextLike, index: int, direction: VerticalDirection) -> int:
    """Move one line up or down, keeping the column where the target line allows."""
    units = _units(text)
    count = len(units)
    index = max(0, min(index, count))

    current_start = line_start(units, index)
    col = index - current_start

    if direction is VerticalDirection.UP:
        if current_start == 0:
            return index
        target_start = line_start(units, current_start - 1)
    else:
        current_end = line_end(units, index)
        if current_end >= count:
            return index
        target_start = current_end + 1

    target_length = line_end(units, target_start) - target_start
    return target_start + min(col, max(0, target_length - 1))


def next_occurrence(text: TextLike, index: int, target: str | int, *, stop_before: bool = False) -> int:
    """Index of the next TARGET after INDEX (``f``), or just before it (``t``)."""
    units = _units(text)
    unit = _target_unit(target)
    if unit is None:
        return index

    for i in range(max(0, index + 1), len(units)):
        if units[i] == unit:
            if stop_before:
                return max(index, i - 1)
            return i
    return index


def inner_object_range(text: TextLike, index: int, delimiter: str | int) -> tuple[int, int] | None:
    """Inclusive ``(start, end)`` interior of the object around INDEX (``i"``, ``i(``).

    Quotes pair up on the current line only; brackets respect nesting and fall
    back to the next bracket pair after the cursor. Returns None when nothing
    matches. An empty interior comes back as ``(n, n - 1)``.
    """
    units = _units(text)
    unit = _target_unit(delimiter)
    if unit is None or index < 0 or index >= len(units):
        return None

    family = QUOTE_FAMILIES.get(unit)
    if family is not None:
        return _quote_range(units, index, family)

    pair = BRACKET_PAIRS.get(unit)
    if pair is not None:
        return _bracket_range(units, index, *pair)
    return None


def _quote_range(units: TextSnapshot, index: int, markers: frozenset[int]) -> tuple[int, int] | None:
    start = line_start(units, index)
    end = line_end(units, index)
    quotes = [i for i in range(start, end) if units[i] in markers]
    pairs = [(quotes[i], quotes[i + 1]) for i in range(0, len(quotes) - 1, 2)]

    for open_at, close_at in pairs:
        if open_at <= index <= close_at:
            return open_at + 1, close_at - 1

    for open_at, close_at in pairs:
        if open_at > index:
            return open_at + 1, close_at - 1
    return None


def _bracket_range(units: TextSnapshot, index: int, opener: int, closer: int) -> tuple[int, int] | None:
    start = -1
    nesting = 0
    for i in range(index, -1, -1):
        if units[i] == closer and i != index:
            nesting += 1
        elif units[i] == opener:
            if nesting > 0:
                nesting -= 1
            else:
                start = i
                break

    if start != -1:
        nesting = 0
        for i in range(start + 1, len(units)):
            if units[i] == opener:
                nesting += 1
            elif units[i] == closer:
                if nesting > 0:
                    nesting -= 1
                elif i >= index:
                    return start + 1, i - 1

    for i in range(index, len(units)):
        if units[i] != opener:
            continue
        nesting = 0
        for j in range(i + 1, len(units)):
            if units[j] == opener:
                nesting += 1
            elif units[j] == closer:
                if nesting > 0:
                    nesting -= 1
                else:
                    return i + 1, j - 1
        # the first opener after the cursor is unmatched
        break
    return None
