"""Text field capability consumed by the modal engine."""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from .keymap import (
    KEY_DELETE,
    KEY_DOWN,
    KEY_FORWARD_DELETE,
    KEY_LEFT,
    KEY_RETURN,
    KEY_RIGHT,
    KEY_TAB,
    KEY_UP,
    KEY_CODES,
    Chord,
    Modifier,
    chord_char,
)
from .motions import (
    NEWLINE,
    VerticalDirection,
    from_code_units,
    line_end,
    line_range,
    line_start,
    next_word_start,
    prev_word_start,
    to_code_units,
    vertical_index,
)

SelectedRange = tuple[int, int]


class Direction(Enum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"


class TextSurface(Protocol):
    """Focused text field as seen by the engine.

    Queries answer None when there is no focused text; callers degrade to
    coarse behaviour instead of failing.
    """

    def get_text(self) -> str | None: ...

    def get_selected_range(self) -> SelectedRange | None: ...

    def set_selected_range(self, location: int, length: int) -> None: ...

    def move_cursor(self, direction: Direction, *, extend: bool = False) -> None: ...

    def post_chord(self, chord: Chord) -> None: ...

    def enter_visual_mode(self, *, line_wise: bool = False) -> None: ...

    def exit_visual_mode(self, collapse: bool = True) -> None: ...

    def set_block_cursor(self, enabled: bool, update_immediate: bool = True) -> None: ...

    def prepare_for_insert_mode(self, collapse: bool = True) -> None: ...

    def delete_current_character(self) -> None: ...

    def replace_current_character(self, chord: Chord) -> None: ...

    def undo(self) -> None: ...

    def redo(self) -> None: ...

    def yank(self) -> None: ...

    def yank_current_line(self, include_terminator: bool) -> None: ...

    def yank_rest_of_line(self) -> None: ...

    def paste(self, after: bool) -> None: ...

    def paste_in_visual(self) -> None: ...

    def open_line(self, above: bool) -> None: ...


_Snapshot = tuple[tuple[int, ...], int, int]


class BufferSurface:
    """In-memory text field holding UTF-16 code units, a selection and a clipboard."""

    def __init__(self, text: str = "", *, focused: bool = True) -> None:
        self.focused = focused
        self.clipboard = ""
        self.block_cursor = False
        self.visual = False
        self.visual_line = False
        self._units: list[int] = list(to_code_units(text))
        self._location = 0
        self._length = 0
        self._shift_anchor: int | None = None
        self._undo: list[_Snapshot] = []
        self._redo: list[_Snapshot] = []

    # -- state access ------------------------------------------------------

    @property
    def text(self) -> str:
        return from_code_units(self._units)

    @property
    def selection(self) -> SelectedRange:
        return self._location, self._length

    @property
    def selected_text(self) -> str:
        return from_code_units(self._units[self._location : self._location + self._length])

    def set_text(self, text: str) -> None:
        self._units = list(to_code_units(text))
        self._undo.clear()
        self._redo.clear()
        self.set_selected_range(0, 0)

    def get_text(self) -> str | None:
        if not self.focused:
            return None
        return self.text

    def get_selected_range(self) -> SelectedRange | None:
        if not self.focused:
            return None
        return self.selection

    def set_selected_range(self, location: int, length: int) -> None:
        count = len(self._units)
        location = max(0, min(location, count))
        self._location = location
        self._length = max(0, min(length, count - location))
        self._shift_anchor = None

    # -- mode notifications ------------------------------------------------

    def enter_visual_mode(self, *, line_wise: bool = False) -> None:
        self.visual = True
        self.visual_line = line_wise

    def exit_visual_mode(self, collapse: bool = True) -> None:
        self.visual = False
        self.visual_line = False

    def set_block_cursor(self, enabled: bool, update_immediate: bool = True) -> None:
        self.block_cursor = enabled

    def prepare_for_insert_mode(self, collapse: bool = True) -> None:
        self.visual = False
        self.visual_line = False
        self.block_cursor = False
        if collapse and self._length > 0:
            self.set_selected_range(self._location, 0)

    # -- cursor movement ---------------------------------------------------

    def move_cursor(self, direction: Direction, *, extend: bool = False) -> None:
        if not self.focused:
            return

        if extend:
            active = self._active_end()
            self._extend_to(self._step(active, direction))
            return

        if direction is Direction.LEFT and self._length > 0:
            self.set_selected_range(self._location, 0)
        elif direction is Direction.RIGHT and self._length > 0:
            self.set_selected_range(self._location + self._length, 0)
        else:
            self.set_selected_range(self._step(self._location, direction), 0)

    def _step(self, index: int, direction: Direction) -> int:
        if direction is Direction.LEFT:
            return max(0, index - 1)
        if direction is Direction.RIGHT:
            return min(len(self._units), index + 1)
        vertical = VerticalDirection.UP if direction is Direction.UP else VerticalDirection.DOWN
        return vertical_index(self._units, index, vertical)

    def _active_end(self) -> int:
        if self._shift_anchor is not None and self._shift_anchor == self._location + self._length:
            return self._location
        return self._location + self._length

    def _extend_to(self, active: int) -> None:
        anchor = self._shift_anchor
        if anchor is None:
            anchor = self._location
        start, end = sorted((anchor, active))
        self.set_selected_range(start, end - start)
        self._shift_anchor = anchor

    def _move_to(self, index: int, extend: bool) -> None:
        if extend:
            self._extend_to(index)
        else:
            self.set_selected_range(index, 0)

    # -- simulated key input -----------------------------------------------

    def post_chord(self, chord: Chord) -> None:
        """Deliver CHORD the way a native text field would receive it."""
        if not self.focused or not chord.is_key_down or chord.flags_changed:
            return

        code = chord.key_code
        extend = Modifier.SHIFT in chord.modifiers

        if Modifier.COMMAND in chord.modifiers:
            self._command_chord(code, extend)
            return
        if Modifier.OPTION in chord.modifiers:
            if code == KEY_LEFT:
                self._move_to(prev_word_start(self._units, self._active_end()), extend)
            elif code == KEY_RIGHT:
                self._move_to(next_word_start(self._units, self._active_end()), extend)
            return
        if Modifier.CONTROL in chord.modifiers:
            return

        arrows = {
            KEY_LEFT: Direction.LEFT,
            KEY_RIGHT: Direction.RIGHT,
            KEY_UP: Direction.UP,
            KEY_DOWN: Direction.DOWN,
        }
        if code in arrows:
            self.move_cursor(arrows[code], extend=extend)
        elif code == KEY_DELETE:
            self._backspace()
        elif code == KEY_FORWARD_DELETE:
            self.delete_current_character()
        elif code == KEY_RETURN:
            self._insert("\n")
        elif code == KEY_TAB:
            self._insert("\t")
        else:
            char = chord_char(chord)
            if char is not None:
                self._insert(char)

    def _command_chord(self, code: int, shift: bool) -> None:
        if code == KEY_CODES["z"]:
            if shift:
                self.redo()
            else:
                self.undo()
        elif code == KEY_CODES["c"]:
            self.yank()
        elif code == KEY_CODES["x"]:
            self.yank()
            self._replace_selection("")
        elif code == KEY_CODES["v"]:
            self._replace_selection(self.clipboard)
        elif code == KEY_CODES["a"]:
            self.set_selected_range(0, len(self._units))
        elif code == KEY_LEFT:
            self._move_to(line_start(self._units, self._active_end()), shift)
        elif code == KEY_RIGHT:
            self._move_to(line_end(self._units, self._active_end()), shift)
        elif code == KEY_UP:
            self._move_to(0, shift)
        elif code == KEY_DOWN:
            self._move_to(len(self._units), shift)

    # -- editing -----------------------------------------------------------

    def _snapshot(self) -> _Snapshot:
        return tuple(self._units), self._location, self._length

    def _restore(self, snapshot: _Snapshot) -> None:
        units, location, length = snapshot
        self._units = list(units)
        self.set_selected_range(location, length)

    def _record_undo(self) -> None:
        self._undo.append(self._snapshot())
        self._redo.clear()

    def _replace_range(self, start: int, end: int, text: str) -> int:
        """Replace ``[start, end)`` with TEXT and return the index after it."""
        self._record_undo()
        units = to_code_units(text)
        self._units[start:end] = units
        return start + len(units)

    def _replace_selection(self, text: str) -> None:
        caret = self._replace_range(self._location, self._location + self._length, text)
        self.set_selected_range(caret, 0)

    def _insert(self, text: str) -> None:
        self._replace_selection(text)

    def _backspace(self) -> None:
        if self._length > 0:
            self._replace_selection("")
        elif self._location > 0:
            start = self._location - 1
            self._replace_range(start, self._location, "")
            self.set_selected_range(start, 0)

    def delete_current_character(self) -> None:
        """Forward delete: the selection if any, else the character at the caret."""
        if not self.focused:
            return
        if self._length > 0:
            self._replace_selection("")
        elif self._location < len(self._units):
            location = self._location
            self._replace_range(location, location + 1, "")
            self.set_selected_range(location, 0)

    def replace_current_character(self, chord: Chord) -> None:
        char = chord_char(chord)
        if not self.focused or char is None:
            return
        location = self._location
        if location >= len(self._units) or self._units[location] == NEWLINE:
            return
        self._replace_range(location, location + 1, char)
        self.set_selected_range(location, 1 if self.block_cursor else 0)

    def undo(self) -> None:
        if not self._undo:
            return
        self._redo.append(self._snapshot())
        self._restore(self._undo.pop())

    def redo(self) -> None:
        if not self._redo:
            return
        self._undo.append(self._snapshot())
        self._restore(self._redo.pop())

    # -- clipboard ---------------------------------------------------------

    def yank(self) -> None:
        if self.focused and self._length > 0:
            self.clipboard = self.selected_text

    def yank_current_line(self, include_terminator: bool) -> None:
        if not self.focused:
            return
        start, end = line_range(self._units, self._location, include_terminator=include_terminator)
        if end > start:
            self.clipboard = from_code_units(self._units[start:end])

    def yank_rest_of_line(self) -> None:
        if not self.focused:
            return
        end = line_end(self._units, self._location)
        if end > self._location:
            self.clipboard = from_code_units(self._units[self._location : end])

    def paste(self, after: bool) -> None:
        if not self.focused or not self.clipboard:
            return

        clip = self.clipboard
        if clip.endswith("\n"):
            if not after:
                start = line_start(self._units, self._location)
                self._replace_range(start, start, clip)
                self.set_selected_range(start, 0)
                return
            end = line_end(self._units, self._location)
            if end < len(self._units):
                start = end + 1
                self._replace_range(start, start, clip)
            else:
                start = end + 1
                self._replace_range(end, end, "\n" + clip[:-1])
            self.set_selected_range(start, 0)
            return

        at = self._location
        if after and at < len(self._units):
            at += 1
        caret = self._replace_range(at, at, clip)
        self.set_selected_range(max(at, caret - 1), 0)

    def paste_in_visual(self) -> None:
        if self.focused:
            self._replace_selection(self.clipboard)

    def open_line(self, above: bool) -> None:
        if not self.focused:
            return
        if above:
            start = line_start(self._units, self._location)
            self._replace_range(start, start, "\n")
            self.set_selected_range(start, 0)
        else:
            end = line_end(self._units, self._location)
            caret = self._replace_range(end, end, "\n")
            self.set_selected_range(caret, 0)
