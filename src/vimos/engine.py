"""Modal key interpretation: the per-chord Vim state machine."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial

from .config import ConfigAccessor
from .keymap import (
    KEY_CODES,
    KEY_DELETE,
    KEY_DOWN,
    KEY_ESCAPE,
    KEY_FORWARD_DELETE,
    KEY_LEFT,
    KEY_RIGHT,
    KEY_UP,
    REPLAY_TAG,
    SYNTHETIC_TAG,
    Chord,
    Modifier,
    chord_char,
    matches_shortcut,
)
from .mapping import KeySequenceInterpreter
from .motions import (
    NEWLINE,
    CharClass,
    TextSnapshot,
    VerticalDirection,
    char_class,
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
from .state import EngineState, Mode, Operator, SubState
from .surface import Direction, SelectedRange, TextSurface

logger = logging.getLogger(__name__)

FOLLOW_UP_DELAY = 0.02
PASSTHROUGH_CODES = frozenset(
    {KEY_LEFT, KEY_RIGHT, KEY_DOWN, KEY_UP, KEY_DELETE, KEY_FORWARD_DELETE}
)

Scheduler = Callable[[float, Callable[[], None]], object]
AppIdentifier = Callable[[], str | None]
MotionTarget = Callable[[TextSnapshot, int], int]


def _shortcut(key_code: int, *modifiers: Modifier) -> Chord:
    return Chord(key_code=key_code, modifiers=frozenset(modifiers))


def _left(units: TextSnapshot, index: int) -> int:
    return max(0, index - 1)


def _right(units: TextSnapshot, index: int) -> int:
    return min(len(units), index + 1)


def _down(units: TextSnapshot, index: int) -> int:
    return vertical_index(units, index, VerticalDirection.DOWN)


def _up(units: TextSnapshot, index: int) -> int:
    return vertical_index(units, index, VerticalDirection.UP)


def _line_last_char(units: TextSnapshot, index: int) -> int:
    return max(line_start(units, index), visual_line_end(units, index))


def _document_start(units: TextSnapshot, index: int) -> int:
    return 0


def _document_end(units: TextSnapshot, index: int) -> int:
    end = len(units)
    if end and units[end - 1] == NEWLINE:
        end -= 1
    return line_start(units, end)


def _word_run_end(units: TextSnapshot, index: int) -> int:
    """Last index of the class run under INDEX."""
    run_class = char_class(units[index])
    while index + 1 < len(units) and char_class(units[index + 1]) is run_class:
        index += 1
    return index


@dataclass(frozen=True)
class Motion:
    """A cursor motion, its coarse fallback, and how an operator treats it."""

    name: str
    target: MotionTarget
    inclusive: bool = False
    fallback: Chord | None = None
    direction: Direction | None = None


MOTIONS: dict[str, Motion] = {
    "h": Motion("left", _left, direction=Direction.LEFT),
    "l": Motion("right", _right, direction=Direction.RIGHT),
    "j": Motion("down", _down, inclusive=True, direction=Direction.DOWN),
    "k": Motion("up", _up, inclusive=True, direction=Direction.UP),
    "w": Motion("word-forward", next_word_start, fallback=_shortcut(KEY_RIGHT, Modifier.OPTION)),
    "b": Motion("word-backward", prev_word_start, fallback=_shortcut(KEY_LEFT, Modifier.OPTION)),
    "e": Motion("end-of-word", end_of_word, inclusive=True),
    "0": Motion("line-start", line_start, fallback=_shortcut(KEY_LEFT, Modifier.COMMAND)),
    "^": Motion(
        "first-non-whitespace",
        first_non_whitespace,
        fallback=_shortcut(KEY_LEFT, Modifier.COMMAND),
    ),
    "$": Motion(
        "line-end",
        _line_last_char,
        inclusive=True,
        fallback=_shortcut(KEY_RIGHT, Modifier.COMMAND),
    ),
    "G": Motion(
        "document-end",
        _document_end,
        inclusive=True,
        fallback=_shortcut(KEY_DOWN, Modifier.COMMAND),
    ),
}
MOTIONS["W"] = MOTIONS["w"]
MOTIONS["B"] = MOTIONS["b"]
MOTIONS["E"] = MOTIONS["e"]

DOCUMENT_START = Motion(
    "document-start",
    _document_start,
    inclusive=True,
    fallback=_shortcut(KEY_UP, Modifier.COMMAND),
)


class ModalEngine:
    """Turns chords into mode changes and calls against a ``TextSurface``.

    ``handle`` answers True when the chord must be suppressed. A chord it
    answers False for is the host's to deliver to the text field unchanged.
    """

    def __init__(
        self,
        surface: TextSurface,
        config: ConfigAccessor,
        *,
        scheduler: Scheduler | None = None,
        app_identifier: AppIdentifier | None = None,
    ) -> None:
        self.surface = surface
        self.state = EngineState()
        self.interpreter = KeySequenceInterpreter(config)
        self._config = config
        self._scheduler = scheduler
        self._app_identifier = app_identifier
        self._generation = 0
        self._follow_up: tuple[int, Callable[[], None]] | None = None
        self._commands: dict[str, Callable[[], bool]] = {
            "c": self._change,
            "C": self._change_to_line_end,
            "i": self._insert,
            "I": self._insert_at_first_non_whitespace,
            "a": self._append,
            "A": self._append_at_line_end,
            "o": partial(self._open_line, False),
            "O": partial(self._open_line, True),
            "v": self._toggle_visual,
            "V": self._enter_visual_line,
            "x": self._delete,
            "d": self._delete_selection,
            "y": self._yank,
            "Y": self._yank_rest_of_line,
            "p": partial(self._paste, True),
            "P": partial(self._paste, False),
            "u": self._undo,
            "r": self._wait_for_replace,
            "t": self._wait_for_till,
        }

    @property
    def mode(self) -> Mode:
        return self.state.mode

    # -- entry point -------------------------------------------------------

    def handle(self, chord: Chord) -> bool:
        if chord.flags_changed or not chord.is_key_down:
            return False
        if chord.tag == SYNTHETIC_TAG:
            return False

        self.run_follow_up()

        config = self._config()
        if config.toggle_shortcut is not None and matches_shortcut(chord, config.toggle_shortcut):
            self.toggle_enabled()
            return True
        if not self.state.enabled or self._is_ignored(config.ignored_applications):
            return False

        if chord.tag != REPLAY_TAG:
            handled, replay = self.interpreter.process(chord, self.state.mode)
            if handled:
                for event in replay or ():
                    self._replay(event)
                return True

        return self._dispatch(chord)

    def toggle_enabled(self) -> bool:
        self.state.enabled = not self.state.enabled
        if not self.state.enabled:
            self.interpreter.flush()
            self.state.key_buffer.clear()
            self.state.clear_sub_state()
            self.state.pending_operator = None
        logger.info("modal editing %s", "enabled" if self.state.enabled else "disabled")
        return self.state.enabled

    def run_follow_up(self) -> None:
        """Run the outstanding deferred follow-up now, if there is one."""
        follow_up = self._follow_up
        self._follow_up = None
        self._generation += 1
        if follow_up is not None:
            follow_up[1]()

    def _is_ignored(self, ignored: frozenset[str]) -> bool:
        if self._app_identifier is None or not ignored:
            return False
        return self._app_identifier() in ignored

    def _replay(self, chord: Chord) -> None:
        if not self.handle(chord.tagged(REPLAY_TAG)):
            self.surface.post_chord(chord.tagged(SYNTHETIC_TAG))

    def _dispatch(self, chord: Chord) -> bool:
        if Modifier.CONTROL in chord.modifiers and chord.key_code == KEY_CODES["r"]:
            self.surface.redo()
            return True
        if chord.has_system_modifier:
            return False

        if chord.key_code == KEY_ESCAPE:
            return self._escape()
        if self.state.mode is Mode.INSERT:
            return False
        return self._command(chord)

    def _escape(self) -> bool:
        state = self.state
        if state.has_pending_state:
            state.clear_sub_state()
            return True
        if state.pending_operator is not None:
            state.pending_operator = None
            self.surface.exit_visual_mode(collapse=True)
            return True
        if state.mode is Mode.INSERT or state.mode.is_visual:
            self._switch_mode(Mode.NORMAL)
            return True
        state.key_buffer.clear()
        return True

    def _command(self, chord: Chord) -> bool:
        state = self.state
        char = chord_char(chord)

        if state.has_pending_state:
            return self._resolve_sub_state(chord, char)

        if char is None or (state.mode.is_visual and char in "yY"):
            state.key_buffer.clear()
        else:
            consumed, command = state.key_buffer.feed(char)
            if command == "document-start":
                return self._execute_motion(DOCUMENT_START)
            if command == "yank-line":
                return self._yank_line()
            if consumed:
                return True

        if char is not None:
            motion = MOTIONS.get(char)
            if motion is not None:
                return self._execute_motion(motion)
            command_fn = self._commands.get(char)
            if command_fn is not None:
                return command_fn()

        self._cancel_operator()
        return chord.key_code not in PASSTHROUGH_CODES

    def _resolve_sub_state(self, chord: Chord, char: str | None) -> bool:
        state = self.state
        sub_state = state.sub_state
        state.clear_sub_state()

        if sub_state is SubState.WAITING_REPLACE_CHAR:
            if state.mode is Mode.NORMAL:
                self.surface.replace_current_character(chord)
        elif sub_state is SubState.WAITING_TILL_CHAR:
            if char is not None:
                till = Motion("till", partial(_till, target=char), inclusive=True)
                return self._execute_motion(till)
            self._cancel_operator()
        elif sub_state is SubState.WAITING_TEXT_OBJECT_CHAR:
            if char is not None:
                self._change_inner_object(char)
            else:
                self._cancel_operator()
        return True

    # -- mode switching ----------------------------------------------------

    def _switch_mode(
        self,
        new_mode: Mode,
        *,
        collapse: bool = True,
        update_immediate: bool = True,
    ) -> None:
        state = self.state
        state.pending_operator = None
        previous = state.mode
        state.mode = new_mode
        logger.debug("switched %s -> %s", previous.value, new_mode.value)

        if new_mode is Mode.NORMAL:
            if previous is Mode.INSERT:
                self.surface.move_cursor(Direction.LEFT)
            self._exit_visual(collapse)
            state.block_cursor = True
            self.surface.set_block_cursor(True, update_immediate)
            if update_immediate:
                self._refresh_cursor()
        elif new_mode.is_visual:
            self._enter_visual(line_wise=new_mode is Mode.VISUAL_LINE)
        else:
            state.visual_anchor = state.visual_cursor = None
            state.block_cursor = False
            self.surface.prepare_for_insert_mode(collapse)

    def _enter_visual(self, *, line_wise: bool) -> None:
        state = self.state
        text, selection = self._snapshot()
        self.surface.enter_visual_mode(line_wise=line_wise)
        state.block_cursor = True
        self.surface.set_block_cursor(True, False)
        if text is None or selection is None:
            return

        active = self._active_index(selection)
        state.visual_anchor = line_start(text, active) if line_wise else active
        self._place_cursor(text, active)

    def _exit_visual(self, collapse: bool) -> None:
        state = self.state
        if not collapse:
            state.visual_anchor = state.visual_cursor = None
            self.surface.exit_visual_mode(collapse=False)
            return

        text, selection = self._snapshot()
        active = self._active_index(selection) if selection is not None else None
        state.visual_anchor = state.visual_cursor = None
        self.surface.exit_visual_mode(collapse=True)
        if text is not None and active is not None:
            self._place_cursor(text, active)

    # -- selection ---------------------------------------------------------

    def _snapshot(self) -> tuple[TextSnapshot | None, SelectedRange | None]:
        text = self.surface.get_text()
        selection = self.surface.get_selected_range()
        if text is None:
            return None, selection
        return to_code_units(text), selection

    def _active_index(self, selection: SelectedRange) -> int:
        """Index of the moving end of the selection."""
        anchor = self.state.visual_anchor
        cursor = self.state.visual_cursor
        if anchor is not None and cursor is not None:
            return cursor
        location, length = selection
        if anchor is not None and location == anchor and length > 0:
            return location + length - 1
        return location

    def _place_cursor(self, units: TextSnapshot, index: int) -> None:
        state = self.state
        count = len(units)
        anchor = state.visual_anchor
        state.visual_cursor = index if anchor is not None else None

        if anchor is not None and state.mode is Mode.VISUAL_LINE:
            start = line_start(units, min(anchor, index))
            length = line_end(units, max(anchor, index)) - start
            if length == 0 and start < count:
                length = 1
            self.surface.set_selected_range(start, length)
        elif anchor is not None:
            start = min(anchor, index)
            length = min(max(anchor, index) - start + 1, count - start)
            self.surface.set_selected_range(start, length)
        else:
            block = state.block_cursor and index < count and units[index] != NEWLINE
            self.surface.set_selected_range(index, 1 if block else 0)

    def _refresh_cursor(self) -> None:
        text, selection = self._snapshot()
        if text is not None and selection is not None:
            self._place_cursor(text, self._active_index(selection))

    # -- motions and operators ---------------------------------------------

    def _execute_motion(self, motion: Motion) -> bool:
        state = self.state
        operator = state.pending_operator
        text, selection = self._snapshot()

        if text is None or selection is None:
            if operator is None:
                self._coarse_motion(motion, extend=state.visual_anchor is not None)
            elif motion.fallback is None and motion.direction is None:
                self._cancel_operator()
            else:
                self.surface.enter_visual_mode()
                self._coarse_motion(motion, extend=True)
                self._apply_operator()
            return True

        index = self._active_index(selection)
        if operator is not None and motion.name == "word-forward":
            # cw on a word changes to the end of that word
            if index < len(text) and char_class(text[index]) is not CharClass.WHITESPACE:
                motion = Motion("word-forward", _word_run_end, inclusive=True)

        target = motion.target(text, index)
        if operator is None:
            if target != index:
                self._place_cursor(text, target)
            return True

        start, end = _operator_range(text, index, target, motion.inclusive)
        if end <= start:
            logger.debug("%s motion selects nothing, cancelling operator", motion.name)
            self._cancel_operator()
            return True

        state.visual_anchor = index
        self.surface.enter_visual_mode()
        self.surface.set_selected_range(start, end - start)
        self._apply_operator()
        return True

    def _coarse_motion(self, motion: Motion, *, extend: bool) -> None:
        if motion.direction is not None:
            self.surface.move_cursor(motion.direction, extend=extend)
        elif motion.fallback is not None:
            fallback = motion.fallback.with_modifiers(Modifier.SHIFT) if extend else motion.fallback
            self.surface.post_chord(fallback.tagged(SYNTHETIC_TAG))

    def _apply_operator(self) -> None:
        operator = self.state.pending_operator
        self.state.pending_operator = None
        if operator is Operator.CHANGE:
            self.surface.delete_current_character()
            self._switch_mode(Mode.INSERT, collapse=False)

    def _cancel_operator(self) -> None:
        if self.state.pending_operator is not None:
            logger.debug("cancelled pending %s", self.state.pending_operator.value)
            self.state.pending_operator = None

    def _change_inner_object(self, delimiter: str) -> None:
        text, selection = self._snapshot()
        if self.state.pending_operator is None or text is None or selection is None:
            self._cancel_operator()
            return

        span = inner_object_range(text, self._active_index(selection), delimiter)
        if span is None:
            logger.debug("no text object for %r", delimiter)
            self._cancel_operator()
            return

        start, end = span
        if end < start:
            self.surface.set_selected_range(start, 0)
            self._switch_mode(Mode.INSERT, collapse=False)
            return

        self.surface.enter_visual_mode()
        self.surface.set_selected_range(start, end - start + 1)
        self._apply_operator()

    # -- commands ----------------------------------------------------------

    def _guard_operator(self) -> bool:
        """Cancel a pending operator; True when the command must not run."""
        if self.state.pending_operator is None:
            return False
        self._cancel_operator()
        return True

    def _change(self) -> bool:
        state = self.state
        if state.mode.is_visual:
            self.surface.delete_current_character()
            self._switch_mode(Mode.INSERT, collapse=False)
            return True

        if state.pending_operator is Operator.CHANGE:
            text, selection = self._snapshot()
            if text is not None and selection is not None:
                start, end = line_range(text, self._active_index(selection))
                self.surface.set_selected_range(start, end - start)
                if end > start:
                    self.surface.delete_current_character()
            self._switch_mode(Mode.INSERT, collapse=False)
            return True

        state.pending_operator = Operator.CHANGE
        return True

    def _change_to_line_end(self) -> bool:
        if self.state.mode.is_visual:
            return self._change()

        text, selection = self._snapshot()
        if text is not None and selection is not None:
            index = self._active_index(selection)
            if line_end(text, index) <= index:
                self._switch_mode(Mode.INSERT, collapse=False)
                return True

        self.state.pending_operator = Operator.CHANGE
        return self._execute_motion(MOTIONS["$"])

    def _insert(self) -> bool:
        if self.state.pending_operator is not None:
            self.state.sub_state = SubState.WAITING_TEXT_OBJECT_CHAR
            return True
        self._switch_mode(Mode.INSERT)
        return True

    def _insert_at_first_non_whitespace(self) -> bool:
        if self._guard_operator():
            return True
        if self.state.mode.is_visual:
            self._exit_visual(collapse=True)
        self._execute_motion(MOTIONS["^"])
        self._switch_mode(Mode.INSERT)
        return True

    def _append(self) -> bool:
        if self._guard_operator() or self.state.mode is not Mode.NORMAL:
            return True
        text, selection = self._snapshot()
        if text is None or selection is None:
            self.surface.move_cursor(Direction.RIGHT)
        else:
            self.surface.set_selected_range(_right(text, self._active_index(selection)), 0)
        self._switch_mode(Mode.INSERT)
        return True

    def _append_at_line_end(self) -> bool:
        if self._guard_operator() or self.state.mode is not Mode.NORMAL:
            return True
        self.state.block_cursor = False
        self.surface.set_block_cursor(False, False)
        text, selection = self._snapshot()
        if text is None or selection is None:
            self.surface.post_chord(_shortcut(KEY_RIGHT, Modifier.COMMAND).tagged(SYNTHETIC_TAG))
        else:
            self.surface.set_selected_range(line_end(text, self._active_index(selection)), 0)
        self._switch_mode(Mode.INSERT, collapse=False)
        return True

    def _open_line(self, above: bool) -> bool:
        if self._guard_operator() or self.state.mode is not Mode.NORMAL:
            return True
        self.state.block_cursor = False
        self.surface.set_block_cursor(False, False)
        self.surface.open_line(above)
        self._switch_mode(Mode.INSERT, collapse=False)
        return True

    def _toggle_visual(self) -> bool:
        if self._guard_operator():
            return True
        if self.state.mode.is_visual:
            self._switch_mode(Mode.NORMAL)
        else:
            self._switch_mode(Mode.VISUAL)
        return True

    def _enter_visual_line(self) -> bool:
        if self._guard_operator():
            return True
        if self.state.mode.is_visual:
            self._reselect_lines()
        else:
            self._switch_mode(Mode.VISUAL_LINE)
        return True

    def _reselect_lines(self) -> None:
        """Turn the current visual selection into the cursor's whole line."""
        text, selection = self._snapshot()
        active = self._active_index(selection) if selection is not None else None
        if self.state.mode is not Mode.VISUAL_LINE:
            logger.debug("switched %s -> %s", self.state.mode.value, Mode.VISUAL_LINE.value)
            self.state.mode = Mode.VISUAL_LINE
        self.surface.enter_visual_mode(line_wise=True)
        if text is None or active is None:
            return
        self.state.visual_anchor = line_start(text, active)
        self._place_cursor(text, active)

    def _delete(self) -> bool:
        if self._guard_operator():
            return True
        state = self.state
        if state.mode.is_visual:
            if state.mode is Mode.VISUAL_LINE:
                self._delete_visual_line()
            else:
                self.surface.delete_current_character()
            self._defer_normal_mode()
            return True

        text, selection = self._snapshot()
        if text is not None and selection is not None and selection[1] == 0:
            index = selection[0]
            # nothing under the caret on an empty line or at the end
            if index >= len(text) or text[index] == NEWLINE:
                return True
        self.surface.delete_current_character()
        self._refresh_cursor()
        return True

    def _delete_selection(self) -> bool:
        if not self.state.mode.is_visual:
            self._cancel_operator()
            return True
        return self._delete()

    def _delete_visual_line(self) -> None:
        text, selection = self._snapshot()
        if text is not None and selection is not None:
            location, length = selection
            if location + length < len(text):
                self.surface.set_selected_range(location, length + 1)
        self.surface.delete_current_character()

    def _yank(self) -> bool:
        if self._guard_operator():
            return True
        if self.state.mode.is_visual:
            self.surface.yank()
            self._switch_mode(Mode.NORMAL)
        return True

    def _yank_line(self) -> bool:
        if self._guard_operator() or self.state.mode is not Mode.NORMAL:
            return True
        self.surface.yank_current_line(True)
        self._switch_mode(Mode.NORMAL)
        return True

    def _yank_rest_of_line(self) -> bool:
        if self._guard_operator():
            return True
        if self.state.mode.is_visual:
            return self._yank()
        self.surface.yank_rest_of_line()
        self._switch_mode(Mode.NORMAL)
        return True

    def _paste(self, after: bool) -> bool:
        if self._guard_operator():
            return True
        if self.state.mode.is_visual:
            self.surface.paste_in_visual()
            self._defer_normal_mode()
            return True
        self.surface.paste(after)
        self._refresh_cursor()
        return True

    def _undo(self) -> bool:
        if self._guard_operator() or self.state.mode is not Mode.NORMAL:
            return True
        self.surface.undo()
        self._refresh_cursor()
        return True

    def _wait_for_replace(self) -> bool:
        if self._guard_operator() or self.state.mode is not Mode.NORMAL:
            return True
        self.state.sub_state = SubState.WAITING_REPLACE_CHAR
        return True

    def _wait_for_till(self) -> bool:
        self.state.sub_state = SubState.WAITING_TILL_CHAR
        return True

    # -- deferred follow-up ------------------------------------------------

    def _defer_normal_mode(self) -> None:
        self._schedule(partial(self._switch_mode, Mode.NORMAL, collapse=False, update_immediate=False))

    def _schedule(self, callback: Callable[[], None]) -> None:
        self._generation += 1
        if self._scheduler is None:
            callback()
            return

        generation = self._generation
        self._follow_up = (generation, callback)

        def fire() -> None:
            follow_up = self._follow_up
            if follow_up is None or follow_up[0] != generation or self._generation != generation:
                return
            self._follow_up = None
            logger.debug("running deferred follow-up")
            callback()

        self._scheduler(FOLLOW_UP_DELAY, fire)


def _till(units: TextSnapshot, index: int, *, target: str) -> int:
    return next_occurrence(units, index, target, stop_before=True)


def _operator_range(units: TextSnapshot, index: int, target: int, inclusive: bool) -> tuple[int, int]:
    """Half-open range an operator acts on for a motion from INDEX to TARGET."""
    start, end = min(index, target), max(index, target)
    if inclusive and end < len(units) and units[end] != NEWLINE:
        end += 1
    return start, end
