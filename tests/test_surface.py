from vimos.keymap import (
    KEY_CODES,
    KEY_DELETE,
    KEY_DOWN,
    KEY_LEFT,
    KEY_RETURN,
    KEY_RIGHT,
    KEY_UP,
    Chord,
    Modifier,
    chord_for_token,
)
from vimos.surface import BufferSurface, Direction


def _chord(key: str | int, *modifiers: Modifier) -> Chord:
    code = KEY_CODES[key] if isinstance(key, str) else key
    return Chord(key_code=code, modifiers=frozenset(modifiers))


def _type(surface: BufferSurface, text: str) -> None:
    for char in text:
        surface.post_chord(chord_for_token(char))


def test_typing_return_and_backspace() -> None:
    surface = BufferSurface()
    _type(surface, "hi")
    assert surface.text == "hi"
    assert surface.selection == (2, 0)

    surface.post_chord(_chord(KEY_RETURN))
    assert surface.text == "hi\n"

    surface.post_chord(_chord(KEY_DELETE))
    assert surface.text == "hi"
    assert surface.selection == (2, 0)


def test_set_selected_range_clamps() -> None:
    surface = BufferSurface("abc")
    surface.set_selected_range(10, 5)
    assert surface.selection == (3, 0)
    surface.set_selected_range(1, 10)
    assert surface.selection == (1, 2)


def test_plain_moves_collapse_selection() -> None:
    surface = BufferSurface("abc")
    surface.set_selected_range(1, 2)
    surface.move_cursor(Direction.LEFT)
    assert surface.selection == (1, 0)

    surface.set_selected_range(1, 2)
    surface.move_cursor(Direction.RIGHT)
    assert surface.selection == (3, 0)


def test_shift_extension_pivots_on_anchor() -> None:
    surface = BufferSurface("abcdef")
    surface.set_selected_range(2, 0)

    surface.move_cursor(Direction.RIGHT, extend=True)
    surface.move_cursor(Direction.RIGHT, extend=True)
    assert surface.selection == (2, 2)

    surface.move_cursor(Direction.LEFT, extend=True)
    assert surface.selection == (2, 1)
    surface.move_cursor(Direction.LEFT, extend=True)
    assert surface.selection == (2, 0)
    surface.move_cursor(Direction.LEFT, extend=True)
    assert surface.selection == (1, 1)


def test_command_and_option_navigation() -> None:
    surface = BufferSurface("abc\ndef")
    surface.set_selected_range(1, 0)

    surface.post_chord(_chord(KEY_RIGHT, Modifier.COMMAND))
    assert surface.selection == (3, 0)
    surface.post_chord(_chord(KEY_LEFT, Modifier.COMMAND, Modifier.SHIFT))
    assert surface.selection == (0, 3)
    surface.post_chord(_chord(KEY_DOWN, Modifier.COMMAND))
    assert surface.selection == (7, 0)
    surface.post_chord(_chord(KEY_UP, Modifier.COMMAND))
    assert surface.selection == (0, 0)

    surface = BufferSurface("foo bar")
    surface.post_chord(_chord(KEY_RIGHT, Modifier.OPTION))
    assert surface.selection == (4, 0)
    surface.post_chord(_chord(KEY_LEFT, Modifier.OPTION))
    assert surface.selection == (0, 0)


def test_control_chords_are_ignored() -> None:
    surface = BufferSurface("abc")
    surface.post_chord(_chord("a", Modifier.CONTROL))
    assert surface.text == "abc"


def test_undo_and_redo_shortcuts() -> None:
    surface = BufferSurface()
    _type(surface, "ab")

    surface.post_chord(_chord("z", Modifier.COMMAND))
    assert surface.text == "a"
    surface.post_chord(_chord("z", Modifier.COMMAND, Modifier.SHIFT))
    assert surface.text == "ab"

    surface.redo()
    assert surface.text == "ab"


def test_clipboard_shortcuts() -> None:
    surface = BufferSurface("hello")
    surface.post_chord(_chord("a", Modifier.COMMAND))
    assert surface.selection == (0, 5)

    surface.post_chord(_chord("c", Modifier.COMMAND))
    assert surface.clipboard == "hello"
    surface.post_chord(_chord("x", Modifier.COMMAND))
    assert surface.text == ""
    surface.post_chord(_chord("v", Modifier.COMMAND))
    assert surface.text == "hello"


def test_charwise_paste() -> None:
    surface = BufferSurface("ac")
    surface.clipboard = "b"
    surface.paste(after=True)
    assert surface.text == "abc"
    assert surface.selection == (1, 0)

    surface = BufferSurface("ac")
    surface.clipboard = "b"
    surface.paste(after=False)
    assert surface.text == "bac"
    assert surface.selection == (0, 0)


def test_linewise_paste() -> None:
    surface = BufferSurface("one\ntwo")
    surface.clipboard = "x\n"
    surface.set_selected_range(5, 0)
    surface.paste(after=False)
    assert surface.text == "one\nx\ntwo"
    assert surface.selection == (4, 0)

    surface = BufferSurface("one")
    surface.clipboard = "x\n"
    surface.paste(after=True)
    assert surface.text == "one\nx"
    assert surface.selection == (4, 0)


def test_line_yanks() -> None:
    surface = BufferSurface("abc\ndef")
    surface.set_selected_range(1, 0)
    surface.yank_rest_of_line()
    assert surface.clipboard == "bc"

    surface.set_selected_range(5, 0)
    surface.yank_current_line(False)
    assert surface.clipboard == "def"

    surface.set_selected_range(0, 0)
    surface.yank_current_line(True)
    assert surface.clipboard == "abc\n"


def test_replace_skips_line_break() -> None:
    surface = BufferSurface("a\nb")
    surface.set_selected_range(1, 0)
    surface.replace_current_character(chord_for_token("x"))
    assert surface.text == "a\nb"

    surface.set_selected_range(0, 0)
    surface.replace_current_character(chord_for_token("x"))
    assert surface.text == "x\nb"
    assert surface.selection == (0, 0)


def test_prepare_for_insert_mode_collapses() -> None:
    surface = BufferSurface("abc")
    surface.set_block_cursor(True)
    surface.enter_visual_mode(line_wise=True)
    surface.set_selected_range(1, 2)

    surface.prepare_for_insert_mode()
    assert surface.selection == (1, 0)
    assert not surface.visual
    assert not surface.block_cursor


def test_unfocused_surface_answers_none() -> None:
    surface = BufferSurface("abc", focused=False)

    assert surface.get_text() is None
    assert surface.get_selected_range() is None
    surface.delete_current_character()
    surface.post_chord(chord_for_token("x"))
    assert surface.text == "abc"
