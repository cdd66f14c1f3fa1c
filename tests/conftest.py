from __future__ import annotations

from collections.abc import Callable

import pytest

from vimos.config import ConfigStore, VimOSConfig
from vimos.engine import ModalEngine
from vimos.keymap import Chord, chord_for_token
from vimos.surface import BufferSurface, Direction


class RecordingSurface:
    """TextSurface that records every command, optionally backed by a buffer.

    Without a buffer every query answers None, as for an unfocused field.
    """

    def __init__(self, text: str | None = None) -> None:
        self.buffer = BufferSurface(text) if text is not None else None
        self.calls: list[tuple[object, ...]] = []

    def names(self) -> list[str]:
        return [str(call[0]) for call in self.calls]

    def _record(self, name: str, *args: object) -> None:
        self.calls.append((name, *args))

    def get_text(self) -> str | None:
        return self.buffer.get_text() if self.buffer is not None else None

    def get_selected_range(self) -> tuple[int, int] | None:
        return self.buffer.get_selected_range() if self.buffer is not None else None

    def set_selected_range(self, location: int, length: int) -> None:
        self._record("set_selected_range", location, length)
        if self.buffer is not None:
            self.buffer.set_selected_range(location, length)

    def move_cursor(self, direction: Direction, *, extend: bool = False) -> None:
        self._record("move_cursor", direction, extend)
        if self.buffer is not None:
            self.buffer.move_cursor(direction, extend=extend)

    def post_chord(self, chord: Chord) -> None:
        self._record("post_chord", chord)
        if self.buffer is not None:
            self.buffer.post_chord(chord)

    def enter_visual_mode(self, *, line_wise: bool = False) -> None:
        self._record("enter_visual_mode", line_wise)
        if self.buffer is not None:
            self.buffer.enter_visual_mode(line_wise=line_wise)

    def exit_visual_mode(self, collapse: bool = True) -> None:
        self._record("exit_visual_mode", collapse)
        if self.buffer is not None:
            self.buffer.exit_visual_mode(collapse)

    def set_block_cursor(self, enabled: bool, update_immediate: bool = True) -> None:
        self._record("set_block_cursor", enabled, update_immediate)
        if self.buffer is not None:
            self.buffer.set_block_cursor(enabled, update_immediate)

    def prepare_for_insert_mode(self, collapse: bool = True) -> None:
        self._record("prepare_for_insert_mode", collapse)
        if self.buffer is not None:
            self.buffer.prepare_for_insert_mode(collapse)

    def delete_current_character(self) -> None:
        self._record("delete_current_character")
        if self.buffer is not None:
            self.buffer.delete_current_character()

    def replace_current_character(self, chord: Chord) -> None:
        self._record("replace_current_character", chord)
        if self.buffer is not None:
            self.buffer.replace_current_character(chord)

    def undo(self) -> None:
        self._record("undo")
        if self.buffer is not None:
            self.buffer.undo()

    def redo(self) -> None:
        self._record("redo")
        if self.buffer is not None:
            self.buffer.redo()

    def yank(self) -> None:
        self._record("yank")
        if self.buffer is not None:
            self.buffer.yank()

    def yank_current_line(self, include_terminator: bool) -> None:
        self._record("yank_current_line", include_terminator)
        if self.buffer is not None:
            self.buffer.yank_current_line(include_terminator)

    def yank_rest_of_line(self) -> None:
        self._record("yank_rest_of_line")
        if self.buffer is not None:
            self.buffer.yank_rest_of_line()

    def paste(self, after: bool) -> None:
        self._record("paste", after)
        if self.buffer is not None:
            self.buffer.paste(after)

    def paste_in_visual(self) -> None:
        self._record("paste_in_visual")
        if self.buffer is not None:
            self.buffer.paste_in_visual()

    def open_line(self, above: bool) -> None:
        self._record("open_line", above)
        if self.buffer is not None:
            self.buffer.open_line(above)


EngineFactory = Callable[..., tuple[ModalEngine, RecordingSurface]]


@pytest.fixture
def make_engine() -> EngineFactory:
    def _make(
        text: str | None = None,
        *,
        config: VimOSConfig | None = None,
        scheduler=None,
        app_identifier=None,
    ) -> tuple[ModalEngine, RecordingSurface]:
        surface = RecordingSurface(text)
        store = ConfigStore(config=config if config is not None else VimOSConfig())
        engine = ModalEngine(surface, store, scheduler=scheduler, app_identifier=app_identifier)
        return engine, surface

    return _make


@pytest.fixture
def press() -> Callable[..., list[bool]]:
    """Feed key tokens (``"j"``, ``"<esc>"``, ``"$"``) to an engine."""

    def _press(engine: ModalEngine, *tokens: str) -> list[bool]:
        return [engine.handle(chord_for_token(token)) for token in tokens]

    return _press
