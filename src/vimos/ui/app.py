"""Textual TUI application for VimOS."""

from __future__ import annotations

from collections.abc import Callable
from functools import partial

from rich.style import Style
from rich.text import Text
from textual.app import App, ComposeResult
from textual.events import Key
from textual.timer import Timer
from textual.widgets import Static

from ..config import ConfigAccessor, ConfigStore
from ..engine import ModalEngine
from ..state import Mode
from ..surface import BufferSurface
from .controller import UIController, UISnapshot

APP_IDENTIFIER = "vimos.tui"
SELECTION_STYLE = Style(reverse=True)
CARET_STYLE = Style(underline=True)


def _string_index(text: str, offset: int) -> int:
    """Convert a UTF-16 offset into a ``str`` index."""
    units = 0
    for index, char in enumerate(text):
        if units >= offset:
            return index
        units += 2 if ord(char) > 0xFFFF else 1
    return len(text)


def render_buffer(snapshot: UISnapshot) -> Text:
    """Render the buffer with its selection, or a caret when nothing is selected."""
    text = snapshot.text
    location, length = snapshot.selection
    start = _string_index(text, location)

    if length > 0:
        end = _string_index(text, location + length)
        rendered = Text(text)
        rendered.stylize(SELECTION_STYLE, start, end)
        return rendered

    caret_style = CARET_STYLE if snapshot.mode is Mode.INSERT else SELECTION_STYLE
    if start >= len(text) or text[start] == "\n":
        rendered = Text(text[:start])
        rendered.append(" ", style=caret_style)
        rendered.append(text[start:])
        return rendered

    rendered = Text(text)
    rendered.stylize(caret_style, start, start + 1)
    return rendered


class EditorView(Static):
    can_focus = True


class VimOSTuiApp(App[None]):
    """Terminal host: a single text field driven by the modal engine."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #editor {
        height: 1fr;
        border: round $accent;
        padding: 0 1;
    }

    #status {
        height: 1;
        padding: 0 1;
        background: $panel;
        color: $text;
    }
    """

    def __init__(self, text: str = "", config: ConfigAccessor | None = None) -> None:
        super().__init__()
        self.config_accessor = config if config is not None else ConfigStore()
        self.surface = BufferSurface(text)
        self.engine = ModalEngine(
            self.surface,
            self.config_accessor,
            scheduler=self._schedule,
            app_identifier=lambda: APP_IDENTIFIER,
        )
        self.controller = UIController(self.engine)
        self.status_text = ""
        self._quit_requested = False

    @property
    def quit_requested(self) -> bool:
        return self._quit_requested

    def compose(self) -> ComposeResult:
        yield EditorView(id="editor")
        yield Static(id="status")

    def on_mount(self) -> None:
        self.query_one("#editor", EditorView).focus()
        self._refresh_view()

    def on_key(self, event: Key) -> None:
        self.controller.dispatch_key(event.key, event.character)
        self._apply_ui_action()
        self._refresh_view()
        event.stop()
        event.prevent_default()

    def _schedule(self, delay: float, callback: Callable[[], None]) -> Timer:
        return self.set_timer(delay, partial(self._run_scheduled, callback))

    def _run_scheduled(self, callback: Callable[[], None]) -> None:
        self.controller.run_scheduled(callback)
        self._refresh_view()

    def _apply_ui_action(self) -> None:
        action = self.controller.pop_ui_action()
        if action is None:
            return
        if action.name == "quit":
            self._quit_requested = True
            self.exit()

    def _refresh_view(self) -> None:
        snapshot = self.controller.snapshot()
        self.query_one("#editor", EditorView).update(render_buffer(snapshot))

        parts = [snapshot.mode_indicator]
        if snapshot.pending:
            parts.append(f"pending {snapshot.pending}")
        if not snapshot.enabled:
            parts.append("[disabled]")
        parts.append(snapshot.status)
        self.status_text = " | ".join(parts)
        self.query_one("#status", Static).update(Text(self.status_text))
