"""TUI entrypoint."""

from __future__ import annotations

from .config import ConfigAccessor
from .ui.app import VimOSTuiApp


def run_tui(text: str = "", config: ConfigAccessor | None = None) -> None:
    app = VimOSTuiApp(text, config)
    app.run()
