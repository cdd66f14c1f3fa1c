import asyncio

from rich.text import Text

from vimos.state import Mode
from vimos.ui.app import VimOSTuiApp, render_buffer
from vimos.ui.controller import UISnapshot


def _snapshot(text: str, selection: tuple[int, int], mode: Mode = Mode.NORMAL) -> UISnapshot:
    return UISnapshot(
        text=text,
        selection=selection,
        mode=mode,
        block_cursor=mode is not Mode.INSERT,
        pending="",
        enabled=True,
        status="ready",
    )


def test_render_buffer_highlights_selection() -> None:
    rendered = render_buffer(_snapshot("hello", (1, 3), Mode.VISUAL))
    assert isinstance(rendered, Text)
    assert rendered.plain == "hello"
    assert [(span.start, span.end) for span in rendered.spans] == [(1, 4)]


def test_render_buffer_pads_caret_at_line_end() -> None:
    rendered = render_buffer(_snapshot("ab\ncd", (2, 0), Mode.INSERT))
    assert rendered.plain == "ab \ncd"

    rendered = render_buffer(_snapshot("ab", (2, 0), Mode.INSERT))
    assert rendered.plain == "ab "


def test_tui_renders_initial_status() -> None:
    async def scenario() -> None:
        app = VimOSTuiApp("hello")
        async with app.run_test() as pilot:
            await pilot.pause()
            assert app.status_text.startswith("-- INSERT --")

    asyncio.run(scenario())


def test_tui_escape_and_normal_commands() -> None:
    async def scenario() -> None:
        app = VimOSTuiApp("hello")
        async with app.run_test() as pilot:
            await pilot.press("escape")
            await pilot.pause()
            assert app.engine.mode is Mode.NORMAL
            assert app.status_text.startswith("-- NORMAL --")

            await pilot.press("x")
            await pilot.pause()
            assert app.surface.text == "ello"

            await pilot.press("i", "a")
            await pilot.pause()
            assert app.surface.text == "aello"
            assert app.engine.mode is Mode.INSERT

    asyncio.run(scenario())


def test_tui_visual_delete_returns_to_normal_after_timer() -> None:
    async def scenario() -> None:
        app = VimOSTuiApp("hello")
        async with app.run_test() as pilot:
            await pilot.press("escape", "v", "l", "d")
            assert app.surface.text == "llo"

            await pilot.pause(0.1)
            assert app.engine.mode is Mode.NORMAL
            assert app.status_text.startswith("-- NORMAL --")

    asyncio.run(scenario())


def test_tui_ctrl_q_requests_quit() -> None:
    async def scenario() -> None:
        app = VimOSTuiApp()
        async with app.run_test() as pilot:
            app.controller.dispatch_key("ctrl+q")
            app._apply_ui_action()
            await pilot.pause()
            assert app.quit_requested

    asyncio.run(scenario())
