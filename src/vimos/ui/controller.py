"""UI adapter that maps terminal key events to engine chords."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..engine import ModalEngine
from ..keymap import (
    KEY_CODES,
    KEY_DELETE,
    KEY_DOWN,
    KEY_ESCAPE,
    KEY_FORWARD_DELETE,
    KEY_LEFT,
    KEY_RETURN,
    KEY_RIGHT,
    KEY_SPACE,
    KEY_TAB,
    KEY_UP,
    Chord,
    Modifier,
    chord_for_token,
    format_shortcut,
)
from ..state import Mode

logger = logging.getLogger(__name__)

UNKNOWN_KEY_CODE = -1

TEXTUAL_KEY_CODES: dict[str, int] = {
    "escape": KEY_ESCAPE,
    "enter": KEY_RETURN,
    "tab": KEY_TAB,
    "space": KEY_SPACE,
    "backspace": KEY_DELETE,
    "delete": KEY_FORWARD_DELETE,
    "left": KEY_LEFT,
    "right": KEY_RIGHT,
    "up": KEY_UP,
    "down": KEY_DOWN,
}

TEXTUAL_MODIFIERS: dict[str, Modifier] = {
    "ctrl": Modifier.CONTROL,
    "alt": Modifier.OPTION,
    "meta": Modifier.COMMAND,
    "super": Modifier.COMMAND,
    "shift": Modifier.SHIFT,
}

UI_ACTION_BINDINGS: dict[str, str] = {
    "ctrl+q": "quit",
}

MODE_INDICATORS: dict[Mode, str] = {mode: f"-- {mode.value} --" for mode in Mode}


def chord_from_key(key: str, character: str | None = None) -> Chord | None:
    """Translate a Textual key name (plus the character it types) into a chord."""
    parts = key.split("+")
    modifiers = frozenset(TEXTUAL_MODIFIERS[part] for part in parts[:-1] if part in TEXTUAL_MODIFIERS)
    base = parts[-1]

    code = TEXTUAL_KEY_CODES.get(base)
    if code is not None:
        characters = " " if code == KEY_SPACE else None
        return Chord(key_code=code, modifiers=modifiers, characters=characters)

    system = modifiers - {Modifier.SHIFT}
    if not system and character and len(character) == 1 and character.isprintable():
        try:
            return chord_for_token(character)
        except ValueError:
            return Chord(key_code=UNKNOWN_KEY_CODE, characters=character)

    code = KEY_CODES.get(base.lower()) if len(base) == 1 else None
    if code is None:
        return None
    if base.isupper():
        modifiers = modifiers | {Modifier.SHIFT}
    return Chord(key_code=code, modifiers=modifiers)


@dataclass(frozen=True)
class UISnapshot:
    """Immutable UI state for rendering."""

    text: str
    selection: tuple[int, int]
    mode: Mode
    block_cursor: bool
    pending: str
    enabled: bool
    status: str

    @property
    def mode_indicator(self) -> str:
        return MODE_INDICATORS[self.mode]


@dataclass(frozen=True)
class UIAction:
    """UI actions consumed by the Textual layer."""

    name: str


class UIController:
    """Stateful adapter between UI events and the modal engine."""

    def __init__(self, engine: ModalEngine) -> None:
        self.engine = engine
        self._status = "ready"
        self._ui_action: UIAction | None = None

    def snapshot(self) -> UISnapshot:
        surface = self.engine.surface
        state = self.engine.state
        pending = " ".join(
            part
            for part in (state.pending_description(), "".join(self.engine.interpreter.pending))
            if part
        )
        return UISnapshot(
            text=surface.get_text() or "",
            selection=surface.get_selected_range() or (0, 0),
            mode=state.mode,
            block_cursor=state.block_cursor,
            pending=pending,
            enabled=state.enabled,
            status=self._status,
        )

    def has_pending_keys(self) -> bool:
        return self.engine.interpreter.has_pending_keys() or bool(self.engine.state.key_buffer)

    def pop_ui_action(self) -> UIAction | None:
        action = self._ui_action
        self._ui_action = None
        return action

    def dispatch_key(self, key: str, character: str | None = None) -> str:
        action = UI_ACTION_BINDINGS.get(key)
        if action is not None:
            self._ui_action = UIAction(name=action)
            return self._set_status(self._action_status(action))

        chord = chord_from_key(key, character)
        if chord is None:
            return self._set_status(f"unsupported key: {key}")
        return self.handle_chord(chord)

    def handle_chord(self, chord: Chord) -> str:
        was_enabled = self.engine.state.enabled
        try:
            suppressed = self.engine.handle(chord)
        except Exception:
            logger.exception("error handling chord %s", format_shortcut(chord))
            suppressed = False
            self._set_status("internal error, key passed through")

        if not suppressed:
            self.engine.surface.post_chord(chord)

        if self.engine.state.enabled != was_enabled:
            return self._set_status("enabled" if self.engine.state.enabled else "disabled")
        return self._status

    def run_scheduled(self, callback: Callable[[], None]) -> None:
        """Run a timer callback handed out through the engine's scheduler."""
        try:
            callback()
        except Exception:
            logger.exception("deferred follow-up failed")

    def _set_status(self, message: str) -> str:
        self._status = message
        return message

    def _action_status(self, action: str) -> str:
        if action == "quit":
            return "quit requested"
        return action
