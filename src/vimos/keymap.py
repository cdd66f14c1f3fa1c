"""Chord model and key sequence parsing helpers for the input model."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

SYNTHETIC_TAG = 0x555
REPLAY_TAG = 0x999


class Modifier(Enum):
    """Modifier keys that can accompany a chord."""

    COMMAND = "cmd"
    OPTION = "opt"
    CONTROL = "ctrl"
    SHIFT = "shift"


SYSTEM_MODIFIERS = frozenset({Modifier.COMMAND, Modifier.OPTION, Modifier.CONTROL})

MODIFIER_ORDER = (Modifier.COMMAND, Modifier.OPTION, Modifier.CONTROL, Modifier.SHIFT)
MODIFIER_ALIASES = {
    "CMD": Modifier.COMMAND,
    "COMMAND": Modifier.COMMAND,
    "META": Modifier.COMMAND,
    "SUPER": Modifier.COMMAND,
    "OPT": Modifier.OPTION,
    "OPTION": Modifier.OPTION,
    "ALT": Modifier.OPTION,
    "CTRL": Modifier.CONTROL,
    "CONTROL": Modifier.CONTROL,
    "SHIFT": Modifier.SHIFT,
}

# US layout virtual key codes.
KEY_CODES: dict[str, int] = {
    "a": 0, "s": 1, "d": 2, "f": 3, "h": 4, "g": 5, "z": 6, "x": 7, "c": 8, "v": 9,
    "b": 11, "q": 12, "w": 13, "e": 14, "r": 15, "y": 16, "t": 17, "1": 18, "2": 19,
    "3": 20, "4": 21, "6": 22, "5": 23, "=": 24, "9": 25, "7": 26, "-": 27, "8": 28,
    "0": 29, "]": 30, "o": 31, "u": 32, "[": 33, "i": 34, "p": 35, "l": 37, "j": 38,
    "'": 39, "k": 40, ";": 41, "\\": 42, ",": 43, "/": 44, "n": 45, "m": 46, ".": 47,
    " ": 49, "`": 50,
}
CODE_TO_CHAR: dict[int, str] = {code: char for char, code in KEY_CODES.items()}

SHIFTED_CHARS: dict[str, str] = {
    "~": "`", "!": "1", "@": "2", "#": "3", "$": "4", "%": "5",
    "^": "6", "&": "7", "*": "8", "(": "9", ")": "0", "_": "-",
    "+": "=", "{": "[", "}": "]", "|": "\\", ":": ";", '"': "'",
    "<": ",", ">": ".", "?": "/",
}
UNSHIFTED_TO_SHIFTED: dict[str, str] = {base: shifted for shifted, base in SHIFTED_CHARS.items()}

KEY_RETURN = 36
KEY_TAB = 48
KEY_SPACE = 49
KEY_DELETE = 51
KEY_ESCAPE = 53
KEY_FORWARD_DELETE = 117
KEY_LEFT = 123
KEY_RIGHT = 124
KEY_DOWN = 125
KEY_UP = 126

NAMED_KEYS: dict[str, int] = {
    "esc": KEY_ESCAPE,
    "escape": KEY_ESCAPE,
    "cr": KEY_RETURN,
    "enter": KEY_RETURN,
    "return": KEY_RETURN,
    "tab": KEY_TAB,
    "space": KEY_SPACE,
    "bs": KEY_DELETE,
    "backspace": KEY_DELETE,
    "del": KEY_FORWARD_DELETE,
    "delete": KEY_FORWARD_DELETE,
    "left": KEY_LEFT,
    "right": KEY_RIGHT,
    "down": KEY_DOWN,
    "up": KEY_UP,
}

KeySequence = tuple[str, ...]


@dataclass(frozen=True)
class Chord:
    """One key event: key code plus modifier set."""

    key_code: int
    modifiers: frozenset[Modifier] = frozenset()
    is_key_down: bool = True
    flags_changed: bool = False
    characters: str | None = None
    tag: int = 0

    @property
    def shift(self) -> bool:
        return Modifier.SHIFT in self.modifiers

    @property
    def has_system_modifier(self) -> bool:
        return bool(self.modifiers & SYSTEM_MODIFIERS)

    def tagged(self, tag: int) -> Chord:
        return replace(self, tag=tag)

    def with_modifiers(self, *modifiers: Modifier) -> Chord:
        return replace(self, modifiers=self.modifiers | frozenset(modifiers))


def chord_char(chord: Chord) -> str | None:
    """Return the printable character a chord types, or None."""
    if chord.flags_changed or chord.has_system_modifier:
        return None

    if chord.characters:
        if len(chord.characters) == 1 and chord.characters.isprintable():
            return chord.characters
        return None

    base = CODE_TO_CHAR.get(chord.key_code)
    if base is None:
        return None
    if not chord.shift:
        return base
    if base.isalpha():
        return base.upper()
    return UNSHIFTED_TO_SHIFTED.get(base, base)


def chord_for_token(token: str) -> Chord:
    """Build the chord that types TOKEN (a character or a <name> key)."""
    if len(token) > 2 and token.startswith("<") and token.endswith(">"):
        code = NAMED_KEYS.get(token[1:-1].lower())
        if code is None:
            raise ValueError(f"unknown key name: {token}")
        if code == KEY_SPACE:
            return Chord(key_code=code, characters=" ")
        return Chord(key_code=code)

    if len(token) != 1:
        raise ValueError(f"invalid key token: {token}")

    base = SHIFTED_CHARS.get(token)
    if base is not None:
        return Chord(key_code=KEY_CODES[base], modifiers=frozenset({Modifier.SHIFT}), characters=token)

    code = KEY_CODES.get(token.lower())
    if code is None:
        raise ValueError(f"no key produces {token!r}")
    if token.isupper():
        return Chord(key_code=code, modifiers=frozenset({Modifier.SHIFT}), characters=token)
    return Chord(key_code=code, characters=token)


def parse_key_sequence(sequence: str) -> KeySequence:
    """Split a mapping string such as ``jk`` or ``<esc>o`` into key tokens."""
    tokens: list[str] = []
    index = 0
    while index < len(sequence):
        char = sequence[index]
        if char == "<":
            close = sequence.find(">", index + 2)
            if close != -1 and sequence[index + 1 : close].isalpha():
                name = sequence[index + 1 : close].lower()
                if name == "space":
                    tokens.append(" ")
                else:
                    tokens.append(f"<{name}>")
                index = close + 1
                continue
        tokens.append(char)
        index += 1

    if not tokens:
        raise ValueError("empty key sequence")
    return tuple(tokens)


def chords_for_sequence(sequence: KeySequence) -> list[Chord]:
    return [chord_for_token(token) for token in sequence]


def format_key_sequence(sequence: KeySequence) -> str:
    """Render a key sequence for messages."""
    return "".join(sequence)


def parse_shortcut(text: str) -> Chord:
    """Parse a shortcut such as ``Cmd+Option+v`` into a chord."""
    parts = [part.strip() for part in text.split("+")]
    if any(part == "" for part in parts):
        raise ValueError(f"invalid shortcut: {text}")

    modifiers: set[Modifier] = set()
    for raw_mod in parts[:-1]:
        mod = MODIFIER_ALIASES.get(raw_mod.upper())
        if mod is None:
            raise ValueError(f"unknown key modifier: {raw_mod}")
        modifiers.add(mod)

    key = parts[-1].lower()
    code = KEY_CODES.get(key)
    if code is None:
        code = NAMED_KEYS.get(key.strip("<>"))
    if code is None:
        raise ValueError(f"unknown key in shortcut: {parts[-1]}")
    return Chord(key_code=code, modifiers=frozenset(modifiers))


def format_shortcut(chord: Chord) -> str:
    names = [mod.value for mod in MODIFIER_ORDER if mod in chord.modifiers]
    key = CODE_TO_CHAR.get(chord.key_code)
    if key is None:
        key = next((name for name, code in NAMED_KEYS.items() if code == chord.key_code), "?")
    return "+".join([*names, key])


def matches_shortcut(chord: Chord, shortcut: Chord) -> bool:
    return chord.key_code == shortcut.key_code and chord.modifiers == shortcut.modifiers
