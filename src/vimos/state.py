"""Modal engine state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Mode(Enum):
    """Editing modes."""

    NORMAL = "NORMAL"
    INSERT = "INSERT"
    VISUAL = "VISUAL"
    VISUAL_LINE = "VISUAL LINE"

    @property
    def is_visual(self) -> bool:
        return self in (Mode.VISUAL, Mode.VISUAL_LINE)

    @property
    def mapping_name(self) -> str:
        """Name used by key mapping mode filters."""
        if self.is_visual:
            return "visual"
        return self.name.lower()


class Operator(Enum):
    CHANGE = "change"


class SubState(Enum):
    """Single-chord waits that consume the next key regardless of identity."""

    NONE = "none"
    WAITING_REPLACE_CHAR = "replace"
    WAITING_TILL_CHAR = "till"
    WAITING_TEXT_OBJECT_CHAR = "text-object"


TWO_KEY_COMMANDS: dict[tuple[str, ...], str] = {
    ("g", "g"): "document-start",
    ("y", "y"): "yank-line",
}


@dataclass
class KeyBuffer:
    """Pending prefix for two-chord commands such as ``gg`` and ``yy``.

    A key that does not complete the buffered prefix discards it; the key is
    then left for normal processing (and may start a new prefix itself).
    """

    keys: tuple[str, ...] = ()
    commands: dict[tuple[str, ...], str] = field(default_factory=lambda: dict(TWO_KEY_COMMANDS))

    def feed(self, key: str) -> tuple[bool, str | None]:
        """Offer KEY to the buffer.

        Returns ``(consumed, command)``: ``consumed`` is True when the key was
        absorbed as a prefix or completed a command named by ``command``.
        """
        if self.keys:
            candidate = (*self.keys, key)
            self.keys = ()
            command = self.commands.get(candidate)
            if command is not None:
                return True, command

        if self.is_prefix(key):
            self.keys = (key,)
            return True, None
        return False, None

    def is_prefix(self, key: str) -> bool:
        return any(sequence[0] == key for sequence in self.commands)

    def clear(self) -> None:
        self.keys = ()

    def __bool__(self) -> bool:
        return bool(self.keys)


@dataclass
class EngineState:
    """Runtime mutable engine state, written only by ``ModalEngine.handle``."""

    mode: Mode = Mode.INSERT
    pending_operator: Operator | None = None
    sub_state: SubState = SubState.NONE
    key_buffer: KeyBuffer = field(default_factory=KeyBuffer)
    visual_anchor: int | None = None
    # moving end of a visual selection; a line-wise selection does not reveal it
    visual_cursor: int | None = None
    block_cursor: bool = False
    enabled: bool = True

    @property
    def has_pending_state(self) -> bool:
        return self.sub_state is not SubState.NONE

    def clear_sub_state(self) -> None:
        self.sub_state = SubState.NONE

    def pending_description(self) -> str:
        parts: list[str] = []
        if self.pending_operator is not None:
            parts.append(self.pending_operator.value)
        if self.sub_state is not SubState.NONE:
            parts.append(self.sub_state.value)
        if self.key_buffer:
            parts.append("".join(self.key_buffer.keys))
        return " ".join(parts)
