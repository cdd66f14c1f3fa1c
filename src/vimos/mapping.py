"""Key-sequence remapping that runs ahead of the modal engine."""

from __future__ import annotations

import logging

from .config import ConfigAccessor, KeyMapping
from .keymap import Chord, KeySequence, chord_char, chords_for_sequence, format_key_sequence
from .state import Mode

logger = logging.getLogger(__name__)


class KeySequenceInterpreter:
    """Buffers ambiguous prefixes of user mappings and resolves them.

    ``process`` returns ``(handled, replay)``. ``handled`` means the caller must
    not act on the chord itself; ``replay`` holds the chords to feed back in its
    place (a mapping expansion, or the literal chords of an abandoned prefix).
    """

    def __init__(self, config: ConfigAccessor) -> None:
        self._config = config
        self._pending_keys: list[str] = []
        self._pending_chords: list[Chord] = []

    @property
    def pending(self) -> KeySequence:
        return tuple(self._pending_keys)

    def has_pending_keys(self) -> bool:
        return bool(self._pending_keys)

    def process(self, chord: Chord, mode: Mode) -> tuple[bool, list[Chord] | None]:
        char = chord_char(chord)
        if char is None:
            if self._pending_keys:
                return True, [*self.flush(), chord]
            return False, None

        candidate = (*self._pending_keys, char)
        active = self._active_mappings(mode)

        match = next((mapping for mapping in active if mapping.source == candidate), None)
        if match is not None:
            self._clear()
            logger.debug(
                "remap %s -> %s",
                format_key_sequence(match.source),
                format_key_sequence(match.target),
            )
            try:
                return True, chords_for_sequence(match.target)
            except ValueError as exc:
                logger.warning("cannot type mapping target: %s", exc)
                return True, []

        if any(_extends(mapping.source, candidate) for mapping in active):
            self._pending_keys.append(char)
            self._pending_chords.append(chord)
            return True, None

        if self._pending_keys:
            return True, [*self.flush(), chord]
        return False, None

    def flush(self) -> list[Chord]:
        """Abandon the buffered prefix and return its raw chords."""
        chords = list(self._pending_chords)
        if chords:
            logger.debug("flushing unmatched prefix %s", format_key_sequence(self.pending))
        self._clear()
        return chords

    def _clear(self) -> None:
        self._pending_keys.clear()
        self._pending_chords.clear()

    def _active_mappings(self, mode: Mode) -> list[KeyMapping]:
        mode_name = mode.mapping_name
        return [mapping for mapping in self._config().mappings if mapping.applies_to(mode_name)]


def _extends(sequence: KeySequence, prefix: KeySequence) -> bool:
    return len(sequence) > len(prefix) and sequence[: len(prefix)] == prefix
