"""Configuration model and loading.

The core never reads configuration globals. It is handed a zero-argument
accessor (a ``ConfigStore`` instance works) and asks it for the current
read-only ``VimOSConfig`` snapshot on every chord.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .keymap import Chord, KeySequence, chords_for_sequence, parse_key_sequence, parse_shortcut

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".vimos"
CONFIG_PATH = CONFIG_DIR / "config.json"
MODE_NAMES = frozenset({"normal", "insert", "visual"})


@dataclass(frozen=True)
class KeyMapping:
    """User-defined alias from one key sequence to another."""

    source: KeySequence
    target: KeySequence
    modes: frozenset[str] | None = None

    def applies_to(self, mode_name: str) -> bool:
        return self.modes is None or mode_name in self.modes

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> KeyMapping:
        source = data.get("from")
        target = data.get("to")
        if not isinstance(source, str) or not isinstance(target, str):
            raise ValueError("mapping needs string 'from' and 'to'")

        source_keys = parse_key_sequence(source)
        target_keys = parse_key_sequence(target)
        # fail early on targets that cannot be typed
        chords_for_sequence(target_keys)

        raw_modes = data.get("modes")
        if raw_modes is None:
            return cls(source=source_keys, target=target_keys)
        if isinstance(raw_modes, str) or not isinstance(raw_modes, Iterable):
            raise ValueError("mapping 'modes' must be a list")

        modes = frozenset(str(mode).lower() for mode in raw_modes)
        unknown = modes - MODE_NAMES
        if unknown:
            raise ValueError(f"unknown mapping mode: {', '.join(sorted(unknown))}")
        return cls(source=source_keys, target=target_keys, modes=modes)


@dataclass(frozen=True)
class VimOSConfig:
    """Read-only configuration snapshot."""

    mappings: tuple[KeyMapping, ...] = ()
    ignored_applications: frozenset[str] = field(default_factory=frozenset)
    toggle_shortcut: Chord | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> VimOSConfig:
        mappings: list[KeyMapping] = []
        raw_mappings = data.get("mappings") or []
        if not isinstance(raw_mappings, list):
            logger.warning("ignoring 'mappings': expected a list")
            raw_mappings = []

        for position, entry in enumerate(raw_mappings):
            if not isinstance(entry, Mapping):
                logger.warning("skipping mapping #%d: expected an object", position)
                continue
            try:
                mappings.append(KeyMapping.from_dict(entry))
            except ValueError as exc:
                logger.warning("skipping mapping #%d: %s", position, exc)

        ignored = data.get("ignoredApplications") or []
        if not isinstance(ignored, list):
            logger.warning("ignoring 'ignoredApplications': expected a list")
            ignored = []

        toggle: Chord | None = None
        raw_toggle = data.get("toggleShortcut")
        if isinstance(raw_toggle, str) and raw_toggle.strip():
            try:
                toggle = parse_shortcut(raw_toggle)
            except ValueError as exc:
                logger.warning("ignoring toggleShortcut %r: %s", raw_toggle, exc)

        return cls(
            mappings=tuple(mappings),
            ignored_applications=frozenset(str(app) for app in ignored),
            toggle_shortcut=toggle,
        )


ConfigAccessor = Callable[[], VimOSConfig]


def load_config(path: Path | str | None = None) -> VimOSConfig:
    """Load configuration from PATH, falling back to defaults on any problem."""
    config_path = Path(path).expanduser() if path is not None else CONFIG_PATH
    if not config_path.exists():
        logger.debug("no config at %s, using defaults", config_path)
        return VimOSConfig()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("error loading config %s: %s", config_path, exc)
        return VimOSConfig()

    if not isinstance(data, dict):
        logger.error("error loading config %s: top level must be an object", config_path)
        return VimOSConfig()

    config = VimOSConfig.from_dict(data)
    logger.info(
        "loaded config: %d mappings, %d ignored apps",
        len(config.mappings),
        len(config.ignored_applications),
    )
    return config


class ConfigStore:
    """Holds the current configuration snapshot; callable as an accessor."""

    def __init__(self, path: Path | str | None = None, config: VimOSConfig | None = None) -> None:
        self.path = path
        self._config = config if config is not None else load_config(path)

    def __call__(self) -> VimOSConfig:
        return self._config

    @property
    def config(self) -> VimOSConfig:
        return self._config

    def set_config(self, config: VimOSConfig) -> None:
        self._config = config

    def reload(self) -> VimOSConfig:
        self._config = load_config(self.path)
        return self._config
