"""VimOS package."""

__all__ = [
    "BufferSurface",
    "Chord",
    "ConfigStore",
    "KeySequenceInterpreter",
    "ModalEngine",
    "Mode",
    "TextSurface",
    "VimOSConfig",
    "load_config",
]
__version__ = "0.1.0"

from .config import ConfigStore, VimOSConfig, load_config
from .engine import ModalEngine
from .keymap import Chord
from .mapping import KeySequenceInterpreter
from .state import Mode
from .surface import BufferSurface, TextSurface
