"""Text UI layer for VimOS."""

from .app import VimOSTuiApp
from .controller import UIController, UISnapshot

__all__ = ["VimOSTuiApp", "UIController", "UISnapshot"]
