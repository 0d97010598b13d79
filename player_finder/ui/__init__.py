"""User interface components using Textual framework."""

from .app import AppState, PlayerFinderApp
from .screens import BaseScreen, CollectionScreen

__all__ = [
    "AppState",
    "BaseScreen",
    "CollectionScreen",
    "PlayerFinderApp",
]
