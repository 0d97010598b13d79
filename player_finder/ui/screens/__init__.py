"""Screens of the player finder TUI."""

from .base import BaseScreen
from .collection import CollectionScreen

__all__ = [
    "BaseScreen",
    "CollectionScreen",
]
