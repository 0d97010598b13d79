"""Data models for the BGG Player Finder application."""

from .config import AppConfig
from .game import CollectionSnapshot, EnrichmentRecord, GameRecord
from .players import MAX_PLAYERS, MIN_PLAYERS, FilterMode, PlayerRange

__all__ = [
    "AppConfig",
    "CollectionSnapshot",
    "EnrichmentRecord",
    "FilterMode",
    "GameRecord",
    "MAX_PLAYERS",
    "MIN_PLAYERS",
    "PlayerRange",
]
