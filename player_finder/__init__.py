"""BGG Player Finder - pick games from a BoardGameGeek collection by player count."""

__version__ = "0.1.0"
