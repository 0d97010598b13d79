"""Game-related data models."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

BGG_GAME_URL = "https://boardgamegeek.com/boardgame/{id}"


@dataclass(frozen=True)
class GameRecord:
    """A game from the user's collection plus its player-count statistics."""
    id: str
    name: str
    best_with: tuple[int, ...] = ()
    recommended_with: tuple[int, ...] = ()

    @property
    def bgg_url(self) -> str:
        """Link to the game's BoardGameGeek page."""
        return BGG_GAME_URL.format(id=self.id)

    @property
    def has_player_counts(self) -> bool:
        """True once any best/recommended counts are known."""
        return bool(self.best_with or self.recommended_with)


@dataclass(frozen=True)
class EnrichmentRecord:
    """Partial update for a game, as received from the enrichment stream.

    ``None`` means the field was absent from the wire record and must leave
    the stored value untouched.
    """
    id: str
    best_with: tuple[int, ...] | None = None
    recommended_with: tuple[int, ...] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EnrichmentRecord":
        """Build a record from a decoded wire object.

        Args:
            data: Decoded JSON object with ``id``, ``bestWith`` and ``recommendedWith`` keys

        Returns:
            The parsed enrichment record

        Raises:
            ValueError: If the object is not a valid enrichment record
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"enrichment record must be an object, got {type(data).__name__}")

        game_id = data.get("id")
        if isinstance(game_id, int) and not isinstance(game_id, bool):
            game_id = str(game_id)
        if not isinstance(game_id, str) or not game_id:
            raise ValueError("enrichment record has no usable id")

        return cls(
            id=game_id,
            best_with=_parse_counts(data.get("bestWith"), "bestWith"),
            recommended_with=_parse_counts(data.get("recommendedWith"), "recommendedWith"),
        )


def _parse_counts(value: Any, key: str) -> tuple[int, ...] | None:
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValueError(f"{key} must be a list of integers")
    counts = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int):
            raise ValueError(f"{key} must contain only integers, got {item!r}")
        counts.append(item)
    return tuple(counts)


@dataclass(frozen=True)
class CollectionSnapshot:
    """Immutable view of the collection published after every change."""
    version: int
    cycle: int
    games: tuple[GameRecord, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.games)
