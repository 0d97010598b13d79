"""Player-count filter models."""

from dataclasses import dataclass
from enum import Enum

MIN_PLAYERS = 1
MAX_PLAYERS = 8


class FilterMode(Enum):
    """Which poll results count as a match."""
    BEST_ONLY = "best_only"
    BEST_OR_RECOMMENDED = "best_or_recommended"


@dataclass(frozen=True)
class PlayerRange:
    """Inclusive player-count range selected by the user."""
    min_players: int = 2
    max_players: int = 5

    def __post_init__(self) -> None:
        if not MIN_PLAYERS <= self.min_players <= self.max_players <= MAX_PLAYERS:
            raise ValueError(
                f"Player range must satisfy {MIN_PLAYERS} <= min <= max <= {MAX_PLAYERS}, "
                f"got {self.min_players}..{self.max_players}"
            )

    def contains(self, count: int) -> bool:
        """Check whether a player count falls inside the range."""
        return self.min_players <= count <= self.max_players
