"""Player-count filtering of the stored collection."""

from collections.abc import Iterable

from ..models.game import GameRecord
from ..models.players import FilterMode, PlayerRange


def matches(game: GameRecord, player_range: PlayerRange, mode: FilterMode) -> bool:
    """Check whether a game plays well at any count inside ``player_range``."""
    if any(player_range.contains(count) for count in game.best_with):
        return True
    if mode is FilterMode.BEST_OR_RECOMMENDED:
        return any(player_range.contains(count) for count in game.recommended_with)
    return False


def select_games(
    games: Iterable[GameRecord],
    player_range: PlayerRange,
    mode: FilterMode = FilterMode.BEST_ONLY,
) -> list[GameRecord]:
    """Select the games matching a player-count range.

    Args:
        games: Games to filter, already unique by id
        player_range: Inclusive player-count range
        mode: Whether "recommended" counts also qualify

    Returns:
        Matching games in input order
    """
    return [game for game in games if matches(game, player_range, mode)]
