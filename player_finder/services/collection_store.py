"""Observable in-memory store for the current fetch cycle's games."""

import dataclasses
from collections.abc import Callable, Iterable

import structlog

from ..models.game import CollectionSnapshot, EnrichmentRecord, GameRecord

log = structlog.stdlib.get_logger()

SnapshotListener = Callable[[CollectionSnapshot], None]


class CollectionStore:
    """Single source of truth for the displayed collection.

    Each fetch cycle starts with ``begin_cycle``, which clears the games and
    hands out a new token. Writes tagged with an older token are rejected,
    so a superseded cycle can never touch the games of the current one.
    Every visible change bumps ``version`` and notifies subscribers with a
    fresh snapshot.
    """

    def __init__(self) -> None:
        self._games: dict[str, GameRecord] = {}
        self._cycle: int = 0
        self._version: int = 0
        self._listeners: list[SnapshotListener] = []

    @property
    def cycle(self) -> int:
        """Token of the current fetch cycle."""
        return self._cycle

    @property
    def version(self) -> int:
        """Number of visible mutations so far."""
        return self._version

    def begin_cycle(self) -> int:
        """Start a new fetch cycle, dropping all games.

        Returns:
            The new cycle token
        """
        self._cycle += 1
        self._games = {}
        log.info("Fetch cycle started", cycle=self._cycle)
        self._publish()
        return self._cycle

    def is_current(self, cycle: int | None) -> bool:
        """Check whether a write tagged with ``cycle`` may still apply."""
        return cycle is None or cycle == self._cycle

    def seed(self, records: Iterable[GameRecord], cycle: int | None = None) -> bool:
        """Replace the collection, keeping the first record for each id.

        Any enrichment already present is discarded.

        Args:
            records: Games as fetched from the catalog
            cycle: Token of the writing cycle, None for the current one

        Returns:
            False if the write came from a superseded cycle
        """
        if not self.is_current(cycle):
            log.info("Ignoring seed from superseded cycle", cycle=cycle, current=self._cycle)
            return False

        games: dict[str, GameRecord] = {}
        duplicates = 0
        for record in records:
            if record.id in games:
                duplicates += 1
                continue
            games[record.id] = dataclasses.replace(record, best_with=(), recommended_with=())

        self._games = games
        log.info("Collection seeded", cycle=self._cycle, games=len(games), duplicates_dropped=duplicates)
        self._publish()
        return True

    def apply_patch(self, game_id: str, patch: EnrichmentRecord, cycle: int | None = None) -> bool:
        """Merge the fields present in ``patch`` into the game ``game_id``.

        Absent (None) fields leave the stored value untouched.

        Returns:
            True if a stored game was updated; False for unknown ids and
            superseded cycles
        """
        if not self.is_current(cycle):
            log.debug("Ignoring patch from superseded cycle", game_id=game_id, cycle=cycle, current=self._cycle)
            return False

        game = self._games.get(game_id)
        if game is None:
            log.debug("Ignoring patch for unknown game", game_id=game_id)
            return False

        changes: dict[str, tuple[int, ...]] = {}
        if patch.best_with is not None:
            changes["best_with"] = patch.best_with
        if patch.recommended_with is not None:
            changes["recommended_with"] = patch.recommended_with

        if changes:
            self._games[game_id] = dataclasses.replace(game, **changes)
            self._publish()
        return True

    def snapshot(self) -> CollectionSnapshot:
        """Current games in catalog order."""
        return CollectionSnapshot(
            version=self._version,
            cycle=self._cycle,
            games=tuple(self._games.values()),
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register ``listener`` for every future snapshot.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        self._version += 1
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                log.error("Collection listener failed", error=str(e), exc_info=True)
