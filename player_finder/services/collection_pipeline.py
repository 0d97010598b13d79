"""One fetch cycle: catalog fetch, seeding and enrichment streaming."""

from dataclasses import dataclass

import structlog

from ..models.game import EnrichmentRecord
from .collection_fetcher import CollectionFetcherService
from .collection_store import CollectionStore
from .enrichment_stream import EnrichmentStreamService
from .errors import CollectionError, StreamError

log = structlog.stdlib.get_logger()


@dataclass(frozen=True)
class FetchOutcome:
    """Result of a fetch cycle as reported to the display layer."""
    username: str
    cycle: int
    games_found: int = 0
    records_applied: int = 0
    lines_skipped: int = 0
    error: str | None = None
    superseded: bool = False

    @property
    def is_empty(self) -> bool:
        """The catalog answered with an empty collection."""
        return self.error is None and not self.superseded and self.games_found == 0

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.superseded


class CollectionPipelineService:
    """Runs fetch cycles against a shared CollectionStore.

    The catalog fetch and the enrichment stream run one after the other;
    the second needs the ids produced by the first. Every write is tagged
    with the cycle token, so when a newer cycle starts while this one is
    still streaming, the remaining patches are dropped by the store.
    """

    def __init__(
        self,
        fetcher: CollectionFetcherService,
        enrichment: EnrichmentStreamService,
        store: CollectionStore,
    ) -> None:
        self.fetcher: CollectionFetcherService = fetcher
        self.enrichment: EnrichmentStreamService = enrichment
        self.store: CollectionStore = store

    async def run(self, username: str) -> FetchOutcome:
        """Fetch and enrich the collection of ``username``.

        Failures never raise: they are reported in ``FetchOutcome.error``
        and the store keeps whatever state the cycle reached.
        """
        cycle = self.store.begin_cycle()
        log.info("Fetch cycle running", username=username, cycle=cycle)

        try:
            games = await self.fetcher.fetch(username)
        except CollectionError as e:
            log.warning("Fetch cycle failed at catalog stage", username=username, cycle=cycle, error=e.message)
            return FetchOutcome(
                username=username,
                cycle=cycle,
                error=e.message,
                superseded=not self.store.is_current(cycle),
            )

        if not self.store.seed(games, cycle):
            return FetchOutcome(username=username, cycle=cycle, games_found=len(games), superseded=True)

        ids = [game.id for game in self.store.snapshot().games]
        if not ids:
            log.info("Collection is empty, skipping enrichment", username=username, cycle=cycle)
            return FetchOutcome(username=username, cycle=cycle)

        applied = 0

        def apply(record: EnrichmentRecord) -> None:
            nonlocal applied
            if self.store.apply_patch(record.id, record, cycle):
                applied += 1

        try:
            summary = await self.enrichment.consume(ids, apply)
        except StreamError as e:
            log.warning(
                "Fetch cycle failed at enrichment stage",
                username=username,
                cycle=cycle,
                records_applied=applied,
                error=e.message,
            )
            return FetchOutcome(
                username=username,
                cycle=cycle,
                games_found=len(ids),
                records_applied=applied,
                error=e.message,
                superseded=not self.store.is_current(cycle),
            )

        superseded = not self.store.is_current(cycle)
        log.info(
            "Fetch cycle completed",
            username=username,
            cycle=cycle,
            games=len(ids),
            records_applied=applied,
            lines_skipped=summary.lines_skipped,
            superseded=superseded,
        )
        return FetchOutcome(
            username=username,
            cycle=cycle,
            games_found=len(ids),
            records_applied=applied,
            lines_skipped=summary.lines_skipped,
            superseded=superseded,
        )
