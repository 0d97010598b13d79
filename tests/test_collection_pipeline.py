"""End-to-end tests for fetch cycles: catalog, seeding and enrichment."""

import json
from collections.abc import AsyncIterator, Callable

import httpx
import pytest

from player_finder.models.game import GameRecord
from player_finder.models.players import FilterMode, PlayerRange
from player_finder.services.collection_fetcher import CollectionFetcherService
from player_finder.services.collection_pipeline import CollectionPipelineService, FetchOutcome
from player_finder.services.collection_store import CollectionStore
from player_finder.services.enrichment_stream import EnrichmentStreamService
from player_finder.services.filtering import select_games
from player_finder.services.http_client import HttpClientService
from player_finder.services.polling import NOT_READY_MESSAGE, PollPolicy


CATALOG_URL = "https://catalog.test/xmlapi2/collection"
ENRICHMENT_URL = "https://enrichment.test/boardgames/stream"

SCENARIO_XML = """<?xml version="1.0" encoding="utf-8" standalone="yes"?>
<items totalitems="1">
    <item objecttype="thing" objectid="111775" subtype="boardgame">
        <name sortindex="1">Test Game</name>
    </item>
</items>"""

TWO_GAMES_XML = """<items totalitems="3">
    <item objectid="1"><name>Duel</name></item>
    <item objectid="2"><name>Party</name></item>
    <item objectid="1"><name>Duel (duplicate)</name></item>
</items>"""


class ServerScript:
    """Fake catalog and enrichment endpoints that record every request."""

    def __init__(
        self,
        catalog: list[httpx.Response],
        enrichment: Callable[[], httpx.Response] | None = None,
    ) -> None:
        self.catalog = list(catalog)
        self.enrichment = enrichment
        self.catalog_requests: list[httpx.Request] = []
        self.enrichment_requests: list[httpx.Request] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "catalog.test":
            self.catalog_requests.append(request)
            return self.catalog.pop(0)
        self.enrichment_requests.append(request)
        if self.enrichment is None:
            return httpx.Response(500)
        return self.enrichment()


def ndjson(*lines: bytes) -> Callable[[], httpx.Response]:
    return lambda: httpx.Response(200, content=b"".join(lines))


def build_pipeline(script: ServerScript) -> tuple[CollectionPipelineService, HttpClientService]:
    http_client = HttpClientService(transport=httpx.MockTransport(script.handle))
    fetcher = CollectionFetcherService(http_client, CATALOG_URL, PollPolicy(max_attempts=10, delay=0.0))
    enrichment = EnrichmentStreamService(http_client, ENRICHMENT_URL)
    return CollectionPipelineService(fetcher, enrichment, CollectionStore()), http_client


@pytest.mark.asyncio
async def test_single_game_scenario() -> None:
    script = ServerScript(
        [httpx.Response(200, text=SCENARIO_XML)],
        ndjson(b'{"id":"111775","bestWith":[3,4],"recommendedWith":[3,4,5]}\n'),
    )
    pipeline, http_client = build_pipeline(script)

    async with http_client:
        outcome = await pipeline.run("alice")

    assert outcome == FetchOutcome(username="alice", cycle=1, games_found=1, records_applied=1)
    assert outcome.succeeded
    assert pipeline.store.snapshot().games == (
        GameRecord("111775", "Test Game", best_with=(3, 4), recommended_with=(3, 4, 5)),
    )

    games = pipeline.store.snapshot().games
    assert [g.id for g in select_games(games, PlayerRange(2, 5), FilterMode.BEST_ONLY)] == ["111775"]
    assert select_games(games, PlayerRange(5, 5), FilterMode.BEST_ONLY) == []
    assert [g.id for g in select_games(games, PlayerRange(5, 5), FilterMode.BEST_OR_RECOMMENDED)] == ["111775"]


@pytest.mark.asyncio
async def test_duplicates_are_dropped_before_enrichment() -> None:
    script = ServerScript([httpx.Response(200, text=TWO_GAMES_XML)], ndjson(b'{"id":"2","bestWith":[6]}\n'))
    pipeline, http_client = build_pipeline(script)

    async with http_client:
        outcome = await pipeline.run("alice")

    assert outcome.games_found == 2
    assert [(g.id, g.name) for g in pipeline.store.snapshot().games] == [("1", "Duel"), ("2", "Party")]
    assert json.loads(script.enrichment_requests[0].content) == {"ids": ["1", "2"]}


@pytest.mark.asyncio
async def test_empty_collection_skips_enrichment() -> None:
    script = ServerScript([httpx.Response(200, text="<items totalitems=\"0\"></items>")])
    pipeline, http_client = build_pipeline(script)

    async with http_client:
        outcome = await pipeline.run("alice")

    assert outcome.is_empty
    assert outcome.error is None
    assert script.enrichment_requests == []
    assert len(pipeline.store.snapshot()) == 0


@pytest.mark.asyncio
async def test_never_ready_catalog_skips_enrichment() -> None:
    script = ServerScript([httpx.Response(202, text="<message>queued</message>") for _ in range(10)])
    pipeline, http_client = build_pipeline(script)

    async with http_client:
        outcome = await pipeline.run("alice")

    assert outcome.error == NOT_READY_MESSAGE
    assert len(script.catalog_requests) == 10
    assert script.enrichment_requests == []
    assert len(pipeline.store.snapshot()) == 0


@pytest.mark.asyncio
async def test_catalog_network_error_leaves_store_empty() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Network Error", request=request)

    http_client = HttpClientService(transport=httpx.MockTransport(handler))
    store = CollectionStore()
    pipeline = CollectionPipelineService(
        CollectionFetcherService(http_client, CATALOG_URL, PollPolicy(delay=0.0)),
        EnrichmentStreamService(http_client, ENRICHMENT_URL),
        store,
    )

    async with http_client:
        outcome = await pipeline.run("alice")

    assert outcome.error == "Network Error"
    assert not outcome.succeeded
    assert len(store.snapshot()) == 0


@pytest.mark.asyncio
async def test_enrichment_failure_keeps_seeded_collection() -> None:
    script = ServerScript([httpx.Response(200, text=TWO_GAMES_XML)], lambda: httpx.Response(503))
    pipeline, http_client = build_pipeline(script)

    async with http_client:
        outcome = await pipeline.run("alice")

    assert outcome.error == "failed to fetch enrichment data"
    assert outcome.games_found == 2
    assert not outcome.superseded
    assert [g.id for g in pipeline.store.snapshot().games] == ["1", "2"]
    assert all(not g.has_player_counts for g in pipeline.store.snapshot().games)


@pytest.mark.asyncio
async def test_new_cycle_supersedes_streaming_one() -> None:
    """Patches still arriving for an abandoned cycle never reach the store."""
    store_holder: list[CollectionStore] = []

    class InterleavedStream(httpx.AsyncByteStream):
        async def __aiter__(self) -> AsyncIterator[bytes]:
            yield b'{"id":"1","bestWith":[2]}\n'
            store = store_holder[0]
            store.seed([GameRecord("1", "Duel")], store.begin_cycle())
            yield b'{"id":"2","bestWith":[6]}\n{"id":"1","bestWith":[5]}\n'

    script = ServerScript(
        [httpx.Response(200, text=TWO_GAMES_XML)],
        lambda: httpx.Response(200, stream=InterleavedStream()),
    )
    pipeline, http_client = build_pipeline(script)
    store_holder.append(pipeline.store)

    async with http_client:
        outcome = await pipeline.run("alice")

    assert outcome.superseded
    assert outcome.cycle == 1
    assert outcome.records_applied == 1
    assert pipeline.store.cycle == 2
    assert pipeline.store.snapshot().games == (GameRecord("1", "Duel"),)


@pytest.mark.asyncio
async def test_each_run_starts_from_an_empty_store() -> None:
    script = ServerScript(
        [httpx.Response(200, text=TWO_GAMES_XML), httpx.Response(200, text=SCENARIO_XML)],
        ndjson(b'{"id":"111775","bestWith":[3]}\n'),
    )
    pipeline, http_client = build_pipeline(script)

    async with http_client:
        first = await pipeline.run("alice")
        second = await pipeline.run("bob")

    assert (first.cycle, second.cycle) == (1, 2)
    assert [g.id for g in pipeline.store.snapshot().games] == ["111775"]


@pytest.mark.asyncio
async def test_catalog_failure_after_newer_cycle_is_superseded() -> None:
    store = CollectionStore()

    def handler(request: httpx.Request) -> httpx.Response:
        store.begin_cycle()
        raise httpx.ConnectError("Network Error", request=request)

    http_client = HttpClientService(transport=httpx.MockTransport(handler))
    pipeline = CollectionPipelineService(
        CollectionFetcherService(http_client, CATALOG_URL, PollPolicy(delay=0.0)),
        EnrichmentStreamService(http_client, ENRICHMENT_URL),
        store,
    )

    async with http_client:
        outcome = await pipeline.run("alice")

    assert outcome.cycle == 1
    assert outcome.error == "Network Error"
    assert outcome.superseded
    assert store.cycle == 2
