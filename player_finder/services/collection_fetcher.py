"""Catalog client that polls BoardGameGeek until a user's collection is ready."""

import asyncio
import warnings

import structlog
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from ..models.game import GameRecord
from .errors import CollectionError, NetworkError
from .http_client import HttpClientService
from .polling import Fail, PollPolicy, Succeed

log = structlog.stdlib.get_logger()

UNKNOWN_ID = "unknown"
UNKNOWN_NAME = "Unknown Game"


def parse_collection(document: str) -> list[GameRecord]:
    """Parse a catalog collection document into game records.

    Args:
        document: Body of a non-202 catalog response

    Returns:
        One GameRecord per ``item`` node, in document order, with empty
        player-count statistics

    Raises:
        CollectionError: If the document carries an error message instead of items
    """
    # Parsed leniently as HTML; only item, name and message nodes are read
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", XMLParsedAsHTMLWarning)
        soup = BeautifulSoup(document, "html.parser")

    for message in soup.find_all("message"):
        text = message.get_text(strip=True)
        if text:
            raise CollectionError(text)

    games = []
    for item in soup.find_all("item"):
        game_id = item.get("objectid") or UNKNOWN_ID
        if isinstance(game_id, list):
            game_id = game_id[0]

        name_node = item.find("name")
        name = name_node.get_text(strip=True) if name_node else ""

        games.append(GameRecord(id=str(game_id), name=name or UNKNOWN_NAME))

    return games


class CollectionFetcherService:
    """Fetches a user's owned games from the catalog API."""

    def __init__(
        self,
        http_client: HttpClientService,
        catalog_url: str = "https://boardgamegeek.com/xmlapi2/collection",
        policy: PollPolicy | None = None,
    ) -> None:
        """Initialize the collection fetcher.

        Args:
            http_client: HTTP client service for making requests
            catalog_url: Collection endpoint of the catalog API
            policy: Polling policy for queued (HTTP 202) responses
        """
        self.http_client: HttpClientService = http_client
        self.catalog_url: str = catalog_url
        self.policy: PollPolicy = policy or PollPolicy()

        log.info(
            "Collection fetcher initialized",
            catalog_url=catalog_url,
            max_attempts=self.policy.max_attempts,
            delay=self.policy.delay,
        )

    async def fetch(self, username: str) -> list[GameRecord]:
        """Fetch the owned games of ``username``.

        Re-issues the identical request while the catalog answers 202.

        Raises:
            CollectionError: If the collection is unavailable for any reason
        """
        username = username.strip()
        if not username:
            raise CollectionError("Please enter a BoardGameGeek username")

        params = {"username": username, "own": "1"}
        attempt = 0

        while True:
            attempt += 1
            try:
                response = await self.http_client.get(self.catalog_url, params=params)
            except NetworkError as e:
                log.error("Catalog request failed", username=username, attempt=attempt, error=e.message)
                raise CollectionError(e.message, username=username, attempts=attempt, original_error=e) from e

            action = self.policy.next_action(attempt, response.status_code, response.text)

            if isinstance(action, Succeed):
                return self._parse_response(username, response.status_code, action.payload, attempt)

            if isinstance(action, Fail):
                log.warning("Collection still queued, giving up", username=username, attempts=attempt)
                raise CollectionError(action.reason, username=username, attempts=attempt)

            log.info(
                "Collection request queued, retrying",
                username=username,
                attempt=attempt,
                max_attempts=self.policy.max_attempts,
                delay=action.delay,
            )
            await asyncio.sleep(action.delay)

    def _parse_response(self, username: str, status_code: int, payload: str, attempt: int) -> list[GameRecord]:
        try:
            games = parse_collection(payload)
        except CollectionError as e:
            log.warning("Catalog returned an error message", username=username, message=e.message)
            raise CollectionError(e.message, username=username, status_code=status_code, attempts=attempt) from e

        if status_code >= 400 and not games:
            log.error("Catalog request failed", username=username, status_code=status_code)
            raise CollectionError(
                f"catalog request failed (HTTP {status_code})",
                username=username,
                status_code=status_code,
                attempts=attempt,
            )

        log.info("Collection fetched", username=username, games=len(games), attempts=attempt)
        return games
