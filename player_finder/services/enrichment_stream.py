"""Streaming consumer for per-game player-count statistics."""

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import httpx
import structlog

from ..models.game import EnrichmentRecord
from .errors import NetworkError, StreamError
from .http_client import HttpClientService
from .ndjson import NdjsonDecoder

log = structlog.stdlib.get_logger()

HTTP_NO_CONTENT = 204


@dataclass
class StreamSummary:
    """What a single enrichment stream delivered."""
    records_dispatched: int = 0
    lines_skipped: int = 0


class EnrichmentStreamService:
    """Streams NDJSON enrichment records for a list of game ids.

    Records are dispatched one at a time as soon as their line is complete,
    so large collections update progressively. A malformed line is logged
    and skipped; the rest of the stream is still consumed.
    """

    def __init__(
        self,
        http_client: HttpClientService,
        enrichment_url: str = "https://bgg-proxy.fly.dev/boardgames/stream",
    ) -> None:
        self.http_client: HttpClientService = http_client
        self.enrichment_url: str = enrichment_url
        log.info("Enrichment stream service initialized", enrichment_url=enrichment_url)

    async def consume(
        self,
        ids: Sequence[str],
        on_record: Callable[[EnrichmentRecord], object],
    ) -> StreamSummary:
        """Request statistics for ``ids`` and hand each record to ``on_record``.

        Args:
            ids: Game identifiers to enrich
            on_record: Called once per decoded record, in stream order

        Returns:
            Counts of dispatched records and skipped lines

        Raises:
            StreamError: If the stream cannot be opened, answers with a
                non-success status or no body, or breaks off mid-way
        """
        summary = StreamSummary()
        decoder = NdjsonDecoder()

        log.info("Opening enrichment stream", url=self.enrichment_url, ids=len(ids))

        try:
            async with self.http_client.stream_post(self.enrichment_url, {"ids": list(ids)}) as response:
                if not response.is_success or response.status_code == HTTP_NO_CONTENT:
                    log.error(
                        "Enrichment request rejected",
                        url=self.enrichment_url,
                        status_code=response.status_code,
                    )
                    raise StreamError(url=self.enrichment_url, status_code=response.status_code)

                async for chunk in response.aiter_bytes():
                    for line in decoder.feed(chunk):
                        self._dispatch(line, on_record, summary)

        except NetworkError as e:
            raise StreamError(url=self.enrichment_url, original_error=e) from e
        except httpx.HTTPError as e:
            log.error(
                "Enrichment stream interrupted",
                url=self.enrichment_url,
                records_dispatched=summary.records_dispatched,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StreamError(
                url=self.enrichment_url,
                records_dispatched=summary.records_dispatched,
                original_error=e,
            ) from e

        for line in decoder.flush():
            self._dispatch(line, on_record, summary)

        log.info(
            "Enrichment stream completed",
            records_dispatched=summary.records_dispatched,
            lines_skipped=summary.lines_skipped,
        )
        return summary

    def _dispatch(
        self,
        line: str,
        on_record: Callable[[EnrichmentRecord], object],
        summary: StreamSummary,
    ) -> None:
        try:
            record = EnrichmentRecord.from_dict(json.loads(line))
        except ValueError as e:
            # json.JSONDecodeError is a ValueError too
            summary.lines_skipped += 1
            log.warning("Skipping malformed enrichment line", line=line[:200], error=str(e))
            return

        on_record(record)
        summary.records_dispatched += 1
