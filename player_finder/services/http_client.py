"""HTTP client service shared by the catalog and enrichment stages."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog

from .errors import NetworkError

log = structlog.stdlib.get_logger()


class HttpClientService:
    """Thin async HTTP client with timeout handling and streamed responses.

    No retries happen here. The catalog stage polls on HTTP 202 and the
    enrichment stage is single-shot.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = "BGG-Player-Finder/0.1",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client service.

        Args:
            timeout: Request timeout in seconds
            user_agent: User-Agent header sent with every request
            transport: Optional transport override (used by tests)
        """
        self.timeout = timeout

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": user_agent},
            follow_redirects=True,
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            transport=transport,
        )

        log.info("HTTP client service initialized", timeout=timeout)

    async def get(
        self,
        url: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a single GET request and return the response whatever its status.

        Args:
            url: The URL to request
            params: Optional query parameters
            headers: Optional additional headers

        Returns:
            HTTP response object with the body read

        Raises:
            NetworkError: If the request could not be completed
        """
        log.debug("Making HTTP GET request", url=url, params=params)

        try:
            response = await self._client.get(url, params=params, headers=headers)
        except httpx.RequestError as e:
            log.warning(
                "HTTP GET request failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise NetworkError(str(e) or type(e).__name__, original_error=e, url=url) from e

        log.info(
            "HTTP GET request completed",
            url=url,
            status_code=response.status_code,
            content_length=len(response.content),
        )
        return response

    @asynccontextmanager
    async def stream_post(
        self,
        url: str,
        json_body: Any,
        headers: dict[str, str] | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """POST a JSON body and yield the response without reading its body.

        The response is closed when the context exits. Errors raised while
        iterating the body are left to the caller.

        Raises:
            NetworkError: If the request could not be sent
        """
        request = self._client.build_request("POST", url, json=json_body, headers=headers)
        log.debug("Opening streamed POST request", url=url)

        try:
            response = await self._client.send(request, stream=True)
        except httpx.RequestError as e:
            log.warning(
                "Streamed POST request failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise NetworkError(str(e) or type(e).__name__, original_error=e, url=url) from e

        log.info("Streamed POST response opened", url=url, status_code=response.status_code)
        try:
            yield response
        finally:
            await response.aclose()

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._client.aclose()
        log.info("HTTP client closed")

    async def __aenter__(self) -> "HttpClientService":
        return self

    async def __aexit__(self, exc_type: type[Exception] | None, exc_val: Exception | None, exc_tb: Any) -> None:
        await self.close()
