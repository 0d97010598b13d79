"""Polling policy for the catalog's "request queued" (HTTP 202) behaviour."""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

HTTP_ACCEPTED = 202
NOT_READY_MESSAGE = "collection not ready, retry later"


class PollState(Enum):
    """Where a catalog poll loop stands after the latest response."""
    POLLING = "polling"
    READY = "ready"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class Wait:
    """Sleep for ``delay`` seconds, then re-issue the identical request."""
    delay: float
    state: ClassVar[PollState] = PollState.POLLING


@dataclass(frozen=True)
class Succeed:
    """The report is ready; ``payload`` is the response body."""
    payload: str
    state: ClassVar[PollState] = PollState.READY


@dataclass(frozen=True)
class Fail:
    """Give up polling."""
    reason: str
    state: ClassVar[PollState] = PollState.EXHAUSTED


PollAction = Wait | Succeed | Fail


@dataclass(frozen=True)
class PollPolicy:
    """Bounded fixed-delay polling.

    ``max_attempts`` counts requests, so at most ``max_attempts`` requests
    and ``max_attempts - 1`` waits happen before the loop fails.
    """
    max_attempts: int = 10
    delay: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must be non-negative")

    def next_action(self, attempt: int, status_code: int, payload: str = "") -> PollAction:
        """Decide what to do after the ``attempt``-th response (1-based).

        Args:
            attempt: Number of requests issued so far, including this one
            status_code: HTTP status of the latest response
            payload: Body of the latest response

        Returns:
            Wait, Succeed or Fail
        """
        if status_code != HTTP_ACCEPTED:
            return Succeed(payload)
        if attempt >= self.max_attempts:
            return Fail(NOT_READY_MESSAGE)
        return Wait(self.delay)
