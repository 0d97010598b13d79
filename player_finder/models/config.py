"""Configuration data models."""

from dataclasses import dataclass

DEFAULT_CATALOG_URL = "https://boardgamegeek.com/xmlapi2/collection"
DEFAULT_ENRICHMENT_URL = "https://bgg-proxy.fly.dev/boardgames/stream"


@dataclass(frozen=True)
class AppConfig:
    """Application configuration settings."""
    catalog_url: str = DEFAULT_CATALOG_URL
    enrichment_url: str = DEFAULT_ENRICHMENT_URL
    max_poll_attempts: int = 10  # Requests issued before giving up on a queued collection
    poll_delay: float = 2.0  # Seconds between polls while the collection is queued
    request_timeout: float = 30.0
    log_level: str = "INFO"
    default_min_players: int = 2
    default_max_players: int = 5
    best_only: bool = True
