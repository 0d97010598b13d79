"""Service layer for fetching, enriching and filtering game collections."""

from .collection_fetcher import CollectionFetcherService, parse_collection
from .collection_pipeline import CollectionPipelineService, FetchOutcome
from .collection_store import CollectionStore
from .config import ConfigurationService, ValidationResult
from .enrichment_stream import EnrichmentStreamService, StreamSummary
from .errors import (
    AppError,
    CollectionError,
    ConfigurationError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    NetworkError,
    StreamError,
    UserFriendlyError,
    ValidationError,
    get_error_service,
    handle_error,
)
from .filtering import select_games
from .http_client import HttpClientService
from .ndjson import NdjsonDecoder
from .polling import Fail, PollPolicy, PollState, Succeed, Wait

__all__ = [
    "AppError",
    "CollectionError",
    "CollectionFetcherService",
    "CollectionPipelineService",
    "CollectionStore",
    "ConfigurationError",
    "ConfigurationService",
    "EnrichmentStreamService",
    "ErrorCategory",
    "ErrorHandlingService",
    "ErrorSeverity",
    "Fail",
    "FetchOutcome",
    "HttpClientService",
    "NdjsonDecoder",
    "NetworkError",
    "PollPolicy",
    "PollState",
    "StreamError",
    "StreamSummary",
    "Succeed",
    "UserFriendlyError",
    "ValidationError",
    "ValidationResult",
    "Wait",
    "get_error_service",
    "handle_error",
    "parse_collection",
    "select_games",
]
