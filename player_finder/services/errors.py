"""Error types and user-facing error reporting for the BGG Player Finder.

Two failures end a fetch cycle early: ``CollectionError`` when the catalog
cannot deliver the user's games, and ``StreamError`` when player-count
statistics stop arriving. Both carry a message that is shown verbatim,
plus suggested actions and technical details for the log.
"""

import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
import structlog

log = structlog.stdlib.get_logger()


class ErrorCategory(Enum):
    """What part of the application failed."""
    NETWORK = "network"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    COLLECTION = "collection"
    ENRICHMENT = "enrichment"
    UNEXPECTED = "unexpected"


class ErrorSeverity(Enum):
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ErrorContext:
    """Where an unexpected error was caught."""
    operation: str
    component: str
    details: dict[str, Any]


@dataclass(frozen=True)
class UserFriendlyError:
    """What the UI shows for a failure."""
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    suggested_actions: list[str]
    technical_details: str | None = None
    recoverable: bool = True


def _describe(error: BaseException | None) -> str | None:
    if error is None:
        return None
    return f"{type(error).__name__}: {error}"


def _status_actions(status_code: int | None, fallback: list[str]) -> list[str]:
    """Suggested actions for an HTTP status the server answered with."""
    if status_code == 429:
        return ["BoardGameGeek is rate limiting requests", "Wait a few minutes before pressing Continue"]
    if status_code is not None and status_code >= 500:
        return ["The server is having trouble", "Try again later"]
    return fallback


def _details(*fields: tuple[str, Any]) -> str | None:
    """Join the non-empty ``(label, value)`` pairs as ``Label: value`` lines."""
    lines = [f"{label}: {value}" for label, value in fields if value not in (None, "", 0)]
    return "\n".join(lines) or None


class AppError(Exception):
    """Base class for errors the UI knows how to present."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNEXPECTED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        suggested_actions: list[str] | None = None,
        technical_details: str | None = None,
        recoverable: bool = True,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.suggested_actions = list(suggested_actions or [])
        self.technical_details = technical_details
        self.recoverable = recoverable
        self.context = context

    def to_user_friendly(self) -> UserFriendlyError:
        return UserFriendlyError(
            message=self.message,
            category=self.category,
            severity=self.severity,
            suggested_actions=self.suggested_actions,
            technical_details=self.technical_details,
            recoverable=self.recoverable,
        )


class NetworkError(AppError):
    """A request never produced a response (connect failure, timeout, reset)."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.ERROR,
            suggested_actions=["Check your internet connection", "Try again in a few moments"],
            technical_details=_details(
                ("URL", url),
                ("Error", _describe(original_error)),
            ),
        )
        self.original_error = original_error
        self.url = url


class ValidationError(AppError):
    """User input or decoded data failed a constraint."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        constraints: list[str] | None = None,
    ) -> None:
        self.field = field
        self.value = value
        self.constraints = list(constraints or [])

        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.WARNING,
            suggested_actions=["Review the input requirements"] + [f"Ensure: {c}" for c in self.constraints],
            technical_details=_details(
                ("Field", field),
                ("Value", None if value is None else str(value)[:100]),
            ),
        )


class ConfigurationError(AppError):
    """The configuration file could not be read or written."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        current_value: Any = None,
        expected: str | None = None,
    ) -> None:
        actions = ["Check the configuration file", "Delete it to fall back to the defaults"]
        if expected:
            actions.append(f"Expected: {expected}")

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.ERROR,
            suggested_actions=actions,
            technical_details=_details(("Setting", setting), ("Current", current_value)),
        )
        self.setting = setting
        self.current_value = current_value
        self.expected = expected


class CollectionError(AppError):
    """The catalog lookup failed; no collection is available for this cycle.

    The message is shown to the user verbatim, so upstream messages such as
    "Invalid username specified" are passed through unchanged.
    """

    def __init__(
        self,
        message: str,
        username: str | None = None,
        status_code: int | None = None,
        attempts: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.COLLECTION,
            severity=ErrorSeverity.ERROR,
            suggested_actions=_status_actions(
                status_code, ["Check the BoardGameGeek username", "Try again in a few moments"]
            ),
            technical_details=_details(
                ("Username", username),
                ("Status", status_code),
                ("Attempts", attempts),
                ("Error", _describe(original_error)),
            ),
        )
        self.username = username
        self.status_code = status_code
        self.attempts = attempts
        self.original_error = original_error


class StreamError(AppError):
    """The enrichment stream could not be opened or broke off mid-way.

    Enrichment is additive, so this is a warning: the seeded collection
    stays visible with whatever statistics arrived before the failure.
    """

    def __init__(
        self,
        message: str = "failed to fetch enrichment data",
        url: str | None = None,
        status_code: int | None = None,
        records_dispatched: int = 0,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.ENRICHMENT,
            severity=ErrorSeverity.WARNING,
            suggested_actions=_status_actions(
                status_code, ["Player-count statistics may be incomplete", "Press Continue to try again"]
            ),
            technical_details=_details(
                ("URL", url),
                ("Status", status_code),
                ("Records applied", records_dispatched),
                ("Error", _describe(original_error)),
            ),
        )
        self.url = url
        self.status_code = status_code
        self.records_dispatched = records_dispatched
        self.original_error = original_error


class ErrorHandlingService:
    """Turns exceptions into UserFriendlyError values and remembers recent ones."""

    def __init__(self, max_history_size: int = 100) -> None:
        self._history: list[tuple[float, AppError]] = []
        self._max_history_size = max_history_size

    def handle_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None = None,
    ) -> UserFriendlyError:
        """Classify ``error``, log it with its technical details and record it.

        Args:
            error: The exception that occurred
            operation: What was being done, e.g. ``"fetch_collection"``
            component: Where it happened, usually a screen or service name
            context: Extra key/value details for the log

        Returns:
            The user-facing representation of the error
        """
        app_error = self._convert_to_app_error(error, operation, component, context or {})
        self._log_error(app_error, operation, component, context)

        self._history.append((time.time(), app_error))
        del self._history[:-self._max_history_size]

        return app_error.to_user_friendly()

    def _convert_to_app_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any],
    ) -> AppError:
        if isinstance(error, AppError):
            return error

        if isinstance(error, httpx.ConnectError):
            message = "Unable to connect to the server. Please check your internet connection."
        elif isinstance(error, httpx.TimeoutException):
            message = "The request timed out. The server may be slow or unavailable."
        elif isinstance(error, httpx.RequestError):
            message = "A network error occurred. Please check your connection."
        else:
            message = None
        if message is not None:
            return NetworkError(message=message, original_error=error, url=context.get("url"))

        # JSONDecodeError subclasses ValueError
        if isinstance(error, json.JSONDecodeError):
            return ValidationError("Invalid JSON format. The data could not be parsed.", field="json_content")
        if isinstance(error, ValueError):
            return ValidationError(str(error), field=context.get("field"), value=context.get("value"))
        if isinstance(error, TypeError):
            return ValidationError(f"Invalid data type: {error}", field=context.get("field"))

        return AppError(
            message="An unexpected error occurred. Please try again.",
            technical_details=_describe(error),
            context=ErrorContext(operation=operation, component=component, details=context),
        )

    def _log_error(
        self,
        error: AppError,
        operation: str,
        component: str,
        context: dict[str, Any] | None,
    ) -> None:
        emit = log.warning if error.severity == ErrorSeverity.WARNING else log.error
        emit(
            "Error occurred",
            error_message=error.message,
            category=error.category.value,
            severity=error.severity.value,
            operation=operation,
            component=component,
            technical_details=error.technical_details,
            context=context,
        )

    def get_recent_errors(self, count: int = 10) -> list[AppError]:
        """Most recent errors, oldest first."""
        return [error for _, error in self._history[-count:]]

    def get_error_count_by_category(self) -> dict[ErrorCategory, int]:
        counts: dict[ErrorCategory, int] = {}
        for _, error in self._history:
            counts[error.category] = counts.get(error.category, 0) + 1
        return counts

    def create_user_message(self, error: UserFriendlyError, include_suggestions: bool = True) -> str:
        """Format an error for a notification, with up to three suggestions."""
        if not include_suggestions or not error.suggested_actions:
            return error.message
        bullets = [f"  • {action}" for action in error.suggested_actions[:3]]
        return "\n".join([error.message, "\nSuggested actions:", *bullets])


_error_service: ErrorHandlingService | None = None


def get_error_service() -> ErrorHandlingService:
    """Shared ErrorHandlingService, created on first use."""
    global _error_service
    if _error_service is None:
        _error_service = ErrorHandlingService()
    return _error_service


def handle_error(
    error: Exception,
    operation: str,
    component: str,
    context: dict[str, Any] | None = None,
) -> UserFriendlyError:
    return get_error_service().handle_error(error, operation, component, context)
