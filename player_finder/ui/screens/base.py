"""Shared behaviour for the player finder screens."""

from typing import TYPE_CHECKING, ClassVar

from textual.notifications import SeverityLevel
from textual.screen import Screen
from textual.widgets import Static

import structlog

from player_finder.services.errors import (
    ErrorSeverity,
    UserFriendlyError,
    get_error_service,
    handle_error,
)

if TYPE_CHECKING:
    from player_finder.ui.app import PlayerFinderApp

log = structlog.stdlib.get_logger()

_LOG_METHOD: dict[SeverityLevel, str] = {
    "information": "info",
    "warning": "warning",
    "error": "error",
}


class BaseScreen(Screen[None]):
    """A screen that knows its PlayerFinderApp and reports failures through
    the error service.

    Subclasses set ``SCREEN_NAME`` (the component name in error logs) and
    ``SCREEN_TITLE``.
    """

    SCREEN_TITLE: ClassVar[str] = "Screen"
    SCREEN_NAME: ClassVar[str] = "base"

    def __init__(self, name: str | None = None) -> None:
        super().__init__(name=name or self.SCREEN_NAME)

    @property
    def game_app(self) -> "PlayerFinderApp":
        from player_finder.ui.app import PlayerFinderApp

        if not isinstance(self.app, PlayerFinderApp):
            raise RuntimeError("Screen is not attached to a PlayerFinderApp")
        return self.app

    async def on_mount(self) -> None:
        log.debug("Screen mounted", screen=self.SCREEN_NAME)

    async def on_unmount(self) -> None:
        log.debug("Screen unmounted", screen=self.SCREEN_NAME)

    def create_title_widget(self, title: str | None = None) -> Static:
        return Static(title or self.SCREEN_TITLE, classes="title")

    def _tell_user(self, message: str, severity: SeverityLevel) -> None:
        self.notify(message, severity=severity)
        getattr(log, _LOG_METHOD[severity])("User notification", message=message, screen=self.SCREEN_NAME)

    def notify_error(self, message: str) -> None:
        self._tell_user(message, "error")

    def notify_success(self, message: str) -> None:
        self._tell_user(message, "information")

    def notify_warning(self, message: str) -> None:
        self._tell_user(message, "warning")

    def handle_exception(
        self,
        error: Exception,
        operation: str,
        context: dict[str, str | int | float | bool] | None = None,
    ) -> UserFriendlyError:
        """Log ``error`` through the error service and show its message.

        Warnings (such as a broken enrichment stream) get a warning toast;
        everything else is shown as an error.
        """
        user_error = handle_error(error, operation, self.SCREEN_NAME, context)
        message = get_error_service().create_user_message(user_error, include_suggestions=False)

        if user_error.severity == ErrorSeverity.WARNING:
            self.notify_warning(message)
        else:
            self.notify_error(message)
        return user_error
