"""Textual application holding the reactive state shown by the collection screen."""

from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, override

from textual.app import App, ComposeResult
from textual.binding import Binding, BindingType
from textual.reactive import reactive
from textual.widgets import Footer, Header

import structlog

from player_finder.models.config import AppConfig
from player_finder.models.game import CollectionSnapshot
from player_finder.models.players import FilterMode, PlayerRange
from player_finder.services.collection_pipeline import CollectionPipelineService
from player_finder.services.config import ConfigurationService
from player_finder.ui.screens import CollectionScreen


log = structlog.stdlib.get_logger()


@dataclass(frozen=True)
class AppState:
    """Everything the screens render; replaced wholesale on each change."""

    snapshot: CollectionSnapshot = field(default_factory=lambda: CollectionSnapshot(version=0, cycle=0))
    loading: bool = False
    error: str | None = None
    player_range: PlayerRange = field(default_factory=PlayerRange)
    filter_mode: FilterMode = FilterMode.BEST_ONLY
    current_config: AppConfig | None = None


class PlayerFinderApp(App[None]):
    """Main TUI application for finding games by player count.

    Owns the reactive AppState; screens read it and update it through the
    ``update_*`` helpers so every change produces a new state value.
    """

    CSS: ClassVar[str] = """
    Screen {
        background: $surface;
    }

    .title {
        text-align: center;
        text-style: bold;
        color: $primary;
        margin-bottom: 1;
    }
    """

    BINDINGS: ClassVar[list[BindingType]] = [
        Binding("ctrl+q", "quit", "Quit", show=True, priority=True),
        Binding("f1", "show_help", "Help", show=True),
    ]

    app_state: reactive[AppState] = reactive(AppState, init=False)

    _config_service: ConfigurationService | None
    _pipeline: CollectionPipelineService | None
    _app_context: Any  # ApplicationContext from player_finder.main (avoid circular import)

    def __init__(
        self,
        config_service: ConfigurationService | None = None,
        pipeline: CollectionPipelineService | None = None,
    ) -> None:
        super().__init__()
        self.title = "BGG Player Finder"  # type: ignore[assignment]
        self.sub_title = "Find a good game for a selected number of players"  # type: ignore[assignment]
        self._config_service = config_service
        self._pipeline = pipeline
        self._app_context = None
        self.app_state = AppState()

        log.info("PlayerFinderApp initialized")

    @property
    def app_context(self) -> Any:
        return self._app_context

    def set_app_context(self, context: Any) -> None:
        self._app_context = context

    @property
    def config_service(self) -> ConfigurationService | None:
        return self._config_service

    @property
    def pipeline(self) -> CollectionPipelineService | None:
        """Get the fetch-cycle pipeline, falling back to the application context."""
        if self._pipeline is None and self._app_context is not None:
            self._pipeline = self._app_context.pipeline
        return self._pipeline

    @override
    def compose(self) -> ComposeResult:
        yield Header()
        yield Footer()

    async def on_mount(self) -> None:
        config = self._load_config()
        if config is not None:
            self.app_state = self._state_from_config(config)
        await self.push_screen(CollectionScreen())

    def _load_config(self) -> AppConfig | None:
        # The context config carries the command-line overrides the pipeline was built with
        if self._app_context is not None:
            return self._app_context.config
        if self._config_service is not None:
            return self._config_service.load_config()
        return None

    def _state_from_config(self, config: AppConfig) -> AppState:
        mode = FilterMode.BEST_ONLY if config.best_only else FilterMode.BEST_OR_RECOMMENDED
        return replace(
            self.app_state,
            current_config=config,
            player_range=PlayerRange(config.default_min_players, config.default_max_players),
            filter_mode=mode,
        )

    async def action_show_help(self) -> None:
        self.notify(
            "Enter a BoardGameGeek username and press Continue. "
            "Pick a player range to see games rated best (or recommended) for it. "
            "Select a row to open the game on BoardGameGeek. Ctrl+Q quits."
        )

    def update_snapshot(self, snapshot: CollectionSnapshot) -> None:
        """Publish a new collection snapshot to the UI."""
        self.app_state = replace(self.app_state, snapshot=snapshot)
        log.debug("Collection snapshot updated", version=snapshot.version, games=len(snapshot))

    def set_loading(self, loading: bool, error: str | None = None) -> None:
        """Set the loading flag and the user-visible error together."""
        self.app_state = replace(self.app_state, loading=loading, error=error)
        log.info("Loading state changed", loading=loading, error=error)

    def update_filters(self, player_range: PlayerRange, filter_mode: FilterMode) -> None:
        self.app_state = replace(self.app_state, player_range=player_range, filter_mode=filter_mode)
        log.debug(
            "Filters updated",
            min_players=player_range.min_players,
            max_players=player_range.max_players,
            mode=filter_mode.value,
        )
