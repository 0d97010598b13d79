"""Collection screen: fetch a user's games and filter them by player count."""

import asyncio
from collections.abc import Callable
from typing import ClassVar, override

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, ScrollableContainer, Vertical
from textual.message import Message
from textual.widgets import Button, Checkbox, DataTable, Input, Label, Select, Static
from textual.worker import Worker, WorkerState

import structlog

from player_finder.models.game import CollectionSnapshot, GameRecord
from player_finder.models.players import MAX_PLAYERS, MIN_PLAYERS, FilterMode, PlayerRange
from player_finder.services.collection_pipeline import FetchOutcome
from player_finder.services.filtering import select_games

from .base import BaseScreen

log = structlog.stdlib.get_logger()

NAME_DISPLAY_LIMIT = 30
NO_COUNTS_TEXT = "Best player count data unavailable"


def short_game_name(name: str, limit: int = NAME_DISPLAY_LIMIT) -> str:
    """Shorten long names to ``limit`` characters followed by an ellipsis."""
    return name[:limit] + "..." if len(name) > limit else name


def describe_player_counts(game: GameRecord) -> str:
    """One-line summary of a game's best/recommended counts."""
    if not game.has_player_counts:
        return NO_COUNTS_TEXT
    best = ", ".join(str(n) for n in game.best_with)
    recommended = ", ".join(str(n) for n in game.recommended_with)
    return f"Best: {best} | Recommended: {recommended}"


def get_game_display_info(game: GameRecord) -> dict[str, str]:
    """Get display information for a game row."""
    return {
        "id": game.id,
        "name": short_game_name(game.name),
        "best": ", ".join(str(n) for n in game.best_with),
        "recommended": ", ".join(str(n) for n in game.recommended_with),
        "url": game.bgg_url,
    }


def url_for_row(games: list[GameRecord], game_id: str | None) -> str | None:
    """BGG page of the game shown in the row keyed by ``game_id``."""
    for game in games:
        if game.id == game_id:
            return game.bgg_url
    return None


def describe_outcome(outcome: FetchOutcome) -> str:
    """Status line shown after a fetch cycle ends."""
    if outcome.superseded:
        return "Superseded by a newer request"
    if outcome.error is not None:
        if outcome.games_found:
            return f"Loaded {outcome.games_found} games, player counts incomplete"
        return "Could not load the collection"
    if outcome.is_empty:
        return f"No games found in the collection of {outcome.username}"
    status = f"Loaded {outcome.games_found} games, {outcome.records_applied} with player counts"
    if outcome.lines_skipped:
        status += f" ({outcome.lines_skipped} unreadable records skipped)"
    return status


class CollectionScreen(BaseScreen):
    """Username entry, player-range filters and the filtered games table.

    Each Continue starts a fresh fetch cycle in an exclusive worker, which
    cancels the cycle still in flight. The table follows every store
    snapshot, so player counts appear as the enrichment stream delivers them.
    """

    class CollectionChanged(Message):
        """Posted for every new CollectionStore snapshot."""

        snapshot: CollectionSnapshot

        def __init__(self, snapshot: CollectionSnapshot) -> None:
            super().__init__()
            self.snapshot = snapshot

    class FetchFinished(Message):
        """Posted when a fetch cycle ends, successfully or not."""

        outcome: FetchOutcome

        def __init__(self, outcome: FetchOutcome) -> None:
            super().__init__()
            self.outcome = outcome

    SCREEN_TITLE: ClassVar[str] = "Find a good game for a selected number of players"
    SCREEN_NAME: ClassVar[str] = "collection"

    CSS: ClassVar[str] = """
    CollectionScreen {
        align: center middle;
    }

    #collection-container {
        width: 95%;
        height: 95%;
        padding: 1 2;
        border: solid $primary;
        background: $surface;
    }

    #username-row, #filter-row {
        height: auto;
        margin-bottom: 1;
    }

    #input-username {
        width: 1fr;
    }

    #btn-continue {
        margin-left: 1;
    }

    .filter-label {
        padding: 1 1 0 0;
    }

    #select-min, #select-max {
        width: 12;
        margin-right: 2;
    }

    #status-line {
        color: $text-muted;
    }

    #error-line {
        color: $error;
        display: none;
    }

    #error-line.has-error {
        display: block;
    }

    #table-section {
        height: 1fr;
        border: solid $primary-darken-2;
    }

    #no-results {
        text-align: center;
        color: $text-muted;
        padding: 2;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("ctrl+r", "continue", "Continue", show=True),
        Binding("ctrl+b", "toggle_best_only", "Best only", show=True),
    ]

    _unsubscribe: Callable[[], None] | None
    _fetch_worker: Worker[None] | None
    _visible_games: list[GameRecord]

    def __init__(self) -> None:
        super().__init__()
        self._unsubscribe = None
        self._fetch_worker = None
        self._visible_games = []

    @override
    def compose(self) -> ComposeResult:
        player_options = [(str(n), n) for n in range(MIN_PLAYERS, MAX_PLAYERS + 1)]
        state = self.game_app.app_state

        with Container(id="collection-container"):
            yield self.create_title_widget()

            with Horizontal(id="username-row"):
                yield Input(
                    placeholder="Enter BGG username and press 'Continue'",
                    id="input-username",
                )
                yield Button("Continue", id="btn-continue", variant="primary", disabled=True)

            with Horizontal(id="filter-row"):
                yield Label("Players from", classes="filter-label")
                yield Select(
                    player_options,
                    value=state.player_range.min_players,
                    allow_blank=False,
                    id="select-min",
                )
                yield Label("to", classes="filter-label")
                yield Select(
                    player_options,
                    value=state.player_range.max_players,
                    allow_blank=False,
                    id="select-max",
                )
                yield Checkbox(
                    "Use 'Best' only (ignore 'Recommended')",
                    value=state.filter_mode is FilterMode.BEST_ONLY,
                    id="checkbox-best-only",
                )

            with Vertical():
                yield Static("", id="status-line")
                yield Static("", id="error-line")

            with ScrollableContainer(id="table-section"):
                yield DataTable(id="games-table")
            yield Static("No games to show yet.", id="no-results")

    @override
    async def on_mount(self) -> None:
        await super().on_mount()
        table = self.query_one("#games-table", DataTable)
        table.add_columns("Name", "Best", "Recommended", "BGG page")
        table.cursor_type = "row"

        pipeline = self.game_app.pipeline
        if pipeline is not None:
            self._unsubscribe = pipeline.store.subscribe(
                lambda snapshot: self.post_message(self.CollectionChanged(snapshot))
            )
            self.game_app.update_snapshot(pipeline.store.snapshot())
        self._refresh_table()

    @override
    async def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await super().on_unmount()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        url = url_for_row(self._visible_games, event.row_key.value)
        if url is not None:
            log.info("Opening game page", url=url)
            self.app.open_url(url)

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "input-username":
            self._update_continue_button()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "input-username":
            await self._start_fetch()

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-continue":
            await self._start_fetch()

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id not in ("select-min", "select-max"):
            return
        min_select = self.query_one("#select-min", Select)
        max_select = self.query_one("#select-max", Select)
        low, high = int(min_select.value), int(max_select.value)

        # Keep min <= max by dragging the other bound along
        if low > high:
            if event.select.id == "select-min":
                max_select.value = low
                high = low
            else:
                min_select.value = high
                low = high

        self._set_filters(PlayerRange(low, high), self.game_app.app_state.filter_mode)

    def on_checkbox_changed(self, event: Checkbox.Changed) -> None:
        if event.checkbox.id == "checkbox-best-only":
            mode = FilterMode.BEST_ONLY if event.value else FilterMode.BEST_OR_RECOMMENDED
            self._set_filters(self.game_app.app_state.player_range, mode)

    def action_toggle_best_only(self) -> None:
        checkbox = self.query_one("#checkbox-best-only", Checkbox)
        checkbox.toggle()

    async def action_continue(self) -> None:
        await self._start_fetch()

    def _set_filters(self, player_range: PlayerRange, mode: FilterMode) -> None:
        self.game_app.update_filters(player_range, mode)
        self._refresh_table()

    async def _start_fetch(self) -> None:
        username = self.query_one("#input-username", Input).value.strip()
        if not username:
            self.notify_warning("Please enter a BoardGameGeek username")
            return

        pipeline = self.game_app.pipeline
        if pipeline is None:
            self.notify_error("Collection service is not available")
            return

        log.info("Starting fetch cycle", username=username)
        self.game_app.set_loading(True)
        self._show_error(None)
        self._update_status("Loading...")
        self._update_continue_button()

        self._fetch_worker = self.run_worker(
            self._run_fetch(username),
            name="fetch_worker",
            group="fetch",
            exclusive=True,
        )

    async def _run_fetch(self, username: str) -> None:
        """Run one fetch cycle (executed in worker)."""
        pipeline = self.game_app.pipeline
        if pipeline is None:
            return
        try:
            outcome = await pipeline.run(username)
        except asyncio.CancelledError:
            log.info("Fetch worker cancelled", username=username)
            raise
        self.post_message(self.FetchFinished(outcome))

    def on_collection_screen_collection_changed(self, event: CollectionChanged) -> None:
        self.game_app.update_snapshot(event.snapshot)
        self._refresh_table()

    def on_collection_screen_fetch_finished(self, event: FetchFinished) -> None:
        outcome = event.outcome
        if outcome.superseded:
            log.debug("Ignoring outcome of superseded cycle", cycle=outcome.cycle)
            return

        self.game_app.set_loading(False, outcome.error)
        self._update_continue_button()
        self._update_status(describe_outcome(outcome))
        self._show_error(outcome.error)
        self._refresh_table()

        if outcome.error is None and not outcome.is_empty:
            self.notify_success(f"Loaded {outcome.games_found} games")

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.worker.name != "fetch_worker":
            return
        log.debug("Fetch worker state changed", state=event.state)
        if event.state == WorkerState.ERROR and event.worker.error is not None:
            self.game_app.set_loading(False, str(event.worker.error))
            self._update_continue_button()
            user_error = self.handle_exception(event.worker.error, "fetch_collection")
            self._show_error(user_error.message)

    def _refresh_table(self) -> None:
        state = self.game_app.app_state
        self._visible_games = select_games(state.snapshot.games, state.player_range, state.filter_mode)

        table = self.query_one("#games-table", DataTable)
        table.clear()
        for game in self._visible_games:
            info = get_game_display_info(game)
            table.add_row(
                info["name"],
                info["best"] or "-",
                info["recommended"] or "-",
                info["url"],
                key=game.id,
            )

        no_results = self.query_one("#no-results", Static)
        table_section = self.query_one("#table-section", ScrollableContainer)
        if self._visible_games:
            no_results.display = False
            table_section.display = True
        else:
            no_results.display = True
            table_section.display = False
            if not state.snapshot.games:
                no_results.update("No games to show yet.")
            else:
                no_results.update("No games match the selected player count.")

    def _update_continue_button(self) -> None:
        username = self.query_one("#input-username", Input).value.strip()
        button = self.query_one("#btn-continue", Button)
        loading = self.game_app.app_state.loading
        button.disabled = not username or loading
        button.label = "Loading..." if loading else "Continue"

    def _update_status(self, text: str) -> None:
        self.query_one("#status-line", Static).update(text)

    def _show_error(self, message: str | None) -> None:
        error_line = self.query_one("#error-line", Static)
        if message:
            error_line.update(message)
            _ = error_line.add_class("has-error")
        else:
            error_line.update("")
            _ = error_line.remove_class("has-error")
