"""Command-line entry point.

Without options this starts the TUI. With ``--no-tui --username NAME`` it
runs a single fetch cycle, prints the games that match the player range and
exits, which is handy for scripts.
"""

import argparse
import asyncio
import dataclasses
import signal
import sys
from pathlib import Path

import structlog

from player_finder import __version__
from player_finder.models import AppConfig, FilterMode, GameRecord, PlayerRange
from player_finder.services.collection_fetcher import CollectionFetcherService
from player_finder.services.collection_pipeline import CollectionPipelineService, FetchOutcome
from player_finder.services.collection_store import CollectionStore
from player_finder.services.config import ConfigurationService
from player_finder.services.enrichment_stream import EnrichmentStreamService
from player_finder.services.filtering import select_games
from player_finder.services.http_client import HttpClientService
from player_finder.services.logging import setup_logging
from player_finder.services.polling import PollPolicy


log = structlog.stdlib.get_logger()


class ApplicationContext:
    """Owns the configuration and the services built from it.

    Services are built lazily from the loaded configuration and shared by
    the UI and the console mode.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        config_overrides: dict[str, object] | None = None,
    ) -> None:
        """
        Args:
            config_path: JSON config file, or None for the default location
            config_overrides: AppConfig fields given on the command line
        """
        self._config_path: Path | None = config_path
        self._config_overrides: dict[str, object] = config_overrides or {}

        self._config_service: ConfigurationService | None = None
        self._config: AppConfig | None = None
        self._http_client: HttpClientService | None = None
        self._store: CollectionStore | None = None
        self._pipeline: CollectionPipelineService | None = None

        self._shutdown_requested: bool = False

    @property
    def config_service(self) -> ConfigurationService:
        if self._config_service is None:
            self._config_service = ConfigurationService(config_path=self._config_path)
        return self._config_service

    @property
    def config(self) -> AppConfig:
        """Loaded configuration with command-line overrides applied."""
        if self._config is None:
            config = self.config_service.load_config()
            if self._config_overrides:
                config = dataclasses.replace(config, **self._config_overrides)
            self._config = config
        return self._config

    @property
    def http_client(self) -> HttpClientService:
        if self._http_client is None:
            self._http_client = HttpClientService(timeout=self.config.request_timeout)
        return self._http_client

    @property
    def store(self) -> CollectionStore:
        if self._store is None:
            self._store = CollectionStore()
        return self._store

    @property
    def pipeline(self) -> CollectionPipelineService:
        """Get the fetch-cycle pipeline (lazy initialization)."""
        if self._pipeline is None:
            config = self.config
            fetcher = CollectionFetcherService(
                http_client=self.http_client,
                catalog_url=config.catalog_url,
                policy=PollPolicy(max_attempts=config.max_poll_attempts, delay=config.poll_delay),
            )
            enrichment = EnrichmentStreamService(
                http_client=self.http_client,
                enrichment_url=config.enrichment_url,
            )
            self._pipeline = CollectionPipelineService(fetcher, enrichment, self.store)
        return self._pipeline

    def request_shutdown(self) -> None:
        self._shutdown_requested = True
        log.info("Shutdown requested")

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    async def cleanup(self) -> None:
        """Close network connections."""
        if self._http_client is not None:
            await self._http_client.close()
            log.debug("HTTP client closed")


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="bgg-player-finder",
        description="Find games in a BoardGameGeek collection that play best at a given player count",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  bgg-player-finder                                  Start the TUI application
  bgg-player-finder --no-tui --username alice        Print alice's games best at 2-5 players
  bgg-player-finder --no-tui --username alice --min-players 4 --max-players 4 --include-recommended
        """
    )

    _ = parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    _ = parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: ~/.config/bgg-player-finder/config.json)"
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set the logging level (default: from configuration)"
    )
    _ = parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for log files (default: ./logs with the TUI, console only otherwise)"
    )
    _ = parser.add_argument(
        "--no-tui",
        action="store_true",
        help="Fetch once and print the matching games instead of starting the TUI"
    )
    _ = parser.add_argument("--username", default=None, help="BoardGameGeek username (console mode)")
    _ = parser.add_argument("--min-players", type=int, default=None, help="Lowest player count to match")
    _ = parser.add_argument("--max-players", type=int, default=None, help="Highest player count to match")
    _ = parser.add_argument(
        "--include-recommended",
        action="store_true",
        help="Also match games merely recommended for the range"
    )
    _ = parser.add_argument("--catalog-url", default=None, help="Override the catalog collection endpoint")
    _ = parser.add_argument("--enrichment-url", default=None, help="Override the enrichment stream endpoint")

    return parser


def config_overrides_from_args(args: argparse.Namespace) -> dict[str, object]:
    """Collect the AppConfig fields set on the command line."""
    overrides: dict[str, object] = {}
    if args.catalog_url:
        overrides["catalog_url"] = args.catalog_url
    if args.enrichment_url:
        overrides["enrichment_url"] = args.enrichment_url
    if args.log_level:
        overrides["log_level"] = args.log_level
    return overrides


def setup_signal_handlers(context: ApplicationContext) -> None:
    """Set up signal handlers for graceful shutdown."""
    def signal_handler(signum: int, frame: object) -> None:
        _ = frame
        log.info("Received signal", signal=signal.Signals(signum).name)
        context.request_shutdown()
        raise KeyboardInterrupt

    _ = signal.signal(signal.SIGTERM, signal_handler)
    log.debug("Signal handlers registered")


def format_outcome(outcome: FetchOutcome, games: list[GameRecord], player_range: PlayerRange) -> str:
    """Render a console report for one fetch cycle."""
    from player_finder.ui.screens.collection import describe_outcome, describe_player_counts, short_game_name

    lines = [describe_outcome(outcome)]
    if outcome.error:
        lines.append(f"Error: {outcome.error}")
    if games:
        lines.append(f"Games for {player_range.min_players}-{player_range.max_players} players:")
        for game in games:
            lines.append(f"  {short_game_name(game.name)}  [{describe_player_counts(game)}]  {game.bgg_url}")
    elif outcome.games_found:
        lines.append("No games match the selected player count.")
    return "\n".join(lines)


async def run_console(context: ApplicationContext, args: argparse.Namespace) -> int:
    """Run one fetch cycle and print the matching games.

    Returns:
        Exit code: 0 on success, 1 if the collection could not be loaded,
        2 on invalid arguments
    """
    config = context.config
    try:
        player_range = PlayerRange(
            args.min_players if args.min_players is not None else config.default_min_players,
            args.max_players if args.max_players is not None else config.default_max_players,
        )
    except ValueError as e:
        print(f"Invalid player range: {e}", file=sys.stderr)
        return 2

    if args.include_recommended or not config.best_only:
        mode = FilterMode.BEST_OR_RECOMMENDED
    else:
        mode = FilterMode.BEST_ONLY

    try:
        outcome = await context.pipeline.run(args.username)
        games = select_games(context.store.snapshot().games, player_range, mode)
        print(format_outcome(outcome, games, player_range))
        # Enrichment failures leave a usable collection
        return 1 if outcome.error and not outcome.games_found else 0
    finally:
        await context.cleanup()


async def run_tui(context: ApplicationContext) -> int:
    """Run the Textual app until it exits; returns the process exit code."""
    from player_finder.ui.app import PlayerFinderApp

    log.info("Starting TUI application")

    try:
        app = PlayerFinderApp(
            config_service=context.config_service,
            pipeline=context.pipeline,
        )
        app.set_app_context(context)
        await app.run_async()

        log.info("TUI closed")
        return 0

    except Exception as e:
        log.error("TUI crashed", error=str(e), exc_info=True)
        return 1
    finally:
        await context.cleanup()


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.no_tui and not args.username:
        parser.error("--username is required with --no-tui")

    context = ApplicationContext(
        config_path=args.config,
        config_overrides=config_overrides_from_args(args),
    )

    log_dir = args.log_dir
    if log_dir is None and not args.no_tui:
        log_dir = Path("logs")

    _ = setup_logging(
        log_level=context.config.log_level,
        log_dir=log_dir,
        tui_mode=not args.no_tui,
    )

    log.info(
        "Starting BGG Player Finder",
        version=__version__,
        log_level=context.config.log_level,
        config_path=str(args.config) if args.config else "default",
    )

    setup_signal_handlers(context)

    try:
        if args.no_tui:
            exit_code = asyncio.run(run_console(context, args))
        else:
            exit_code = asyncio.run(run_tui(context))

    except KeyboardInterrupt:
        log.info("Application interrupted by user")
        exit_code = 130

    except Exception as e:
        log.error("Unhandled exception", error=str(e), exc_info=True)
        print(f"Fatal error: {e}", file=sys.stderr)
        exit_code = 1

    log.info("Application exiting", exit_code=exit_code)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
