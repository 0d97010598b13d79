"""structlog setup for the player finder.

Everything goes through the standard library root logger so that httpx and
Textual records end up in the same files as ours. The TUI owns the terminal,
so in TUI mode nothing is written to stdout.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")

APP_LOG_BYTES = 5 * 1024 * 1024
ERROR_LOG_BYTES = 1024 * 1024
LOG_BACKUPS = 3

_SHARED_PROCESSORS: list[Any] = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


def _rotating_handler(path: Path, max_bytes: int, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path, maxBytes=max_bytes, backupCount=LOG_BACKUPS, encoding="utf-8"
    )
    handler.setLevel(level)
    # structlog has already rendered the event
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


class LoggingService:
    """Routes structlog through stdlib logging to the console and/or log files."""

    def __init__(
        self,
        log_level: str = "INFO",
        log_dir: Path | None = None,
        tui_mode: bool = False,
    ) -> None:
        """
        Args:
            log_level: Minimum level name; unknown names mean INFO
            log_dir: Where app.log and error.log go, or None for no files
            tui_mode: Suppress console output while the TUI is running
        """
        self.log_level = log_level.upper()
        self.log_dir = log_dir
        self.tui_mode = tui_mode
        self.is_development = os.getenv("ENVIRONMENT", "development") == "development"

    @property
    def level(self) -> int:
        value = logging.getLevelName(self.log_level)
        return value if isinstance(value, int) else logging.INFO

    def configure(self) -> None:
        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(self.level)

        for handler in self._build_handlers():
            root.addHandler(handler)

        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(self.level, logging.WARNING))

        structlog.configure(
            processors=[*_SHARED_PROCESSORS, self._renderer()],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def _build_handlers(self) -> list[logging.Handler]:
        handlers: list[logging.Handler] = []

        if not self.tui_mode:
            console = logging.StreamHandler(sys.stdout)
            console.setLevel(self.level)
            if self.is_development:
                console.setFormatter(
                    logging.Formatter("%(asctime)s [%(levelname)8s] %(name)s: %(message)s", datefmt="%H:%M:%S")
                )
            else:
                console.setFormatter(logging.Formatter("%(message)s"))
            handlers.append(console)

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(_rotating_handler(self.log_dir / "app.log", APP_LOG_BYTES, self.level))
            handlers.append(_rotating_handler(self.log_dir / "error.log", ERROR_LOG_BYTES, logging.ERROR))

        return handlers

    def _renderer(self) -> Any:
        # Log files are always JSON lines
        if self.is_development and self.log_dir is None:
            return structlog.dev.ConsoleRenderer(colors=True)
        return structlog.processors.JSONRenderer()

    def get_logger(self, name: str | None = None) -> structlog.stdlib.BoundLogger:
        return structlog.stdlib.get_logger(name)


def setup_logging(
    log_level: str = "INFO",
    log_dir: Path | None = None,
    environment: str | None = None,
    tui_mode: bool = False,
) -> LoggingService:
    """Configure logging once at startup and return the service.

    ``environment`` ("development" or "production") is exported as
    ``ENVIRONMENT`` before the service reads it.
    """
    if environment:
        os.environ["ENVIRONMENT"] = environment

    service = LoggingService(log_level=log_level, log_dir=log_dir, tui_mode=tui_mode)
    service.configure()
    return service
