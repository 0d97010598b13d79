"""Reads and writes the JSON settings file (endpoints, polling, filter defaults)."""

import dataclasses
import json
from pathlib import Path
from typing import Any

import structlog

from ..models import AppConfig, MAX_PLAYERS, MIN_PLAYERS
from .errors import ConfigurationError

log = structlog.stdlib.get_logger()

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ValidationResult:
    """Outcome of validate_config: a flag plus one message per failed rule."""

    def __init__(self, is_valid: bool, errors: list[str] | None = None) -> None:
        self.is_valid: bool = is_valid
        self.errors: list[str] = errors or []


class ConfigurationService:
    """Service for loading, validating and saving AppConfig as JSON."""

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path: Path = config_path or Path.home() / ".config" / "bgg-player-finder" / "config.json"
        log.debug("Using configuration file", config_path=str(self.config_path))

    def load_config(self) -> AppConfig:
        """Read the settings file; any problem with it yields the defaults."""
        if not self.config_path.exists():
            log.info("No configuration file, using defaults", config_path=str(self.config_path))
            return self._get_default_config()

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data: dict[str, Any] = json.load(f)

            config = self._dict_to_config(data)
            validation_result = self.validate_config(config)

            if not validation_result.is_valid:
                log.warning("Configuration rejected, using defaults", errors=validation_result.errors)
                return self._get_default_config()

            log.info("Configuration loaded", config_path=str(self.config_path))
            return config

        except (json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
            log.error("Configuration file unreadable, using defaults", error=str(e))
            return self._get_default_config()

    def save_config(self, config: AppConfig) -> None:
        """Write ``config`` as JSON, refusing values that would not load back."""
        validation_result = self.validate_config(config)
        if not validation_result.is_valid:
            raise ValueError(f"Invalid configuration: {', '.join(validation_result.errors)}")

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(dataclasses.asdict(config), f, indent=2, ensure_ascii=False)

            log.info("Configuration saved", config_path=str(self.config_path))

        except OSError as e:
            log.error("Could not write configuration", error=str(e))
            raise ConfigurationError(
                f"Could not write configuration to {self.config_path}",
                setting="config_path",
                current_value=str(self.config_path),
            ) from e

    def validate_config(self, config: AppConfig) -> ValidationResult:
        """Check every field against the limits the services rely on."""
        errors = []

        for name in ("catalog_url", "enrichment_url"):
            url = getattr(config, name)
            if not isinstance(url, str) or not url.startswith(("http://", "https://")):
                errors.append(f"{name} must be an http(s) URL")

        if not isinstance(config.max_poll_attempts, int) or config.max_poll_attempts < 1:
            errors.append("max_poll_attempts must be a positive integer")
        elif config.max_poll_attempts > 50:
            errors.append("max_poll_attempts should not exceed 50")

        if not isinstance(config.poll_delay, (int, float)) or config.poll_delay < 0:
            errors.append("poll_delay must be a non-negative number")
        elif config.poll_delay > 60:
            errors.append("poll_delay should not exceed 60 seconds")

        if not isinstance(config.request_timeout, (int, float)) or config.request_timeout <= 0:
            errors.append("request_timeout must be a positive number")

        if config.log_level not in VALID_LOG_LEVELS:
            errors.append(f"log_level must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}")

        min_players, max_players = config.default_min_players, config.default_max_players
        if not isinstance(min_players, int) or not isinstance(max_players, int):
            errors.append("default player counts must be integers")
        elif not MIN_PLAYERS <= min_players <= max_players <= MAX_PLAYERS:
            errors.append(
                f"default player range must satisfy {MIN_PLAYERS} <= min <= max <= {MAX_PLAYERS}"
            )

        if not isinstance(config.best_only, bool):
            errors.append("best_only must be true or false")

        return ValidationResult(len(errors) == 0, errors)

    def _get_default_config(self) -> AppConfig:
        """Built-in settings, used whenever the file is missing or unusable."""
        return AppConfig()

    def _dict_to_config(self, data: dict[str, Any]) -> AppConfig:
        """Convert dictionary to AppConfig, ignoring unknown keys."""
        known = {f.name for f in dataclasses.fields(AppConfig)}
        values = {key: value for key, value in data.items() if key in known}

        # JSON has no float/int distinction for whole numbers
        for key in ("poll_delay", "request_timeout"):
            if isinstance(values.get(key), int) and not isinstance(values[key], bool):
                values[key] = float(values[key])

        return AppConfig(**values)
