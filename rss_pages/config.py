"""Configuration loading from the JSON config file and the environment."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

# Keys persisted in the JSON config file.
FILE_KEYS = (
    "port",
    "title",
    "description",
    "posts_per_page",
    "feeds",
    "update_interval_min",
)


class ConfigError(ValueError):
    """Raised when configuration values cannot be used."""


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class AppConfig:
    port: int = 8080
    title: str = "RSS Feed"
    description: str = "RSS Feed Page"
    posts_per_page: int = 32
    feeds: List[str] = field(default_factory=list)
    update_interval_min: int = 15
    config_path: str = "config.json"
    history_path: str = "db.json.gz"
    stylesheet_path: str = "index.css"
    host: str = "0.0.0.0"
    fetch_timeout: float = 10.0
    concurrency: int = 10
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_file_dict(self) -> Dict[str, object]:
        """Return the persisted subset, with feeds joined by commas."""
        return {
            "port": self.port,
            "title": self.title,
            "description": self.description,
            "posts_per_page": self.posts_per_page,
            "feeds": ",".join(self.feeds),
            "update_interval_min": self.update_interval_min,
        }


def split_feeds(value) -> List[str]:
    """Split a comma-joined feed string (or list) into clean URLs."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.replace("\r", "").replace("\n", "").split(",")
    elif not isinstance(value, list):
        raise ConfigError(f"feeds must be a string or a list, got {type(value).__name__}")

    feeds: List[str] = []
    for item in value:
        url = str(item).strip()
        if url and url not in feeds:
            feeds.append(url)
    return feeds


def _positive_int(name: str, value) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {number}")
    return number


def config_from_env(environ: Mapping[str, str]) -> AppConfig:
    """Build the default configuration, applying environment overrides."""
    config = AppConfig()
    if environ.get("PORT"):
        config.port = _positive_int("PORT", environ["PORT"])
    if environ.get("TITLE"):
        config.title = environ["TITLE"]
    if environ.get("DESCRIPTION"):
        config.description = environ["DESCRIPTION"]
    if environ.get("POSTS_PER_PAGE"):
        config.posts_per_page = _positive_int("POSTS_PER_PAGE", environ["POSTS_PER_PAGE"])
    if environ.get("FEEDS"):
        config.feeds = split_feeds(environ["FEEDS"])
    if environ.get("UPDATE_INTERVAL_MIN"):
        config.update_interval_min = _positive_int(
            "UPDATE_INTERVAL_MIN", environ["UPDATE_INTERVAL_MIN"]
        )
    return config


def _apply_file_values(config: AppConfig, values: Mapping[str, object]) -> None:
    for key, value in values.items():
        if key not in FILE_KEYS:
            logger.debug("Ignoring unknown config key '%s'", key)
            continue
        if key in ("port", "posts_per_page", "update_interval_min"):
            setattr(config, key, _positive_int(key, value))
        elif key == "feeds":
            config.feeds = split_feeds(value)
        else:
            setattr(config, key, str(value))


def write_config(path, config: AppConfig) -> None:
    location = Path(path)
    if location.parent and not location.parent.exists():
        location.parent.mkdir(parents=True, exist_ok=True)
    location.write_text(json.dumps(config.to_file_dict(), indent=2), encoding="utf-8")


def load_config(
    path: str = "config.json", environ: Optional[Mapping[str, str]] = None
) -> AppConfig:
    """Resolve configuration from ``path`` and the environment.

    A missing file is created from the environment-derived defaults. An
    existing file overrides those defaults; feed URLs from the environment
    that the file does not list yet are appended and the file is rewritten.
    """
    environ = os.environ if environ is None else environ
    config = config_from_env(environ)
    config.config_path = str(path)
    location = Path(path)

    if location.exists():
        logger.info("Loading configuration from %s", location)
        try:
            values = json.loads(location.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Config file is not valid JSON: {location}") from exc
        if not isinstance(values, dict):
            raise ConfigError(f"Config file must contain a JSON object: {location}")

        _apply_file_values(config, values)
        for url in split_feeds(environ.get("FEEDS")):
            if url not in config.feeds:
                logger.info("Adding feed from environment: %s", url)
                config.feeds.append(url)
    else:
        logger.info("No config file at %s; creating one from defaults", location)

    write_config(location, config)
    logger.info("Configured %d feeds", len(config.feeds))
    return config
