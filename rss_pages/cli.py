"""Command-line interface for the rss_pages application."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import pprint
from functools import partial
from pathlib import Path
from typing import List, Optional

from .config import AppConfig, load_config
from .history import HistoryError, HistoryStore
from .publisher import SnapshotHolder
from .runner import refresh
from .scheduler import RefreshScheduler
from .server import create_app

logger = logging.getLogger(__name__)

QUIET_LOGGERS = ("werkzeug", "apscheduler", "urllib3")


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Aggregate RSS/Atom feeds into a paginated site."
    )
    parser.add_argument(
        "--config",
        default="config.json",
        help="Path to the JSON configuration file (created if missing).",
    )
    parser.add_argument(
        "--history",
        default="db.json.gz",
        help="Path to the compressed post history snapshot.",
    )
    parser.add_argument(
        "--stylesheet",
        default="index.css",
        help="Path to the site stylesheet (written from the default if missing).",
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Interface to bind the HTTP server to.",
    )
    parser.add_argument(
        "--fetch-timeout",
        type=float,
        default=10.0,
        help="Per-feed request timeout in seconds.",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=10,
        help="Maximum number of feeds fetched at once.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING).",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional path to a log file.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single refresh cycle and exit without serving.",
    )
    return parser


def configure_logging(level_name: str, log_file: Optional[str] = None) -> None:
    """Initialise logging for the refresh workers and the HTTP server.

    Request lines from werkzeug and job chatter from APScheduler are only
    shown at DEBUG; otherwise they are raised to WARNING.
    """
    log_level = getattr(logging, level_name.upper(), None)
    if not isinstance(log_level, int):
        raise ValueError(f"Unsupported log level: {level_name}")

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"
    )

    library_level = log_level if log_level <= logging.DEBUG else max(log_level, logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(log_level)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        if log_path.parent and not log_path.parent.exists():
            log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logger.debug(
            "Logger initialised with level %s and file output to %s",
            level_name.upper(),
            log_path,
        )
    else:
        logger.debug(
            "Logger initialised with console output at level %s", level_name.upper()
        )


def resolve_config(args: argparse.Namespace) -> AppConfig:
    """Load the config file and apply runtime-only CLI settings."""
    config = load_config(args.config)
    config.history_path = args.history
    config.stylesheet_path = args.stylesheet
    config.host = args.host
    config.fetch_timeout = args.fetch_timeout
    config.concurrency = args.concurrency
    config.logging.level = args.log_level
    config.logging.file = args.log_file
    return config


def serve(config: AppConfig, store: HistoryStore) -> None:
    """Start the refresh schedule and serve pages until interrupted."""
    holder = SnapshotHolder()
    scheduler = RefreshScheduler(
        partial(refresh, config, store, holder), config.update_interval_min
    )
    scheduler.start(run_immediately=True)

    app = create_app(holder)
    logger.info("Server running on http://localhost:%d", config.port)
    try:
        app.run(host=config.host, port=config.port, threaded=True)
    finally:
        scheduler.stop(wait=False)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        configure_logging(args.log_level, args.log_file)
        config = resolve_config(args)
    except ValueError as exc:
        parser.error(str(exc))
    except OSError as exc:
        logger.error("%s", exc)
        return 1

    logger.info("Active Configuration:\n%s", pprint.pformat(dataclasses.asdict(config)))

    try:
        store = HistoryStore.load(config.history_path)
        if args.once:
            snapshot = refresh(config, store, SnapshotHolder())
            logger.info("Rendered %d pages", len(snapshot))
        else:
            serve(config, store)
    except (HistoryError, OSError) as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down.")
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during execution.")
        return 1

    return 0
