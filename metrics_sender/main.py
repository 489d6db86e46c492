#!/usr/bin/env python3
"""
metrics-sender - spool directory to InfluxDB

Reads monitoring check results dropped into a spool directory, converts
them into state and performance-data points and ships them to InfluxDB.
Files are deleted once their points have been written.
"""

from __future__ import annotations

import argparse
import signal
import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from metrics_sender.utils.config import Settings, load_settings

from domains.spool_ingest.scheduler import SpoolScheduler
from domains.spool_ingest.watcher import SpoolWatcher

__version__ = "0.1.0"

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(settings: Settings):
    """Route loguru output to stdout or the configured log file."""
    logger.remove()
    sink = str(settings.log_file) if settings.log_file else sys.stdout
    logger.add(
        sink,
        format=LOG_FORMAT,
        level=settings.log_level.upper(),
        serialize=settings.log_serialize,
        colorize=None if settings.log_file is None else False,
    )
    if settings.log_file:
        logger.info(f"Writing to log file {settings.log_file}")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        description="Send monitoring check results from a spool directory to InfluxDB.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config file; its values override the environment.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Drain the spool directory once and exit.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI."""

    args = parse_args(argv)

    try:
        settings = load_settings(args.config)
        if args.log_level:
            settings = settings.model_copy(update={"log_level": args.log_level})
    except (OSError, ValueError, ValidationError) as e:
        logger.error(f"Could not load configuration: {e}")
        return 1

    configure_logging(settings)
    logger.info(f"metrics-sender (Version: {__version__})")

    scheduler = SpoolScheduler(settings)

    if args.once:
        scheduler.drain()
        return 0

    def _signal_handler(signum, frame):  # noqa: D401
        logger.info(f"Received signal {signum}, shutting down.")
        scheduler.request_stop()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    watcher = None
    if settings.watch_events:
        watcher = SpoolWatcher(settings.source_folder, scheduler.wake)
        try:
            watcher.start()
        except OSError as e:
            logger.warning(f"Failed to watch {settings.source_folder}, falling back to polling: {e}")
            watcher = None

    try:
        scheduler.run()
    finally:
        if watcher is not None:
            watcher.stop()

    logger.info("metrics-sender stopped.")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
