"""Command-line interface for the Hacker News tracker."""

import asyncio
import logging
import logging.config
import math
import re
import sys
from pathlib import Path

import typer
from typing_extensions import Annotated

from hn_tracker.collector.fetcher import PageFetcher
from hn_tracker.collector.rate_limiter import RateLimiter
from hn_tracker.collector.scheduler import SnapshotScheduler
from hn_tracker.config import Config
from hn_tracker.monitoring.metrics import PrometheusExporter
from hn_tracker.storage.database import Database, StoreError

app = typer.Typer(help="Hacker News tracker - Snapshot the front page and its comment threads")
db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")

logger = logging.getLogger(__name__)

DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def setup_logging(log_level: str = "INFO", log_file: str = "logs/hn_tracker.log") -> None:
    """
    Set up logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path of the rotating log file
    """
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "standard",
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": log_level,
                "formatter": "standard",
                "filename": log_file,
                "maxBytes": 10485760,  # 10 MB
                "backupCount": 5,
                "encoding": "utf8",
            },
        },
        "loggers": {
            "": {
                "handlers": ["console", "file"],
                "level": log_level,
                "propagate": True
            },
            "asyncio": {
                "level": "WARNING",
            },
            "aiohttp": {
                "level": "WARNING",
            },
            "sqlalchemy.engine": {
                "level": "WARNING",
            },
        }
    }

    logging.config.dictConfig(log_config)


def parse_duration(value: str) -> float:
    """
    Parse a duration string into seconds.

    Accepts Go-style durations such as ``1m``, ``1s``, ``500ms`` or ``1h30m``,
    as well as a bare number of seconds.

    Raises:
        ValueError: If the string is not a valid non-negative duration
    """
    text = value.strip()
    try:
        seconds = float(text)
    except ValueError:
        pos = 0
        seconds = 0.0
        for match in DURATION_PART_RE.finditer(text):
            if match.start() != pos:
                break
            seconds += float(match.group(1)) * DURATION_UNITS[match.group(2)]
            pos = match.end()
        if pos == 0 or pos != len(text):
            raise ValueError(f"Invalid duration: {value!r}. Expected e.g. 1m, 30s, 500ms or 1h30m")
    if not math.isfinite(seconds) or seconds < 0:
        raise ValueError(f"Invalid duration: {value!r}. Must be finite and not negative")
    return seconds


def validate_or_exit(config: Config) -> None:
    """Log every configuration problem and exit if there are any."""
    validation_errors = config.validate()
    if validation_errors:
        for error in validation_errors:
            logger.error(f"Configuration error: {error}")
        logger.critical("Invalid configuration, aborting")
        sys.exit(1)


async def run_poller(config: Config, interval_sec: float, throttle_sec: float) -> None:
    """
    Wire up the collector components and run the scheduler indefinitely.

    Args:
        config: Application configuration
        interval_sec: Seconds between front page snapshots
        throttle_sec: Minimum seconds between comment page requests
    """
    database = Database.from_config(config.postgres)
    try:
        database.check_connection()
    except StoreError as e:
        logger.critical(f"Cannot reach the database: {str(e)}")
        sys.exit(1)

    prometheus_exporter = None
    if config.monitoring.enable_prometheus:
        prometheus_exporter = PrometheusExporter(port=config.monitoring.prometheus_port)
        prometheus_exporter.start_server()

    fetcher = PageFetcher(config.scraper, prometheus_exporter)
    rate_limiter = RateLimiter(throttle_sec)
    scheduler = SnapshotScheduler(
        config,
        database,
        fetcher,
        rate_limiter,
        interval_sec,
        prometheus_exporter=prometheus_exporter,
    )

    try:
        await scheduler.run()
    finally:
        await fetcher.close()
        database.dispose()


@app.command("poll-hn")
def poll_hn(
    interval: Annotated[str, typer.Option("--interval", help="How frequently to snapshot the front page.")] = "1m",
    throttle: Annotated[str, typer.Option("--throttle", help="The comments request frequency cap.")] = "1s",
) -> None:
    """
    Periodically snapshot the articles on the front page of HN, and their comments.
    """
    try:
        interval_sec = parse_duration(interval)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--interval")
    try:
        throttle_sec = parse_duration(throttle)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--throttle")

    config = Config.from_files()
    setup_logging(config.log_level, config.log_file)
    validate_or_exit(config)

    logger.info(f"Starting Hacker News tracker (interval={interval_sec}s, throttle={throttle_sec}s)")

    try:
        asyncio.run(run_poller(config, interval_sec, throttle_sec))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.critical(f"Unhandled exception: {str(e)}", exc_info=True)
        sys.exit(1)


@db_app.command("init")
def init_db() -> None:
    """Create the snapshots, articles, comments and threads tables."""
    config = Config.from_files()
    validate_or_exit(config)
    database = Database.from_config(config.postgres)
    try:
        database.check_connection()
        database.create_schema()
    except StoreError as e:
        typer.echo(f"Database initialization failed: {e}", err=True)
        raise typer.Exit(code=1)
    finally:
        database.dispose()
    typer.echo("Database schema is ready")


@db_app.command("check")
def check_db() -> None:
    """Test the database connection."""
    config = Config.from_files()
    validate_or_exit(config)
    database = Database.from_config(config.postgres)
    try:
        database.check_connection()
    except StoreError as e:
        typer.echo(f"Connection failed: {e}", err=True)
        raise typer.Exit(code=1)
    finally:
        database.dispose()
    typer.echo("Connected to the database successfully")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
