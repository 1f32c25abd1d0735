"""Command-line interface for the YouTube comment scraper."""

import asyncio
import json
import logging
import logging.config
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import aiohttp
import typer
from typing_extensions import Annotated

from youtube_scraper.analytics.dashboard import DashboardService
from youtube_scraper.config import Config
from youtube_scraper.ingestion import FETCH_COMMENTS, create_coordinator
from youtube_scraper.monitoring.metrics import PrometheusExporter
from youtube_scraper.notifications import LoggingNotifier
from youtube_scraper.storage.kv_store import API_KEY, JsonFileStore

app = typer.Typer(help="YouTube comment scraper - Collect and summarize the comments of a video")

logger = logging.getLogger(__name__)


def setup_logging(log_level: str = "INFO") -> None:
    """
    Set up logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

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
                "stream": "ext://sys.stderr",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": log_level,
                "formatter": "standard",
                "filename": "logs/youtube_scraper.log",
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
        }
    }

    logging.config.dictConfig(log_config)


def load_config(config_path: str) -> Config:
    """Load and validate configuration, exiting on errors."""
    config = Config.from_files(config_path)
    validation_errors = config.validate()
    if validation_errors:
        for error in validation_errors:
            logger.error(f"Configuration error: {error}")
        logger.critical("Invalid configuration, aborting")
        raise typer.Exit(code=1)
    return config


async def run_fetch(config: Config, video: Optional[str]) -> Dict[str, Any]:
    """
    Run one ingestion for ``video`` (id or URL).

    Returns:
        The trigger response, ``{"success", "totalCount"}`` or ``{"error"}``
    """
    store = JsonFileStore(config.store_path)

    prometheus_exporter = None
    if config.monitoring.enable_prometheus:
        prometheus_exporter = PrometheusExporter(port=config.monitoring.prometheus_port)
        prometheus_exporter.start_server()

    timeout = aiohttp.ClientTimeout(total=config.request_timeout_sec)
    async with aiohttp.ClientSession(timeout=timeout) as http_session:
        coordinator = create_coordinator(
            config,
            http_session,
            store,
            notifier=LoggingNotifier(),
            prometheus_exporter=prometheus_exporter,
        )
        return await coordinator.handle_message({"action": FETCH_COMMENTS, "videoId": video})


@app.command("set-key")
def set_key(
    key: Annotated[Optional[str], typer.Argument(help="YouTube Data API key (defaults to YOUTUBE_API_KEY)")] = None,
    config: Annotated[str, typer.Option("--config", "-c", help="Path to configuration file")] = "config.yaml",
    loglevel: Annotated[str, typer.Option("--loglevel", "-l", help="Logging level")] = "INFO",
) -> None:
    """Store the YouTube Data API key in the credential store."""
    setup_logging(loglevel)
    cfg = load_config(config)

    api_key = key or cfg.youtube_api_key
    if not api_key:
        logger.error("No API key given and YOUTUBE_API_KEY is not set")
        raise typer.Exit(code=1)

    asyncio.run(JsonFileStore(cfg.store_path).set({API_KEY: api_key}))
    typer.echo(f"API key stored in {cfg.store_path}")


@app.command()
def fetch(
    video: Annotated[Optional[str], typer.Argument(help="Video id or YouTube URL")] = None,
    config: Annotated[str, typer.Option("--config", "-c", help="Path to configuration file")] = "config.yaml",
    loglevel: Annotated[str, typer.Option("--loglevel", "-l", help="Logging level")] = "INFO",
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose output")] = False,
) -> None:
    """
    Fetch, classify and store every comment of a video.

    Prints the terminal response as JSON and exits non-zero on error.
    """
    log_level = "DEBUG" if verbose else loglevel
    setup_logging(log_level)
    cfg = load_config(config)

    logger.info(f"Starting comment fetch for {video or '<none>'}")

    try:
        response = asyncio.run(run_fetch(cfg, video))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        raise typer.Exit(code=130)

    typer.echo(json.dumps(response))
    if "error" in response:
        raise typer.Exit(code=1)


@app.command()
def report(
    sentiment: Annotated[Optional[str], typer.Option("--sentiment", "-s", help="Sentiment to break down")] = None,
    config: Annotated[str, typer.Option("--config", "-c", help="Path to configuration file")] = "config.yaml",
    loglevel: Annotated[str, typer.Option("--loglevel", "-l", help="Logging level")] = "WARNING",
) -> None:
    """Print the dashboard projections of the stored results as JSON."""
    setup_logging(loglevel)
    cfg = load_config(config)

    dashboard = DashboardService(JsonFileStore(cfg.store_path))
    asyncio.run(dashboard.load())

    try:
        projections = dashboard.select(sentiment)
    except ValueError as e:
        logger.error(str(e))
        raise typer.Exit(code=2)

    typer.echo(projections.model_dump_json(indent=2, by_alias=True))


def main() -> None:
    try:
        app()
    except Exception as e:
        logger.critical(f"Unhandled exception: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
