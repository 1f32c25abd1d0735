"""Prometheus metrics for monitoring the YouTube comment scraper."""

import logging
import time
from typing import Optional

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

COMMENTS_COLLECTED = Counter(
    "youtube_scraper_comments_collected_total",
    "Total number of comments and replies collected",
)

FETCH_ATTEMPTS = Counter(
    "youtube_scraper_fetch_attempts_total",
    "Number of request attempts against the YouTube Data API",
    ["outcome"],
)

API_ERRORS = Counter(
    "youtube_scraper_api_errors_total",
    "Number of API errors encountered",
    ["error_type"],
)

INGESTION_RUNS = Counter(
    "youtube_scraper_ingestion_runs_total",
    "Number of ingestion runs by terminal outcome",
    ["outcome"],
)

REQUEST_DURATION = Histogram(
    "youtube_scraper_request_duration_seconds",
    "Duration of API requests in seconds",
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)


class PrometheusExporter:
    """Prometheus metrics exporter for the YouTube comment scraper."""

    def __init__(self, port: int = 8000):
        """
        Initialize the Prometheus exporter.

        Args:
            port: Port to expose metrics on
        """
        self.port = port
        self.server_started = False

    def start_server(self) -> None:
        """Start the Prometheus metrics server."""
        if not self.server_started:
            try:
                start_http_server(self.port)
                self.server_started = True
                logger.info(f"Started Prometheus metrics server on port {self.port}")
            except OSError as e:
                logger.error(f"Failed to start Prometheus metrics server: {str(e)}")

    def record_comments_collected(self, count: int) -> None:
        if count > 0:
            COMMENTS_COLLECTED.inc(count)

    def record_fetch_attempt(self, outcome: str) -> None:
        """
        Record one request attempt.

        Args:
            outcome: 'success' or 'failure'
        """
        FETCH_ATTEMPTS.labels(outcome=outcome).inc()

    def record_api_error(self, error_type: str) -> None:
        """
        Record an API error.

        Args:
            error_type: Type of API error (e.g., '5xx', '403', 'connection', 'malformed')
        """
        API_ERRORS.labels(error_type=error_type).inc()

    def record_ingestion_run(self, outcome: str) -> None:
        INGESTION_RUNS.labels(outcome=outcome).inc()

    def time_request(self) -> "RequestTimer":
        """
        Create a context manager for timing API requests.

        Returns:
            RequestTimer context manager
        """
        return RequestTimer()


class RequestTimer:
    """Context manager for timing API requests."""

    def __init__(self):
        self.start_time: Optional[float] = None

    def __enter__(self) -> "RequestTimer":
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is not None:
            REQUEST_DURATION.observe(time.time() - self.start_time)
