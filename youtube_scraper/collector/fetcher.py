"""Resilient JSON fetcher for the YouTube Data API."""

import asyncio
import json
import logging
from contextlib import nullcontext
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import aiohttp

from youtube_scraper.collector.error_handler import with_linear_backoff
from youtube_scraper.collector.rate_limiter import RateLimiter
from youtube_scraper.exceptions import FetchAttemptError

logger = logging.getLogger(__name__)

# Longest slice of a non-JSON error body carried into a failure reason
ERROR_SNIPPET_LEN = 300

REDACTED_PARAMS = {"key"}


def redact_url(url: str, params: Optional[Dict[str, Any]] = None) -> str:
    """Render ``url`` with its query parameters, masking the API key."""
    if not params:
        return url
    safe = {k: ("***" if k in REDACTED_PARAMS else v) for k, v in params.items()}
    return f"{url}?{urlencode(safe)}"


def describe_http_error(status: int, body: str) -> str:
    """
    Build the failure reason for a non-success response.

    Structured Google API errors (``{"error": {"message": ...}}``) are reported by
    their message; anything else by status code and a truncated body.
    """
    try:
        payload = json.loads(body)
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return f"YouTube API error: {error['message']}"

    return f"HTTP {status}: {body[:ERROR_SNIPPET_LEN]}"


class ResilientFetcher:
    """Performs GET requests that return parsed JSON, retrying failed attempts."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        rate_limiter: Optional[RateLimiter] = None,
        prometheus_exporter=None,
    ):
        """
        Initialize the fetcher.

        Args:
            session: Open aiohttp session used for all requests
            max_attempts: Attempts per logical request
            base_delay: Base of the linear backoff schedule in seconds
            rate_limiter: Optional pacing applied before every attempt
            prometheus_exporter: Optional Prometheus exporter
        """
        self.session = session
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.rate_limiter = rate_limiter
        self.prometheus_exporter = prometheus_exporter
        self._fetch = with_linear_backoff(
            max_attempts=max_attempts,
            base_delay=base_delay,
            prometheus_exporter=prometheus_exporter,
        )(self._attempt)

    async def fetch_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Fetch ``url`` and return the decoded JSON object.

        Args:
            url: Endpoint URL without query string
            params: Query parameters

        Returns:
            The parsed response body

        Raises:
            FetchExhausted: If every attempt failed
        """
        target = redact_url(url, params)
        logger.debug(f"Fetching {target}")
        return await self._fetch(target, url, params)

    async def _attempt(self, target: str, url: str, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Issue one request; raise ``FetchAttemptError`` on any failure."""
        if self.rate_limiter:
            await self.rate_limiter.pre_request()

        timer = self.prometheus_exporter.time_request() if self.prometheus_exporter else None

        try:
            with timer if timer else nullcontext():
                async with self.session.get(url, params=params) as response:
                    status = response.status
                    # Read the body regardless of status; error payloads live there
                    raw = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._record_error("connection")
            raise FetchAttemptError(f"Request to {target} failed: {e!r}") from e

        success = 200 <= status < 300
        try:
            body = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            if success:
                self._record_error("malformed")
                raise FetchAttemptError(f"Malformed response: {e}", status) from e
            body = raw.decode("utf-8", errors="replace")

        if not success:
            self._record_error("5xx" if status >= 500 else str(status))
            logger.warning(f"HTTP {status} from {target}: {body[:ERROR_SNIPPET_LEN]}")
            raise FetchAttemptError(describe_http_error(status, body), status)

        try:
            payload = json.loads(body)
        except ValueError as e:
            self._record_error("malformed")
            raise FetchAttemptError(f"Malformed response: {e}", status) from e

        if not isinstance(payload, dict):
            self._record_error("malformed")
            raise FetchAttemptError("Malformed response: expected a JSON object", status)

        return payload

    def _record_error(self, error_type: str) -> None:
        if self.prometheus_exporter:
            self.prometheus_exporter.record_api_error(error_type)
