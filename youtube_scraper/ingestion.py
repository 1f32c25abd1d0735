"""
End-to-end ingestion runs for a single video.

The coordinator resolves the video id and the API key, walks every comment page,
hands the records to the classification service and publishes the outcome to the
store and the notification channel. Every trigger gets exactly one response.
"""

import asyncio
import logging
import re
import time
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlparse

import aiohttp

from youtube_scraper.collector.collector import CommentCollector
from youtube_scraper.collector.fetcher import ResilientFetcher
from youtube_scraper.collector.pagination import PageWalker
from youtube_scraper.collector.rate_limiter import RateLimiter
from youtube_scraper.config import Config
from youtube_scraper.exceptions import (
    AnalysisServiceError,
    IngestionFailed,
    MissingCredential,
    MissingIdentifier,
    PageWalkFailed,
    ScraperError,
    StorageError,
)
from youtube_scraper.integrations.analysis_client import AnalysisServiceClient
from youtube_scraper.models.comment import RunResult
from youtube_scraper.notifications import (
    Notifier,
    error_message,
    notify_safely,
    progress_message,
    results_message,
)
from youtube_scraper.storage.kv_store import (
    ANALYSIS_RESULTS_KEY,
    API_KEY,
    LAST_FETCHED_AT_KEY,
    KeyValueStore,
)

logger = logging.getLogger(__name__)

FETCH_COMMENTS = "fetchComments"

VIDEO_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")
EMBED_OR_SHORT_RE = re.compile(r"(?:youtu\.be/|youtube\.com/embed/)([a-zA-Z0-9_-]{11})")


def resolve_video_id(value: Optional[str]) -> Optional[str]:
    """
    Extract a video id from a watch URL, short link, embed URL or bare id.

    Args:
        value: URL or id

    Returns:
        The video id, or None if nothing matches
    """
    if not value:
        return None
    value = value.strip()

    query_ids = parse_qs(urlparse(value).query).get("v")
    if query_ids and query_ids[0]:
        return query_ids[0]

    match = EMBED_OR_SHORT_RE.search(value)
    if match:
        return match.group(1)

    if VIDEO_ID_RE.match(value):
        return value

    return None


class IngestionSession:
    """
    State of one viewing session (one tab).

    Holds the active page URL, the last video id a run was triggered for, and the
    runs currently in flight so that a second trigger for the same video joins the
    running one instead of starting another walk.
    """

    def __init__(self, active_url: Optional[str] = None):
        self.active_url = active_url
        self.last_video_id: Optional[str] = None
        self.in_flight: Dict[str, asyncio.Future] = {}

    def reset(self) -> None:
        """Forget navigation state, e.g. when the tab navigates away."""
        self.active_url = None
        self.last_video_id = None


class IngestionCoordinator:
    """Owns ingestion runs from trigger to published results."""

    def __init__(
        self,
        collector: CommentCollector,
        store: KeyValueStore,
        analysis_client: AnalysisServiceClient,
        notifier: Optional[Notifier] = None,
        session: Optional[IngestionSession] = None,
        prometheus_exporter=None,
    ):
        self.collector = collector
        self.store = store
        self.analysis_client = analysis_client
        self.notifier = notifier
        self.session = session or IngestionSession()
        self.prometheus_exporter = prometheus_exporter

    def resolve_identifier(self, video_id: Optional[str]) -> str:
        """
        Return the explicit id, or derive one from the session's active URL.

        A supplied value that is not a recognised URL is used as the id verbatim;
        the active URL is consulted only when no value was supplied.

        Raises:
            MissingIdentifier: If neither yields a video id
        """
        if isinstance(video_id, str) and video_id.strip():
            return resolve_video_id(video_id) or video_id.strip()

        identifier = resolve_video_id(self.session.active_url)
        if not identifier:
            raise MissingIdentifier()
        return identifier

    async def get_api_key(self) -> str:
        """
        Read the API key from the store.

        Raises:
            MissingCredential: If no key is stored
            StorageError: If the store could not be read
        """
        api_key = await self.store.get(API_KEY)
        if not api_key:
            logger.warning("No API key found in storage")
            raise MissingCredential()
        return api_key

    async def run(self, video_id: Optional[str] = None) -> RunResult:
        """
        Ingest every comment of a video and publish the results.

        Concurrent calls for the same video share one run.

        Args:
            video_id: Video id or URL; taken from the session when omitted

        Returns:
            RunResult of the (possibly shared) run

        Raises:
            MissingIdentifier: If no video id is resolvable
            MissingCredential: If no API key is stored
            IngestionFailed: If the comment walk aborted
        """
        identifier = self.resolve_identifier(video_id)

        running = self.session.in_flight.get(identifier)
        if running is not None:
            logger.info(f"Run for video {identifier} already in progress; waiting for it")
            return await asyncio.shield(running)

        task = asyncio.ensure_future(self._run(identifier))
        self.session.in_flight[identifier] = task

        def _forget(finished: asyncio.Future) -> None:
            if self.session.in_flight.get(identifier) is finished:
                del self.session.in_flight[identifier]
            # Mark the outcome as retrieved even if every waiter was cancelled
            if not finished.cancelled() and finished.exception() is not None:
                logger.debug(f"Run for video {identifier} ended with {finished.exception()!r}")

        task.add_done_callback(_forget)
        return await asyncio.shield(task)

    async def _run(self, identifier: str) -> RunResult:
        api_key = await self.get_api_key()

        try:
            result = await self.collector.collect(identifier, api_key, on_progress=self._on_progress)
        except PageWalkFailed as e:
            logger.error(f"Ingestion for video {identifier} failed: {e}", exc_info=True)
            self._record_run("failed")
            await notify_safely(self.notifier, error_message(str(e)))
            raise IngestionFailed(identifier, e) from e

        await self.publish(result)
        self._record_run("success")
        return result

    async def _on_progress(self, processed_count: int) -> None:
        await notify_safely(self.notifier, progress_message(processed_count))

    async def publish(self, result: RunResult) -> Optional[Dict[str, Any]]:
        """
        Classify the records, store the response and notify the display.

        A classification failure is reported on the notification channel; the run
        itself still counts as fetched.

        Returns:
            The classification results, or None if classification failed
        """
        try:
            results = await self.analysis_client.analyze(result.records)
        except AnalysisServiceError as e:
            logger.error(f"Error sending comments to the analysis service: {e}")
            await notify_safely(self.notifier, error_message(e.message))
            return None

        try:
            await self.store.set({
                ANALYSIS_RESULTS_KEY: results,
                LAST_FETCHED_AT_KEY: int(time.time() * 1000),
            })
        except StorageError as e:
            logger.error(f"Failed to store analysis results: {e}")

        await notify_safely(self.notifier, results_message(results))
        logger.info(f"Published analysis of {result.processed_count} comments for video {result.video_id}")
        return results

    async def handle_message(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """
        Answer an ingestion trigger.

        Args:
            message: ``{"action": "fetchComments", "videoId": optional}``

        Returns:
            ``{"success": True, "totalCount": n}`` or ``{"error": str}``
        """
        if not isinstance(message, dict):
            logger.warning(f"Ignoring malformed trigger of type {type(message).__name__}")
            return {"error": "Malformed message"}

        action = message.get("action")
        if action != FETCH_COMMENTS:
            logger.warning(f"Ignoring message with unknown action: {action!r}")
            return {"error": f"Unknown action: {action}"}

        try:
            result = await self.run(message.get("videoId"))
        except ScraperError as e:
            if isinstance(e, (MissingIdentifier, MissingCredential)):
                self._record_run("rejected")
            return {"error": str(e)}
        except Exception as e:
            logger.error(f"Unhandled error during {FETCH_COMMENTS}: {e}", exc_info=True)
            self._record_run("failed")
            return {"error": str(e) or type(e).__name__}

        logger.info(f"Finished comment pipeline for video {result.video_id}")
        return {"success": True, "totalCount": result.processed_count}

    async def notify_navigation(self, url: str) -> Optional[Dict[str, Any]]:
        """
        Trigger a run when the active page switches to a different video.

        Args:
            url: New URL of the active page

        Returns:
            The trigger response, or None if no run was started
        """
        self.session.active_url = url
        video_id = resolve_video_id(url)
        if not video_id:
            logger.warning(f"No video id found in {url}")
            return None
        if video_id == self.session.last_video_id:
            logger.info(f"Video id unchanged since last check, skipping: {video_id}")
            return None

        logger.info(f"New video detected: {video_id}")
        self.session.last_video_id = video_id
        return await self.handle_message({"action": FETCH_COMMENTS, "videoId": video_id})

    def _record_run(self, outcome: str) -> None:
        if self.prometheus_exporter:
            self.prometheus_exporter.record_ingestion_run(outcome)


def create_coordinator(
    config: Config,
    http_session: aiohttp.ClientSession,
    store: KeyValueStore,
    notifier: Optional[Notifier] = None,
    session: Optional[IngestionSession] = None,
    prometheus_exporter=None,
) -> IngestionCoordinator:
    """Wire a coordinator and its collaborators from configuration."""
    rate_limiter = RateLimiter(config.rate_limit)
    fetcher = ResilientFetcher(
        http_session,
        max_attempts=config.retry.max_attempts,
        base_delay=config.retry.base_delay_sec,
        rate_limiter=rate_limiter,
        prometheus_exporter=prometheus_exporter,
    )
    collector = CommentCollector(
        PageWalker(fetcher),
        config,
        rate_limiter=rate_limiter,
        prometheus_exporter=prometheus_exporter,
    )
    return IngestionCoordinator(
        collector,
        store,
        AnalysisServiceClient(http_session, config.analysis_url),
        notifier=notifier,
        session=session,
        prometheus_exporter=prometheus_exporter,
    )
