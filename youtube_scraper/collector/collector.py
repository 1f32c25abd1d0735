"""Core collector functionality for fetching YouTube comments and replies."""

import logging
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Set, Tuple

from youtube_scraper.collector.pagination import PageWalker, listing_request
from youtube_scraper.collector.rate_limiter import RateLimiter
from youtube_scraper.config import Config
from youtube_scraper.exceptions import PageWalkFailed
from youtube_scraper.models.comment import CommentRecord, RunResult
from youtube_scraper.models.mapping import (
    items_to_records,
    reply_to_record,
    thread_parent_id,
    thread_reply_count,
    thread_to_record,
)

logger = logging.getLogger(__name__)

# Receives the cumulative number of records after each outer page
ProgressCallback = Callable[[int], Awaitable[None]]


class CommentCollector:
    """Collector for the comments of one video, including reply threads."""

    def __init__(
        self,
        walker: PageWalker,
        config: Config,
        rate_limiter: Optional[RateLimiter] = None,
        prometheus_exporter=None,
    ):
        """
        Initialize the comment collector.

        Args:
            walker: Page walker bound to a resilient fetcher
            config: Application configuration (endpoints and page size)
            rate_limiter: Optional limiter providing the inter-page pause
            prometheus_exporter: Optional Prometheus exporter
        """
        self.walker = walker
        self.config = config
        self.rate_limiter = rate_limiter
        self.prometheus_exporter = prometheus_exporter

    def _base_params(self, api_key: str) -> dict:
        return {
            "part": "snippet",
            "key": api_key,
            "maxResults": str(self.config.page_size),
        }

    async def fetch_replies(self, parent_id: str, api_key: str) -> List[CommentRecord]:
        """
        Collect every reply under a top-level comment.

        A failed reply walk is logged and yields no replies; it never aborts the caller.

        Args:
            parent_id: Id of the top-level comment
            api_key: YouTube Data API key

        Returns:
            Reply records in fetch order, or an empty list on failure
        """
        params = self._base_params(api_key)
        params["parentId"] = parent_id
        build = listing_request(self.config.comments_url, params)

        replies: List[CommentRecord] = []
        try:
            async for page in self.walker.walk(parent_id, build):
                records, _ = items_to_records(page.items, reply_to_record)
                replies.extend(records)
        except PageWalkFailed as e:
            logger.warning(f"Dropping replies for comment {parent_id}: {e}")
            if self.prometheus_exporter:
                self.prometheus_exporter.record_api_error("replies")
            return []
        except Exception as e:
            logger.warning(f"Dropping replies for comment {parent_id} after unexpected error: {e!r}", exc_info=True)
            if self.prometheus_exporter:
                self.prometheus_exporter.record_api_error("replies")
            return []

        logger.debug(f"Fetched {len(replies)} replies for comment {parent_id}")
        return replies

    async def iter_comment_pages(
        self,
        video_id: str,
        api_key: str,
    ) -> AsyncIterator[Tuple[List[CommentRecord], int]]:
        """
        Walk the comment threads of a video page by page.

        Replies of each thread are fetched right after it, sequentially.

        Args:
            video_id: YouTube video id
            api_key: YouTube Data API key

        Yields:
            Records of one outer page (threads followed by their replies) and the
            number of malformed threads skipped on that page

        Raises:
            PageWalkFailed: If an outer page could not be fetched
        """
        params = self._base_params(api_key)
        params["videoId"] = video_id
        build = listing_request(self.config.comment_threads_url, params)

        async for page in self.walker.walk(video_id, build):
            batch: List[CommentRecord] = []
            skipped = 0

            for item in page.items:
                records, bad = items_to_records([item], thread_to_record)
                batch.extend(records)
                skipped += bad

                reply_count = thread_reply_count(item)
                parent_id = thread_parent_id(item)
                if reply_count > 0 and parent_id:
                    logger.debug(f"Fetching {reply_count} replies for comment {parent_id}")
                    batch.extend(await self.fetch_replies(parent_id, api_key))

            yield batch, skipped

    async def collect(
        self,
        video_id: str,
        api_key: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> RunResult:
        """
        Collect all comments and replies of a video.

        Args:
            video_id: YouTube video id
            api_key: YouTube Data API key
            on_progress: Optional coroutine called after every outer page

        Returns:
            RunResult with records in fetch order

        Raises:
            PageWalkFailed: If an outer page could not be fetched
        """
        logger.info(f"Collecting comments for video {video_id}")

        result = RunResult(video_id=video_id)
        seen_ids: Set[str] = set()

        async for batch, skipped in self.iter_comment_pages(video_id, api_key):
            for record in batch:
                if record.id in seen_ids:
                    logger.debug(f"Skipping duplicate comment {record.id}")
                    continue
                seen_ids.add(record.id)
                result.records.append(record)
            result.skipped_count += skipped

            if self.prometheus_exporter:
                self.prometheus_exporter.record_comments_collected(len(batch))

            logger.info(f"Fetched {result.processed_count} comments so far for video {video_id}")
            if on_progress:
                await on_progress(result.processed_count)

            if self.rate_limiter:
                await self.rate_limiter.page_pause()

        logger.info(
            f"Collected {result.processed_count} comments for video {video_id} "
            f"({result.skipped_count} malformed skipped)"
        )
        return result
