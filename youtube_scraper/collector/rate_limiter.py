"""Rate limiting functionality for YouTube Data API requests."""

import asyncio
import logging
import time

from youtube_scraper.config import RateLimitConfig

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Rate limiter for YouTube Data API requests.

    Enforces a minimum interval between requests and provides the short
    cooperative pause taken between outer comment pages.
    """

    def __init__(self, config: RateLimitConfig):
        """
        Initialize the rate limiter with configuration.

        Args:
            config: Rate limiting configuration
        """
        self.config = config
        self.last_request_time = 0.0
        self.min_interval = 60.0 / self.config.max_requests_per_minute

    async def pre_request(self) -> None:
        """
        Sleep if the previous request was issued less than ``min_interval`` ago.

        This should be called before each API request.
        """
        now = time.time()
        elapsed = now - self.last_request_time
        if elapsed < self.min_interval:
            await asyncio.sleep(self.min_interval - elapsed)
        self.last_request_time = time.time()

    async def page_pause(self) -> None:
        """Yield control for the configured inter-page delay."""
        if self.config.page_delay_sec > 0:
            logger.debug(f"Pausing {self.config.page_delay_sec:.2f}s before next page")
            await asyncio.sleep(self.config.page_delay_sec)
