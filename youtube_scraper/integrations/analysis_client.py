"""
HTTP client for the comment classification service.

The service receives the full batch of normalized comments in one request and
returns a results object that is stored verbatim and forwarded to the display.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List

import aiohttp

from youtube_scraper.exceptions import AnalysisServiceError
from youtube_scraper.models.comment import CommentRecord

logger = logging.getLogger(__name__)


class AnalysisServiceClient:
    """Client for the ``/analyze`` endpoint of the classification service."""

    def __init__(self, session: aiohttp.ClientSession, url: str):
        """
        Initialize the client.

        Args:
            session: Open aiohttp session
            url: Full URL of the analyze endpoint
        """
        self.session = session
        self.url = url

    async def analyze(self, records: List[CommentRecord]) -> Dict[str, Any]:
        """
        Send every record for classification.

        Args:
            records: Normalized comments of one run

        Returns:
            The service response as decoded JSON

        Raises:
            AnalysisServiceError: On transport failure, non-success status or a
                response that is not a JSON object
        """
        body = {"comments": [record.to_payload() for record in records]}
        logger.info(f"Sending {len(records)} comments to {self.url}")

        try:
            async with self.session.post(self.url, json=body) as response:
                status = response.status
                raw = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AnalysisServiceError(f"Analysis API request failed: {e!r}") from e

        text = raw.decode("utf-8", errors="replace")

        if not 200 <= status < 300:
            raise AnalysisServiceError(f"Analysis API error: {status} {text}".strip(), status)

        try:
            data = json.loads(text)
        except ValueError as e:
            raise AnalysisServiceError(f"Failed to parse analysis response: {e}", status) from e

        if not isinstance(data, dict):
            raise AnalysisServiceError("Analysis response is not a JSON object", status)

        logger.info(f"Analysis completed for {len(records)} comments")
        return data
