"""Cursor-based pagination over YouTube Data API listings."""

import logging
from typing import Any, AsyncIterator, Callable, Dict, Optional, Set, Tuple

from youtube_scraper.collector.fetcher import ResilientFetcher
from youtube_scraper.exceptions import FetchExhausted, PageWalkFailed
from youtube_scraper.models.comment import Page

logger = logging.getLogger(__name__)

# Builds (url, query params) for the page at the given cursor (None for the first page)
RequestBuilder = Callable[[Optional[str]], Tuple[str, Dict[str, Any]]]


def listing_request(
    url: str,
    params: Dict[str, Any],
    cursor_param: str = "pageToken",
) -> RequestBuilder:
    """
    Create a RequestBuilder for a fixed endpoint and base parameters.

    The cursor is added under ``cursor_param`` only when present.
    """
    def build(cursor: Optional[str]) -> Tuple[str, Dict[str, Any]]:
        page_params = dict(params)
        if cursor:
            page_params[cursor_param] = cursor
        return url, page_params

    return build


def parse_page(payload: Dict[str, Any]) -> Page:
    """Extract the items and the continuation cursor from a listing response."""
    items = payload.get("items") or []
    if not isinstance(items, list):
        logger.warning(f"Ignoring non-list 'items' of type {type(items).__name__}")
        items = []
    next_cursor = payload.get("nextPageToken") or None
    return Page(items=[i for i in items if isinstance(i, dict)], next_cursor=next_cursor)


class PageWalker:
    """Walks a cursor-paginated listing one page at a time."""

    def __init__(self, fetcher: ResilientFetcher):
        self.fetcher = fetcher

    async def walk(self, seed_id: str, build_request: RequestBuilder) -> AsyncIterator[Page]:
        """
        Yield every page of a listing, starting from the first page.

        Each call starts with fresh cursor state. The walk stops when a response
        carries no cursor, or when the source hands back a cursor it already issued.

        Args:
            seed_id: Identifier of the listing, used in logs and errors
            build_request: Builds the request for a given cursor

        Yields:
            Parsed pages in fetch order

        Raises:
            PageWalkFailed: If a page could not be fetched
        """
        cursor: Optional[str] = None
        issued: Set[str] = set()
        page_number = 0

        while True:
            url, params = build_request(cursor)
            try:
                payload = await self.fetcher.fetch_json(url, params)
            except FetchExhausted as e:
                logger.error(f"Page {page_number + 1} of {seed_id} could not be fetched: {e}")
                raise PageWalkFailed(seed_id, e) from e

            page = parse_page(payload)
            page_number += 1
            logger.debug(
                f"Page {page_number} of {seed_id}: {len(page.items)} items, "
                f"next cursor {page.next_cursor or 'none'}"
            )
            yield page

            if not page.next_cursor:
                break
            if page.next_cursor in issued:
                logger.warning(
                    f"Source repeated cursor {page.next_cursor!r} for {seed_id}; stopping pagination"
                )
                break

            issued.add(page.next_cursor)
            cursor = page.next_cursor
