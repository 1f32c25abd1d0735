"""
Dashboard data service.

Loads the latest analysis results from the store and recomputes every projection
from scratch whenever new results are published or the selection changes.
"""

import logging
import random
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from youtube_scraper.analytics.aggregation import (
    DecoratedToken,
    EmojiCount,
    SentimentSummary,
    TimeBin,
    TopicSentiment,
    decorate_tokens,
    rank_emojis,
    rank_tokens,
    sentiment_counts,
    sentiment_summary,
    time_series,
    top_comments,
    topic_sentiment,
)
from youtube_scraper.analytics.selection import SelectionState, StrengthBreakdown
from youtube_scraper.models.comment import CommentRecord
from youtube_scraper.models.mapping import analysis_results_to_records
from youtube_scraper.notifications import UPDATE_UI
from youtube_scraper.storage.kv_store import ANALYSIS_RESULTS_KEY, KeyValueStore

logger = logging.getLogger(__name__)


class Projections(BaseModel):
    """Every view the dashboard renders, derived from one record set."""

    total_count: int
    sentiment_counts: Dict[str, int]
    summary: Optional[SentimentSummary] = None
    time_series: List[TimeBin] = Field(default_factory=list)
    topic_sentiment: List[TopicSentiment] = Field(default_factory=list)
    tokens: List[DecoratedToken] = Field(default_factory=list)
    emojis: List[EmojiCount] = Field(default_factory=list)
    top_comments: List[CommentRecord] = Field(default_factory=list)
    breakdown: Optional[StrengthBreakdown] = None


def build_projections(
    records: List[CommentRecord],
    selection: Optional[SelectionState] = None,
    rng: Optional[random.Random] = None,
) -> Projections:
    """Compute all projections for ``records`` and the current selection."""
    counts = sentiment_counts(records)
    return Projections(
        total_count=len(records),
        sentiment_counts=counts,
        summary=sentiment_summary(counts),
        time_series=time_series(records),
        topic_sentiment=topic_sentiment(records),
        tokens=decorate_tokens(rank_tokens(records), rng=rng),
        emojis=rank_emojis(records),
        top_comments=top_comments(records),
        breakdown=selection.breakdown(records) if selection else None,
    )


class DashboardService:
    """Keeps the displayed record set and selection, and rebuilds projections on change."""

    def __init__(self, store: KeyValueStore, selection: Optional[SelectionState] = None):
        """
        Initialize the dashboard service.

        Args:
            store: Store holding the latest analysis results
            selection: Selection state; a fresh one when omitted
        """
        self.store = store
        self.selection = selection or SelectionState()
        self.records: List[CommentRecord] = []
        self.error: Optional[str] = None

    async def load(self) -> List[CommentRecord]:
        """Replace the record set with the stored analysis results."""
        results = await self.store.get(ANALYSIS_RESULTS_KEY)
        self.records = analysis_results_to_records(results or {})
        if self.records:
            logger.info(f"Loaded {len(self.records)} comments into state")
        else:
            logger.info("No comments found in storage")
        return self.records

    def projections(self) -> Projections:
        return build_projections(self.records, self.selection)

    async def refresh(self) -> Projections:
        """Reload from the store and recompute."""
        await self.load()
        self.error = None
        return self.projections()

    def select(self, sentiment: Optional[str]) -> Projections:
        """Change the selected sentiment and recompute."""
        self.selection.select(sentiment)
        return self.projections()

    def toggle(self, sentiment: str) -> Projections:
        self.selection.toggle(sentiment)
        return self.projections()

    async def handle_notification(self, message: Dict[str, Any]) -> Optional[Projections]:
        """
        React to a completion notification.

        Returns:
            Fresh projections on success, None for errors and unrelated messages
        """
        if message.get("action") != UPDATE_UI:
            return None
        if message.get("error"):
            self.error = message["error"]
            logger.error(f"Ingestion reported an error: {self.error}")
            return None
        return await self.refresh()
