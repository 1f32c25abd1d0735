"""Sentiment selection state and the strong/weak breakdown of the selected sentiment."""

import logging
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from youtube_scraper.models.comment import CommentRecord, SENTIMENTS

logger = logging.getLogger(__name__)

TOP_EXAMPLES = 5


class StrengthBreakdown(BaseModel):
    """Strong vs weak split of the comments carrying one sentiment."""

    sentiment: str
    strong_count: int = 0
    weak_count: int = 0
    strong_percent: float = 0.0
    weak_percent: float = 0.0
    strong_examples: List[CommentRecord] = Field(default_factory=list)
    weak_examples: List[CommentRecord] = Field(default_factory=list)


def strength_breakdown(
    records: Sequence[CommentRecord],
    sentiment: str,
    examples: int = TOP_EXAMPLES,
) -> StrengthBreakdown:
    """
    Split the records of ``sentiment`` by strength.

    Percentages are relative to ``max(1, strong + weak)`` and rounded to one
    decimal. Examples are the first ``examples`` records of each class in their
    original order.
    """
    matching = [r for r in records if r.sentiment == sentiment]
    strong = [r for r in matching if r.sentiment_strength == "strong"]
    weak = [r for r in matching if r.sentiment_strength == "weak"]
    total = max(1, len(strong) + len(weak))

    return StrengthBreakdown(
        sentiment=sentiment,
        strong_count=len(strong),
        weak_count=len(weak),
        strong_percent=round(len(strong) / total * 100, 1),
        weak_percent=round(len(weak) / total * 100, 1),
        strong_examples=strong[:examples],
        weak_examples=weak[:examples],
    )


class SelectionState:
    """Holds the sentiment the user drilled into, if any."""

    def __init__(self, selected: Optional[str] = None):
        self.selected: Optional[str] = None
        self.select(selected)

    def select(self, sentiment: Optional[str]) -> None:
        """
        Set the active sentiment, or clear it with None.

        Raises:
            ValueError: If ``sentiment`` is not a known sentiment
        """
        if sentiment is not None:
            sentiment = sentiment.lower()
            if sentiment not in SENTIMENTS:
                raise ValueError(f"Unknown sentiment: {sentiment!r}")
        self.selected = sentiment
        logger.debug(f"Selected sentiment: {sentiment or 'none'}")

    def toggle(self, sentiment: str) -> None:
        """Select ``sentiment``, or clear the selection if it is already active."""
        if self.selected == (sentiment or "").lower():
            self.select(None)
        else:
            self.select(sentiment)

    def breakdown(self, records: Sequence[CommentRecord]) -> Optional[StrengthBreakdown]:
        """Breakdown for the active sentiment, or None when nothing is selected."""
        if self.selected is None:
            return None
        return strength_breakdown(records, self.selected)
