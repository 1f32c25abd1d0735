"""
Aggregations over classified comments for the dashboard.

Every function here is a pure computation over a sequence of CommentRecord and
is deterministic, except ``decorate_tokens`` which adds random visual jitter to
an already ranked token list.
"""

import logging
import math
import random
import re
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel

from youtube_scraper.models.comment import CommentRecord, SENTIMENTS

logger = logging.getLogger(__name__)

BIN_WIDTH_SEC = 30
TOP_TOKENS = 30
TOP_EMOJIS = 6
TOP_COMMENTS = 10
MIN_TOKEN_LENGTH = 3
MIN_TOKEN_SIZE = 1.0
MAX_TOKEN_SIZE = 5.0

PUNCTUATION_RE = re.compile(r"[.,!?'\"()/]")

STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "is", "are", "was", "were", "to", "in", "of", "for", "on",
    "with", "from", "as", "at", "it", "this", "that", "so", "what", "you", "i", "me", "my", "he", "she",
    "we", "they", "our", "their", "your", "be", "been", "about", "just", "can", "cant", "would", "will",
    "go", "up", "down", "out", "off", "too", "very", "here", "there", "who", "how", "when", "why", "like",
    "video", "content", "quality",
})


class TimeBin(BaseModel):
    bin: int  # start of the interval, epoch seconds
    positive: int = 0
    neutral: int = 0
    negative: int = 0


class TopicSentiment(BaseModel):
    topic: str
    positive: int = 0
    neutral: int = 0
    negative: int = 0


class RankedToken(BaseModel):
    word: str
    count: int
    size: float


class DecoratedToken(RankedToken):
    rotation: int
    color: str


class EmojiCount(BaseModel):
    emoji: str
    count: int


class SentimentSummary(BaseModel):
    percentages: Dict[str, float]
    dominant: str
    trend: str  # "up", "down" or "flat"


def _sentiment_of(record: CommentRecord) -> str:
    # Display records are normalized upstream; unset only occurs on raw ingestion output
    return record.sentiment if record.sentiment in SENTIMENTS else "neutral"


def sentiment_counts(records: Iterable[CommentRecord]) -> Dict[str, int]:
    """Count records per sentiment; all three sentiments are always present."""
    counts = {sentiment: 0 for sentiment in SENTIMENTS}
    for record in records:
        counts[_sentiment_of(record)] += 1
    return counts


def time_bin(timestamp: float, width: int = BIN_WIDTH_SEC) -> int:
    """Start of the fixed-width interval containing ``timestamp``."""
    return math.floor(timestamp / width) * width


def time_series(records: Iterable[CommentRecord], width: int = BIN_WIDTH_SEC) -> List[TimeBin]:
    """
    Bucket records into left-aligned ``width``-second bins per sentiment.

    Records without a known timestamp are left out.

    Returns:
        Non-empty bins in ascending order of start time
    """
    bins: Dict[int, TimeBin] = {}
    for record in records:
        if not record.timestamp or record.timestamp <= 0:
            continue
        start = time_bin(record.timestamp, width)
        entry = bins.get(start)
        if entry is None:
            entry = bins[start] = TimeBin(bin=start)
        sentiment = _sentiment_of(record)
        setattr(entry, sentiment, getattr(entry, sentiment) + 1)
    return [bins[start] for start in sorted(bins)]


def topic_sentiment(records: Iterable[CommentRecord]) -> List[TopicSentiment]:
    """One row of sentiment counts per topic, in order of first appearance."""
    topics: Dict[str, TopicSentiment] = {}
    for record in records:
        row = topics.get(record.topic)
        if row is None:
            row = topics[record.topic] = TopicSentiment(topic=record.topic)
        sentiment = _sentiment_of(record)
        setattr(row, sentiment, getattr(row, sentiment) + 1)
    return list(topics.values())


def tokenize(text: str) -> List[str]:
    """Lower-case, strip punctuation and split on whitespace, keeping meaningful words."""
    words = PUNCTUATION_RE.sub("", text.lower()).split()
    return [w for w in words if len(w) >= MIN_TOKEN_LENGTH and w not in STOPWORDS]


def token_size(count: int, min_count: int, max_count: int) -> float:
    """Map a frequency linearly onto [MIN_TOKEN_SIZE, MAX_TOKEN_SIZE]."""
    if max_count == min_count:
        return MIN_TOKEN_SIZE
    span = MAX_TOKEN_SIZE - MIN_TOKEN_SIZE
    return MIN_TOKEN_SIZE + (count - min_count) / (max_count - min_count) * span


def rank_tokens(records: Iterable[CommentRecord], limit: int = TOP_TOKENS) -> List[RankedToken]:
    """
    Most frequent words across all comment texts.

    Ties keep the order in which words first appear. Sizes are scaled against the
    frequency range of the whole vocabulary, not only the returned words.
    """
    counts = Counter(word for record in records for word in tokenize(record.text))
    if not counts:
        return []

    ranked = counts.most_common()
    max_count = ranked[0][1]
    min_count = ranked[-1][1]
    return [
        RankedToken(word=word, count=count, size=token_size(count, min_count, max_count))
        for word, count in ranked[:limit]
    ]


def rank_emojis(records: Iterable[CommentRecord], limit: int = TOP_EMOJIS) -> List[EmojiCount]:
    """Most frequent emojis across all records, ties in order of first appearance."""
    counts = Counter(e for record in records for e in record.emojis)
    return [EmojiCount(emoji=e, count=c) for e, c in counts.most_common(limit)]


def decorate_tokens(
    tokens: Sequence[RankedToken],
    rng: Optional[random.Random] = None,
) -> List[DecoratedToken]:
    """
    Attach a random rotation and color to each ranked token for the word cloud.

    Args:
        tokens: Output of ``rank_tokens``
        rng: Random source; a fresh unseeded one when omitted

    Returns:
        Tokens with ``rotation`` of -90 (about 30% of words) or 0, and an HSL color
    """
    rng = rng or random.Random()
    decorated = []
    for token in tokens:
        rotation = -90 if rng.random() > 0.7 else 0
        color = f"hsl({int(rng.random() * 360)},70%,50%)"
        decorated.append(DecoratedToken(**token.model_dump(), rotation=rotation, color=color))
    return decorated


def sentiment_summary(counts: Dict[str, int]) -> Optional[SentimentSummary]:
    """
    Percentages per sentiment with the dominant one and a trend marker.

    The trend is "up" when the dominant share is at least 60%, "down" when it is at
    most 30%, otherwise "flat".

    Returns:
        The summary, or None when there are no records
    """
    total = sum(counts.get(s, 0) for s in SENTIMENTS)
    if total == 0:
        return None

    percentages = {s: round(counts.get(s, 0) / total * 100, 1) for s in SENTIMENTS}
    dominant = max(SENTIMENTS, key=lambda s: percentages[s])
    share = percentages[dominant]

    if share >= 60:
        trend = "up"
    elif share <= 30:
        trend = "down"
    else:
        trend = "flat"
    return SentimentSummary(percentages=percentages, dominant=dominant, trend=trend)


def top_comments(records: Sequence[CommentRecord], limit: int = TOP_COMMENTS) -> List[CommentRecord]:
    """The first ``limit`` records in their original order."""
    return list(records[:limit])


def format_time(timestamp: Optional[float]) -> str:
    """
    Render a timestamp as ``M:SS``.

    Values of 1e12 and above are taken as milliseconds; missing or invalid input
    renders as ``00:00``.
    """
    try:
        value = float(timestamp)
    except (TypeError, ValueError):
        return "00:00"
    if not value or not math.isfinite(value):
        return "00:00"
    seconds = math.floor(value / 1000 if value >= 1e12 else value)
    return f"{seconds // 60}:{seconds % 60:02d}"
