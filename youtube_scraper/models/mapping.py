"""Mapping functions to convert YouTube API payloads to our data models."""

import logging
import math
from datetime import timezone
from typing import Any, Callable, Dict, Iterable, List, Tuple

import emoji
from dateutil.parser import isoparse
from pydantic import ValidationError

from youtube_scraper.models.comment import (
    CommentRecord,
    DEFAULT_TOPIC,
    SENTIMENTS,
    STRENGTHS,
)

logger = logging.getLogger(__name__)


def extract_emojis(text: str) -> List[str]:
    """
    Return the pictographic symbols in ``text`` in order of appearance.

    Multi-codepoint sequences (skin tones, ZWJ families, flags) count as one symbol.
    """
    if not text:
        return []
    return [match["emoji"] for match in emoji.emoji_list(text)]


def parse_published_at(value: str) -> float:
    """
    Convert an RFC 3339 ``publishedAt`` value to epoch seconds.

    Naive timestamps are taken as UTC.

    Raises:
        ValueError: If the value is missing or not a timestamp
    """
    if not value:
        raise ValueError("missing publishedAt")
    published = isoparse(value)
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return published.timestamp()


def _snippet_to_record(comment_id: str, snippet: Dict[str, Any]) -> CommentRecord:
    text = snippet.get("textDisplay") or ""
    return CommentRecord(
        id=comment_id,
        text=text,
        timestamp=parse_published_at(snippet.get("publishedAt")),
        topic=DEFAULT_TOPIC,
        emojis=extract_emojis(text),
    )


def thread_to_record(item: Dict[str, Any]) -> CommentRecord:
    """
    Convert a ``commentThreads`` item to a CommentRecord.

    Args:
        item: Raw comment thread resource

    Returns:
        The normalized top-level comment

    Raises:
        KeyError, TypeError, ValueError, AttributeError, ValidationError: If the item is malformed
    """
    top_level = item["snippet"]["topLevelComment"]
    return _snippet_to_record(top_level["id"], top_level["snippet"])


def reply_to_record(item: Dict[str, Any]) -> CommentRecord:
    """Convert a ``comments`` (reply) item to a CommentRecord."""
    return _snippet_to_record(item["id"], item["snippet"])


def thread_reply_count(item: Dict[str, Any]) -> int:
    """Number of replies the source reports for a thread, 0 when unknown."""
    try:
        return int(item["snippet"].get("totalReplyCount") or 0)
    except (KeyError, TypeError, ValueError, AttributeError):
        return 0


def thread_parent_id(item: Dict[str, Any]) -> str:
    """Id of the top-level comment a thread's replies hang under."""
    snippet = item.get("snippet") or {}
    top_level = snippet.get("topLevelComment") or {}
    return top_level.get("id") or item.get("id") or ""


def items_to_records(
    items: Iterable[Dict[str, Any]],
    converter: Callable[[Dict[str, Any]], CommentRecord],
) -> Tuple[List[CommentRecord], int]:
    """
    Convert raw items, skipping the ones that fail validation.

    Args:
        items: Raw API items
        converter: Per-item conversion function

    Returns:
        Converted records and the number of skipped items
    """
    records = []
    skipped = 0

    for item in items:
        try:
            records.append(converter(item))
        except (KeyError, TypeError, ValueError, AttributeError, ValidationError) as e:
            skipped += 1
            item_id = item.get("id") if isinstance(item, dict) else None
            logger.warning(f"Skipping malformed item {item_id}: {e!r}")

    return records, skipped


def coerce_timestamp(value: Any) -> float:
    """
    Best-effort conversion of a stored timestamp to epoch seconds.

    Accepts numbers, numeric strings and ISO 8601 strings. Values of 1e12 and above
    are taken as milliseconds. Anything unparseable yields 0.0 (unknown).
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        try:
            return parse_published_at(str(value))
        except (ValueError, OverflowError):
            return 0.0
    if not math.isfinite(seconds):
        return 0.0
    return seconds / 1000.0 if seconds >= 1e12 else seconds


def _normalize_choice(value: Any, choices: Tuple[str, ...], default: str) -> str:
    if isinstance(value, str) and value.lower() in choices:
        return value.lower()
    return default


def analysis_result_to_record(item: Dict[str, Any]) -> CommentRecord:
    """
    Convert one classified comment from the analysis service for display.

    Missing or unknown sentiment becomes ``neutral``, missing strength ``weak``.
    """
    return CommentRecord(
        id=str(item["id"]),
        text=item.get("text") or "",
        timestamp=coerce_timestamp(item.get("timestamp")),
        sentiment=_normalize_choice(item.get("sentiment"), SENTIMENTS, "neutral"),
        sentiment_strength=_normalize_choice(
            item.get("sentimentStrength"), STRENGTHS, "weak"
        ),
        topic=item.get("topic") or DEFAULT_TOPIC,
        emojis=list(item.get("emojis") or []),
    )


def analysis_results_to_records(results: Dict[str, Any]) -> List[CommentRecord]:
    """
    Convert a stored analysis response to display records.

    Args:
        results: Verbatim classification service response

    Returns:
        Records in the order the service returned them
    """
    comments = (results or {}).get("comments") or []
    records, skipped = items_to_records(comments, analysis_result_to_record)
    if skipped:
        logger.warning(f"Dropped {skipped} malformed analysed comments")
    return records
