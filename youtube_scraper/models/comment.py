"""
Pydantic models for normalized YouTube comments and ingestion results.

``CommentRecord`` is also the wire format sent to the classification service, so
it serializes with the camelCase ``sentimentStrength`` alias.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

SENTIMENTS = ("positive", "neutral", "negative")
STRENGTHS = ("strong", "weak")
DEFAULT_TOPIC = "General"

Sentiment = Literal["positive", "neutral", "negative"]
Strength = Literal["strong", "weak"]


class CommentRecord(BaseModel):
    """One normalized comment or reply."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    text: str = ""
    timestamp: float = 0.0  # seconds since epoch; 0 means unknown
    sentiment: Optional[Sentiment] = None
    sentiment_strength: Optional[Strength] = Field(None, alias="sentimentStrength")
    topic: str = DEFAULT_TOPIC
    emojis: List[str] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for the classification service."""
        return self.model_dump(by_alias=True)


class Page(BaseModel):
    """One page of a cursor-paginated listing."""

    items: List[Dict[str, Any]] = Field(default_factory=list)
    next_cursor: Optional[str] = None


class RunResult(BaseModel):
    """Records produced by one ingestion run, in fetch order."""

    video_id: str
    records: List[CommentRecord] = Field(default_factory=list)
    skipped_count: int = 0  # malformed source items dropped during normalization

    @property
    def processed_count(self) -> int:
        return len(self.records)
