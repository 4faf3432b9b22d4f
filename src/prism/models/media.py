"""Media, story and derived-metric records."""

import enum
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

Number = float | int

REEL_PRODUCT_TYPES = ("REELS", "REEL")


class MediaType(str, enum.Enum):
    """Media type as reported by the Graph API."""

    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    CAROUSEL_ALBUM = "CAROUSEL_ALBUM"
    REELS = "REELS"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a Graph API ISO 8601 timestamp, returning None on failure.

    The API emits offsets as ``+0000``; ``Z`` and ``+00:00`` are accepted too.
    Naive values are assumed to be UTC.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    elif len(text) > 5 and text[-5] in "+-" and text[-4:].isdigit():
        text = f"{text[:-2]}:{text[-2:]}"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class ComputedMetrics:
    """Derived metrics for one media item.

    ``None`` means the value was not available from the API; ``0`` means it was
    available and zero.
    """

    likes: Number
    comments: Number
    saves: Optional[Number]
    shares: Optional[Number]
    reach: Optional[Number]
    views: Optional[Number]
    views_source: Optional[str]
    total_interactions: Optional[Number]
    engagement: Number
    score: Number
    er: Optional[float]
    reach_rate: Optional[float]
    views_rate: Optional[float]
    interactions_per_1000_reach: Optional[float]
    has_insights: bool
    is_partial: bool
    missing_metrics: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["missing_metrics"] = list(self.missing_metrics)
        return data


@dataclass(frozen=True)
class MediaItem:
    """A post, reel or carousel from the account's media list."""

    id: str
    media_type: str
    timestamp: Optional[str] = None
    caption: Optional[str] = None
    media_product_type: Optional[str] = None
    media_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    permalink: Optional[str] = None
    like_count: Number = 0
    comments_count: Number = 0
    insights: dict[str, Any] = field(default_factory=dict)
    computed: Optional[ComputedMetrics] = None

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> "MediaItem":
        """Build an item from a raw Graph API media record."""
        return cls(
            id=str(record["id"]),
            media_type=record.get("media_type") or "",
            timestamp=record.get("timestamp"),
            caption=record.get("caption"),
            media_product_type=record.get("media_product_type"),
            media_url=record.get("media_url"),
            thumbnail_url=record.get("thumbnail_url"),
            permalink=record.get("permalink"),
            like_count=record.get("like_count") or 0,
            comments_count=record.get("comments_count") or 0,
        )

    @property
    def posted_at(self) -> Optional[datetime]:
        return parse_timestamp(self.timestamp)

    @property
    def is_reel(self) -> bool:
        """Reels are identified by product type, falling back to media type."""
        return (
            self.media_product_type in REEL_PRODUCT_TYPES
            or self.media_type == MediaType.REELS.value
        )

    def metric(self, name: str) -> Optional[Number]:
        """Get a computed metric by name, or None if not computed."""
        if self.computed is None:
            return None
        value = getattr(self.computed, name, None)
        if isinstance(value, bool):
            return None
        return value

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "caption": self.caption,
            "media_type": self.media_type,
            "media_product_type": self.media_product_type,
            "media_url": self.media_url,
            "thumbnail_url": self.thumbnail_url,
            "permalink": self.permalink,
            "timestamp": self.timestamp,
            "like_count": self.like_count,
            "comments_count": self.comments_count,
            "insights": dict(self.insights),
        }
        data["computed"] = self.computed.to_dict() if self.computed else None
        return data


@dataclass(frozen=True)
class StoryItem:
    """An active story (24h lifetime upstream)."""

    id: str
    media_type: str
    timestamp: Optional[str] = None
    media_url: Optional[str] = None
    permalink: Optional[str] = None
    insights: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> "StoryItem":
        return cls(
            id=str(record["id"]),
            media_type=record.get("media_type") or "",
            timestamp=record.get("timestamp"),
            media_url=record.get("media_url"),
            permalink=record.get("permalink"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "media_type": self.media_type,
            "media_url": self.media_url,
            "permalink": self.permalink,
            "timestamp": self.timestamp,
            "insights": dict(self.insights),
        }


@dataclass(frozen=True)
class StoriesAggregate:
    """Rollup of story insights."""

    total_stories: int = 0
    total_views: Number = 0
    total_reach: Number = 0
    total_replies: Number = 0
    total_exits: Number = 0
    total_taps_forward: Number = 0
    total_taps_back: Number = 0
    avg_completion_rate: int = 0

    @property
    def total_impressions(self) -> Number:
        """Pre-"views" name of ``total_views``."""
        return self.total_views

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["total_impressions"] = self.total_impressions
        return data
