"""Rollups of normalized media and stories."""

import math
from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import tzinfo
from typing import Any, Callable, Hashable, Iterable, Mapping, Optional, Sequence

from prism.metrics.filters import week_of_month
from prism.metrics.picker import as_number, pick_metric
from prism.models.media import MediaItem, StoriesAggregate, StoryItem

STORY_VIEWS_KEYS = ("views", "impressions")


@dataclass(frozen=True)
class MediaTotals:
    """Sums over a collection. Missing values contribute 0."""

    posts: int
    likes: float | int
    comments: float | int
    reach: float | int
    views: float | int
    saves: float | int
    shares: float | int
    engagement: float | int
    score: float | int


@dataclass(frozen=True)
class MediaAverages:
    """Means over the items where the metric is available."""

    er: Optional[float]
    reach_rate: Optional[float]
    views_rate: Optional[float]
    interactions_per_1000_reach: Optional[float]
    score: Optional[float]
    likes: Optional[float]
    comments: Optional[float]


@dataclass(frozen=True)
class MediaAggregate:
    totals: MediaTotals
    averages: MediaAverages

    def to_dict(self) -> dict[str, Any]:
        return {"totals": asdict(self.totals), "averages": asdict(self.averages)}


@dataclass(frozen=True)
class PostingWindow:
    """Weekday/hour slot with the best mean score."""

    weekday: int
    hour: int
    avg_score: float
    count: int


def total(values: Iterable[Any]) -> float | int:
    """Sum the numeric values, treating None as 0.

    Integers are summed exactly and floats with ``math.fsum``, so the result
    does not depend on iteration order.
    """
    numbers = [v for v in (as_number(value) for value in values) if v is not None]
    if all(isinstance(n, int) for n in numbers):
        return sum(numbers)
    return math.fsum(numbers)


def mean(values: Iterable[Any]) -> Optional[float]:
    """Mean of the numeric values, ignoring None. Empty input gives None."""
    numbers = [v for v in (as_number(value) for value in values) if v is not None]
    if not numbers:
        return None
    return math.fsum(numbers) / len(numbers)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def aggregate(items: Sequence[MediaItem]) -> MediaAggregate:
    """Compute totals and averages for a collection of normalized items."""
    totals = MediaTotals(
        posts=len(items),
        likes=total(item.metric("likes") for item in items),
        comments=total(item.metric("comments") for item in items),
        reach=total(item.metric("reach") for item in items),
        views=total(item.metric("views") for item in items),
        saves=total(item.metric("saves") for item in items),
        shares=total(item.metric("shares") for item in items),
        engagement=total(item.metric("engagement") for item in items),
        score=total(item.metric("score") for item in items),
    )
    averages = MediaAverages(
        er=mean(item.metric("er") for item in items),
        reach_rate=mean(item.metric("reach_rate") for item in items),
        views_rate=mean(item.metric("views_rate") for item in items),
        interactions_per_1000_reach=mean(
            item.metric("interactions_per_1000_reach") for item in items
        ),
        score=mean(item.metric("score") for item in items),
        likes=mean(item.metric("likes") for item in items),
        comments=mean(item.metric("comments") for item in items),
    )
    return MediaAggregate(totals=totals, averages=averages)


def group_by(
    items: Iterable[MediaItem],
    key: Callable[[MediaItem], Optional[Hashable]],
) -> dict[Any, list[MediaItem]]:
    """Group items by ``key``, skipping items whose key is None.

    Buckets come back in sorted key order; items keep their input order.
    """
    buckets: dict[Any, list[MediaItem]] = defaultdict(list)
    for item in items:
        bucket = key(item)
        if bucket is not None:
            buckets[bucket].append(item)
    return {bucket: buckets[bucket] for bucket in sorted(buckets)}


def aggregate_by(
    items: Iterable[MediaItem],
    key: Callable[[MediaItem], Optional[Hashable]],
) -> dict[Any, MediaAggregate]:
    return {bucket: aggregate(members) for bucket, members in group_by(items, key).items()}


def _local(item: MediaItem, tz: Optional[tzinfo]):
    posted_at = item.posted_at
    if posted_at is not None and tz is not None:
        posted_at = posted_at.astimezone(tz)
    return posted_at


def aggregate_by_weekday(
    items: Iterable[MediaItem],
    tz: Optional[tzinfo] = None,
) -> dict[int, MediaAggregate]:
    """Rollup per weekday (Monday is 0)."""

    def key(item: MediaItem) -> Optional[int]:
        posted_at = _local(item, tz)
        return posted_at.weekday() if posted_at else None

    return aggregate_by(items, key)


def aggregate_by_hour(
    items: Iterable[MediaItem],
    tz: Optional[tzinfo] = None,
) -> dict[int, MediaAggregate]:
    def key(item: MediaItem) -> Optional[int]:
        posted_at = _local(item, tz)
        return posted_at.hour if posted_at else None

    return aggregate_by(items, key)


def aggregate_by_week(
    items: Iterable[MediaItem],
    tz: Optional[tzinfo] = None,
) -> dict[tuple[int, int, int], MediaAggregate]:
    """Rollup per (year, month, week of month)."""

    def key(item: MediaItem) -> Optional[tuple[int, int, int]]:
        posted_at = _local(item, tz)
        if posted_at is None:
            return None
        return (posted_at.year, posted_at.month, week_of_month(posted_at))

    return aggregate_by(items, key)


def aggregate_by_month(
    items: Iterable[MediaItem],
    tz: Optional[tzinfo] = None,
) -> dict[tuple[int, int], MediaAggregate]:
    def key(item: MediaItem) -> Optional[tuple[int, int]]:
        posted_at = _local(item, tz)
        return (posted_at.year, posted_at.month) if posted_at else None

    return aggregate_by(items, key)


def aggregate_by_media_type(items: Iterable[MediaItem]) -> dict[str, MediaAggregate]:
    """Rollup per media type. Reels get their own ``REELS`` bucket."""

    def key(item: MediaItem) -> str:
        if item.is_reel:
            return "REELS"
        return item.media_type or "UNKNOWN"

    return aggregate_by(items, key)


def best_posting_window(
    items: Iterable[MediaItem],
    tz: Optional[tzinfo] = None,
) -> Optional[PostingWindow]:
    """Find the weekday/hour slot with the highest mean score."""

    def key(item: MediaItem) -> Optional[tuple[int, int]]:
        posted_at = _local(item, tz)
        return (posted_at.weekday(), posted_at.hour) if posted_at else None

    best: Optional[PostingWindow] = None
    for (weekday, hour), members in group_by(items, key).items():
        avg_score = total(item.metric("score") for item in members) / len(members)
        if best is None or avg_score > best.avg_score:
            best = PostingWindow(weekday=weekday, hour=hour, avg_score=avg_score, count=len(members))
    return best


def media_type_distribution(items: Iterable[MediaItem]) -> dict[str, int]:
    counts: dict[str, int] = defaultdict(int)
    for item in items:
        counts[item.media_type or "UNKNOWN"] += 1
    return dict(counts)


def story_completion_rate(insights: Mapping[str, Any]) -> int:
    """Share of viewers who did not exit, as a whole percentage.

    0 when the story has no views.
    """
    views = pick_metric(insights, STORY_VIEWS_KEYS).value or 0
    exits = as_number(insights.get("exits")) or 0
    if views <= 0:
        return 0
    return round_half_up((1 - exits / views) * 100)


def aggregate_stories(stories: Sequence[StoryItem]) -> StoriesAggregate:
    """Sum story insights and derive the overall completion rate."""
    total_views = total(pick_metric(story.insights, STORY_VIEWS_KEYS).value for story in stories)
    total_exits = total(story.insights.get("exits") for story in stories)

    avg_completion_rate = 0
    if total_views > 0:
        avg_completion_rate = round_half_up((1 - total_exits / total_views) * 100)

    return StoriesAggregate(
        total_stories=len(stories),
        total_views=total_views,
        total_reach=total(story.insights.get("reach") for story in stories),
        total_replies=total(story.insights.get("replies") for story in stories),
        total_exits=total_exits,
        total_taps_forward=total(story.insights.get("taps_forward") for story in stories),
        total_taps_back=total(story.insights.get("taps_back") for story in stories),
        avg_completion_rate=avg_completion_rate,
    )
