"""Per-item metric normalization.

Turns a raw insights bag plus the item's native counters into a
``ComputedMetrics`` record. Values the API did not return stay ``None``;
rates are ``None`` whenever their denominator is missing or not positive.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from prism.metrics.picker import as_number, pick_metric
from prism.models.media import ComputedMetrics, MediaItem

SAVES_KEYS = ("saved", "saves")
REACH_KEYS = ("reach",)
VIEWS_KEYS = ("views",)
SHARES_KEYS = ("shares",)
TOTAL_INTERACTIONS_KEYS = ("total_interactions", "engagement")

# Ranking weights for score. Business rule, not configurable.
SCORE_WEIGHTS = {
    "likes": 1,
    "comments": 2,
    "saves": 3,
    "shares": 4,
}

EXPECTED_METRICS = ("saves", "shares", "reach", "views")


@dataclass(frozen=True)
class NormalizedMetrics:
    """Normalized insights bag and the metrics derived from it."""

    insights: dict[str, Any]
    computed: ComputedMetrics


def _positive(value: Any) -> Optional[float | int]:
    number = as_number(value)
    if number is None or number <= 0:
        return None
    return number


def compute_media_metrics(
    like_count: Any,
    comments_count: Any,
    raw: Mapping[str, Any],
    followers_count: Any = None,
) -> NormalizedMetrics:
    """Compute derived metrics for one media item.

    Args:
        like_count: Native like counter of the item
        comments_count: Native comment counter of the item
        raw: Raw insights bag for the item (possibly empty)
        followers_count: Account follower count, if known

    Returns:
        NormalizedMetrics with the merged insights bag and ComputedMetrics
    """
    raw = raw or {}
    likes = as_number(like_count) or 0
    comments = as_number(comments_count) or 0

    saves_pick = pick_metric(raw, SAVES_KEYS)
    reach_pick = pick_metric(raw, REACH_KEYS)
    views_pick = pick_metric(raw, VIEWS_KEYS)
    shares_pick = pick_metric(raw, SHARES_KEYS)
    interactions_pick = pick_metric(raw, TOTAL_INTERACTIONS_KEYS)

    saves = saves_pick.value
    reach = reach_pick.value
    views = views_pick.value
    shares = shares_pick.value

    # The fetcher records the published name views was folded from
    views_source = views_pick.source
    recorded_source = raw.get("views_source")
    if views is not None and isinstance(recorded_source, str):
        views_source = recorded_source

    engagement = likes + comments + (saves or 0) + (shares or 0)
    score = (
        likes * SCORE_WEIGHTS["likes"]
        + comments * SCORE_WEIGHTS["comments"]
        + (saves or 0) * SCORE_WEIGHTS["saves"]
        + (shares or 0) * SCORE_WEIGHTS["shares"]
    )

    followers = _positive(followers_count)
    positive_reach = _positive(reach)

    er = (engagement / followers) * 100 if followers else None
    reach_rate = (reach / followers) * 100 if followers and reach is not None else None
    views_rate = (views / positive_reach) * 100 if positive_reach and views is not None else None
    per_1000_reach = (engagement / positive_reach) * 1000 if positive_reach else None

    resolved = {"saves": saves, "shares": shares, "reach": reach, "views": views}
    missing = tuple(name for name in EXPECTED_METRICS if resolved[name] is None)

    computed = ComputedMetrics(
        likes=likes,
        comments=comments,
        saves=saves,
        shares=shares,
        reach=reach,
        views=views,
        views_source=views_source,
        total_interactions=interactions_pick.value,
        engagement=engagement,
        score=score,
        er=er,
        reach_rate=reach_rate,
        views_rate=views_rate,
        interactions_per_1000_reach=per_1000_reach,
        has_insights=len(raw) > 0,
        is_partial=len(missing) > 0,
        missing_metrics=missing,
    )

    # Only resolved values are written back so the bag re-normalizes to the same result
    insights = dict(raw)
    if reach is not None:
        insights["reach"] = reach
    if saves is not None:
        raw_saves = as_number(raw.get("saves"))
        insights["saved"] = saves
        insights["saves"] = raw_saves if raw_saves is not None else saves
    if views is not None:
        insights["views"] = views
        insights["views_source"] = views_source
    if shares is not None:
        insights["shares"] = shares
    if interactions_pick.value is not None:
        insights["total_interactions"] = interactions_pick.value

    return NormalizedMetrics(insights=insights, computed=computed)


def normalize_media(
    item: MediaItem,
    raw: Mapping[str, Any],
    followers_count: Any = None,
) -> MediaItem:
    """Return a copy of ``item`` carrying normalized insights and computed metrics."""
    result = compute_media_metrics(item.like_count, item.comments_count, raw, followers_count)
    return dataclasses.replace(item, insights=result.insights, computed=result.computed)
