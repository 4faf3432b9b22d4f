"""Per-media insight fetching with metric-set fallback.

The insights endpoint rejects a whole request when any requested metric is
unsupported for the media type, and support varies by API version and
account. Each media classification therefore has an ordered list of metric
sets, most complete first; the first one that returns data wins.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional, Sequence

import httpx

from prism.metrics.picker import as_number, pick_metric
from prism.models.media import REEL_PRODUCT_TYPES, MediaItem, MediaType
from prism.services.instagram.client import InstagramClient, InstagramClientError

logger = logging.getLogger(__name__)

MEDIA_INSIGHT_CANDIDATES: dict[str, tuple[str, ...]] = {
    "carousel": (
        "carousel_album_reach,carousel_album_saved,carousel_album_video_views,shares,total_interactions",
        "carousel_album_reach,carousel_album_saved,carousel_album_video_views",
        "carousel_album_reach,carousel_album_saved",
        "reach,saved,shares,total_interactions",
        "reach,saved",
    ),
    "reel": (
        "views,reach,saved,shares,total_interactions",
        "plays,reach,saved,shares,total_interactions",
        "views,reach,saved",
        "plays,reach,saved",
        "reach,saved",
    ),
    "video": (
        "video_views,views,reach,saved,shares,total_interactions",
        "video_views,reach,saved,shares,total_interactions",
        "views,reach,saved,shares,total_interactions",
        "video_views,reach,saved",
        "views,reach,saved",
        "reach,saved",
    ),
    "image": (
        "views,reach,saved,shares,total_interactions",
        "reach,saved,shares,total_interactions",
        "reach,saved",
        "reach",
    ),
}

STORY_INSIGHT_CANDIDATES: tuple[str, ...] = (
    "views,reach,replies,exits,taps_forward,taps_back",
    "impressions,reach,replies,exits,taps_forward,taps_back",
    "reach,replies",
)

# Canonical key -> names it has been published under, in order of preference
METRIC_SYNONYMS: dict[str, tuple[str, ...]] = {
    "saved": ("saved", "saves", "carousel_album_saved"),
    "views": ("views", "video_views", "plays", "carousel_album_video_views"),
    "reach": ("reach", "carousel_album_reach"),
    "shares": ("shares",),
    "total_interactions": ("total_interactions", "engagement"),
}


def classify_media(media_type: Optional[str], media_product_type: Optional[str] = None) -> str:
    """Map a media record onto a candidate list name."""
    if media_type == MediaType.CAROUSEL_ALBUM.value:
        return "carousel"
    if media_product_type in REEL_PRODUCT_TYPES or media_type == MediaType.REELS.value:
        return "reel"
    if media_type == MediaType.VIDEO.value:
        return "video"
    return "image"


def metric_candidates(media_type: Optional[str], media_product_type: Optional[str] = None) -> tuple[str, ...]:
    return MEDIA_INSIGHT_CANDIDATES[classify_media(media_type, media_product_type)]


def parse_insights_response(payload: Any) -> dict[str, float | int]:
    """Flatten an insights response into ``{metric: value}``.

    Takes the last entry of each metric's ``values`` so period-aggregated
    responses resolve to their latest value. Non-numeric values are dropped.
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list):
        return {}

    bag: dict[str, float | int] = {}
    for entry in data:
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
            continue
        values = entry.get("values")
        if not isinstance(values, list) or not values:
            continue
        last = values[-1]
        value = as_number(last.get("value")) if isinstance(last, dict) else None
        if value is not None:
            bag[entry["name"]] = value
    return bag


def normalize_media_insights(raw: dict[str, Any]) -> dict[str, Any]:
    """Add canonical metric keys next to the names the API actually returned.

    ``views_source`` records which published name supplied ``views``.
    """
    if not raw:
        return {}
    normalized = dict(raw)
    for canonical, synonyms in METRIC_SYNONYMS.items():
        pick = pick_metric(raw, synonyms)
        if pick.value is not None:
            normalized[canonical] = pick.value
            if canonical == "views" and not isinstance(raw.get("views_source"), str):
                normalized["views_source"] = pick.source
    if "saved" in normalized and as_number(raw.get("saves")) is None:
        normalized["saves"] = normalized["saved"]
    return normalized


class InsightsFetcher:
    """Fetches insight bags for media and stories.

    Failures for a single item never propagate: an item whose candidates all
    fail gets an empty bag.
    """

    def __init__(self, client: InstagramClient, batch_size: int = 50):
        self.client = client
        self.batch_size = max(1, batch_size)

    def _first_successful(self, object_id: str, candidates: Sequence[str]) -> dict[str, Any]:
        for metric in candidates:
            try:
                response = self.client.get_media_insights(object_id, metric)
            except httpx.TimeoutException as e:
                # Other metric sets would hit the same stalled upstream
                logger.info(f"No insights available for {object_id}: timed out ({e})")
                return {}
            except (InstagramClientError, httpx.HTTPError) as e:
                logger.debug(f"Insights attempt failed media={object_id} metric={metric}: {str(e)[:180]}")
                continue

            bag = parse_insights_response(response)
            if bag:
                return bag
            logger.debug(f"Insights attempt empty media={object_id} metric={metric}")

        logger.info(f"No insights available for {object_id} after {len(candidates)} attempts")
        return {}

    def fetch_media_insights(
        self,
        media_id: str,
        media_type: Optional[str],
        media_product_type: Optional[str] = None,
    ) -> dict[str, Any]:
        """Get the richest insights bag available for one media item.

        Returns:
            Normalized insights bag, or ``{}`` when every candidate failed
        """
        candidates = metric_candidates(media_type, media_product_type)
        return normalize_media_insights(self._first_successful(media_id, candidates))

    def fetch_story_insights(self, story_id: str) -> dict[str, Any]:
        return self._first_successful(story_id, STORY_INSIGHT_CANDIDATES)

    def fetch_many(self, items: Sequence[MediaItem], limit: Optional[int] = None) -> list[dict[str, Any]]:
        """Fetch insights for many items, in order.

        Items are processed in sequential batches; fetches within a batch run
        concurrently. Only the first ``limit`` items are queried, the rest get
        an empty bag.
        """
        limit = len(items) if limit is None else max(0, limit)
        to_fetch = list(items[:limit])
        results: list[dict[str, Any]] = []

        if to_fetch:
            with ThreadPoolExecutor(max_workers=min(self.batch_size, len(to_fetch))) as executor:
                for start in range(0, len(to_fetch), self.batch_size):
                    batch = to_fetch[start:start + self.batch_size]
                    results.extend(
                        executor.map(
                            lambda item: self.fetch_media_insights(
                                item.id, item.media_type, item.media_product_type
                            ),
                            batch,
                        )
                    )
                    logger.debug(f"Fetched insights batch {start // self.batch_size + 1} ({len(batch)} items)")

        results.extend({} for _ in items[limit:])
        return results

    def fetch_stories(self, stories: Sequence[Any]) -> list[dict[str, Any]]:
        """Fetch insights for stories concurrently, in order."""
        if not stories:
            return []
        with ThreadPoolExecutor(max_workers=min(self.batch_size, len(stories))) as executor:
            return list(executor.map(lambda story: self.fetch_story_insights(story.id), stories))
