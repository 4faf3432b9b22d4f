"""Dashboard service: builds the normalized dashboard payload for an account."""

import dataclasses
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from prism.config import Settings, get_settings
from prism.metrics.aggregator import (
    MediaAggregate,
    aggregate,
    aggregate_stories,
    media_type_distribution,
    story_completion_rate,
)
from prism.metrics.filters import top_media
from prism.metrics.normalizer import normalize_media
from prism.metrics.picker import as_number
from prism.models.media import MediaItem, StoriesAggregate, StoryItem
from prism.services.instagram.audience import fetch_demographics, fetch_online_followers
from prism.services.instagram.client import (
    AuthenticationError,
    InstagramClient,
    InstagramClientError,
)
from prism.services.instagram.insights import InsightsFetcher

logger = logging.getLogger(__name__)

MAX_POSTS_LIMIT = 2000
MAX_STORIES_LIMIT = 50
TOP_LIST_SIZE = 20


class DashboardError(Exception):
    """Request-level failure: the dashboard cannot be built."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class AccountNotConnectedError(AuthenticationError):
    """No Instagram Business account is configured."""

    pass


@dataclass
class DashboardPayload:
    """Normalized dashboard data handed to the presentation layer."""

    profile: dict[str, Any]
    media: list[MediaItem]
    stories: list[StoryItem]
    stories_aggregate: StoriesAggregate
    summary: MediaAggregate
    demographics: dict[str, dict[str, Any]] = field(default_factory=dict)
    online_followers: dict[str, Any] = field(default_factory=dict)
    messages: list[str] = field(default_factory=list)
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    duration_ms: int = 0
    snapshot_date: str = field(default_factory=lambda: datetime.now(timezone.utc).date().isoformat())
    provider: str = "instagram_graph_api"

    @property
    def posts(self) -> list[MediaItem]:
        return [item for item in self.media if not item.is_reel]

    @property
    def reels(self) -> list[MediaItem]:
        return [item for item in self.media if item.is_reel]

    def to_dict(self) -> dict[str, Any]:
        media = [item.to_dict() for item in self.media]
        return {
            "success": True,
            "request_id": self.request_id,
            "duration_ms": self.duration_ms,
            "snapshot_date": self.snapshot_date,
            "provider": self.provider,
            "profile": self.profile,
            "media": media,
            "total_posts": len(media),
            "summary": self.summary.to_dict(),
            "top_posts_by_score": [m.to_dict() for m in top_media(self.posts, "score", TOP_LIST_SIZE)],
            "top_posts_by_reach": [m.to_dict() for m in top_media(self.posts, "reach", TOP_LIST_SIZE)],
            "top_reels_by_views": [m.to_dict() for m in top_media(self.reels, "views", TOP_LIST_SIZE)],
            "top_reels_by_score": [m.to_dict() for m in top_media(self.reels, "score", TOP_LIST_SIZE)],
            "media_type_distribution": media_type_distribution(self.media),
            "stories": [story.to_dict() for story in self.stories],
            "stories_aggregate": self.stories_aggregate.to_dict(),
            "demographics": self.demographics,
            "online_followers": self.online_followers,
            "messages": list(self.messages),
        }


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class DashboardService:
    """Loads profile, media, stories and audience data and derives metrics."""

    def __init__(
        self,
        client: InstagramClient,
        settings: Optional[Settings] = None,
        fetcher: Optional[InsightsFetcher] = None,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.fetcher = fetcher or InsightsFetcher(client, batch_size=self.settings.insights_batch_size)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "DashboardService":
        """Create a service for the account configured in settings.

        Raises:
            AccountNotConnectedError: If no access token or business ID is set
        """
        settings = settings or get_settings()
        if not settings.is_instagram_configured:
            raise AccountNotConnectedError(
                "No Instagram Business account connected. Set IG_ACCESS_TOKEN and IG_BUSINESS_ID.",
                status_code=401,
            )
        client = InstagramClient(
            access_token=settings.ig_access_token,
            instagram_user_id=settings.ig_business_id,
            settings=settings,
        )
        return cls(client, settings=settings)

    def close(self) -> None:
        self.client.close()

    def _required(self, what: str, call, *args, **kwargs):
        """Run an upstream call the dashboard cannot do without."""
        try:
            return call(*args, **kwargs)
        except AuthenticationError:
            raise
        except (InstagramClientError, httpx.HTTPError) as e:
            logger.error(f"Failed to fetch {what}: {e}")
            raise DashboardError(f"Failed to fetch {what}: {e}", cause=e) from e

    def build(
        self,
        max_posts: Optional[int] = None,
        max_stories: Optional[int] = None,
        max_insights_posts: Optional[int] = None,
    ) -> DashboardPayload:
        """Build the dashboard payload.

        Args:
            max_posts: Media items to load (1-2000)
            max_stories: Stories to load (1-50)
            max_insights_posts: Most recent items that get per-item insights

        Returns:
            DashboardPayload with normalized media and diagnostics

        Raises:
            AuthenticationError: If the access token is rejected
            DashboardError: If the profile, media list or stories cannot be fetched
        """
        started_at = time.monotonic()
        max_posts = _clamp(max_posts or self.settings.max_posts, 1, MAX_POSTS_LIMIT)
        max_stories = _clamp(max_stories or self.settings.max_stories, 1, MAX_STORIES_LIMIT)
        if max_insights_posts is None:
            max_insights_posts = self.settings.max_insights_posts
        max_insights_posts = _clamp(max_insights_posts, 0, max_posts)

        logger.info(
            f"Building dashboard for {self.client.instagram_user_id}: "
            f"max_posts={max_posts}, max_insights_posts={max_insights_posts}"
        )

        profile = self._required("profile", self.client.get_profile)
        records = self._required("media list", self.client.get_media, max_items=max_posts)
        story_records = self._required("stories", self.client.get_stories, limit=max_stories)

        items = [MediaItem.from_api(record) for record in records if record.get("id")]
        followers_count = as_number(profile.get("followers_count"))

        bags = self.fetcher.fetch_many(items, limit=max_insights_posts)
        media = [normalize_media(item, bag, followers_count) for item, bag in zip(items, bags)]

        stories = [StoryItem.from_api(record) for record in story_records if record.get("id")]
        story_bags = self.fetcher.fetch_stories(stories)
        stories = [
            dataclasses.replace(story, insights={**bag, "completion_rate": story_completion_rate(bag)})
            for story, bag in zip(stories, story_bags)
        ]

        demographics = fetch_demographics(self.client)
        online_followers = fetch_online_followers(self.client)

        messages = self._messages(media, demographics, max_insights_posts)
        for message in messages:
            logger.info(message)

        return DashboardPayload(
            profile=profile,
            media=media,
            stories=stories,
            stories_aggregate=aggregate_stories(stories),
            summary=aggregate(media),
            demographics=demographics,
            online_followers=online_followers,
            messages=messages,
            duration_ms=int((time.monotonic() - started_at) * 1000),
        )

    @staticmethod
    def _messages(
        media: list[MediaItem],
        demographics: dict[str, Any],
        max_insights_posts: int,
    ) -> list[str]:
        """Describe systemic data limitations for the consumer."""
        messages = []
        if len(media) > max_insights_posts:
            messages.append(
                f"INSIGHTS_LIMIT: Detailed insights were fetched only for the "
                f"{max_insights_posts} most recent posts."
            )
        if not demographics:
            messages.append("DEMOGRAPHICS_EMPTY: Demographics are unavailable for this account or permissions.")

        partial = sum(
            1 for item in media
            if item.computed is not None and (not item.computed.has_insights or item.computed.is_partial)
        )
        if partial:
            messages.append(f"PARTIAL_METRICS: {partial} items have partial or unavailable metrics.")
        return messages
