"""Filtering and ranking of normalized media."""

import enum
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone, tzinfo
from typing import Iterable, Optional, Sequence

from prism.models.media import MediaItem, MediaType

SORTABLE_METRICS = (
    "likes",
    "comments",
    "saves",
    "shares",
    "reach",
    "views",
    "total_interactions",
    "engagement",
    "score",
    "er",
    "reach_rate",
    "views_rate",
    "interactions_per_1000_reach",
)


class Weekday(enum.IntEnum):
    """Day of week, numbered like ``datetime.weekday()``."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


class DayFilter(str, enum.Enum):
    """Coarse day-of-week filter."""

    ALL = "all"
    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"


def week_of_month(value: date) -> int:
    """Week bucket within the month: days 1-7 are week 1, 8-14 week 2, and so on."""
    return math.ceil(value.day / 7)


def _as_bound(value: date | datetime, tz: tzinfo, end: bool) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=tz)
    return datetime.combine(value, time.max if end else time.min, tzinfo=tz)


@dataclass(frozen=True)
class MediaFilter:
    """Predicate over media items.

    Date bounds are inclusive; plain dates cover the whole day in ``tz``.
    Weekday, day filter and week of month are evaluated in ``tz`` as well
    (the timestamp's own offset when ``tz`` is None).
    """

    start: Optional[date | datetime] = None
    end: Optional[date | datetime] = None
    weekday: Optional[Weekday] = None
    day_filter: DayFilter = DayFilter.ALL
    media_type: Optional[str] = None
    search: Optional[str] = None
    week_of_month: Optional[int] = None
    tz: Optional[tzinfo] = None

    @property
    def needs_timestamp(self) -> bool:
        return (
            self.start is not None
            or self.end is not None
            or self.weekday is not None
            or self.day_filter != DayFilter.ALL
            or self.week_of_month is not None
        )

    def matches(self, item: MediaItem) -> bool:
        posted_at = item.posted_at
        if self.needs_timestamp:
            if posted_at is None:
                return False
            bound_tz = self.tz or timezone.utc
            if self.start is not None and posted_at < _as_bound(self.start, bound_tz, end=False):
                return False
            if self.end is not None and posted_at > _as_bound(self.end, bound_tz, end=True):
                return False

            local = posted_at.astimezone(self.tz) if self.tz else posted_at
            day = local.weekday()
            if self.weekday is not None and day != self.weekday:
                return False
            if self.day_filter == DayFilter.WEEKDAYS and day >= Weekday.SATURDAY:
                return False
            if self.day_filter == DayFilter.WEEKENDS and day < Weekday.SATURDAY:
                return False
            if self.week_of_month is not None and week_of_month(local) != self.week_of_month:
                return False

        if self.media_type:
            if self.media_type == MediaType.REELS.value:
                if not item.is_reel:
                    return False
            elif item.media_type != self.media_type:
                return False

        if self.search:
            query = self.search.lower()
            caption = (item.caption or "").lower()
            if query not in caption and query not in item.id.lower():
                return False

        return True

    def apply(self, items: Iterable[MediaItem]) -> list[MediaItem]:
        return [item for item in items if self.matches(item)]


def sort_media(
    items: Sequence[MediaItem],
    metric: str = "score",
    descending: bool = True,
) -> list[MediaItem]:
    """Sort items by a computed metric.

    The sort is stable, so ties keep their input order. Items without a
    value for the metric go last in either direction.
    """
    if metric not in SORTABLE_METRICS:
        raise ValueError(f"Cannot sort by '{metric}'. Valid options: {', '.join(SORTABLE_METRICS)}")

    present = [item for item in items if item.metric(metric) is not None]
    absent = [item for item in items if item.metric(metric) is None]
    present = sorted(present, key=lambda item: item.metric(metric), reverse=descending)
    return present + absent


def top_media(
    items: Sequence[MediaItem],
    metric: str = "score",
    limit: int = 20,
) -> list[MediaItem]:
    return sort_media(items, metric)[:limit]
