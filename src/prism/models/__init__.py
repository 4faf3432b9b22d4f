"""Data records for Prism."""

from prism.models.media import (
    ComputedMetrics,
    MediaItem,
    MediaType,
    StoriesAggregate,
    StoryItem,
)

__all__ = [
    "ComputedMetrics",
    "MediaItem",
    "MediaType",
    "StoriesAggregate",
    "StoryItem",
]
