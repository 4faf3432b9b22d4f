"""Metric normalization, aggregation and filtering."""

from prism.metrics.aggregator import (
    MediaAggregate,
    aggregate,
    aggregate_by_hour,
    aggregate_by_media_type,
    aggregate_by_month,
    aggregate_by_week,
    aggregate_by_weekday,
    aggregate_stories,
    best_posting_window,
    media_type_distribution,
)
from prism.metrics.filters import DayFilter, MediaFilter, Weekday, sort_media, top_media
from prism.metrics.normalizer import compute_media_metrics, normalize_media
from prism.metrics.picker import MetricPick, pick_metric

__all__ = [
    "DayFilter",
    "MediaAggregate",
    "MediaFilter",
    "MetricPick",
    "Weekday",
    "aggregate",
    "aggregate_by_hour",
    "aggregate_by_media_type",
    "aggregate_by_month",
    "aggregate_by_week",
    "aggregate_by_weekday",
    "aggregate_stories",
    "best_posting_window",
    "compute_media_metrics",
    "media_type_distribution",
    "normalize_media",
    "pick_metric",
    "sort_media",
    "top_media",
]
