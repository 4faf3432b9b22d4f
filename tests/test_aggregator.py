"""Tests for collection and story aggregation."""

from datetime import timedelta, timezone

import pytest

from prism.metrics.aggregator import (
    aggregate,
    aggregate_by_hour,
    aggregate_by_media_type,
    aggregate_by_month,
    aggregate_by_week,
    aggregate_by_weekday,
    aggregate_stories,
    best_posting_window,
    media_type_distribution,
    story_completion_rate,
)
from prism.models.media import StoryItem


class TestAggregate:
    """Tests for aggregate."""

    def test_sums_treat_missing_as_zero(self, make_item):
        """Test totals count missing values as zero contribution."""
        items = [
            make_item("1", 10, 2, {"reach": 200, "saved": 3}),
            make_item("2", 5, 1, {}),
        ]

        totals = aggregate(items).totals

        assert totals.posts == 2
        assert totals.likes == 15
        assert totals.comments == 3
        assert totals.reach == 200
        assert totals.saves == 3
        assert totals.shares == 0
        assert totals.views == 0
        assert totals.engagement == 15 + 6
        assert totals.score == 23 + 7

    def test_averages_exclude_missing(self, make_item):
        """Test averages only cover items where the metric exists."""
        items = [
            make_item("1", 10, 0, {"reach": 100}),
            make_item("2", 30, 0, {"reach": 300}),
            make_item("3", 50, 0, {}),
        ]

        averages = aggregate(items).averages

        # reach_rate is None for item 3, so only items 1 and 2 count
        assert averages.reach_rate == pytest.approx((10 + 30) / 2)
        assert averages.er == pytest.approx((1 + 3 + 5) / 3)

    def test_all_missing_average_is_none(self, make_item):
        """Test an empty subset yields None, not zero or NaN."""
        items = [make_item("1", 1, 1, {}, followers=None), make_item("2", 2, 2, {}, followers=0)]

        averages = aggregate(items).averages

        assert averages.er is None
        assert averages.reach_rate is None
        assert averages.views_rate is None
        assert averages.interactions_per_1000_reach is None

    def test_empty_collection(self):
        """Test aggregating nothing."""
        result = aggregate([])

        assert result.totals.posts == 0
        assert result.totals.likes == 0
        assert result.averages.score is None

    def test_order_independent(self, make_item):
        """Test float results do not depend on item order."""
        items = [make_item(str(i), i, 0, {"reach": 3 + i}, followers=7) for i in range(1, 30)]

        forward = aggregate(items)
        backward = aggregate(list(reversed(items)))

        assert forward == backward

    def test_to_dict(self, make_item):
        """Test the serialized rollup."""
        data = aggregate([make_item("1", 1, 0, {})]).to_dict()

        assert data["totals"]["likes"] == 1
        assert data["averages"]["er"] == pytest.approx(0.1)


class TestBuckets:
    """Tests for bucketed rollups."""

    def test_by_weekday_omits_empty_buckets(self, make_item):
        """Test only weekdays with posts appear, in order."""
        items = [
            make_item("1", 1, 0, timestamp="2024-03-09T10:00:00+0000"),  # Saturday
            make_item("2", 2, 0, timestamp="2024-03-04T10:00:00+0000"),  # Monday
            make_item("3", 3, 0, timestamp="2024-03-11T10:00:00+0000"),  # Monday
        ]

        buckets = aggregate_by_weekday(items)

        assert list(buckets) == [0, 5]
        assert buckets[0].totals.posts == 2
        assert buckets[0].totals.likes == 5
        assert buckets[5].totals.likes == 1

    def test_skips_items_without_timestamp(self, make_item):
        """Test undated items are left out of time buckets."""
        items = [make_item("1", 1, 0, timestamp=None), make_item("2", 1, 0, timestamp="not a date")]

        assert aggregate_by_hour(items) == {}

    def test_by_hour_with_timezone(self, make_item):
        """Test buckets follow the requested timezone."""
        items = [make_item("1", 1, 0, timestamp="2024-03-04T23:30:00+0000")]
        sao_paulo = timezone(timedelta(hours=-3))

        assert list(aggregate_by_hour(items)) == [23]
        assert list(aggregate_by_hour(items, tz=sao_paulo)) == [20]

    def test_by_week_of_month(self, make_item):
        """Test weekly buckets use ceil(day / 7)."""
        items = [
            make_item("1", 1, 0, timestamp="2024-03-07T10:00:00+0000"),
            make_item("2", 1, 0, timestamp="2024-03-08T10:00:00+0000"),
            make_item("3", 1, 0, timestamp="2024-03-29T10:00:00+0000"),
        ]

        assert list(aggregate_by_week(items)) == [(2024, 3, 1), (2024, 3, 2), (2024, 3, 5)]

    def test_by_month(self, make_item):
        """Test monthly buckets."""
        items = [
            make_item("1", 1, 0, timestamp="2024-02-07T10:00:00+0000"),
            make_item("2", 1, 0, timestamp="2024-03-08T10:00:00+0000"),
        ]

        assert list(aggregate_by_month(items)) == [(2024, 2), (2024, 3)]

    def test_by_media_type_separates_reels(self, make_item):
        """Test reels are bucketed by product type."""
        items = [
            make_item("1", 1, 0, media_type="VIDEO", media_product_type="REELS"),
            make_item("2", 1, 0, media_type="VIDEO", media_product_type="FEED"),
            make_item("3", 1, 0, media_type="IMAGE"),
        ]

        buckets = aggregate_by_media_type(items)

        assert set(buckets) == {"REELS", "VIDEO", "IMAGE"}
        assert all(bucket.totals.posts == 1 for bucket in buckets.values())

    def test_media_type_distribution(self, make_item):
        """Test counts by raw media type."""
        items = [
            make_item("1", media_type="IMAGE"),
            make_item("2", media_type="IMAGE"),
            make_item("3", media_type=""),
        ]

        assert media_type_distribution(items) == {"IMAGE": 2, "UNKNOWN": 1}

    def test_best_posting_window(self, make_item):
        """Test the weekday/hour slot with the highest mean score wins."""
        items = [
            make_item("1", 10, 0, timestamp="2024-03-04T14:00:00+0000"),  # Mon 14h
            make_item("2", 2, 0, timestamp="2024-03-04T14:10:00+0000"),  # Mon 14h
            make_item("3", 8, 0, timestamp="2024-03-05T09:00:00+0000"),  # Tue 09h
        ]

        window = best_posting_window(items)

        assert (window.weekday, window.hour) == (1, 9)
        assert window.avg_score == 8
        assert window.count == 1

    def test_best_posting_window_empty(self):
        """Test no dated items yields None."""
        assert best_posting_window([]) is None


class TestStories:
    """Tests for story aggregation."""

    def test_reference_scenario(self):
        """Test the documented stories example."""
        stories = [
            StoryItem(id="s1", media_type="IMAGE", insights={"views": 100, "exits": 20}),
            StoryItem(id="s2", media_type="IMAGE", insights={"views": 0, "exits": 0}),
        ]

        result = aggregate_stories(stories)

        assert result.total_stories == 2
        assert result.total_views == 100
        assert result.total_exits == 20
        assert result.avg_completion_rate == 80

    def test_impressions_fallback(self):
        """Test older story payloads reporting impressions."""
        stories = [
            StoryItem(id="s1", media_type="IMAGE", insights={"impressions": 40, "exits": 10, "reach": 30}),
            StoryItem(id="s2", media_type="VIDEO", insights={"views": 60, "replies": 2, "taps_forward": 5}),
        ]

        result = aggregate_stories(stories)

        assert result.total_views == 100
        assert result.total_impressions == 100
        assert result.total_reach == 30
        assert result.total_replies == 2
        assert result.total_taps_forward == 5
        assert result.total_taps_back == 0
        assert result.avg_completion_rate == 90

    def test_no_views_completion_is_zero(self):
        """Test zero views falls back to a zero completion rate."""
        result = aggregate_stories([StoryItem(id="s1", media_type="IMAGE", insights={})])

        assert result.total_views == 0
        assert result.avg_completion_rate == 0

    def test_completion_rate_rounds_half_up(self):
        """Test rounding of the per-story completion rate."""
        assert story_completion_rate({"views": 8, "exits": 3}) == 63  # 62.5
        assert story_completion_rate({"views": 3, "exits": 1}) == 67
        assert story_completion_rate({}) == 0

    def test_to_dict_includes_impressions_alias(self):
        """Test the serialized aggregate keeps the impressions name."""
        data = aggregate_stories([]).to_dict()

        assert data["total_impressions"] == 0
        assert data["total_views"] == 0
