"""Pytest configuration and fixtures."""

import pytest

from prism.metrics.normalizer import normalize_media
from prism.models.media import MediaItem


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make every test read settings fresh."""
    from prism.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def mock_settings(monkeypatch, tmp_path):
    """Settings for a connected test account."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("IG_ACCESS_TOKEN", "test_access_token_123")
    monkeypatch.setenv("IG_BUSINESS_ID", "17841400000000000")
    monkeypatch.setenv("INSIGHTS_BATCH_SIZE", "2")

    from prism.config import Settings
    return Settings(_env_file=None)


@pytest.fixture
def sample_media_records():
    """Raw Graph API media records."""
    return [
        {
            "id": "1001",
            "caption": "Launch day! New collection",
            "media_type": "IMAGE",
            "media_product_type": "FEED",
            "timestamp": "2024-03-04T14:30:00+0000",  # Monday
            "like_count": 10,
            "comments_count": 2,
        },
        {
            "id": "1002",
            "caption": "Behind the scenes reel",
            "media_type": "VIDEO",
            "media_product_type": "REELS",
            "timestamp": "2024-03-09T18:00:00+0000",  # Saturday
            "like_count": 40,
            "comments_count": 5,
        },
        {
            "id": "1003",
            "caption": "Carousel recap",
            "media_type": "CAROUSEL_ALBUM",
            "media_product_type": "FEED",
            "timestamp": "2024-03-12T09:15:00+0000",  # Tuesday
            "like_count": 20,
            "comments_count": 0,
        },
    ]


@pytest.fixture
def make_item():
    """Build a normalized MediaItem from counters and a raw insights bag."""

    def _make(
        media_id: str = "1",
        like_count: int = 0,
        comments_count: int = 0,
        raw=None,
        followers=1000,
        media_type: str = "IMAGE",
        media_product_type=None,
        timestamp="2024-03-04T14:30:00+0000",
        caption=None,
    ) -> MediaItem:
        item = MediaItem(
            id=media_id,
            media_type=media_type,
            media_product_type=media_product_type,
            timestamp=timestamp,
            caption=caption,
            like_count=like_count,
            comments_count=comments_count,
        )
        return normalize_media(item, raw or {}, followers)

    return _make


@pytest.fixture
def insights_response():
    """Build a Graph API insights response body."""

    def _build(**metrics):
        return {
            "data": [
                {"name": name, "period": "lifetime", "values": [{"value": value}]}
                for name, value in metrics.items()
            ]
        }

    return _build
