"""Tests for configuration."""

import pytest
from pydantic import ValidationError


class TestSettings:
    """Tests for Settings class."""

    def test_default_settings(self, monkeypatch, tmp_path):
        """Test default settings values."""
        monkeypatch.delenv("IG_ACCESS_TOKEN", raising=False)
        monkeypatch.delenv("IG_BUSINESS_ID", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        # Change to temp directory to avoid reading .env
        monkeypatch.chdir(tmp_path)

        from prism.config import Settings
        settings = Settings(_env_file=None)

        assert settings.ig_access_token is None
        assert settings.ig_business_id is None
        assert settings.graph_api_version == "v24.0"
        assert settings.max_posts == 500
        assert settings.max_stories == 25
        assert settings.max_insights_posts == 200
        assert settings.insights_batch_size == 50
        assert settings.log_level == "INFO"

    def test_settings_from_env(self, monkeypatch, tmp_path):
        """Test settings loaded from environment variables."""
        monkeypatch.setenv("IG_ACCESS_TOKEN", "token_123")
        monkeypatch.setenv("IG_BUSINESS_ID", "biz_456")
        monkeypatch.setenv("GRAPH_API_VERSION", "v23.0")
        monkeypatch.setenv("MAX_INSIGHTS_POSTS", "50")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.chdir(tmp_path)

        from prism.config import Settings
        settings = Settings(_env_file=None)

        assert settings.ig_access_token == "token_123"
        assert settings.ig_business_id == "biz_456"
        assert settings.graph_base_url == "https://graph.facebook.com/v23.0"
        assert settings.max_insights_posts == 50
        assert settings.log_level == "DEBUG"

    def test_is_instagram_configured(self, monkeypatch, tmp_path):
        """Test is_instagram_configured property."""
        monkeypatch.chdir(tmp_path)

        from prism.config import Settings

        # Not configured
        monkeypatch.delenv("IG_ACCESS_TOKEN", raising=False)
        monkeypatch.delenv("IG_BUSINESS_ID", raising=False)
        settings = Settings(_env_file=None)
        assert settings.is_instagram_configured is False

        # Partially configured
        monkeypatch.setenv("IG_ACCESS_TOKEN", "token_123")
        settings = Settings(_env_file=None)
        assert settings.is_instagram_configured is False

        # Fully configured
        monkeypatch.setenv("IG_BUSINESS_ID", "biz_456")
        settings = Settings(_env_file=None)
        assert settings.is_instagram_configured is True

    def test_max_posts_bounds(self, monkeypatch, tmp_path):
        """Test max_posts is validated against the API ceiling."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("MAX_POSTS", "5000")

        from prism.config import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_get_settings_cached(self, monkeypatch, tmp_path):
        """Test that get_settings returns cached instance."""
        monkeypatch.chdir(tmp_path)

        from prism.config import get_settings

        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2

    @pytest.mark.parametrize("name,value", [("INSIGHTS_BATCH_SIZE", "0"), ("REQUEST_TIMEOUT", "0"), ("MAX_STORIES", "51")])
    def test_rejects_invalid_limits(self, monkeypatch, tmp_path, name, value):
        """Test limits outside their allowed range are rejected."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv(name, value)

        from prism.config import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None)
