"""Unit tests for configuration loading."""

import json
from datetime import timedelta

import pytest

from feed_hub.config import (
    Config,
    FeedsConfig,
    LoggingConfig,
    get_config,
    load_config_from_yaml,
    reload_config,
    set_config,
)
from feed_hub.exceptions import ConfigError


@pytest.fixture(autouse=True)
def reset_global_config():
    """Keep the global config isolated between tests."""
    set_config(None)
    yield
    set_config(None)


class TestFeedsConfig:
    """Tests for FeedsConfig."""

    def test_defaults(self):
        """Test default values."""
        feeds = FeedsConfig()

        assert feeds.sources == []
        assert feeds.push_interval_minutes == 0
        assert feeds.refresh_interval_minutes > 0

    def test_intervals_as_durations(self):
        """Test that intervals are exposed as timedeltas."""
        feeds = FeedsConfig(refresh_interval_minutes=10, push_interval_minutes=0.5)

        assert feeds.refresh_interval == timedelta(minutes=10)
        assert feeds.push_interval == timedelta(seconds=30)

    def test_duplicate_sources_removed(self):
        """Test that duplicates are dropped keeping the first occurrence."""
        feeds = FeedsConfig(sources=[
            "https://b.example.com/rss",
            " https://a.example.com/rss ",
            "https://b.example.com/rss",
            "",
        ])

        assert feeds.sources == ["https://b.example.com/rss", "https://a.example.com/rss"]

    @pytest.mark.parametrize("url", ["ftp://example.com/rss", "example.com/rss", "https://"])
    def test_invalid_source_rejected(self, url):
        """Test that unsupported or malformed URLs are rejected."""
        with pytest.raises(ValueError):
            FeedsConfig(sources=[url])

    def test_non_positive_refresh_rejected(self):
        """Test that the refresh interval must be positive."""
        with pytest.raises(ValueError):
            FeedsConfig(refresh_interval_minutes=0)

    def test_negative_push_rejected(self):
        """Test that the push interval cannot be negative."""
        with pytest.raises(ValueError):
            FeedsConfig(push_interval_minutes=-1)

    def test_env_override(self, monkeypatch):
        """Test reading values from environment variables."""
        monkeypatch.setenv("FEEDS_REFRESH_INTERVAL_MINUTES", "5")
        monkeypatch.setenv("FEEDS_SOURCES", '["https://env.example.com/rss"]')

        feeds = FeedsConfig()

        assert feeds.refresh_interval_minutes == 5
        assert feeds.sources == ["https://env.example.com/rss"]


class TestLoggingConfig:
    """Tests for LoggingConfig."""

    def test_level_normalized(self):
        """Test that levels are upper-cased."""
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_level(self):
        """Test that unknown levels are rejected."""
        with pytest.raises(ValueError):
            LoggingConfig(level="LOUD")


class TestLoadConfig:
    """Tests for load_config_from_yaml."""

    def test_sectioned_yaml(self, tmp_path):
        """Test loading the sectioned YAML layout."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "feeds:\n"
            "  sources:\n"
            "    - https://a.example.com/rss\n"
            "  refresh_interval_minutes: 15\n"
            "  push_interval_minutes: 1\n"
            "web:\n"
            "  port: 9000\n",
            encoding="utf-8",
        )

        config = load_config_from_yaml(str(path))

        assert config.feeds.sources == ["https://a.example.com/rss"]
        assert config.feeds.refresh_interval == timedelta(minutes=15)
        assert config.feeds.push_interval == timedelta(minutes=1)
        assert config.web.port == 9000

    def test_flat_json_layout(self, tmp_path):
        """Test loading the flat JSON layout with values/refresh/autoUpdatePush."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "values": ["https://a.example.com/rss", "https://b.example.com/rss"],
            "refresh": 10,
            "autoUpdatePush": 0,
        }), encoding="utf-8")

        config = load_config_from_yaml(str(path))

        assert config.feeds.sources == ["https://a.example.com/rss", "https://b.example.com/rss"]
        assert config.feeds.refresh_interval_minutes == 10
        assert config.feeds.push_interval_minutes == 0

    def test_missing_file(self, tmp_path):
        """Test that a missing file is a ConfigError."""
        with pytest.raises(ConfigError) as exc_info:
            load_config_from_yaml(str(tmp_path / "missing.yaml"))

        assert "missing.yaml" in str(exc_info.value)

    def test_malformed_yaml(self, tmp_path):
        """Test that unparsable YAML is a ConfigError."""
        path = tmp_path / "config.yaml"
        path.write_text("feeds: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_config_from_yaml(str(path))

    def test_invalid_values(self, tmp_path):
        """Test that values failing validation are a ConfigError."""
        path = tmp_path / "config.yaml"
        path.write_text("feeds:\n  refresh_interval_minutes: -3\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_config_from_yaml(str(path))

    def test_non_mapping_root(self, tmp_path):
        """Test that a list at the root is a ConfigError."""
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_config_from_yaml(str(path))

    def test_empty_file_uses_defaults(self, tmp_path):
        """Test that an empty file yields default settings."""
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        config = load_config_from_yaml(str(path))

        assert config.feeds.sources == []


class TestGlobalConfig:
    """Tests for the global configuration instance."""

    def test_get_config_is_cached(self):
        """Test that get_config returns the same instance."""
        assert get_config() is get_config()

    def test_reload_config_from_path(self, tmp_path):
        """Test that reload_config installs the loaded config globally."""
        path = tmp_path / "config.yaml"
        path.write_text("feeds:\n  sources: [https://a.example.com/rss]\n", encoding="utf-8")

        config = reload_config(str(path))

        assert get_config() is config
        assert config.feeds.sources == ["https://a.example.com/rss"]

    def test_set_config(self):
        """Test replacing the global config."""
        config = Config()
        set_config(config)

        assert get_config() is config
