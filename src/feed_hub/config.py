"""
Configuration management for feed hub.

Uses Pydantic for validation and pydantic-settings for environment variable support.
"""

from datetime import timedelta
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from feed_hub.exceptions import ConfigError

DEFAULT_CONFIG_PATH = "config/config.yaml"

# Flat keys accepted at the top level of a config file, mapped into the
# "feeds" section.
_FLAT_FEED_KEYS = {
    "values": "sources",
    "sources": "sources",
    "refresh": "refresh_interval_minutes",
    "autoUpdatePush": "push_interval_minutes",
}


class FeedsConfig(BaseSettings):
    """Feed sources and refresh/push cadence.

    The order of `sources` is the order used by every read path.
    """

    model_config = SettingsConfigDict(env_prefix="FEEDS_")

    sources: list[str] = Field(default_factory=list, description="Feed URLs, in display order")
    refresh_interval_minutes: float = Field(
        default=30, gt=0, description="Minutes between refresh cycles"
    )
    push_interval_minutes: float = Field(
        default=0,
        ge=0,
        description="Minutes between stream passes (0 = one pass per connection)",
    )

    @field_validator("sources")
    @classmethod
    def validate_sources(cls, v: list[str]) -> list[str]:
        """Strip, validate and de-duplicate source URLs, keeping first occurrence."""
        seen: set[str] = set()
        sources = []
        for raw in v:
            url = raw.strip()
            if not url:
                continue
            parsed = urlparse(url)
            if parsed.scheme in ("http", "https"):
                valid = bool(parsed.netloc)
            else:
                valid = parsed.scheme == "file" and bool(parsed.path)
            if not valid:
                raise ValueError(f"Invalid feed URL: {url!r}")
            if url in seen:
                continue
            seen.add(url)
            sources.append(url)
        return sources

    @property
    def refresh_interval(self) -> timedelta:
        return timedelta(minutes=self.refresh_interval_minutes)

    @property
    def push_interval(self) -> timedelta:
        return timedelta(minutes=self.push_interval_minutes)


class FetcherConfig(BaseSettings):
    """RSS/Atom fetcher configuration."""

    model_config = SettingsConfigDict(env_prefix="FETCHER_")

    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/117.0.0.0 Safari/537.36 Edg/117.0.2045.40"
        ),
        description="User-Agent header",
    )
    # None leaves deadlines to the network stack
    timeout_seconds: Optional[float] = Field(default=None, gt=0, description="Request timeout")
    follow_redirects: bool = Field(default=True)
    max_redirects: int = Field(default=5, ge=0, le=20)


class SchedulerConfig(BaseSettings):
    """Refresh scheduler configuration."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")

    enabled: bool = Field(default=True, description="Enable background refresh")
    timezone: str = Field(default="Asia/Shanghai", description="Scheduler timezone")
    max_workers: int = Field(default=10, ge=1, le=100, description="Maximum concurrent fetches")
    timestamp_format: str = Field(
        default="%Y-%m-%d %H:%M:%S", description="Format of the cycle timestamp"
    )


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        description="Log format"
    )

    # File logging
    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_path: str = Field(default="logs/feed_hub.log", description="Log file path")
    rotation: str = Field(default="50 MB", description="Log rotation size")
    retention: str = Field(default="14 days", description="Log retention period")

    # Console logging
    console_enabled: bool = Field(default=True, description="Enable console logging")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v


class WebConfig(BaseSettings):
    """Web server configuration."""

    model_config = SettingsConfigDict(env_prefix="WEB_")

    host: str = Field(default="0.0.0.0", description="Web server host")
    port: int = Field(default=8080, ge=1, le=65535, description="Web server port")
    debug: bool = Field(default=False, description="Debug mode")


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FEED_HUB_",
        case_sensitive=False,
    )

    app_name: str = Field(default="Feed Hub", description="Application name")

    # Sub-configurations
    feeds: FeedsConfig = Field(default_factory=FeedsConfig)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    web: WebConfig = Field(default_factory=WebConfig)


_SECTION_CLASSES = {
    "feeds": FeedsConfig,
    "fetcher": FetcherConfig,
    "scheduler": SchedulerConfig,
    "logging": LoggingConfig,
    "web": WebConfig,
}

# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def set_config(config: Optional[Config]) -> None:
    """Replace the global configuration instance (None resets it)."""
    global _config
    _config = config


def load_config_from_yaml(yaml_path: str) -> Config:
    """Load configuration from a YAML (or JSON) file.

    Values from the file take precedence over environment variables. Besides
    the sectioned layout, the flat layout ``{"values": [...], "refresh": 10,
    "autoUpdatePush": 0}`` is accepted and mapped into the ``feeds`` section.

    Args:
        yaml_path: Path to the configuration file.

    Returns:
        Config instance loaded from the file.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    import yaml

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise ConfigError("configuration file not found", path=yaml_path)

    try:
        with yaml_file.open("r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read configuration: {e}", path=yaml_path) from e

    if not isinstance(config_dict, dict):
        raise ConfigError("configuration root must be a mapping", path=yaml_path)

    main_config = {}
    nested_configs: dict[str, dict] = {}

    for key, value in config_dict.items():
        if key in _SECTION_CLASSES:
            if not isinstance(value, dict):
                raise ConfigError(f"section {key!r} must be a mapping", path=yaml_path)
            nested_configs.setdefault(key, {}).update(value)
        elif key in _FLAT_FEED_KEYS:
            nested_configs.setdefault("feeds", {})[_FLAT_FEED_KEYS[key]] = value
        else:
            main_config[key] = value

    try:
        # Nested configs are built first so env vars still fill unset fields
        for key, config_class in _SECTION_CLASSES.items():
            main_config[key] = config_class(**nested_configs.get(key, {}))
        return Config(**main_config)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}", path=yaml_path) from e


def reload_config(yaml_path: Optional[str] = None) -> Config:
    """Reload configuration from environment and YAML files.

    Args:
        yaml_path: Explicit config file. When omitted, ``config/config.yaml``
            is used if it exists, otherwise environment variables only.
    """
    global _config
    _config = None

    if yaml_path is not None:
        _config = load_config_from_yaml(yaml_path)
    elif Path(DEFAULT_CONFIG_PATH).exists():
        _config = load_config_from_yaml(DEFAULT_CONFIG_PATH)
    else:
        try:
            _config = Config()
        except ValidationError as e:
            raise ConfigError(f"invalid configuration: {e}") from e

    return _config
