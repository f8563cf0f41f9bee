"""Configuration management using Pydantic Settings."""

from enum import Enum

from pydantic_settings import BaseSettings


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


class SearchMode(str, Enum):
    """Result ordering for tweet search."""
    LATEST = "Latest"
    TOP = "Top"
    MEDIA = "Media"


class RelayConfig(BaseSettings):
    """Configuration for the xrelay server and client."""

    # Server settings
    host: str = "127.0.0.1"
    port: int = 3001
    cors_origins: list[str] = ["*"]

    # Relay behaviour
    default_max_tweets: int = 200
    max_tweets_cap: int = 10000
    progress_interval: int = 10

    # Upstream scraper
    page_size: int = 20
    language: str = "en-US"
    proxy_url: str | None = None
    legacy_cookie_domain: bool = True

    # Client settings
    relay_url: str = "http://127.0.0.1:3001"
    request_timeout_seconds: float = 30.0

    # Logging
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.CONSOLE

    model_config = {
        "env_prefix": "XRELAY_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }
