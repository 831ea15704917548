"""
Configuration for the Weather Alert Monitor.

Settings come from environment variables (a local .env file is loaded
first if present); command-line flags override them.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigError
from .fetcher import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT
from .scheduler import DEFAULT_REFRESH_MINUTES, DEFAULT_REQUEST_DELAY
from .sources import FeedSource, load_registry

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass(frozen=True)
class Settings:
    """Runtime settings of one monitor process."""
    refresh_minutes: float = DEFAULT_REFRESH_MINUTES
    request_timeout: float = DEFAULT_TIMEOUT
    request_delay_ms: int = int(DEFAULT_REQUEST_DELAY * 1000)
    max_workers: int = 1
    user_agent: str = DEFAULT_USER_AGENT
    sources_file: Optional[str] = None
    log_level: str = "INFO"
    use_color: Optional[bool] = None
    sources: Mapping[str, FeedSource] = field(default_factory=dict, compare=False)

    @property
    def request_delay(self) -> float:
        return self.request_delay_ms / 1000.0

    def with_overrides(self, **overrides) -> "Settings":
        """Copy with the non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _number(name: str, default, cast=float):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got '{raw}'")


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Read settings from the environment."""
    load_dotenv(env_file)

    no_color = os.getenv("NO_COLOR")

    return Settings(
        refresh_minutes=_number("ALERT_REFRESH_MINUTES", DEFAULT_REFRESH_MINUTES),
        request_timeout=_number("ALERT_REQUEST_TIMEOUT", DEFAULT_TIMEOUT),
        request_delay_ms=_number("ALERT_REQUEST_DELAY_MS", int(DEFAULT_REQUEST_DELAY * 1000), int),
        max_workers=_number("ALERT_MAX_WORKERS", 1, int),
        user_agent=os.getenv("ALERT_USER_AGENT") or DEFAULT_USER_AGENT,
        sources_file=os.getenv("ALERT_SOURCES_FILE") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        use_color=False if no_color else None,
    )


def resolve(settings: Settings) -> Settings:
    """
    Validate settings and load the source registry.

    Raises:
        ConfigError: on any invalid value; nothing has been polled yet.
    """
    if settings.refresh_minutes <= 0:
        raise ConfigError(f"Refresh interval must be positive, got {settings.refresh_minutes}")
    if settings.request_timeout <= 0:
        raise ConfigError(f"Request timeout must be positive, got {settings.request_timeout}")
    if settings.request_delay_ms < 0:
        raise ConfigError(f"Request delay cannot be negative, got {settings.request_delay_ms}")
    if settings.max_workers < 1:
        raise ConfigError(f"Worker count must be at least 1, got {settings.max_workers}")
    if not isinstance(logging.getLevelName(settings.log_level), int):
        raise ConfigError(f"Unknown log level: {settings.log_level}")

    sources = load_registry(settings.sources_file)
    logger.debug(f"Resolved {len(sources)} sources, refresh every {settings.refresh_minutes} min")
    return replace(settings, sources=sources)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
