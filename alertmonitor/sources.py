"""
Feed source registry for the Weather Alert Monitor.

A registry maps a logical source id (a city or region) to its Atom feed
endpoint and locale. The set of sources is fixed for a run.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Union

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)


class Locale(Enum):
    """Language of a feed."""
    EN = "en"
    FR = "fr"


@dataclass(frozen=True)
class FeedSource:
    """One named Atom feed endpoint."""
    id: str
    display_name: str
    url: str
    locale: Locale


# City feeds exist for every town; Amos has none, so it uses the lat/lon alert feed.
DEFAULT_FEEDS = [
    {"id": "montreal", "name": "Montreal", "url": "https://weather.gc.ca/rss/city/qc-147_f.xml"},
    {"id": "quebec-city", "name": "Quebec City", "url": "https://weather.gc.ca/rss/city/qc-133_f.xml"},
    {"id": "gatineau", "name": "Gatineau", "url": "https://weather.gc.ca/rss/city/qc-59_f.xml"},
    {"id": "amos", "name": "Amos", "url": "https://weather.gc.ca/rss/alerts/48.574_-78.116_f.xml"},
]


def locale_from_url(url: str) -> Locale:
    """Infer the feed language from the ECCC file suffix (_f.xml / _e.xml)."""
    path = url.split("?", 1)[0].lower()
    if path.endswith("_f.xml"):
        return Locale.FR
    return Locale.EN


def _parse_locale(value: Optional[str], url: str) -> Locale:
    if not value:
        return locale_from_url(url)
    try:
        return Locale(str(value).strip().lower())
    except ValueError:
        raise ConfigError(f"Unknown locale '{value}' for feed {url}")


def build_registry(feeds: Iterable[Mapping]) -> Mapping[str, FeedSource]:
    """
    Build an immutable registry from feed definitions.

    Each definition needs a url; id defaults to the name, name defaults
    to the id, and locale is inferred from the url when absent.

    Raises:
        ConfigError: on a missing url/id, a duplicate id, or an empty registry.
    """
    registry: Dict[str, FeedSource] = {}

    for feed in feeds:
        if not isinstance(feed, Mapping):
            raise ConfigError(f"Feed definition must be a mapping, got: {feed!r}")
        url = feed.get("url") or ""
        if not isinstance(url, str):
            raise ConfigError(f"Feed url must be a string, got: {url!r}")
        url = url.strip()
        if not url:
            raise ConfigError(f"Feed definition without url: {dict(feed)}")

        source_id = str(feed.get("id") or feed.get("name") or "").strip()
        if not source_id:
            raise ConfigError(f"Feed definition without id or name: {url}")
        if source_id in registry:
            raise ConfigError(f"Duplicate feed id: {source_id}")

        registry[source_id] = FeedSource(
            id=source_id,
            display_name=str(feed.get("name") or source_id),
            url=url,
            locale=_parse_locale(feed.get("locale"), url),
        )

    if not registry:
        raise ConfigError("Source registry is empty - nothing to monitor")

    return MappingProxyType(registry)


def load_registry(path: Union[str, Path, None] = None) -> Mapping[str, FeedSource]:
    """Load the registry from a YAML file, or the built-in Quebec feeds."""
    if path is None:
        return build_registry(DEFAULT_FEEDS)

    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read sources file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in sources file {path}: {e}")

    feeds: List[Mapping] = data.get("feeds", []) if isinstance(data, dict) else data
    if not isinstance(feeds, list):
        raise ConfigError(f"'feeds' must be a list in {path}")

    registry = build_registry(feeds)
    logger.info(f"Loaded {len(registry)} feed sources from {path}")
    return registry
