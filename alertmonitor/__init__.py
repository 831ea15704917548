"""
Weather Alert Monitor

A multi-source weather alert monitor with:
- Environment Canada Atom feed polling (city and alert feeds)
- Warning/watch/statement classification in English and French
- Per-source failure isolation
- Console reporting and an optional REST status service
"""

__version__ = "1.0.0"

from .classifier import Alert, Severity, classify, clean_summary
from .errors import (
    AlertMonitorError,
    ClassificationAnomaly,
    ConfigError,
    FetchError,
    ParseError,
)
from .fetcher import FeedFetcher
from .parser import RawEntry, parse_feed
from .reporter import CompositeReporter, ConsoleReporter, Reporter
from .scheduler import AlertScheduler, CycleResult
from .sources import FeedSource, Locale, load_registry
from .status import StatusBoard

__all__ = [
    "Alert",
    "AlertMonitorError",
    "AlertScheduler",
    "ClassificationAnomaly",
    "CompositeReporter",
    "ConfigError",
    "ConsoleReporter",
    "CycleResult",
    "FeedFetcher",
    "FeedSource",
    "FetchError",
    "Locale",
    "ParseError",
    "RawEntry",
    "Reporter",
    "Severity",
    "StatusBoard",
    "classify",
    "clean_summary",
    "load_registry",
    "parse_feed",
]
