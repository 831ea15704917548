"""
Error taxonomy for the Weather Alert Monitor.

Every error raised while processing one feed source is caught at the
per-source boundary of a cycle and reported for that source only.
ConfigError is the only kind that halts the process, and only at startup.
"""


class AlertMonitorError(Exception):
    """Base class for all alert monitor errors."""
    pass


class FetchError(AlertMonitorError):
    """Network or HTTP failure while retrieving a feed."""
    pass


class ParseError(AlertMonitorError):
    """Feed body is not a well-formed Atom document."""
    pass


class ClassificationAnomaly(AlertMonitorError):
    """Entry has an unexpected structure and is skipped."""
    pass


class ConfigError(AlertMonitorError):
    """Invalid startup configuration (empty registry, bad interval...)."""
    pass
