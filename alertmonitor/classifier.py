"""
Alert classification for the Weather Alert Monitor.

Turns raw feed entries into structured alerts:
- Only "Warnings and Watches" entries are considered
- "No watches or warnings" placeholder entries never produce an alert
- Severity comes from title keywords, highest tier first
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .errors import ClassificationAnomaly
from .parser import RawEntry
from .sources import Locale

logger = logging.getLogger(__name__)


class Severity(Enum):
    """Severity tier of an alert."""
    NOTICE = "NOTICE"
    WATCH = "WATCH"
    WARNING = "WARNING"
    STATEMENT = "STATEMENT"


@dataclass(frozen=True)
class Alert:
    """A classified alert, valid for one reporting call within one cycle."""
    source_id: str
    severity: Severity
    title: str
    detail: str
    observed_at: datetime

    @property
    def occurrence_key(self) -> Tuple[str, str]:
        return (self.source_id, self.title)

    def to_dict(self) -> Dict[str, str]:
        return {
            "sourceId": self.source_id,
            "severity": self.severity.value,
            "title": self.title,
            "detail": self.detail,
            "observedAt": self.observed_at.isoformat(),
        }


# Keyword tables, lower-case. Feeds interpolate region names into titles,
# so every match is a substring match.
LOCALE_RULES: Dict[Locale, Dict[str, Tuple[str, ...]]] = {
    Locale.EN: {
        "alert_categories": ("warnings and watches",),
        "no_alert_phrases": ("no watches or warnings",),
        "warning_keywords": ("warning",),
        "watch_keywords": ("watch",),
        "statement_keywords": ("special weather statement", "statement"),
    },
    Locale.FR: {
        "alert_categories": ("veilles et avertissements",),
        "no_alert_phrases": ("aucune veille ou alerte",),
        "warning_keywords": ("avertissement",),
        "watch_keywords": ("veille",),
        "statement_keywords": ("bulletin",),
    },
}

# Highest severity first; the first tier with a matching keyword wins.
SEVERITY_ORDER = (
    (Severity.WARNING, "warning_keywords"),
    (Severity.WATCH, "watch_keywords"),
    (Severity.STATEMENT, "statement_keywords"),
)

# Fixed substitution table, not a sanitizer: other tags pass through.
SUMMARY_SUBSTITUTIONS = (
    ("<br/>", "\n"),
    ("<b>", ""),
    ("</b>", ""),
)


def _rules_for(locale: Locale) -> List[Dict[str, Tuple[str, ...]]]:
    """Rules for the feed's own locale first, then the others."""
    primary = LOCALE_RULES[locale]
    return [primary] + [rules for loc, rules in LOCALE_RULES.items() if loc is not locale]


def _contains_any(text: str, rules: List[Dict[str, Tuple[str, ...]]], key: str) -> bool:
    return any(phrase in text for table in rules for phrase in table[key])


def clean_summary(summary_html: str) -> str:
    """Replace <br/> with newlines, drop bold tags and trim."""
    text = summary_html or ""
    for markup, replacement in SUMMARY_SUBSTITUTIONS:
        text = text.replace(markup, replacement)
    return text.strip()


def is_alert_category(category_term: str, locale: Locale = Locale.EN) -> bool:
    """True if the entry belongs to the warnings-and-watches category."""
    term = (category_term or "").strip().lower()
    return any(term in rules["alert_categories"] for rules in _rules_for(locale))


def is_no_alert_title(title: str, locale: Locale = Locale.EN) -> bool:
    """True if the title is the "no watches or warnings" placeholder."""
    return _contains_any((title or "").lower(), _rules_for(locale), "no_alert_phrases")


def severity_for_title(title: str, locale: Locale = Locale.EN) -> Severity:
    """Classify a title by keyword, highest severity first."""
    lowered = title.lower()
    rules = _rules_for(locale)
    for severity, key in SEVERITY_ORDER:
        if _contains_any(lowered, rules, key):
            return severity
    return Severity.NOTICE


def classify(
    entry: RawEntry,
    locale: Locale,
    source_id: str = "",
    observed_at: Optional[datetime] = None
) -> Optional[Alert]:
    """
    Classify one raw entry.

    Returns:
        An Alert, or None for non-alert entries and "no alerts" placeholders.

    Raises:
        ClassificationAnomaly: for an alert-category entry without a title.
    """
    if not is_alert_category(entry.category_term, locale):
        return None

    title = (entry.title or "").strip()
    if not title:
        raise ClassificationAnomaly(
            f"Alert entry without title in {source_id or 'feed'} (category '{entry.category_term}')"
        )

    if is_no_alert_title(title, locale):
        return None

    return Alert(
        source_id=source_id,
        severity=severity_for_title(title, locale),
        title=title,
        detail=clean_summary(entry.summary_html),
        observed_at=observed_at or datetime.utcnow(),
    )


def classify_entries(
    entries: List[RawEntry],
    locale: Locale,
    source_id: str = "",
    observed_at: Optional[datetime] = None
) -> List[Alert]:
    """Classify a whole feed, skipping anomalous entries."""
    observed_at = observed_at or datetime.utcnow()
    alerts = []

    for entry in entries:
        try:
            alert = classify(entry, locale, source_id, observed_at)
        except ClassificationAnomaly as e:
            logger.warning(f"Skipping entry: {e}")
            continue
        if alert is not None:
            alerts.append(alert)

    return alerts
