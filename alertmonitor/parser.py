"""
Atom feed parser for the Weather Alert Monitor.

City feeds carry current-conditions, forecast and warning entries side by
side; the parser returns all of them in document order and leaves the
filtering to the classifier.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import List, Optional

from .errors import ParseError
from .sources import Locale

logger = logging.getLogger(__name__)

ATOM_NS = "http://www.w3.org/2005/Atom"
_ATOM = "{%s}" % ATOM_NS


@dataclass(frozen=True)
class RawEntry:
    """One <entry> element, before classification."""
    title: str
    summary_html: str
    category_term: str
    updated: Optional[str] = None
    link: Optional[str] = None


def _text(element: ET.Element, tag: str) -> str:
    child = element.find(_ATOM + tag)
    if child is None or child.text is None:
        return ""
    return child.text


def _attr(element: ET.Element, tag: str, name: str) -> Optional[str]:
    child = element.find(_ATOM + tag)
    if child is None:
        return None
    return child.get(name)


def parse_feed(content: bytes, locale: Locale = Locale.EN) -> List[RawEntry]:
    """
    Parse an Atom document into raw entries.

    Args:
        content: Raw XML bytes as returned by the fetcher.
        locale: Feed language, used for log context only.

    Returns:
        Entries in document order; empty when the feed has none.

    Raises:
        ParseError: if the document is not well-formed or is not an Atom feed.
    """
    if not content or not content.strip():
        raise ParseError("Empty document")

    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ParseError(f"XML parsing failed: {e}")

    if root.tag != _ATOM + "feed":
        raise ParseError(f"Unexpected root element: {root.tag}")

    entries = []
    for element in root.findall(_ATOM + "entry"):
        entries.append(RawEntry(
            title=_text(element, "title"),
            summary_html=_text(element, "summary"),
            category_term=_attr(element, "category", "term") or "",
            updated=_text(element, "updated") or None,
            link=_attr(element, "link", "href"),
        ))

    logger.debug(f"Parsed {len(entries)} entries ({locale.value})")
    return entries
