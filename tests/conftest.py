"""Shared fixtures: Atom feed builders and an offline fetcher."""

from xml.sax.saxutils import escape, quoteattr

import pytest

from alertmonitor.errors import FetchError
from alertmonitor.sources import build_registry


def atom_entry(title, summary="", category="Warnings and Watches"):
    return (
        "<entry>"
        f"<title>{escape(title)}</title>"
        '<link type="text/html" href="https://weather.gc.ca/warnings/report_e.html?qc147"/>'
        "<updated>2026-01-15T12:00:00Z</updated>"
        f"<category term={quoteattr(category)}/>"
        f'<summary type="html">{escape(summary)}</summary>'
        "</entry>"
    )


def atom_feed(*entries, lang="en-ca"):
    body = "".join(entries)
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<feed xmlns="http://www.w3.org/2005/Atom" xml:lang="{lang}">'
        "<title>Montréal - Weather - Environment Canada</title>"
        "<updated>2026-01-15T12:00:00Z</updated>"
        f"{body}"
        "</feed>"
    ).encode("utf-8")


class FakeFetcher:
    """Serves canned bodies per url; exceptions in the map are raised."""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []
        self.closed = False

    def fetch_timed(self, url):
        self.calls.append(url)
        response = self.responses.get(url, FetchError(f"No route to {url}"))
        if isinstance(response, Exception):
            raise response
        return response, 12

    def fetch(self, url):
        return self.fetch_timed(url)[0]

    def close(self):
        self.closed = True


@pytest.fixture
def warning_feed():
    return atom_feed(
        atom_entry("Current Conditions: -12.4°C", "<b>Condition:</b> Light Snow", category="Current Conditions"),
        atom_entry("Winter storm warning in effect, Montréal",
                   "Snowfall amounts of 25 cm.<br/><b>Issued:</b> 5:00 AM"),
        atom_entry("Tuesday: Snow. High minus 8.", "Snow. High minus 8.", category="Weather Forecasts"),
    )


@pytest.fixture
def clear_feed():
    return atom_feed(
        atom_entry("No watches or warnings in effect, Montréal", "No watches or warnings in effect."),
        atom_entry("Current Conditions: 3.0°C", "Mostly Cloudy", category="Current Conditions"),
    )


@pytest.fixture
def registry():
    return build_registry([
        {"id": "a", "name": "Alpha", "url": "https://example.test/a_e.xml"},
        {"id": "b", "name": "Bravo", "url": "https://example.test/b_e.xml"},
    ])
