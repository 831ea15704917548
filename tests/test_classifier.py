"""Tests for classifier module."""

from datetime import datetime

import pytest

from alertmonitor.classifier import (
    Alert,
    Severity,
    classify,
    classify_entries,
    clean_summary,
    is_alert_category,
    severity_for_title,
)
from alertmonitor.errors import ClassificationAnomaly
from alertmonitor.parser import RawEntry, parse_feed
from alertmonitor.sources import Locale

from conftest import atom_entry, atom_feed

OBSERVED = datetime(2026, 1, 15, 12, 0, 0)


def entry(title, summary="", category="Warnings and Watches"):
    return RawEntry(title=title, summary_html=summary, category_term=category)


class TestCategoryFilter:
    """Only warnings-and-watches entries are ever classified."""

    @pytest.mark.parametrize("category", [
        "Current Conditions",
        "Weather Forecasts",
        "Conditions actuelles",
        "Prévisions météo",
        "",
    ])
    def test_non_alert_category_returns_none_even_with_warning_title(self, category):
        result = classify(entry("Blizzard warning in effect", category=category), Locale.EN, "mtl", OBSERVED)

        assert result is None

    def test_recognizes_both_category_labels(self):
        assert is_alert_category("Warnings and Watches", Locale.EN)
        assert is_alert_category("Veilles et avertissements", Locale.FR)

    def test_category_match_ignores_case_and_padding(self):
        assert is_alert_category("  warnings AND watches ", Locale.EN)

    def test_category_substring_is_not_enough(self):
        assert not is_alert_category("Warnings and Watches archive", Locale.EN)


class TestNoAlertSentinel:
    """The "no watches or warnings" placeholder never yields an alert."""

    def test_english_sentinel_with_region_name(self):
        result = classify(entry("No watches or warnings in effect, Ottawa (Kanata - Orléans)"), Locale.EN)

        assert result is None

    def test_french_sentinel_case_insensitive(self):
        result = classify(
            entry("AUCUNE VEILLE OU ALERTE en vigueur, Montréal", category="Veilles et avertissements"),
            Locale.FR,
        )

        assert result is None

    def test_feed_with_only_sentinel_yields_no_alerts(self, clear_feed):
        entries = parse_feed(clear_feed, Locale.EN)

        assert all(classify(e, Locale.EN, "mtl", OBSERVED) is None for e in entries)
        assert classify_entries(entries, Locale.EN, "mtl", OBSERVED) == []


class TestSeverity:
    """Title keywords decide the severity tier, highest first."""

    @pytest.mark.parametrize("title, locale, expected", [
        ("Winter storm warning in effect", Locale.EN, Severity.WARNING),
        ("Avertissement de pluie verglaçante en vigueur", Locale.FR, Severity.WARNING),
        ("Severe thunderstorm watch in effect", Locale.EN, Severity.WATCH),
        ("Veille d'orages violents en vigueur", Locale.FR, Severity.WATCH),
        ("Special weather statement in effect", Locale.EN, Severity.STATEMENT),
        ("Bulletin météorologique spécial en vigueur", Locale.FR, Severity.STATEMENT),
        ("Air quality advisory in effect", Locale.EN, Severity.NOTICE),
    ])
    def test_keyword_tiers(self, title, locale, expected):
        assert severity_for_title(title, locale) is expected

    def test_warning_outranks_watch(self):
        result = classify(entry("Tornado watch ended, tornado warning in effect"), Locale.EN, "x", OBSERVED)

        assert result.severity is Severity.WARNING

    def test_french_warning_outranks_watch(self):
        title = "Veille d'orages violents remplacée par un avertissement"
        result = classify(entry(title, category="Veilles et avertissements"), Locale.FR, "x", OBSERVED)

        assert result.severity is Severity.WARNING

    def test_special_weather_statement_scenario(self):
        feed = atom_feed(atom_entry("Special weather statement for Region X", "Heavy rain."))
        entries = parse_feed(feed, Locale.EN)

        alert = classify(entries[0], Locale.EN, "region-x", OBSERVED)

        assert alert.severity is Severity.STATEMENT
        assert alert.title == "Special weather statement for Region X"

    def test_keywords_from_other_locale_still_match(self):
        assert severity_for_title("Avertissement de froid extrême", Locale.EN) is Severity.WARNING


class TestCleanSummary:
    """Fixed substitution table for inline markup."""

    def test_breaks_and_bold(self):
        assert clean_summary("A<br/>B<b>C</b>") == "A\nBC"

    def test_trims_whitespace(self):
        assert clean_summary("  <b>Issued:</b> 5:00 AM <br/>") == "Issued: 5:00 AM"

    def test_unknown_tags_pass_through(self):
        assert clean_summary("<i>Note</i><br />x") == "<i>Note</i><br />x"

    def test_empty(self):
        assert clean_summary("") == ""


class TestClassify:
    """Tests for the classify function."""

    def test_builds_alert(self):
        result = classify(
            entry("Freezing rain warning in effect", "Ice buildup.<br/><b>Issued:</b> 4:00 AM"),
            Locale.EN, "ottawa", OBSERVED,
        )

        assert result == Alert(
            source_id="ottawa",
            severity=Severity.WARNING,
            title="Freezing rain warning in effect",
            detail="Ice buildup.\nIssued: 4:00 AM",
            observed_at=OBSERVED,
        )
        assert result.occurrence_key == ("ottawa", "Freezing rain warning in effect")

    def test_idempotent(self):
        raw = entry("Snowfall warning in effect", "25 cm<br/>")

        first = classify(raw, Locale.EN, "mtl", OBSERVED)
        second = classify(raw, Locale.EN, "mtl", OBSERVED)

        assert first == second

    def test_blank_title_is_anomaly(self):
        with pytest.raises(ClassificationAnomaly):
            classify(entry("   "), Locale.EN, "mtl", OBSERVED)

    def test_blank_title_outside_alert_category_is_ignored(self):
        assert classify(entry("", category="Current Conditions"), Locale.EN) is None

    def test_classify_entries_skips_anomalies(self):
        entries = [entry(""), entry("Wind warning in effect")]

        alerts = classify_entries(entries, Locale.EN, "mtl", OBSERVED)

        assert [a.title for a in alerts] == ["Wind warning in effect"]

    def test_classify_entries_filters_mixed_feed(self, warning_feed):
        alerts = classify_entries(parse_feed(warning_feed, Locale.EN), Locale.EN, "mtl", OBSERVED)

        assert len(alerts) == 1
        assert alerts[0].severity is Severity.WARNING
        assert alerts[0].detail == "Snowfall amounts of 25 cm.\nIssued: 5:00 AM"

    def test_to_dict(self):
        alert = classify(entry("Heat warning in effect"), Locale.EN, "tor", OBSERVED)

        assert alert.to_dict() == {
            "sourceId": "tor",
            "severity": "WARNING",
            "title": "Heat warning in effect",
            "detail": "",
            "observedAt": "2026-01-15T12:00:00",
        }
