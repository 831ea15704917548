"""Tests for sources module."""

import pytest

from alertmonitor.errors import ConfigError
from alertmonitor.sources import (
    DEFAULT_FEEDS,
    FeedSource,
    Locale,
    build_registry,
    load_registry,
    locale_from_url,
)


class TestLocaleFromUrl:

    @pytest.mark.parametrize("url, expected", [
        ("https://weather.gc.ca/rss/city/qc-147_f.xml", Locale.FR),
        ("https://weather.gc.ca/rss/city/on-118_e.xml", Locale.EN),
        ("https://weather.gc.ca/rss/alerts/48.574_-78.116_F.XML", Locale.FR),
        ("https://example.test/feed", Locale.EN),
    ])
    def test_suffix(self, url, expected):
        assert locale_from_url(url) is expected


class TestBuildRegistry:

    def test_builds_sources_in_order(self):
        registry = build_registry([
            {"id": "mtl", "name": "Montreal", "url": "https://weather.gc.ca/rss/city/qc-147_f.xml"},
            {"id": "ott", "name": "Ottawa", "url": "https://weather.gc.ca/rss/city/on-118_e.xml", "locale": "EN"},
        ])

        assert list(registry) == ["mtl", "ott"]
        assert registry["mtl"] == FeedSource(
            id="mtl",
            display_name="Montreal",
            url="https://weather.gc.ca/rss/city/qc-147_f.xml",
            locale=Locale.FR,
        )
        assert registry["ott"].locale is Locale.EN

    def test_registry_is_read_only(self):
        registry = build_registry(DEFAULT_FEEDS)

        with pytest.raises(TypeError):
            registry["new"] = None

    def test_id_defaults_to_name(self):
        registry = build_registry([{"name": "Gatineau", "url": "https://weather.gc.ca/rss/city/qc-59_f.xml"}])

        assert registry["Gatineau"].display_name == "Gatineau"

    @pytest.mark.parametrize("feeds, message", [
        ([], "empty"),
        ([{"id": "x"}], "without url"),
        ([{"url": "https://example.test/a.xml"}], "without id"),
        ([{"id": "x", "url": "https://a.test"}, {"id": "x", "url": "https://b.test"}], "Duplicate"),
        ([{"id": "x", "url": "https://a.test", "locale": "de"}], "Unknown locale"),
        (["https://a.test"], "mapping"),
        ([{"id": "x", "url": 123}], "must be a string"),
    ])
    def test_invalid_definitions(self, feeds, message):
        with pytest.raises(ConfigError, match=message):
            build_registry(feeds)


class TestLoadRegistry:

    def test_default_registry(self):
        registry = load_registry()

        assert list(registry) == ["montreal", "quebec-city", "gatineau", "amos"]
        assert all(s.locale is Locale.FR for s in registry.values())

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "feeds.yaml"
        path.write_text(
            "feeds:\n"
            "  - id: toronto\n"
            "    name: Toronto\n"
            "    url: https://weather.gc.ca/rss/city/on-143_e.xml\n"
            "  - id: halifax\n"
            "    name: Halifax\n"
            "    url: https://weather.gc.ca/rss/city/ns-19_e.xml\n",
            encoding="utf-8",
        )

        registry = load_registry(path)

        assert list(registry) == ["toronto", "halifax"]
        assert registry["halifax"].locale is Locale.EN

    def test_yaml_top_level_list(self, tmp_path):
        path = tmp_path / "feeds.yaml"
        path.write_text("- {id: a, url: 'https://example.test/a_f.xml'}\n", encoding="utf-8")

        assert load_registry(path)["a"].locale is Locale.FR

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read"):
            load_registry(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "feeds.yaml"
        path.write_text("feeds: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_registry(path)

    def test_empty_file_is_empty_registry(self, tmp_path):
        path = tmp_path / "feeds.yaml"
        path.write_text("", encoding="utf-8")

        with pytest.raises(ConfigError, match="empty"):
            load_registry(path)
