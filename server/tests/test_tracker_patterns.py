"""Tests for src.analysis.tracker_patterns — keyword and PII tables."""

from __future__ import annotations

import pytest

from src.analysis import tracker_patterns


class TestFindTrackerKeyword:
    """Tests for find_tracker_keyword()."""

    @pytest.mark.parametrize(
        ("url", "keyword"),
        [
            ("https://www.google-analytics.com/g/collect", "analytics"),
            ("https://example.com/img/pixel.gif", "pixel"),
            ("https://cdn.example.net/tracker.js", "tracker"),
            ("https://telemetry.vendor.io/v1", "telemetry"),
            ("https://s.amazon-adsystem.com/iu3", "adsystem"),
            ("https://AD.DOUBLECLICK.NET/ddm", "doubleclick"),
            ("https://connect.facebook.net/sdk.js", "facebook"),
            ("https://analytics.tiktok.com/i18n/pixel/events.js", "analytics"),
            ("https://www.clarity.ms/tag/abc", "clarity"),
        ],
    )
    def test_matches(self, url: str, keyword: str) -> None:
        assert tracker_patterns.find_tracker_keyword(url) == keyword

    @pytest.mark.parametrize(
        "url",
        [
            "https://cdn.example.com/app.js",
            "https://fonts.googleapis.com/css2?family=Inter",
            "https://static.hotjar.com/c/hotjar.js",
        ],
    )
    def test_no_match(self, url: str) -> None:
        assert tracker_patterns.find_tracker_keyword(url) is None


class TestContainsEmail:
    """Tests for contains_email()."""

    @pytest.mark.parametrize(
        "text",
        [
            "a@b.com",
            "https://x.test/?u=jane.doe+news@mail.example.co.uk",
            '{"email":"USER_1@Example.ORG"}',
        ],
    )
    def test_detects(self, text: str) -> None:
        assert tracker_patterns.contains_email(text) is True

    @pytest.mark.parametrize("text", ["", None, "user@localhost", "@handle", "a@b.c"])
    def test_ignores(self, text: str | None) -> None:
        assert tracker_patterns.contains_email(text) is False
