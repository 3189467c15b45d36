"""Tests for Pydantic models in src.models."""

from __future__ import annotations

import pydantic
import pytest

from src.models import browser, traffic

# ── Traffic Models ──────────────────────────────────────────────


class TestTrafficEvent:
    """Tests for TrafficEvent."""

    def test_defaults(self) -> None:
        event = traffic.TrafficEvent(url="https://a.test/", method="GET", resource_type="document", domain="a.test")
        assert event.violations == ()
        assert event.geo == traffic.DEFAULT_GEO
        assert event.is_tracker is False
        assert event.payload is None

    def test_frozen(self, sample_event: traffic.TrafficEvent) -> None:
        with pytest.raises(pydantic.ValidationError):
            sample_event.url = "https://elsewhere.test/"

    def test_accepts_camel_case_input(self) -> None:
        event = traffic.TrafficEvent.model_validate(
            {"url": "https://a.test/", "method": "GET", "resourceType": "xhr", "domain": "a.test", "isTracker": True}
        )
        assert event.resource_type == "xhr"
        assert event.is_tracker is True

    def test_roundtrip_serialization(self, sample_event: traffic.TrafficEvent) -> None:
        data = sample_event.model_dump(by_alias=True)
        assert traffic.TrafficEvent.model_validate(data) == sample_event


class TestViolation:
    """Tests for Violation."""

    def test_severity_restricted(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            traffic.Violation(issue="Something", severity="catastrophic")  # type: ignore[arg-type]


class TestGeoRecord:
    """Tests for GeoRecord and the fallback location."""

    def test_fallback_location(self) -> None:
        assert traffic.DEFAULT_GEO.lat == 20.5937
        assert traffic.DEFAULT_GEO.lon == 78.9629
        assert traffic.DEFAULT_GEO.country == "India"


class TestCookieRecord:
    """Tests for CookieRecord."""

    def test_defaults(self) -> None:
        cookie = traffic.CookieRecord(name="a", value="b", domain="x.test")
        assert cookie.path == "/"
        assert cookie.expires == -1
        assert cookie.http_only is False
        assert cookie.secure is False
        assert cookie.same_site == "None"

    def test_wire_aliases(self, sample_cookie: traffic.CookieRecord) -> None:
        data = sample_cookie.model_dump(by_alias=True)
        assert set(data) == {"name", "value", "domain", "path", "expires", "httpOnly", "secure", "sameSite"}


# ── Browser Models ──────────────────────────────────────────────


class TestDocumentResponse:
    """Tests for DocumentResponse."""

    @pytest.mark.parametrize(("status", "expected"), [(301, True), (302, True), (308, True), (200, False), (404, False), (None, False)])
    def test_is_redirect(self, status: int | None, expected: bool) -> None:
        assert browser.DocumentResponse(url="https://a.test/", status=status).is_redirect is expected


class TestNavigationResult:
    """Tests for NavigationResult."""

    def test_failure_defaults(self) -> None:
        result = browser.NavigationResult(success=False, error_message="Timeout")
        assert result.status_code is None
        assert result.status_text is None
