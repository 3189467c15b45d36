"""Shared fixtures for the test suite."""

from __future__ import annotations

import pytest
from fakes import make_request

from src.models import traffic

# ── Model Fixtures ──────────────────────────────────────────────


@pytest.fixture()
def paris() -> traffic.GeoRecord:
    return traffic.GeoRecord(lat=48.8566, lon=2.3522, country="France")


@pytest.fixture()
def tracker_request() -> traffic.RequestDescription:
    """A plain-HTTP third-party ad request leaking an email."""
    return make_request("http://ads.doubleclick.net/px?u=a@b.com", resource_type="image")


@pytest.fixture()
def clean_request() -> traffic.RequestDescription:
    """A first-party HTTPS API call with nothing to report."""
    return make_request("https://example.com/api")


@pytest.fixture()
def sample_cookie() -> traffic.CookieRecord:
    return traffic.CookieRecord(
        name="_ga",
        value="GA1.2.123456789.1234567890",
        domain=".example.com",
        path="/",
        expires=1893456000,
        http_only=False,
        secure=True,
        same_site="Lax",
    )


@pytest.fixture()
def sample_security() -> traffic.SecurityDetail:
    return traffic.SecurityDetail(protocol="TLS 1.3", issuer="R11", valid_to="2026-12-31")


@pytest.fixture()
def sample_event(paris: traffic.GeoRecord) -> traffic.TrafficEvent:
    return traffic.TrafficEvent(
        url="https://cdn.example.net/app.js",
        method="GET",
        resource_type="script",
        domain="cdn.example.net",
        geo=paris,
    )
