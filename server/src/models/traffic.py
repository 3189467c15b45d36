"""Pydantic models for intercepted traffic, violations, geolocation, and session artifacts."""

from __future__ import annotations

from typing import Literal

import pydantic

from src.utils.serialization import snake_to_camel

Severity = Literal["low", "medium", "high", "critical"]


class _WireModel(pydantic.BaseModel):
    """Base for models sent over the real-time channel (camelCase on the wire)."""

    model_config = pydantic.ConfigDict(
        alias_generator=snake_to_camel, populate_by_name=True
    )


class RequestDescription(_WireModel):
    """Read-only view of an outgoing request reported by the browser."""

    model_config = pydantic.ConfigDict(frozen=True)

    url: str
    method: str = "GET"
    resource_type: str = "other"
    post_data: str | None = None


class Violation(_WireModel):
    """A single privacy/security rule triggered by a request."""

    model_config = pydantic.ConfigDict(frozen=True)

    issue: str
    severity: Severity


class GeoRecord(_WireModel):
    """Approximate location of a destination host."""

    model_config = pydantic.ConfigDict(frozen=True)

    lat: float
    lon: float
    country: str


DEFAULT_GEO = GeoRecord(lat=20.5937, lon=78.9629, country="India")


class TrafficEvent(_WireModel):
    """One intercepted request, annotated with violations and location."""

    model_config = pydantic.ConfigDict(frozen=True)

    url: str
    method: str
    resource_type: str
    domain: str
    violations: tuple[Violation, ...] = ()
    geo: GeoRecord = DEFAULT_GEO
    is_tracker: bool = False
    payload: str | None = None
    timestamp: str = ""


class SecurityDetail(_WireModel):
    """TLS metadata of the top-level document response."""

    protocol: str
    issuer: str
    valid_to: str


class CookieRecord(_WireModel):
    """A cookie captured from the browser context at the end of a scan."""

    name: str
    value: str
    domain: str
    path: str = "/"
    expires: float = -1
    http_only: bool = False
    secure: bool = False
    same_site: str = "None"
