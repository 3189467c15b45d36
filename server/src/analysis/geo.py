"""Geolocation enrichment for request destinations.

Resolves a hostname to an approximate location via the ip-api.com
JSON API.  Successful lookups are memoised in a process-wide
``GeoCache`` that is not reset between scans.  Failures
are never cached: the next scan that meets the same hostname retries.

Local and private-network hosts are never sent to the lookup service;
they (and every failure) resolve to ``traffic.DEFAULT_GEO``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from src.models import traffic
from src.utils import errors, logger
from src.utils import url as url_mod

log = logger.create_logger("Geo")

DEFAULT_API_URL = "http://ip-api.com/json/{host}"
_DEFAULT_TIMEOUT_SECONDS = 5.0

GeoResolver = Callable[[str], Awaitable[traffic.GeoRecord | None]]


# ============================================================================
# Response parsing
# ============================================================================


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_geo_response(body: Any) -> traffic.GeoRecord | None:
    """Build a ``GeoRecord`` from an ip-api.com response body.

    Returns:
        The record, or ``None`` when the body is not a successful,
        well-formed answer.
    """
    if not isinstance(body, dict) or body.get("status") != "success":
        return None
    lat, lon, country = body.get("lat"), body.get("lon"), body.get("country")
    if not (_is_number(lat) and _is_number(lon) and isinstance(country, str)):
        return None
    return traffic.GeoRecord(lat=float(lat), lon=float(lon), country=country)


# ============================================================================
# External resolver
# ============================================================================


class IpApiResolver:
    """Look up hostnames against the ip-api.com JSON endpoint.

    Uses the given ``aiohttp.ClientSession`` when one is passed;
    otherwise one is created lazily and released by ``close()``.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        url_template: str = DEFAULT_API_URL,
        timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._url_template = url_template
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def __call__(self, hostname: str) -> traffic.GeoRecord | None:
        url = self._url_template.format(host=hostname)
        async with self._get_session().get(url, timeout=self._timeout) as response:
            if response.status >= 400:
                log.debug("Geo lookup rejected", {"host": hostname, "status": response.status})
                return None
            body = await response.json(content_type=None)
        return parse_geo_response(body)

    async def close(self) -> None:
        """Close the HTTP session if this resolver created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


# ============================================================================
# Cache
# ============================================================================


class GeoCache:
    """Hostname to ``GeoRecord`` map shared by every scan in the process.

    Reads are lock-free; inserts go through an ``asyncio.Lock`` and
    the last write wins.
    """

    def __init__(self) -> None:
        self._entries: dict[str, traffic.GeoRecord] = {}
        self._lock = asyncio.Lock()

    def get(self, hostname: str) -> traffic.GeoRecord | None:
        return self._entries.get(hostname)

    async def put(self, hostname: str, record: traffic.GeoRecord) -> None:
        async with self._lock:
            self._entries[hostname] = record

    def __contains__(self, hostname: object) -> bool:
        return hostname in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# ============================================================================
# Enricher
# ============================================================================


class GeoEnricher:
    """Resolve hostnames to locations without ever failing observably."""

    def __init__(self, resolver: GeoResolver, cache: GeoCache | None = None) -> None:
        self._resolver = resolver
        self._cache = cache if cache is not None else GeoCache()
        # Concurrent misses for one hostname share a single lookup.
        self._inflight: dict[str, asyncio.Future[traffic.GeoRecord | None]] = {}

    @property
    def cache(self) -> GeoCache:
        return self._cache

    async def resolve(self, hostname: str) -> traffic.GeoRecord:
        """Return the location of *hostname*, or ``DEFAULT_GEO``."""
        if url_mod.is_private_host(hostname):
            return traffic.DEFAULT_GEO

        cached = self._cache.get(hostname)
        if cached is not None:
            return cached

        pending = self._inflight.get(hostname)
        if pending is None:
            pending = asyncio.ensure_future(self._lookup(hostname))
            self._inflight[hostname] = pending
            pending.add_done_callback(lambda _f: self._inflight.pop(hostname, None))

        record = await asyncio.shield(pending)
        return record if record is not None else traffic.DEFAULT_GEO

    async def _lookup(self, hostname: str) -> traffic.GeoRecord | None:
        try:
            record = await self._resolver(hostname)
        except Exception as exc:
            log.debug("Geo lookup failed", {"host": hostname, "error": errors.get_error_message(exc)})
            return None
        if record is None:
            log.debug("Geo lookup returned no usable location", {"host": hostname})
            return None
        await self._cache.put(hostname, record)
        return record
