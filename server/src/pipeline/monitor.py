"""Process-wide wiring of the traffic pipeline components."""

from __future__ import annotations

import dataclasses
import functools
from collections.abc import Callable

from src import config
from src.analysis import geo as geo_mod
from src.browser import session as browser_session
from src.pipeline import scan
from src.pipeline.broadcaster import Broadcaster
from src.pipeline.history import SessionHistory


@dataclasses.dataclass
class Monitor:
    """Shared state for one server process.

    The history is reset per scan; the geolocation cache inside
    ``geo`` lives as long as the process.
    """

    history: SessionHistory
    broadcaster: Broadcaster
    geo: geo_mod.GeoEnricher
    controller: scan.ScanController
    resolver: geo_mod.GeoResolver

    async def close(self) -> None:
        """Stop the running scan and release the geolocation client."""
        await self.controller.shutdown()
        if isinstance(self.resolver, geo_mod.IpApiResolver):
            await self.resolver.close()


def build_monitor(
    settings: config.Settings,
    *,
    resolver: geo_mod.GeoResolver | None = None,
    session_factory: Callable[[], scan.RenderingSession] | None = None,
) -> Monitor:
    """Create the history, broadcaster, enricher and controller for a process."""
    if resolver is None:
        resolver = geo_mod.IpApiResolver(
            url_template=settings.geo_api_url,
            timeout_seconds=settings.geo_timeout_seconds,
        )
    if session_factory is None:
        session_factory = functools.partial(browser_session.BrowserSession, headless=settings.headless)

    history = SessionHistory()
    broadcaster = Broadcaster()
    enricher = geo_mod.GeoEnricher(resolver, geo_mod.GeoCache())
    controller = scan.ScanController(
        history,
        broadcaster,
        enricher,
        session_factory,
        navigation_timeout_ms=settings.navigation_timeout_ms,
        drain_period_ms=settings.drain_period_ms,
    )
    return Monitor(
        history=history,
        broadcaster=broadcaster,
        geo=enricher,
        controller=controller,
        resolver=resolver,
    )
