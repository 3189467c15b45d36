"""
Scan orchestration.

One scan walks ``IDLE -> LAUNCHING -> INTERCEPTING -> DRAINING ->
FINALIZING -> COMPLETE`` (or ``FAILED`` / ``CANCELLED``):

- ``LAUNCHING``: reset the shared history, normalise the target,
  launch the browser.
- ``INTERCEPTING``: every outgoing request runs
  decode -> classify -> enrich -> record -> broadcast and is then
  acknowledged so the transfer proceeds.
- ``DRAINING``: after navigation settles, wait a grace period for
  lazily initialised trackers.
- ``FINALIZING``: broadcast cookies and the completion status.

The controller holds a single active-scan slot.  A new scan request
cancels the running scan (which reports itself as superseded and
tears down its browser) before the shared history is reset.
Server shutdown cancels the running scan the same way, reporting
the shutdown as the reason.
Request work that finishes after its scan stopped accepting events
is dropped instead of being recorded.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import enum
import itertools
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Protocol

from src.analysis import classifier, payload
from src.analysis.geo import GeoEnricher
from src.models import browser, traffic
from src.pipeline import events
from src.pipeline.broadcaster import Broadcaster
from src.pipeline.history import SessionHistory
from src.utils import errors, logger
from src.utils import url as url_mod

log = logger.create_logger("Scan")

DEFAULT_NAVIGATION_TIMEOUT_MS = 60000
DEFAULT_DRAIN_PERIOD_MS = 6000


class ScanState(enum.StrEnum):
    IDLE = "idle"
    LAUNCHING = "launching"
    INTERCEPTING = "intercepting"
    DRAINING = "draining"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


_ACCEPTING_STATES = frozenset({ScanState.INTERCEPTING, ScanState.DRAINING})
_TERMINAL_STATES = frozenset({ScanState.COMPLETE, ScanState.FAILED, ScanState.CANCELLED})


class ScanError(Exception):
    """A scan could not be carried out (navigation failed, bad target...)."""


class RenderingSession(Protocol):
    """The browser capabilities a scan needs (see ``BrowserSession``)."""

    async def launch(self) -> None: ...

    async def intercept(self, handler: Callable[[traffic.RequestDescription], Any]) -> None: ...

    def on_document_response(self, handler: Callable[[browser.DocumentResponse], Any]) -> None: ...

    async def navigate(self, url: str, timeout_ms: int = ...) -> browser.NavigationResult: ...

    async def cookies(self) -> list[traffic.CookieRecord]: ...

    async def close(self) -> None: ...


_scan_ids = itertools.count(1)


@dataclasses.dataclass
class ScanContext:
    """State owned by one scan and passed to every pipeline stage."""

    target: str
    scan_id: int = dataclasses.field(default_factory=lambda: next(_scan_ids))
    target_url: str = ""
    main_domain: str = ""
    state: ScanState = ScanState.IDLE
    security_reported: bool = False
    events_recorded: int = 0
    events_dropped: int = 0
    error: str | None = None
    cancel_reason: str | None = None
    task: asyncio.Task[Any] | None = None

    @property
    def accepting(self) -> bool:
        """True while request results may still be recorded."""
        return self.state in _ACCEPTING_STATES

    @property
    def finished(self) -> bool:
        return self.state in _TERMINAL_STATES


class ScanController:
    """Runs scans and wires browser callbacks into the traffic pipeline."""

    def __init__(
        self,
        history: SessionHistory,
        broadcaster: Broadcaster,
        geo: GeoEnricher,
        session_factory: Callable[[], RenderingSession],
        *,
        navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
        drain_period_ms: int = DEFAULT_DRAIN_PERIOD_MS,
    ) -> None:
        self._history = history
        self._broadcaster = broadcaster
        self._geo = geo
        self._session_factory = session_factory
        self._navigation_timeout_ms = navigation_timeout_ms
        self._drain_period_ms = drain_period_ms
        self._active: ScanContext | None = None
        self._slot_lock = asyncio.Lock()
        self._background: set[asyncio.Task[Any]] = set()

    # ==========================================================================
    # State
    # ==========================================================================

    @property
    def active_scan(self) -> ScanContext | None:
        return self._active

    @property
    def state(self) -> ScanState:
        return self._active.state if self._active else ScanState.IDLE

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    def launch(self, target: str) -> asyncio.Task[ScanContext]:
        """Start a scan of *target* in a background task."""
        task = asyncio.create_task(self.start(target), name=f"scan:{target}")
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def start(self, target: str) -> ScanContext:
        """Run one scan to completion in the current task.

        Any scan still in progress is cancelled first.  The current
        task becomes the new scan's task, so it must be dedicated to
        the scan (use ``launch`` from request handlers).
        """
        async with self._slot_lock:
            await self._cancel_active(events.SUPERSEDED_MESSAGE)
            ctx = ScanContext(target=target, task=asyncio.current_task())
            self._active = ctx
        await self._run(ctx)
        return ctx

    async def shutdown(self) -> None:
        """Cancel the running scan (if any) and wait for its teardown."""
        async with self._slot_lock:
            await self._cancel_active(events.SHUTDOWN_MESSAGE)

    async def _cancel_active(self, reason: str) -> None:
        prior = self._active
        if prior is None or prior.finished or prior.task is None or prior.task.done():
            return
        log.warn("Cancelling active scan", {"scanId": prior.scan_id, "target": prior.target, "reason": reason})
        prior.cancel_reason = reason
        prior.task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await prior.task

    async def _run(self, ctx: ScanContext) -> None:
        session: RenderingSession | None = None
        ctx.state = ScanState.LAUNCHING
        self._history.reset()
        log.section(f"Scanning: {ctx.target}")
        log.start_timer("scan")

        try:
            ctx.target_url = url_mod.normalize_target_url(ctx.target)
            ctx.main_domain = url_mod.get_main_domain(ctx.target_url)
            logger.open_scan_log(ctx.scan_id, ctx.main_domain)
            log.info("Scan started", {"scanId": ctx.scan_id, "url": ctx.target_url, "mainDomain": ctx.main_domain})

            log.subsection("Launching browser")
            session = self._session_factory()
            await session.launch()

            ctx.state = ScanState.INTERCEPTING
            await session.intercept(lambda request: self.process_request(ctx, request))
            session.on_document_response(lambda response: self.handle_document_response(ctx, response))

            log.subsection("Intercepting traffic")
            nav = await session.navigate(ctx.target_url, self._navigation_timeout_ms)
            if not nav.success:
                raise ScanError(nav.error_message or "Navigation failed")
            log.info("Page loaded", {"status": nav.status_code})

            ctx.state = ScanState.DRAINING
            log.subsection("Draining late requests")
            await asyncio.sleep(self._drain_period_ms / 1000)

            ctx.state = ScanState.FINALIZING
            cookies = await session.cookies()
            await self._broadcaster.emit(events.COOKIE_UPDATE, cookies)
            await self._broadcaster.emit(events.STATUS, events.STATUS_COMPLETE)
            ctx.state = ScanState.COMPLETE
            log.end_timer("scan", "Scan complete")
            log.success("Scan finished", {"events": ctx.events_recorded, "cookies": len(cookies)})

        except asyncio.CancelledError:
            ctx.state = ScanState.CANCELLED
            ctx.error = ctx.cancel_reason or events.CANCELLED_MESSAGE
            log.warn("Scan cancelled", {"scanId": ctx.scan_id, "reason": ctx.error})
            await self._broadcaster.emit(events.STATUS, f"Error: {ctx.error}")
            raise
        except Exception as error:
            ctx.state = ScanState.FAILED
            ctx.error = errors.get_error_message(error)
            log.error("Scan failed", {"scanId": ctx.scan_id, "error": ctx.error})
            await self._broadcaster.emit(events.STATUS, errors.format_status_error(error))
        finally:
            if session is not None:
                try:
                    await session.close()
                except Exception as err:
                    log.warn("Error during browser cleanup", {"error": errors.get_error_message(err)})
            logger.close_scan_log()

    # ==========================================================================
    # Pipeline
    # ==========================================================================

    def _is_live(self, ctx: ScanContext) -> bool:
        return ctx.accepting and self._active is ctx

    async def process_request(
        self,
        ctx: ScanContext,
        request: traffic.RequestDescription,
    ) -> traffic.TrafficEvent | None:
        """Decode, classify, enrich, record and broadcast one request.

        Returns:
            The recorded event, or ``None`` when the scan stopped
            accepting events before the work finished.
        """
        decoded = payload.decode_payload(request.post_data)
        body = decoded.text if decoded is not None else None
        result = classifier.classify(request, body, ctx.main_domain)
        domain = url_mod.extract_domain(request.url)
        geo = await self._geo.resolve(domain)

        if not self._is_live(ctx):
            ctx.events_dropped += 1
            log.debug("Dropping late request", {"scanId": ctx.scan_id, "url": request.url, "state": ctx.state.value})
            return None

        event = traffic.TrafficEvent(
            url=request.url,
            method=request.method,
            resource_type=request.resource_type,
            domain=domain,
            violations=result.violations,
            geo=geo,
            is_tracker=result.is_tracker,
            payload=body,
            timestamp=datetime.now(UTC).isoformat(),
        )
        ctx.events_recorded += 1
        await self._broadcaster.record(self._history, event)
        return event

    async def handle_document_response(self, ctx: ScanContext, response: browser.DocumentResponse) -> None:
        """Broadcast TLS details once per scan, for the main document."""
        if ctx.security_reported or not self._is_live(ctx) or response.is_redirect:
            return
        ctx.security_reported = True
        if response.security is None:
            log.info("No TLS details for main document", {"url": response.url})
            return
        log.info(
            "Security details",
            {"protocol": response.security.protocol, "issuer": response.security.issuer},
        )
        await self._broadcaster.emit(events.SECURITY_UPDATE, response.security)
