"""
Fan-out of channel events to every connected observer.

Observers are anything with an awaitable ``send_json`` (in production,
FastAPI ``WebSocket`` connections).  Sends to all observers run
concurrently, each bounded by a timeout.  An observer whose send fails
or stalls past the timeout is dropped and the fan-out continues.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from src.models import traffic
from src.pipeline import events
from src.pipeline.history import SessionHistory
from src.utils import errors, logger

log = logger.create_logger("Broadcaster")

DEFAULT_SEND_TIMEOUT_SECONDS = 2.0


class Observer(Protocol):
    """A connected real-time subscriber."""

    async def send_json(self, data: Any, mode: str = "text") -> None: ...


class Broadcaster:
    """Registry of observers plus the send helpers used by the pipeline."""

    def __init__(self, send_timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS) -> None:
        self._observers: list[Observer] = []
        self._send_timeout = send_timeout

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def register(self, observer: Observer) -> None:
        if observer not in self._observers:
            self._observers.append(observer)
            log.info("Observer connected", {"observers": len(self._observers)})

    def unregister(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)
            log.info("Observer disconnected", {"observers": len(self._observers)})

    async def emit(self, event_type: str, data: Any = None) -> None:
        """Send one event to every currently connected observer."""
        frame = events.format_event(event_type, data)
        await asyncio.gather(*(self._send(observer, frame) for observer in list(self._observers)))

    async def send_to(self, observer: Observer, event_type: str, data: Any = None) -> None:
        """Send one event to a single observer (reply-only events)."""
        await self._send(observer, events.format_event(event_type, data))

    async def send_history(self, observer: Observer, history: SessionHistory) -> None:
        """Replay the current traffic backlog to a (late-joining) observer."""
        await self.send_to(observer, events.TRAFFIC_HISTORY, history.snapshot())

    async def record(self, history: SessionHistory, event: traffic.TrafficEvent) -> None:
        """Append *event* to *history* and immediately broadcast it."""
        history.append(event)
        await self.emit(events.TRAFFIC_UPDATE, event)

    async def _send(self, observer: Observer, frame: dict[str, Any]) -> None:
        try:
            await asyncio.wait_for(observer.send_json(frame), self._send_timeout)
        except Exception as exc:
            log.warn(
                "Dropping observer after failed send",
                {"event": frame.get("event"), "error": errors.get_error_message(exc)},
            )
            self.unregister(observer)
