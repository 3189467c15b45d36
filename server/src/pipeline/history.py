"""Ordered in-memory record of the current scan's traffic events."""

from __future__ import annotations

from src.models import traffic


class SessionHistory:
    """Append-only log of ``TrafficEvent``s, emptied at each scan start.

    Events are kept in the order their classification completed,
    which can differ from request initiation order.
    """

    def __init__(self) -> None:
        self._events: list[traffic.TrafficEvent] = []

    def reset(self) -> None:
        """Drop every recorded event."""
        self._events = []

    def append(self, event: traffic.TrafficEvent) -> None:
        self._events.append(event)

    def snapshot(self) -> list[traffic.TrafficEvent]:
        """Return a copy of the current ordered sequence."""
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)
