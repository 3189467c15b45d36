"""
Real-time channel message names and formatting helpers.

Pure functions with no side-effects.  Every frame on the channel is
a JSON object ``{"event": <name>, "data": <payload>}``.
"""

from __future__ import annotations

from typing import Any

from src.utils.serialization import to_wire

# ====================================================================
# Event names
# ====================================================================

# Observer -> server
REQUEST_HISTORY = "request-history"
START_TRACKING = "start-tracking"

# Server -> observers
TRAFFIC_UPDATE = "traffic-update"
TRAFFIC_HISTORY = "traffic-history"
SECURITY_UPDATE = "security-update"
COOKIE_UPDATE = "cookie-update"
STATUS = "status"

STATUS_COMPLETE = "Scan Complete."
SUPERSEDED_MESSAGE = "Scan superseded by a new scan request"
SHUTDOWN_MESSAGE = "Server shutting down"
CANCELLED_MESSAGE = "Scan cancelled"


# ====================================================================
# Formatting
# ====================================================================


def format_event(event_type: str, data: Any = None) -> dict[str, Any]:
    """Build a channel frame with a camelCase JSON payload."""
    return {"event": event_type, "data": to_wire(data)}


def parse_message(raw: Any) -> tuple[str, Any] | None:
    """Extract ``(event, data)`` from an incoming frame.

    Returns:
        The event name and its payload, or ``None`` when the frame
        is not an object with a string ``event`` field.
    """
    if not isinstance(raw, dict):
        return None
    event = raw.get("event")
    if not isinstance(event, str) or not event:
        return None
    return event, raw.get("data")
