"""
Real-time observer channel.

Each WebSocket connection is an observer: it receives every broadcast
and may ask for the history backlog or start a scan.
"""

from __future__ import annotations

import json
from typing import Any

import fastapi

from src.pipeline import events
from src.pipeline.monitor import Monitor
from src.utils import logger

log = logger.create_logger("Realtime")

router = fastapi.APIRouter()


async def handle_message(monitor: Monitor, observer: Any, raw: Any) -> None:
    """Dispatch one decoded frame sent by *observer*."""
    parsed = events.parse_message(raw)
    if parsed is None:
        log.warn("Ignoring malformed frame")
        return
    event, data = parsed

    if event == events.REQUEST_HISTORY:
        log.debug("History requested", {"events": len(monitor.history)})
        await monitor.broadcaster.send_history(observer, monitor.history)
    elif event == events.START_TRACKING:
        if not isinstance(data, str):
            await monitor.broadcaster.send_to(observer, events.STATUS, "Error: Target URL must be a string")
            return
        log.info("Scan requested", {"target": data})
        monitor.controller.launch(data)
    else:
        log.warn("Ignoring unknown event", {"event": event})


@router.websocket("/ws")
async def realtime_channel(websocket: fastapi.WebSocket) -> None:
    """Register the connection as an observer until it disconnects."""
    monitor: Monitor = websocket.app.state.monitor
    await websocket.accept()
    monitor.broadcaster.register(websocket)
    try:
        while True:
            text = await websocket.receive_text()
            try:
                raw = json.loads(text)
            except json.JSONDecodeError:
                log.warn("Ignoring non-JSON frame", {"length": len(text)})
                continue
            await handle_message(monitor, websocket, raw)
    except fastapi.WebSocketDisconnect:
        pass
    finally:
        monitor.broadcaster.unregister(websocket)
