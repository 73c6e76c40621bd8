"""WebSocket handler for low-latency note events.

Clients connect to /ws/notes and send JSON messages:
  {"type": "note_on", "key": "C4", "freq": 261.63}
  {"type": "note_off", "key": "C4"}
  {"type": "stop_all"}
Each message is answered with an "ack" or an "error".
"""

from __future__ import annotations

import json
import math
from typing import Any

import structlog
from fastapi import WebSocket, WebSocketDisconnect

from wavesketch.engine import SynthEngine
from wavesketch.hands.presets import key_frequency

logger = structlog.get_logger()


def handle_message(engine: SynthEngine, message: dict[str, Any]) -> dict[str, Any]:
    """Apply one note message to the engine and build the reply."""
    kind = message.get("type")

    if kind == "note_on":
        key = str(message.get("key", ""))
        if not key:
            return {"type": "error", "message": "note_on needs a key"}
        try:
            freq = float(message.get("freq") or key_frequency(key))
        except (TypeError, ValueError):
            return {"type": "error", "message": f"Invalid freq: {message.get('freq')!r}"}
        if not math.isfinite(freq) or freq <= 0:
            return {"type": "error", "message": f"Invalid freq: {freq}"}
        voice = engine.note_on(key, freq)
        return {"type": "ack", "event": kind, "key": key, "played": voice is not None}

    if kind == "note_off":
        key = str(message.get("key", ""))
        engine.note_off(key)
        return {"type": "ack", "event": kind, "key": key}

    if kind == "stop_all":
        engine.stop_all()
        return {"type": "ack", "event": kind}

    return {"type": "error", "message": f"Unknown message type: {kind}"}


async def notes_endpoint(websocket: WebSocket, engine: SynthEngine) -> None:
    """Receive note messages until the client disconnects.

    Held notes are released when the connection drops.
    """
    await websocket.accept()
    logger.info("WebSocket connected")
    try:
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
            except json.JSONDecodeError:
                await websocket.send_text(json.dumps({"type": "error", "message": "Invalid JSON"}))
                continue
            if not isinstance(message, dict):
                await websocket.send_text(json.dumps({"type": "error", "message": "Expected an object"}))
                continue
            await websocket.send_text(json.dumps(handle_message(engine, message)))
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected")
    finally:
        engine.stop_all()
