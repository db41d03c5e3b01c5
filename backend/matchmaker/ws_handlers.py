"""
Цикл приёма WebSocket: разбор JSON и передача событий в EventEngine.
Вся логика очереди и пересылки живёт в ядре (relay.py).
"""
import json
import logging
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from .engine import Closed, Connected, EventEngine, Message
from .ws_manager import WSManager

logger = logging.getLogger(__name__)


def decode_message(raw: str) -> Any:
    """JSON -> объект. Невалидный JSON даёт None, ядро ответит protocol_error."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("WS: invalid JSON: %s", e)
        return None


async def ws_loop(ws: WebSocket, manager: WSManager, engine: EventEngine) -> None:
    await ws.accept()
    conn = manager.register(ws)
    logger.info("WS: accepted %s from %s", conn.id, ws.client)
    engine.post(Connected(conn.id))
    manager.start_writer(conn, lambda connection_id: engine.post(Closed(connection_id)))
    try:
        while True:
            raw = await ws.receive_text()
            engine.post(Message(conn.id, decode_message(raw)))
    except WebSocketDisconnect as e:
        logger.info("WS: client disconnected code=%s reason=%s id=%s", e.code, e.reason or "", conn.id)
    except Exception as e:
        if conn.open:
            logger.exception("WS: error id=%s: %s", conn.id, e)
        else:
            logger.info("WS: connection %s terminated", conn.id)
    finally:
        manager.unregister(conn.id)
        engine.post(Closed(conn.id))
