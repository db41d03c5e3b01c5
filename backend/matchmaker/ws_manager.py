"""
Менеджер WebSocket: соединения по connection_id, неблокирующая отправка
через очередь исходящих и принудительное закрытие.
"""
import asyncio
import logging
import uuid
from collections.abc import Callable
from typing import Any

from fastapi import WebSocket

from .constants import CLOSE_CODE_TERMINATED
from .errors import TransportError

logger = logging.getLogger(__name__)


class Connection:
    def __init__(self, ws: WebSocket, connection_id: str, outbox_limit: int):
        self.ws = ws
        self.id = connection_id
        self.outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=outbox_limit)
        self.open = True
        self.tasks: set[asyncio.Task] = set()


class WSManager:
    def __init__(self, outbox_limit: int = 256):
        self._outbox_limit = outbox_limit
        self._by_id: dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._by_id)

    def register(self, ws: WebSocket) -> Connection:
        conn = Connection(ws, uuid.uuid4().hex, self._outbox_limit)
        self._by_id[conn.id] = conn
        return conn

    def unregister(self, connection_id: str) -> None:
        conn = self._by_id.pop(connection_id, None)
        if conn is None:
            return
        conn.open = False
        for task in list(conn.tasks):
            task.cancel()

    def start_writer(self, conn: Connection, on_failure: Callable[[str], None]) -> None:
        self._spawn(conn, self._write_loop(conn, on_failure))

    def send(self, connection_id: str, payload: dict[str, Any]) -> None:
        conn = self._by_id.get(connection_id)
        if not conn or not conn.open:
            return
        try:
            conn.outbox.put_nowait(payload)
        except asyncio.QueueFull as e:
            raise TransportError(f"outbox overflow for {connection_id}") from e

    def terminate(self, connection_id: str) -> None:
        conn = self._by_id.get(connection_id)
        if not conn or not conn.open:
            return
        conn.open = False
        self._spawn(conn, self._close(conn))

    async def _write_loop(self, conn: Connection, on_failure: Callable[[str], None]) -> None:
        while True:
            payload = await conn.outbox.get()
            try:
                await conn.ws.send_json(payload)
            except Exception as e:
                logger.warning("send to %s failed: %s", conn.id, e)
                self.terminate(conn.id)
                on_failure(conn.id)
                return

    async def _close(self, conn: Connection) -> None:
        try:
            await conn.ws.close(code=CLOSE_CODE_TERMINATED)
        except Exception as e:
            logger.debug("close %s: %s", conn.id, e)

    def _spawn(self, conn: Connection, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        conn.tasks.add(task)
        task.add_done_callback(conn.tasks.discard)
