"""
Единая очередь событий. Подключения, сообщения, закрытия и тики liveness
обрабатываются строго по одному, в порядке поступления.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from .relay import Matchmaker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Connected:
    connection_id: str


@dataclass(frozen=True)
class Message:
    connection_id: str
    payload: Any


@dataclass(frozen=True)
class Closed:
    connection_id: str


@dataclass(frozen=True)
class Tick:
    pass


Event = Connected | Message | Closed | Tick


class EventEngine:
    def __init__(self, matchmaker: Matchmaker):
        self.matchmaker = matchmaker
        self._events: asyncio.Queue[Event] = asyncio.Queue()

    def post(self, event: Event) -> None:
        self._events.put_nowait(event)

    def dispatch(self, event: Event) -> None:
        mm = self.matchmaker
        if isinstance(event, Message):
            mm.on_message(event.connection_id, event.payload)
        elif isinstance(event, Connected):
            mm.on_connected(event.connection_id)
        elif isinstance(event, Closed):
            mm.on_closed(event.connection_id)
        elif isinstance(event, Tick):
            mm.on_tick()
        else:
            logger.warning("unknown event %r", event)

    def drain(self) -> None:
        """Обработать всё, что уже лежит в очереди (для тестов и остановки)."""
        while not self._events.empty():
            self._process(self._events.get_nowait())

    async def run(self) -> None:
        logger.info("event engine started")
        while True:
            event = await self._events.get()
            self._process(event)

    async def run_ticker(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.post(Tick())

    def _process(self, event: Event) -> None:
        try:
            self.dispatch(event)
        except Exception as e:
            logger.exception("event %r failed: %s", event, e)
