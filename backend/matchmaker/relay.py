"""
Ядро матчмейкинга: приём в очередь, пейринг, пересылка сообщений сопернику,
отключения и liveness. Все методы синхронные и вызываются из одного
потока событий (см. engine.py), поэтому блокировки не нужны.
"""
import logging
import time
from typing import Any, Protocol

from . import constants as c
from .config import Config, get_config
from .errors import MatchmakerError, ProtocolError, RoutingError, TransportError, ValidationError
from .liveness import LivenessMonitor
from .pairing import Clock, Match, Player, WaitingQueue, validate_join
from .sessions import SessionRegistry

logger = logging.getLogger(__name__)


class Transport(Protocol):
    def send(self, connection_id: str, message: dict[str, Any]) -> None:
        """Поставить сообщение в отправку. При сбое бросает TransportError."""

    def terminate(self, connection_id: str) -> None:
        """Принудительно закрыть соединение."""


class Matchmaker:
    def __init__(self, transport: Transport, config: Config | None = None, clock: Clock = time.monotonic):
        self.transport = transport
        self.config = config or get_config()
        self._clock = clock
        self.queue = WaitingQueue(self.config, clock)
        self.sessions = SessionRegistry()
        self.liveness = LivenessMonitor()
        self._handlers = {
            c.JOIN_QUEUE: self._handle_join,
            c.LEAVE_QUEUE: self._handle_leave,
            c.QUEUE_STATUS: self._handle_queue_status,
            c.OFFER: self._handle_signaling,
            c.ANSWER: self._handle_signaling,
            c.ICE: self._handle_signaling,
            c.CHAT: self._handle_chat,
            c.GAME_UPDATE: self._handle_game_update,
            c.PING: self._handle_ping,
            c.OPPONENT_PING: self._handle_latency_relay,
            c.OPPONENT_PONG: self._handle_latency_relay,
            c.HEARTBEAT_ACK: self._handle_heartbeat_ack,
        }

    # --- входящие события ---

    def on_connected(self, connection_id: str) -> None:
        self.liveness.track(connection_id)
        logger.info("connection %s opened", connection_id)

    def on_message(self, connection_id: str, payload: Any) -> None:
        if connection_id not in self.liveness:
            logger.debug("drop message from closed connection %s", connection_id)
            return
        try:
            if not isinstance(payload, dict):
                raise ProtocolError("message must be a JSON object")
            kind = payload.get("type")
            if not isinstance(kind, str):
                raise ProtocolError("message type must be a string")
            handler = self._handlers.get(kind)
            if handler is None:
                raise ProtocolError(f"unknown message type: {kind}")
            handler(connection_id, payload)
        except MatchmakerError as e:
            logger.warning("%s from %s: %s", e.code, connection_id, e)
            self.send(connection_id, e.payload())

    def on_closed(self, connection_id: str) -> None:
        """Отключение: убрать игрока отовсюду, уведомить соперника."""
        was_open = connection_id in self.liveness
        self.liveness.forget(connection_id)
        player = self.sessions.remove(connection_id)
        if player is None:
            if was_open:
                logger.info("connection %s closed", connection_id)
            return
        self.queue.remove(connection_id)
        survivor = self.sessions.end_session(player)
        logger.info("player %s disconnected (connection %s)", player.identifier, connection_id)
        if survivor is not None:
            self.send(survivor.connection_id, {"type": c.OPPONENT_DISCONNECTED})

    def on_tick(self) -> None:
        probe, expired = self.liveness.sweep()
        for connection_id in expired:
            logger.info("connection %s missed heartbeat, terminating", connection_id)
            self._terminate(connection_id)
        for connection_id in probe:
            self.send(connection_id, {"type": c.HEARTBEAT})

    # --- очередь ---

    def admit(self, connection_id: str, identifier, rating) -> Player:
        """Принять игрока в очередь и сразу запустить проход пейринга."""
        existing = self.sessions.get(connection_id)
        if existing is not None and (existing.in_session or connection_id in self.queue):
            raise ValidationError("already joined")
        validate_join(identifier, rating)
        player = Player(
            connection_id=connection_id,
            identifier=identifier,
            rating=rating,
            joined_at=self._clock(),
        )
        self.sessions.add(player)
        self.queue.add(player)
        logger.info("player %s joined queue (MMR %s), waiting=%d", identifier, rating, len(self.queue))
        self.send(connection_id, {"type": c.QUEUED, "queue_size": len(self.queue)})
        self.attempt_match()
        return player

    def attempt_match(self) -> Match | None:
        match = self.queue.find_match()
        if match is None:
            return None
        host, client = match.host, match.client
        self.sessions.pair(host, client)
        logger.info(
            "matched %s (%s) vs %s (%s); allowed=%s",
            host.identifier, host.rating, client.identifier, client.rating, match.allowed,
        )
        host_msg: c.MatchStart = {"type": c.MATCH_START, "role": c.ROLE_HOST, "opponent": client.identifier}
        client_msg: c.MatchStart = {"type": c.MATCH_START, "role": c.ROLE_CLIENT, "opponent": host.identifier}
        self.send(host.connection_id, host_msg)
        # хост мог отвалиться на отправке: клиент уже получил opponent_disconnected
        if client.opponent_id == host.connection_id:
            self.send(client.connection_id, client_msg)
        return match

    # --- исходящие ---

    def send(self, connection_id: str, message: dict[str, Any]) -> None:
        """Best-effort отправка. Закрытые соединения молча пропускаются."""
        if connection_id not in self.liveness:
            return
        try:
            self.transport.send(connection_id, message)
        except TransportError as e:
            logger.warning("send to %s failed: %s", connection_id, e)
            self._terminate(connection_id)

    def _terminate(self, connection_id: str) -> None:
        self.liveness.forget(connection_id)
        self.transport.terminate(connection_id)
        self.on_closed(connection_id)

    def _forward(self, connection_id: str, kind: str, message: dict[str, Any]) -> None:
        player = self.sessions.get(connection_id)
        opponent = self.sessions.opponent_of(player) if player else None
        if opponent is None or opponent.connection_id not in self.liveness:
            raise RoutingError(f"no opponent to forward {kind} to")
        self.send(opponent.connection_id, message)

    # --- обработчики сообщений ---

    def _handle_join(self, connection_id: str, data: dict) -> None:
        self.admit(connection_id, data.get("player_id"), data.get("mmr"))

    def _handle_leave(self, connection_id: str, data: dict) -> None:
        if not self.queue.remove(connection_id):
            raise ValidationError("not in queue")
        player = self.sessions.remove(connection_id)
        logger.info("player %s left queue", player.identifier if player else connection_id)
        self.send(connection_id, {"type": c.LEFT_QUEUE})

    def _handle_queue_status(self, connection_id: str, data: dict) -> None:
        self.send(connection_id, {
            "type": c.QUEUE_STATUS,
            "waiting": len(self.queue),
            "in_session": self.sessions.session_count(),
        })

    def _handle_signaling(self, connection_id: str, data: dict) -> None:
        kind = data["type"]
        message = {"type": kind}
        for field in c.SIGNALING_FIELDS[kind]:
            message[field] = data.get(field)
        self._forward(connection_id, kind, message)

    def _handle_chat(self, connection_id: str, data: dict) -> None:
        text = data.get("text")
        if not isinstance(text, str):
            raise ValidationError("chat text must be a string")
        player = self.sessions.get(connection_id)
        self._forward(connection_id, c.CHAT, {
            "type": c.CHAT,
            "from": player.identifier if player else None,
            "text": text,
        })

    def _handle_game_update(self, connection_id: str, data: dict) -> None:
        player = self.sessions.get(connection_id)
        self._forward(connection_id, c.GAME_UPDATE, {
            "type": c.GAME_UPDATE,
            "from": player.identifier if player else None,
            "payload": data.get("payload"),
        })

    def _handle_ping(self, connection_id: str, data: dict) -> None:
        self.send(connection_id, {"type": c.PONG, "timestamp": data.get("timestamp")})

    def _handle_latency_relay(self, connection_id: str, data: dict) -> None:
        kind = data["type"]
        player = self.sessions.get(connection_id)
        self._forward(connection_id, kind, {
            "type": kind,
            "from": player.identifier if player else None,
            "timestamp": data.get("timestamp"),
        })

    def _handle_heartbeat_ack(self, connection_id: str, data: dict) -> None:
        self.liveness.mark_alive(connection_id)
