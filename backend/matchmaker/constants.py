"""Типы сообщений протокола и наборы пересылаемых полей."""
from typing import TypedDict

# Входящие
JOIN_QUEUE = "join_queue"
LEAVE_QUEUE = "leave_queue"
QUEUE_STATUS = "queue_status"
OFFER = "offer"
ANSWER = "answer"
ICE = "ice"
CHAT = "chat"
GAME_UPDATE = "game_update"
PING = "ping"
OPPONENT_PING = "opponent_ping"
OPPONENT_PONG = "opponent_pong"
HEARTBEAT_ACK = "heartbeat_ack"

# Исходящие
QUEUED = "queued"
LEFT_QUEUE = "left_queue"
MATCH_START = "match_start"
OPPONENT_DISCONNECTED = "opponent_disconnected"
PONG = "pong"
HEARTBEAT = "heartbeat"
ERROR = "error"

ROLE_HOST = "host"
ROLE_CLIENT = "client"

# Поля сигналинга, которые уходят сопернику (остальное отбрасывается)
SIGNALING_FIELDS: dict[str, tuple[str, ...]] = {
    OFFER: ("sdp",),
    ANSWER: ("sdp",),
    ICE: ("media", "index", "name"),
}

LATENCY_RELAY_TYPES = (OPPONENT_PING, OPPONENT_PONG)

# Код закрытия WebSocket при принудительном отключении
CLOSE_CODE_TERMINATED = 4000


class MatchStart(TypedDict):
    type: str
    role: str
    opponent: str
