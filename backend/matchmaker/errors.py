"""Ошибки ядра. Каждая относится к одному соединению или одному сообщению."""


class MatchmakerError(Exception):
    code = "error"

    def payload(self) -> dict:
        return {"type": "error", "code": self.code, "message": str(self)}


class ValidationError(MatchmakerError):
    """Некорректный join_queue, повторный join, неверный текст чата."""

    code = "validation_error"


class RoutingError(MatchmakerError):
    """Пересылка без живого соперника."""

    code = "routing_error"


class ProtocolError(MatchmakerError):
    """Сообщение не объект или неизвестный type."""

    code = "protocol_error"


class TransportError(MatchmakerError):
    """Отправка не удалась: соединение считается мёртвым."""

    code = "transport_error"
