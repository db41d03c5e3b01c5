"""
Liveness-монитор: ALIVE -> (проба) -> AWAITING_PONG -> (ответ) -> ALIVE.
Соединение, не ответившее до следующего тика, отключается.
"""
import enum


class LivenessState(enum.Enum):
    ALIVE = "alive"
    AWAITING_PONG = "awaiting_pong"


class LivenessMonitor:
    def __init__(self):
        self._states: dict[str, LivenessState] = {}

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._states

    def track(self, connection_id: str) -> None:
        self._states[connection_id] = LivenessState.ALIVE

    def forget(self, connection_id: str) -> None:
        self._states.pop(connection_id, None)

    def state(self, connection_id: str) -> LivenessState | None:
        return self._states.get(connection_id)

    def mark_alive(self, connection_id: str) -> None:
        if connection_id in self._states:
            self._states[connection_id] = LivenessState.ALIVE

    def sweep(self) -> tuple[list[str], list[str]]:
        """
        Один тик. Возвращает (кому слать пробу, кого отключить).
        Отключаемые сразу перестают отслеживаться.
        """
        probe, expired = [], []
        for connection_id, state in list(self._states.items()):
            if state is LivenessState.AWAITING_PONG:
                expired.append(connection_id)
                del self._states[connection_id]
            else:
                self._states[connection_id] = LivenessState.AWAITING_PONG
                probe.append(connection_id)
        return probe, expired
