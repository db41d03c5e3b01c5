"""Реестр игроков и пар соперников. Единственный владелец записей Player."""
import logging

from .pairing import Player

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self):
        self._by_connection: dict[str, Player] = {}

    def __len__(self) -> int:
        return len(self._by_connection)

    def get(self, connection_id: str) -> Player | None:
        return self._by_connection.get(connection_id)

    def add(self, player: Player) -> None:
        self._by_connection[player.connection_id] = player

    def remove(self, connection_id: str) -> Player | None:
        return self._by_connection.pop(connection_id, None)

    def pair(self, first: Player, second: Player) -> None:
        first.opponent_id = second.connection_id
        second.opponent_id = first.connection_id

    def opponent_of(self, player: Player) -> Player | None:
        if player.opponent_id is None:
            return None
        return self._by_connection.get(player.opponent_id)

    def session_count(self) -> int:
        """Количество активных пар."""
        return sum(1 for p in self._by_connection.values() if p.in_session) // 2

    def end_session(self, player: Player) -> Player | None:
        """
        Разорвать пару со стороны ушедшего игрока: у выжившего ссылка на
        соперника очищается, в очередь он не возвращается.
        Возвращает выжившего или None.
        """
        survivor = self.opponent_of(player)
        player.opponent_id = None
        if survivor is None:
            return None
        survivor.opponent_id = None
        logger.info("session ended: %s left, %s stays idle", player.identifier, survivor.identifier)
        return survivor
