"""
Очередь ожидания и пейринг по рейтингу (in-memory).
Допуск по разнице рейтингов растёт со временем ожидания.
"""
import math
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from operator import attrgetter

from .config import Config
from .errors import ValidationError

Clock = Callable[[], float]


@dataclass(eq=False)
class Player:
    connection_id: str
    identifier: str
    rating: float
    joined_at: float
    opponent_id: str | None = None  # connection_id соперника

    @property
    def in_session(self) -> bool:
        return self.opponent_id is not None


@dataclass(frozen=True)
class Match:
    host: Player
    client: Player
    allowed: float


def validate_join(identifier, rating) -> None:
    """Проверить поля join_queue. Бросает ValidationError."""
    if not isinstance(identifier, str) or not identifier:
        raise ValidationError("invalid join_queue payload: player_id must be a non-empty string")
    if isinstance(rating, bool) or not isinstance(rating, (int, float)) or not math.isfinite(rating):
        raise ValidationError("invalid join_queue payload: mmr must be a finite number")


class WaitingQueue:
    def __init__(self, config: Config, clock: Clock = time.monotonic):
        self._config = config
        self._clock = clock
        self._players: list[Player] = []

    def __len__(self) -> int:
        return len(self._players)

    def __iter__(self) -> Iterator[Player]:
        return iter(self._players)

    def __contains__(self, connection_id: str) -> bool:
        return any(p.connection_id == connection_id for p in self._players)

    def add(self, player: Player) -> None:
        self._players.append(player)

    def remove(self, connection_id: str) -> bool:
        """Убрать из очереди. Возвращает True если был в очереди."""
        for i, p in enumerate(self._players):
            if p.connection_id == connection_id:
                self._players.pop(i)
                return True
        return False

    def allowed_difference(self, first: Player, second: Player, now: float) -> float:
        """Допустимая разница рейтингов для пары с учётом ожидания обоих."""
        wait = int(now - first.joined_at) + int(now - second.joined_at)
        tolerance = min(self._config.tolerance_cap, wait * self._config.tolerance_growth_per_second)
        return self._config.base_tolerance_diff + tolerance

    def find_match(self) -> Match | None:
        """
        Один проход пейринга: сортировка по рейтингу (стабильная, при равенстве
        раньше пришедший впереди) и поиск первой соседней пары в пределах допуска.
        Найденная пара удаляется из очереди. Не больше одной пары за проход.
        """
        if len(self._players) < 2:
            return None
        self._players.sort(key=attrgetter("rating"))
        now = self._clock()
        for i in range(len(self._players) - 1):
            first, second = self._players[i], self._players[i + 1]
            allowed = self.allowed_difference(first, second, now)
            if abs(first.rating - second.rating) <= allowed:
                del self._players[i:i + 2]
                return Match(host=first, client=second, allowed=allowed)
        return None
