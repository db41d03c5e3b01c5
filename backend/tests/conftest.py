import pytest

from matchmaker.config import Config
from matchmaker.errors import TransportError
from matchmaker.relay import Matchmaker


class ManualClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """Записывает отправленное; для выбранных соединений send падает."""

    def __init__(self):
        self.sent: dict[str, list[dict]] = {}
        self.terminated: list[str] = []
        self.failing: set[str] = set()

    def send(self, connection_id, message):
        if connection_id in self.failing:
            raise TransportError(f"broken pipe on {connection_id}")
        self.sent.setdefault(connection_id, []).append(message)

    def terminate(self, connection_id):
        self.terminated.append(connection_id)

    def messages(self, connection_id, kind=None):
        msgs = self.sent.get(connection_id, [])
        if kind is None:
            return msgs
        return [m for m in msgs if m.get("type") == kind]


@pytest.fixture()
def clock():
    return ManualClock()


@pytest.fixture()
def transport():
    return FakeTransport()


@pytest.fixture()
def config():
    return Config()


@pytest.fixture()
def mm(transport, config, clock):
    return Matchmaker(transport, config, clock=clock)


@pytest.fixture()
def connect(mm):
    """Открыть соединение и (опционально) встать в очередь."""

    def _connect(connection_id, player_id=None, mmr=None):
        mm.on_connected(connection_id)
        if player_id is not None:
            mm.on_message(connection_id, {"type": "join_queue", "player_id": player_id, "mmr": mmr})

    return _connect


@pytest.fixture()
def paired(mm, connect):
    connect("c1", "alice", 1000)
    connect("c2", "bob", 1100)
    return mm.sessions.get("c1"), mm.sessions.get("c2")
