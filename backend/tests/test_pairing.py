"""Очередь ожидания и проход пейринга."""
import math

import pytest

from matchmaker.config import Config
from matchmaker.errors import ValidationError
from matchmaker.pairing import Player, WaitingQueue, validate_join


def _player(cid, rating, joined_at=0.0):
    return Player(connection_id=cid, identifier=f"p-{cid}", rating=rating, joined_at=joined_at)


class TestValidateJoin:
    @pytest.mark.parametrize("identifier", ["", None, 42])
    def test_rejects_bad_identifier(self, identifier):
        with pytest.raises(ValidationError, match="player_id"):
            validate_join(identifier, 1000)

    @pytest.mark.parametrize("rating", [math.nan, math.inf, -math.inf, "1000", None, True])
    def test_rejects_bad_rating(self, rating):
        with pytest.raises(ValidationError, match="mmr"):
            validate_join("alice", rating)

    def test_accepts_int_and_float(self):
        validate_join("alice", 1000)
        validate_join("alice", 999.5)


class TestFindMatch:
    @pytest.fixture
    def clock(self):
        return lambda: 0.0

    @pytest.fixture
    def queue(self, clock):
        return WaitingQueue(Config(), clock)

    def test_fewer_than_two_is_noop(self, queue):
        assert queue.find_match() is None
        queue.add(_player("a", 1000))
        assert queue.find_match() is None
        assert len(queue) == 1

    def test_matches_adjacent_pair_lower_is_host(self, queue):
        queue.add(_player("b", 1190))
        queue.add(_player("a", 1000))
        match = queue.find_match()
        assert match.host.connection_id == "a"
        assert match.client.connection_id == "b"
        assert match.allowed == 200
        assert len(queue) == 0

    def test_no_qualifying_pair_leaves_queue(self, queue):
        queue.add(_player("a", 1000))
        queue.add(_player("b", 1500))
        assert queue.find_match() is None
        assert [p.connection_id for p in queue] == ["a", "b"]

    def test_only_first_qualifying_pair_per_pass(self, queue):
        for cid, rating in [("a", 1000), ("b", 1050), ("c", 2000), ("d", 2010)]:
            queue.add(_player(cid, rating))
        match = queue.find_match()
        assert {match.host.connection_id, match.client.connection_id} == {"a", "b"}
        assert [p.connection_id for p in queue] == ["c", "d"]

    def test_only_adjacent_pairs_are_considered(self, queue):
        for cid, rating in [("c", 1450), ("a", 1000), ("b", 1300)]:
            queue.add(_player(cid, rating))
        match = queue.find_match()
        assert (match.host.connection_id, match.client.connection_id) == ("b", "c")
        assert [p.connection_id for p in queue] == ["a"]

    def test_ties_keep_arrival_order(self, queue):
        queue.add(_player("first", 1200))
        queue.add(_player("second", 1200))
        match = queue.find_match()
        assert match.host.connection_id == "first"
        assert match.client.connection_id == "second"

    def test_remove(self, queue):
        queue.add(_player("a", 1000))
        assert "a" in queue
        assert queue.remove("a") is True
        assert queue.remove("a") is False
        assert "a" not in queue


class TestTolerance:
    def test_allowed_grows_with_combined_wait(self):
        queue = WaitingQueue(Config(), lambda: 0.0)
        a, b = _player("a", 1000, joined_at=0.0), _player("b", 1250, joined_at=0.0)
        assert queue.allowed_difference(a, b, now=0.0) == 200
        assert queue.allowed_difference(a, b, now=3.0) == 260
        assert queue.allowed_difference(a, b, now=2.9) == 240

    def test_allowed_is_capped(self):
        queue = WaitingQueue(Config(), lambda: 0.0)
        a, b = _player("a", 0, joined_at=0.0), _player("b", 0, joined_at=0.0)
        assert queue.allowed_difference(a, b, now=10_000.0) == 800

    def test_custom_config(self):
        config = Config(base_tolerance_diff=50, tolerance_growth_per_second=1, tolerance_cap=5)
        queue = WaitingQueue(config, lambda: 0.0)
        a, b = _player("a", 0, joined_at=0.0), _player("b", 0, joined_at=0.0)
        assert queue.allowed_difference(a, b, now=100.0) == 55

    def test_wide_gap_matches_after_waiting(self):
        now = [0.0]
        queue = WaitingQueue(Config(), lambda: now[0])
        queue.add(_player("a", 1000, joined_at=0.0))
        queue.add(_player("b", 1250, joined_at=0.0))
        assert queue.find_match() is None
        now[0] = 2.5  # 2 + 2 = 4 секунды -> 240
        assert queue.find_match() is None
        now[0] = 3.0  # 3 + 3 = 6 секунд -> 260
        assert queue.find_match() is not None
