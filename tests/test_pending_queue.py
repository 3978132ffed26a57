"""Tests for the bounded pending queue."""

import pytest
from conftest import make_pending

from ocr_keeper.pipeline.pending_queue import PendingQueue


class TestEnqueue:
    """Tests for capacity-bounded enqueue."""

    @pytest.mark.parametrize(
        ("already", "offered"),
        [(0, 0), (0, 5), (0, 12), (4, 8), (4, 9), (11, 3), (12, 1)],
    )
    def test_admits_maximal_prefix(self, already: int, offered: int) -> None:
        queue = PendingQueue(12, make_pending(already, "old"))
        result = queue.enqueue(make_pending(offered, "new"))

        admitted = min(offered, 12 - already)
        assert result.accepted == admitted
        assert result.rejected == offered - admitted
        assert queue.size() == already + admitted

    def test_rejects_tail_not_head(self) -> None:
        queue = PendingQueue(2)
        queue.enqueue(make_pending(3))
        assert [i.name for i in queue] == ["photo0.png", "photo1.png"]

    def test_restored_items_over_capacity_dropped(self) -> None:
        queue = PendingQueue(2, make_pending(5))
        assert len(queue) == 2
        assert queue.remaining == 0

    def test_accepts_generators(self) -> None:
        queue = PendingQueue(3)
        result = queue.enqueue(item for item in make_pending(4))
        assert result.accepted == 3
        assert result.rejected == 1


class TestDrain:
    """Tests for FIFO draining."""

    def test_drain_preserves_order(self) -> None:
        queue = PendingQueue(10, make_pending(5))
        drained = queue.drain(3)
        assert [i.name for i in drained] == ["photo0.png", "photo1.png", "photo2.png"]
        assert [i.name for i in queue.items()] == ["photo3.png", "photo4.png"]

    def test_drain_more_than_present(self) -> None:
        queue = PendingQueue(10, make_pending(2))
        assert len(queue.drain(5)) == 2
        assert len(queue) == 0

    def test_drain_zero(self) -> None:
        queue = PendingQueue(10, make_pending(2))
        assert queue.drain(0) == []
        assert len(queue) == 2

    def test_items_is_snapshot(self) -> None:
        queue = PendingQueue(10, make_pending(2))
        snapshot = queue.items()
        queue.drain(2)
        assert len(snapshot) == 2
