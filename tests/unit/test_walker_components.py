"""Unit tests for the walker queue, trail and traversal protection."""

import logging

import pytest

from walkgraph.core.entities import Node
from walkgraph.core.entities.walker_components import (
    ProtectionViolation,
    TraversalProtection,
    WalkerQueue,
    WalkerTrail,
)


class Stop(Node):
    """Queue entry."""

    label: str = ""


def stops(*labels):
    return [Stop(label=label) for label in labels]


class TestWalkerQueue:
    """Test WalkerQueue operations."""

    def test_fifo_order(self):
        queue = WalkerQueue()
        a, b, c = stops("a", "b", "c")
        assert queue.visit([a, b]) == [a, b]
        queue.visit([c])
        assert [queue.pop().label for _ in range(3)] == ["a", "b", "c"]
        assert not queue

    def test_prepend_keeps_order(self):
        queue = WalkerQueue()
        a, b, c = stops("a", "b", "c")
        queue.visit([a])
        queue.prepend([b, c])
        assert queue.snapshot() == [b, c, a]

    def test_dequeue_uses_identity(self):
        queue = WalkerQueue()
        a, b = stops("same", "same")
        queue.visit([a, b, a])
        assert queue.dequeue([a]) == [a, a]
        assert queue.snapshot() == [b]
        assert a not in queue
        assert b in queue

    def test_max_size_drops_and_warns(self, caplog):
        queue = WalkerQueue(max_size=2)
        with caplog.at_level(logging.WARNING):
            added = queue.visit(stops("a", "b", "c"))
        assert [n.label for n in added] == ["a", "b"]
        assert len(queue) == 2
        assert "dropped 1 node(s)" in caplog.text

    def test_zero_max_size_is_unbounded(self):
        queue = WalkerQueue(max_size=0)
        queue.visit(stops(*"abcdefgh"))
        assert len(queue) == 8

    def test_clear_and_iter(self):
        queue = WalkerQueue()
        nodes = stops("a", "b")
        queue.visit(nodes)
        assert list(queue) == nodes
        queue.clear()
        assert len(queue) == 0


class TestWalkerTrail:
    """Test WalkerTrail recording."""

    def test_records_steps_in_order(self):
        trail = WalkerTrail()
        trail.record_step("n:A:1", "A", queue_length=2)
        trail.record_step("n:B:2", "B", note="x")
        assert trail.node_ids() == ["n:A:1", "n:B:2"]
        assert len(trail) == 2
        steps = trail.get_trail()
        assert steps[0]["node_type"] == "A"
        assert steps[0]["queue_length"] == 2
        assert steps[1]["note"] == "x"
        assert "timestamp" in steps[1]

    def test_recent_and_last(self):
        trail = WalkerTrail()
        for i in range(6):
            trail.record_step(f"n:A:{i}", "A")
        assert trail.get_recent(2) == ["n:A:4", "n:A:5"]
        assert trail.get_recent(0) == []
        assert trail.last()["node"] == "n:A:5"
        assert trail.has_visited("n:A:0")
        assert not trail.has_visited("n:A:9")

    def test_copies_are_returned(self):
        trail = WalkerTrail()
        trail.record_step("n:A:1", "A")
        trail.get_trail()[0]["node"] = "changed"
        assert trail.node_ids() == ["n:A:1"]
        trail.clear()
        assert trail.last() is None


class TestTraversalProtection:
    """Test traversal limits."""

    def test_max_steps(self):
        protection = TraversalProtection(max_steps=2, max_visits_per_node=0)
        protection.start()
        protection.record_step("a")
        protection.record_step("b")
        with pytest.raises(ProtectionViolation) as exc_info:
            protection.record_step("c")
        assert exc_info.value.protection_type == "max_steps"
        assert exc_info.value.details["steps_taken"] == 3

    def test_max_visits_per_node(self):
        protection = TraversalProtection(max_steps=0, max_visits_per_node=2)
        protection.start()
        protection.record_step("a")
        protection.record_step("a")
        with pytest.raises(ProtectionViolation) as exc_info:
            protection.record_step("a")
        assert exc_info.value.protection_type == "max_visits_per_node"
        assert protection.visit_counts == {"a": 3}

    def test_timeout(self, monkeypatch):
        protection = TraversalProtection(max_execution_time=1.0)
        protection.start()
        start = protection._start_time
        monkeypatch.setattr(
            "walkgraph.core.entities.walker_components.protection.time.monotonic",
            lambda: start + 5.0,
        )
        with pytest.raises(ProtectionViolation) as exc_info:
            protection.record_step("a")
        assert exc_info.value.protection_type == "timeout"

    def test_zero_disables_limits(self):
        protection = TraversalProtection(
            max_steps=0, max_visits_per_node=0, max_execution_time=0
        )
        protection.start()
        for _ in range(500):
            protection.record_step("a")
        assert protection.step_count == 500

    def test_status(self):
        protection = TraversalProtection(max_steps=10)
        assert protection.elapsed_time is None
        protection.start()
        protection.record_step("a")
        protection.record_step("b")
        protection.record_step("b")
        status = protection.status()
        assert status["step_count"] == 3
        assert status["max_steps"] == 10
        assert status["most_visited_node"] == "b"
        assert status["most_visited_count"] == 2
        assert status["elapsed_time"] >= 0

    def test_start_resets_counters(self):
        protection = TraversalProtection()
        protection.start()
        protection.record_step("a")
        protection.start()
        assert protection.step_count == 0
        assert protection.visit_counts == {}
