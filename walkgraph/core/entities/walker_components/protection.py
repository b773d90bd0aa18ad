"""Limits that stop runaway traversals.

A limit of zero disables that check.
"""

import time
from typing import Any, Dict, Optional

from walkgraph.exceptions import TraversalError


class ProtectionViolation(TraversalError):
    """Raised when a traversal exceeds one of its limits."""

    def __init__(self, protection_type: str, details: Dict[str, Any]):
        self.protection_type = protection_type
        super().__init__(
            f"Protection triggered: {protection_type}",
            details={"protection_type": protection_type, **details},
        )


class TraversalProtection:
    """Counts steps and per-node visits and watches the clock."""

    def __init__(
        self,
        max_steps: int = 10000,
        max_visits_per_node: int = 100,
        max_execution_time: float = 300.0,
    ):
        """Initialize traversal protection.

        Args:
            max_steps: Maximum number of nodes visited in one traversal
            max_visits_per_node: Maximum visits to any single node
            max_execution_time: Maximum traversal time in seconds
        """
        self.max_steps = max(0, max_steps)
        self.max_visits_per_node = max(0, max_visits_per_node)
        self.max_execution_time = max(0.0, max_execution_time)
        self._steps = 0
        self._visit_counts: Dict[str, int] = {}
        self._start_time: Optional[float] = None

    def start(self) -> None:
        """Reset counters and start the clock."""
        self._steps = 0
        self._visit_counts.clear()
        self._start_time = time.monotonic()

    def record_step(self, node_id: str) -> None:
        """Account for a visit to ``node_id``.

        Raises:
            ProtectionViolation: A limit is exceeded
        """
        self._check_timeout()

        self._steps += 1
        if self.max_steps and self._steps > self.max_steps:
            raise ProtectionViolation(
                "max_steps",
                {"steps_taken": self._steps, "max_steps": self.max_steps},
            )

        count = self._visit_counts.get(node_id, 0) + 1
        self._visit_counts[node_id] = count
        if self.max_visits_per_node and count > self.max_visits_per_node:
            raise ProtectionViolation(
                "max_visits_per_node",
                {
                    "node_id": node_id,
                    "visit_count": count,
                    "max_visits_per_node": self.max_visits_per_node,
                },
            )

    def _check_timeout(self) -> None:
        elapsed = self.elapsed_time
        if elapsed is None or not self.max_execution_time:
            return
        if elapsed > self.max_execution_time:
            raise ProtectionViolation(
                "timeout",
                {
                    "execution_time": elapsed,
                    "max_execution_time": self.max_execution_time,
                },
            )

    @property
    def step_count(self) -> int:
        return self._steps

    @property
    def visit_counts(self) -> Dict[str, int]:
        return dict(self._visit_counts)

    @property
    def elapsed_time(self) -> Optional[float]:
        """Seconds since ``start()``, or None before the traversal started."""
        if self._start_time is None:
            return None
        return time.monotonic() - self._start_time

    def status(self) -> Dict[str, Any]:
        """Current counters next to their limits."""
        most_visited = (
            max(self._visit_counts.items(), key=lambda item: item[1])
            if self._visit_counts
            else (None, 0)
        )
        return {
            "step_count": self._steps,
            "max_steps": self.max_steps,
            "max_visits_per_node": self.max_visits_per_node,
            "node_visit_counts": self.visit_counts,
            "most_visited_node": most_visited[0],
            "most_visited_count": most_visited[1],
            "elapsed_time": self.elapsed_time,
            "max_execution_time": self.max_execution_time,
        }


__all__ = ["ProtectionViolation", "TraversalProtection"]
