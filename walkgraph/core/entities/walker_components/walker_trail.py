"""Record of the nodes a walker has visited."""

import time
from typing import Any, Dict, List, Optional


class WalkerTrail:
    """Ordered log of visit steps with per-step metadata."""

    def __init__(self) -> None:
        self._steps: List[Dict[str, Any]] = []

    def record_step(
        self, node_id: str, node_type: str, queue_length: int = 0, **metadata: Any
    ) -> None:
        """Append a visit step.

        Args:
            node_id: ID of the visited node
            node_type: Class name of the visited node
            queue_length: Pending queue length when the node was popped
            **metadata: Additional data stored with the step
        """
        self._steps.append(
            {
                "node": node_id,
                "node_type": node_type,
                "queue_length": queue_length,
                "timestamp": time.time(),
                **metadata,
            }
        )

    def get_trail(self) -> List[Dict[str, Any]]:
        return [dict(step) for step in self._steps]

    def node_ids(self) -> List[str]:
        return [step["node"] for step in self._steps]

    def get_recent(self, count: int = 5) -> List[str]:
        """Most recent node IDs, oldest first."""
        if count <= 0:
            return []
        return [step["node"] for step in self._steps[-count:]]

    def last(self) -> Optional[Dict[str, Any]]:
        return dict(self._steps[-1]) if self._steps else None

    def has_visited(self, node_id: str) -> bool:
        return any(step["node"] == node_id for step in self._steps)

    def clear(self) -> None:
        self._steps.clear()

    def __len__(self) -> int:
        return len(self._steps)


__all__ = ["WalkerTrail"]
