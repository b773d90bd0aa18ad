"""Pending-visit queue of a walker."""

import logging
from collections import deque
from typing import TYPE_CHECKING, Deque, Iterable, Iterator, List

if TYPE_CHECKING:
    from ..node import Node

logger = logging.getLogger(__name__)


class WalkerQueue:
    """FIFO of nodes a walker has yet to visit.

    ``visit`` appends to the end, so traversal expands breadth-first. When
    ``max_size`` is positive, nodes that would grow the queue beyond it are
    dropped and logged.
    """

    def __init__(self, max_size: int = 1000) -> None:
        self._items: Deque["Node"] = deque()
        self.max_size = max(0, max_size)

    def _room(self) -> int:
        if self.max_size <= 0:
            return -1
        return max(0, self.max_size - len(self._items))

    def visit(self, nodes: Iterable["Node"]) -> List["Node"]:
        """Append nodes to the end of the queue.

        Returns:
            The nodes actually enqueued
        """
        added: List["Node"] = []
        dropped = 0
        for node in nodes:
            if self._room() == 0:
                dropped += 1
                continue
            self._items.append(node)
            added.append(node)
        if dropped:
            logger.warning(
                "Walker queue is full (max_size=%d); dropped %d node(s)",
                self.max_size,
                dropped,
            )
        return added

    def prepend(self, nodes: Iterable["Node"]) -> List["Node"]:
        """Put nodes at the front of the queue, keeping their order."""
        pending = list(nodes)
        for node in reversed(pending):
            self._items.appendleft(node)
        return pending

    def dequeue(self, nodes: Iterable["Node"]) -> List["Node"]:
        """Remove every occurrence of the given nodes.

        Returns:
            The removed entries
        """
        targets = list(nodes)
        kept: List["Node"] = []
        removed: List["Node"] = []
        for item in self._items:
            (removed if any(item is t for t in targets) else kept).append(item)
        self._items = deque(kept)
        return removed

    def pop(self) -> "Node":
        return self._items.popleft()

    def clear(self) -> None:
        self._items.clear()

    def snapshot(self) -> List["Node"]:
        return list(self._items)

    def __contains__(self, node: object) -> bool:
        return any(item is node for item in self._items)

    def __iter__(self) -> Iterator["Node"]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)


__all__ = ["WalkerQueue"]
