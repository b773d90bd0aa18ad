"""Directed, typed edges between nodes."""

from typing import TYPE_CHECKING, Any, ClassVar, Dict, Optional

from .object import Object

if TYPE_CHECKING:
    from .node import Node


class Edge(Object):
    """Graph edge from ``source`` to ``target``.

    Any number of edges may join the same pair of nodes, each with its own
    type and fields. Subclasses declare edge fields as ordinary pydantic
    fields::

        class Scheduled(Edge):
            at: str = ""

    Attributes:
        source: Source node ID
        target: Target node ID
    """

    type_code: ClassVar[str] = "e"
    source: str = ""
    target: str = ""

    def __init__(
        self: "Edge",
        left: Optional["Node"] = None,
        right: Optional["Node"] = None,
        **kwargs: Any,
    ) -> None:
        """Initialize an Edge from ``left`` to ``right``.

        Args:
            left: Source node
            right: Target node
            **kwargs: Edge fields; explicit ``source``/``target`` ids win over nodes
        """
        if left is not None:
            kwargs.setdefault("source", left.id)
        if right is not None:
            kwargs.setdefault("target", right.id)
        super().__init__(**kwargs)

    def touches(self, node_id: str) -> bool:
        return node_id in (self.source, self.target)

    def other_end(self, node_id: str) -> str:
        """ID of the endpoint opposite ``node_id``."""
        return self.target if self.source == node_id else self.source

    def export(
        self: "Edge", exclude_transient: bool = True, **kwargs: Any
    ) -> Dict[str, Any]:
        """Export edge to a dictionary for persistence."""
        record = super().export(
            exclude_transient=exclude_transient, exclude={"source", "target"}, **kwargs
        )
        record["source"] = self.source
        record["target"] = self.target
        return record


__all__ = ["Edge"]
