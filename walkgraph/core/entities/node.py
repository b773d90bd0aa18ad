"""Graph nodes."""

import weakref
from typing import (
    TYPE_CHECKING,
    Any,
    ClassVar,
    Dict,
    List,
    Optional,
    Type,
    TypeVar,
    Union,
)

from pydantic import Field

from ..abilities import NODE_SIDE, Ability, AbilityKey, collect_abilities
from ..annotations import private
from .edge import Edge
from .object import Object

if TYPE_CHECKING:
    from ..filters import NodeFilter, Selector
    from .walker import Walker

N = TypeVar("N", bound="Node")


class Node(Object):
    """Graph node with connection helpers and walker abilities.

    Nodes become persistent once they are reachable from the root of their
    context by following edges forward. Helpers on this class run through
    the node's GraphContext, one transaction per call.

    Attributes:
        id: Unique identifier for the node (protected - inherited from Object)
        edge_ids: IDs of connected edges in creation order
        visitor: Walker currently visiting the node (transient - not persisted)
    """

    type_code: ClassVar[str] = "n"
    edge_ids: List[str] = Field(default_factory=list)
    _visitor_ref: Optional[weakref.ReferenceType] = private(default=None)
    _abilities: ClassVar[Dict[AbilityKey, Ability]] = {}

    def __init_subclass__(cls: Type["Node"], **kwargs: Any) -> None:
        """Build the ability table of the new node type."""
        super().__init_subclass__(**kwargs)
        cls._abilities, _ = collect_abilities(cls, NODE_SIDE)

    @property
    def visitor(self: "Node") -> Optional["Walker"]:
        """Walker currently visiting this node, if any."""
        return self._visitor_ref() if self._visitor_ref else None

    @visitor.setter
    def visitor(self: "Node", value: Optional["Walker"]) -> None:
        self._visitor_ref = weakref.ref(value) if value else None

    @classmethod
    async def create(cls: Type[N], **kwargs: Any) -> N:
        """Create a node in the current context.

        The node stays transient until something reachable connects to it.
        """
        from ..context import get_default_context

        return await get_default_context().create_node(cls, **kwargs)

    @classmethod
    async def get(cls: Type[N], id: str) -> Optional[N]:
        """Look up a node of this type by id in the current context."""
        from ..context import get_default_context

        node = await get_default_context().get_node(id)
        return node if isinstance(node, cls) else None

    async def connect(
        self,
        other: "Node",
        edge: Type[Edge] = Edge,
        **kwargs: Any,
    ) -> Edge:
        """Connect this node to another node with a directed edge.

        Args:
            other: Target node
            edge: Edge class to instantiate
            **kwargs: Edge fields

        Returns:
            Created edge instance
        """
        return await self.get_context().connect(self, other, edge=edge, **kwargs)

    async def disconnect(
        self, other: "Node", edge: Optional["Selector"] = None
    ) -> int:
        """Remove the edges from this node to ``other``.

        Args:
            other: Target node
            edge: Only remove edges of this type (optional)

        Returns:
            Number of edges removed
        """
        return await self.get_context().disconnect(self, other, edge=edge)

    async def edges(
        self, direction: str = "both", edge: Optional["Selector"] = None
    ) -> List[Edge]:
        """Edges attached to this node in creation order.

        Args:
            direction: 'out', 'in' or 'both'
            edge: Edge type, type name, tuple of types or NodeFilter
        """
        return await self.get_context().edges(self, direction=direction, edge=edge)

    async def nodes(
        self,
        direction: str = "out",
        edge: Optional["Selector"] = None,
        node: Optional[Union["Selector", "NodeFilter"]] = None,
        **kwargs: Any,
    ) -> List["Node"]:
        """Nodes adjacent to this one, ordered by edge creation.

        Args:
            direction: 'out', 'in' or 'both'
            edge: Restrict to edges of a type (or a NodeFilter over edges)
            node: Node type(s) or a NodeFilter applied to the neighbours
            **kwargs: Field criteria for the neighbours, as in NodeFilter

        Returns:
            List of connected nodes

        Examples:
            # Basic traversal
            next_nodes = await node.nodes()

            # Type and field filtering
            open_tasks = await node.nodes(node=Task, done=False)
            urgent = await node.nodes(node=Task, priority={"$gte": 3})

            # Only along one kind of edge
            later = await node.nodes(edge=Scheduled)
        """
        from ..filters import NodeFilter

        found = await self.get_context().query(self, direction=direction, edge=edge)
        if node is None and not kwargs:
            return found
        if isinstance(node, NodeFilter):
            flt = node & NodeFilter(**kwargs) if kwargs else node
        else:
            flt = NodeFilter(node, **kwargs)
        return flt.apply(found)

    async def node(
        self,
        direction: str = "out",
        edge: Optional["Selector"] = None,
        node: Optional[Union["Selector", "NodeFilter"]] = None,
        **kwargs: Any,
    ) -> Optional["Node"]:
        """First node ``nodes()`` would return, or None."""
        found = await self.nodes(direction=direction, edge=edge, node=node, **kwargs)
        return found[0] if found else None

    async def update(self: N, **fields: Any) -> N:
        """Assign fields under the graph lock and commit."""
        await self.get_context().update(self, **fields)
        return self

    async def save(self: N) -> N:
        """Register the node with its context and commit pending changes."""
        await self.get_context().add_node(self)
        return self

    async def delete(self) -> bool:
        """Delete the node and every edge touching it."""
        return await self.get_context().delete_node(self)

    @property
    def connection_count(self) -> int:
        return len(self.edge_ids)

    def export(
        self: "Node", exclude_transient: bool = True, **kwargs: Any
    ) -> Dict[str, Any]:
        """Export node to a dictionary for persistence."""
        record = super().export(
            exclude_transient=exclude_transient, exclude={"edge_ids"}, **kwargs
        )
        record["edges"] = list(self.edge_ids)
        return record


__all__ = ["Node"]
