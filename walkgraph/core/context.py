"""GraphContext: the in-memory graph, its persistence and its lock.

A context owns one Root, an identity map of every node and edge it knows
about, and a Database. Persistence follows reachability: on every commit the
nodes reachable from root (following edges forward) and the edges leaving
them are written, and records that are no longer reachable are deleted.
Everything else lives only in memory.

Every public mutation runs inside ``transaction()``, which serializes
top-level operations on the context with an asyncio.Lock, commits when the
outermost block succeeds and restores the previous in-memory state when it
raises. The lock is re-entrant for the task that holds it, so walker
abilities can call back into the context freely.
"""

import asyncio
import copy
import logging
from collections import deque
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from itertools import chain
from typing import (
    Any,
    AsyncIterator,
    Dict,
    FrozenSet,
    Iterator,
    List,
    Optional,
    Set,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from walkgraph.db.database import Database
from walkgraph.db.factory import get_database
from walkgraph.exceptions import (
    DatabaseError,
    NodeNotFoundError,
    ValidationError,
)

from .entities.edge import Edge
from .entities.node import Node
from .entities.object import Object
from .entities.root import ROOT_ID, Root
from .filters import Selector, as_filter
from .utils import find_subclass_by_name

logger = logging.getLogger(__name__)

N = TypeVar("N", bound=Node)
E = TypeVar("E", bound=Edge)

NODE_COLLECTION = "node"
EDGE_COLLECTION = "edge"
DIRECTIONS = ("out", "in", "both")

# markers of the transactions the current task runs inside; tasks created
# within a transaction inherit them, but a marker only counts while its
# transaction is still open
_held_transactions: ContextVar[FrozenSet[object]] = ContextVar(
    "walkgraph_held_transactions", default=frozenset()
)
# context used by Node.create() and friends inside graph_context()/spawn
_active_context: ContextVar[Optional["GraphContext"]] = ContextVar(
    "walkgraph_active_context", default=None
)

_Snapshot = Tuple[Dict[str, Node], Dict[str, Edge], List[Tuple[Object, Dict[str, Any]]]]


class GraphContext:
    """Graph of one isolated namespace.

    Usage:
        ctx = GraphContext(database=MemoryDB())
        root = await ctx.get_root()
        task = await ctx.create_node(Task, title="x")
        await ctx.connect(root, task)
        await ctx.query(root)  # [task]
    """

    def __init__(self, database: Optional[Database] = None):
        """Initialize GraphContext.

        Args:
            database: Database instance to use. If None, uses factory default.
        """
        self._database = database
        self._lock: Optional[asyncio.Lock] = None
        self._open_transaction: Optional[object] = None
        self._loaded = False
        self.root = Root()
        self.root.set_context(self)
        self._nodes: Dict[str, Node] = {self.root.id: self.root}
        self._edges: Dict[str, Edge] = {}
        self._written_nodes: Dict[str, Dict[str, Any]] = {}
        self._written_edges: Dict[str, Dict[str, Any]] = {}

    @property
    def database(self) -> Database:
        """Get the database instance, initializing if needed."""
        if self._database is None:
            self._database = get_database()
        return self._database

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    # ----------------- TRANSACTIONS -----------------

    def _holds_lock(self) -> bool:
        """True inside this context's open transaction, including its subtasks."""
        marker = self._open_transaction
        return marker is not None and marker in _held_transactions.get()

    @asynccontextmanager
    async def transaction(self, write: bool = True) -> AsyncIterator["GraphContext"]:
        """Run a block with exclusive access to the graph.

        Args:
            write: Commit on success and roll back on error. Read-only blocks
                only take the lock.

        Nested use by the task that holds the lock, or by a task it started
        while the block is open, joins the outer transaction.
        """
        if self._holds_lock():
            yield self
            return

        async with self._get_lock():
            marker = object()
            self._open_transaction = marker
            token = _held_transactions.set(_held_transactions.get() | {marker})
            try:
                if not self._loaded:
                    await self._load()
                snapshot = self._snapshot() if write else None
                try:
                    yield self
                    if write:
                        await self._commit()
                except BaseException:
                    if snapshot is not None:
                        self._restore(snapshot)
                        logger.debug("Rolled back transaction on %r", self)
                    raise
            finally:
                self._open_transaction = None
                _held_transactions.reset(token)

    def _snapshot(self) -> _Snapshot:
        objects = chain(self._nodes.values(), self._edges.values())
        return (
            dict(self._nodes),
            dict(self._edges),
            [(obj, copy.deepcopy(obj.__dict__)) for obj in objects],
        )

    def _restore(self, snapshot: _Snapshot) -> None:
        nodes, edges, states = snapshot
        for obj, state in states:
            obj.__dict__.clear()
            obj.__dict__.update(state)
        self._nodes = nodes
        self._edges = edges

    # ----------------- PERSISTENCE -----------------

    async def load(self) -> None:
        """Replace the in-memory graph with what the database holds."""
        if self._holds_lock():
            await self._load()
            return
        async with self._get_lock():
            await self._load()

    async def _load(self) -> None:
        node_records = await self.database.find(NODE_COLLECTION, {})
        edge_records = await self.database.find(EDGE_COLLECTION, {})

        nodes: Dict[str, Node] = {self.root.id: self.root}
        self.root.edge_ids = []
        for record in node_records:
            if record.get("id") == ROOT_ID:
                self.root.edge_ids = list(record.get("edges", []))
                continue
            node = self._deserialize(Node, record)
            if node is not None:
                nodes[node.id] = node

        edges: Dict[str, Edge] = {}
        for record in edge_records:
            edge = self._deserialize(Edge, record)
            if edge is not None and edge.source in nodes and edge.target in nodes:
                edges[edge.id] = edge

        for node in nodes.values():
            node.edge_ids = [eid for eid in node.edge_ids if eid in edges]

        self._nodes = nodes
        self._edges = edges
        self._written_nodes = {r["id"]: r for r in node_records if r.get("id") in nodes}
        self._written_edges = {r["id"]: r for r in edge_records if r.get("id") in edges}
        self._loaded = True
        logger.debug(
            "Loaded %d node(s) and %d edge(s) into %r", len(nodes), len(edges), self
        )

    def _deserialize(self, base: Type[Object], record: Dict[str, Any]) -> Optional[Any]:
        cls = find_subclass_by_name(base, record.get("name", ""))
        if cls is None:
            logger.warning(
                "Skipping %s record %s of unknown type %s",
                base.__name__,
                record.get("id"),
                record.get("name"),
            )
            return None

        data = {**record.get("context", {}), "id": record["id"]}
        if base is Node:
            data["edge_ids"] = list(record.get("edges", []))
        else:
            data["source"] = record.get("source", "")
            data["target"] = record.get("target", "")
        try:
            obj = cls.model_validate(data)
        except ValueError as e:
            raise DatabaseError(
                f"Stored {base.__name__} {record.get('id')} does not match {cls.__name__}",
                details={"id": record.get("id"), "type": cls.__name__},
            ) from e
        obj.set_context(self)
        return obj

    async def commit(self) -> None:
        """Write the reachable graph and drop unreachable records."""
        async with self.transaction():
            pass

    async def _commit(self) -> None:
        reachable = self._reachable_ids()
        edges = {
            eid: edge for eid, edge in self._edges.items() if edge.source in reachable
        }

        node_records: Dict[str, Dict[str, Any]] = {}
        for nid in reachable:
            record = self._nodes[nid].export()
            record["edges"] = [eid for eid in record["edges"] if eid in edges]
            node_records[nid] = record
        edge_records = {eid: edge.export() for eid, edge in edges.items()}

        await self._sync(NODE_COLLECTION, node_records, self._written_nodes)
        await self._sync(EDGE_COLLECTION, edge_records, self._written_edges)

    async def _sync(
        self,
        collection: str,
        records: Dict[str, Dict[str, Any]],
        written: Dict[str, Dict[str, Any]],
    ) -> None:
        for rid, record in records.items():
            if written.get(rid) != record:
                await self.database.save(collection, record)
                written[rid] = record
        for rid in [rid for rid in written if rid not in records]:
            await self.database.delete(collection, rid)
            del written[rid]

    # ----------------- REACHABILITY -----------------

    def _reachable_ids(self) -> List[str]:
        seen: Set[str] = {self.root.id}
        order = [self.root.id]
        pending = deque([self.root])
        while pending:
            node = pending.popleft()
            for eid in node.edge_ids:
                edge = self._edges.get(eid)
                if edge is None or edge.source != node.id or edge.target in seen:
                    continue
                target = self._nodes.get(edge.target)
                if target is None:
                    continue
                seen.add(target.id)
                order.append(target.id)
                pending.append(target)
        return order

    async def reachable(self) -> Set[str]:
        """IDs of the nodes reachable from root."""
        async with self.transaction(write=False):
            return set(self._reachable_ids())

    async def is_persistent(self, node: Node) -> bool:
        async with self.transaction(write=False):
            return self._nodes.get(node.id) is node and node.id in self._reachable_ids()

    async def all_nodes(self, node: Optional[Selector] = None) -> List[Node]:
        """Persistent nodes in breadth-first order from root.

        Args:
            node: Optional type selector or NodeFilter
        """
        flt = as_filter(node)
        async with self.transaction(write=False):
            found = [self._nodes[nid] for nid in self._reachable_ids()]
        return flt.apply(found) if flt is not None else found

    # ----------------- LOOKUPS -----------------

    async def get_root(self) -> Root:
        async with self.transaction(write=False):
            return self.root

    async def get_node(
        self, node_id: str, strict: bool = False
    ) -> Optional[Node]:
        """Look up a node by id.

        Raises:
            NodeNotFoundError: ``strict`` is set and the node is unknown
        """
        async with self.transaction(write=False):
            node = self._nodes.get(node_id)
        if node is None and strict:
            raise NodeNotFoundError(node_id)
        return node

    async def get_edge(self, edge_id: str) -> Optional[Edge]:
        async with self.transaction(write=False):
            return self._edges.get(edge_id)

    def _resolve(self, node_or_id: Union[Node, str]) -> Optional[Node]:
        if isinstance(node_or_id, Node):
            known = self._nodes.get(node_or_id.id)
            return known if known is node_or_id else None
        return self._nodes.get(node_or_id)

    def _register(self, node: Node) -> Node:
        known = self._nodes.get(node.id)
        if known is not None and known is not node:
            raise ValidationError(
                f"Another node with id {node.id} already belongs to this context",
                details={"node_id": node.id},
            )
        node.set_context(self)
        self._nodes[node.id] = node
        return node

    # ----------------- MUTATIONS -----------------

    async def create_node(self, node_class: Type[N] = Node, **kwargs: Any) -> N:  # type: ignore[assignment]
        """Create a node; it stays transient until linked from a reachable node."""
        if issubclass(node_class, Root):
            raise ValidationError("The root node cannot be created explicitly")
        async with self.transaction():
            node = node_class(**kwargs)
            self._register(node)
            return node

    async def add_node(self, node: N) -> N:
        """Register a node constructed outside the context and commit."""
        async with self.transaction():
            return self._register(node)

    async def connect(
        self,
        source: Node,
        target: Node,
        edge: Type[E] = Edge,  # type: ignore[assignment]
        **kwargs: Any,
    ) -> E:
        """Create a directed edge from ``source`` to ``target``.

        If ``source`` is reachable from root, ``target`` and everything
        reachable from it become persistent at commit.
        """
        async with self.transaction():
            self._register(source)
            self._register(target)
            connection = edge(left=source, right=target, **kwargs)
            connection.set_context(self)
            self._edges[connection.id] = connection
            source.edge_ids.append(connection.id)
            if target is not source:
                target.edge_ids.append(connection.id)
            return connection

    async def disconnect(
        self, source: Node, target: Node, edge: Optional[Selector] = None
    ) -> int:
        """Remove the edges from ``source`` to ``target``.

        Returns:
            Number of edges removed
        """
        flt = as_filter(edge)
        async with self.transaction():
            doomed = [
                e
                for e in self._edges_of(source, "out")
                if e.target == target.id and (flt is None or flt.matches(e))
            ]
            for e in doomed:
                self._drop_edge(e)
            return len(doomed)

    async def delete_edge(self, edge: Union[Edge, str]) -> bool:
        async with self.transaction():
            known = self._edges.get(edge if isinstance(edge, str) else edge.id)
            if known is None:
                return False
            self._drop_edge(known)
            return True

    def _drop_edge(self, edge: Edge) -> None:
        self._edges.pop(edge.id, None)
        for nid in {edge.source, edge.target}:
            node = self._nodes.get(nid)
            if node is not None and edge.id in node.edge_ids:
                node.edge_ids = [eid for eid in node.edge_ids if eid != edge.id]

    async def delete_node(self, node: Union[Node, str]) -> bool:
        """Remove a node and every edge touching it.

        Unknown nodes and ids are ignored.

        Returns:
            True if something was deleted

        Raises:
            ValidationError: Attempt to delete the root
        """
        async with self.transaction():
            known = self._resolve(node)
            if known is None:
                logger.debug("delete_node: %s not found, nothing to do", node)
                return False
            if known is self.root:
                raise ValidationError("The root node cannot be deleted")
            for eid in list(known.edge_ids):
                edge = self._edges.get(eid)
                if edge is not None:
                    self._drop_edge(edge)
            del self._nodes[known.id]
            return True

    async def update(self, node: N, **fields: Any) -> N:
        """Assign fields of a node and commit.

        Raises:
            ValidationError: A field is not declared by the node type
        """
        undeclared = [name for name in fields if name not in type(node).model_fields]
        if undeclared:
            raise ValidationError(
                f"{type(node).__name__} has no field(s) {undeclared}",
                details={"fields": undeclared},
            )
        async with self.transaction():
            self._register(node)
            for name, value in fields.items():
                setattr(node, name, value)
            return node

    # ----------------- QUERIES -----------------

    def _edges_of(self, origin: Node, direction: str) -> List[Edge]:
        if direction not in DIRECTIONS:
            raise ValidationError(
                f"Invalid direction '{direction}', expected one of {DIRECTIONS}",
                details={"direction": direction},
            )
        found = []
        for eid in origin.edge_ids:
            edge = self._edges.get(eid)
            if edge is None:
                continue
            if direction == "out" and edge.source != origin.id:
                continue
            if direction == "in" and edge.target != origin.id:
                continue
            found.append(edge)
        return found

    async def edges(
        self, origin: Node, direction: str = "both", edge: Optional[Selector] = None
    ) -> List[Edge]:
        """Edges attached to ``origin`` in creation order."""
        flt = as_filter(edge)
        async with self.transaction(write=False):
            found = self._edges_of(origin, direction)
        return flt.apply(found) if flt is not None else found

    async def query(
        self, origin: Node, direction: str = "out", edge: Optional[Selector] = None
    ) -> List[Node]:
        """Nodes adjacent to ``origin``, ordered by edge creation.

        Args:
            origin: Node to start from
            direction: 'out' follows edges forward, 'in' backward, 'both' either way
            edge: Restrict to edges of a type (or matching a NodeFilter)

        Returns:
            Adjacent nodes; one entry per matching edge
        """
        flt = as_filter(edge)
        async with self.transaction(write=False):
            found = []
            for e in self._edges_of(origin, direction):
                if flt is not None and not flt.matches(e):
                    continue
                if direction == "out":
                    other_id = e.target
                elif direction == "in":
                    other_id = e.source
                else:
                    other_id = e.other_end(origin.id)
                other = self._nodes.get(other_id)
                if other is not None:
                    found.append(other)
            return found

    def __repr__(self) -> str:
        return f"<GraphContext {type(self._database).__name__} nodes={len(self._nodes)}>"


# Global context used when nothing more specific is active
_default_context: Optional[GraphContext] = None


def get_default_context() -> GraphContext:
    """Get the active context, or the global default one."""
    global _default_context
    active = _active_context.get()
    if active is not None:
        return active
    if _default_context is None:
        _default_context = GraphContext()
    return _default_context


def set_default_context(context: Optional[GraphContext]) -> None:
    """Set (or clear, with None) the global default context."""
    global _default_context
    _default_context = context


@contextmanager
def activate(context: GraphContext) -> Iterator[GraphContext]:
    """Make ``context`` the one returned by get_default_context() in this task."""
    token = _active_context.set(context)
    try:
        yield context
    finally:
        _active_context.reset(token)


@asynccontextmanager
async def graph_context(
    database: Optional[Database] = None,
) -> AsyncIterator[GraphContext]:
    """Async context manager for a temporary, active graph context.

    Usage:
        async with graph_context(MemoryDB()) as ctx:
            task = await Task.create(title="x")
    """
    ctx = GraphContext(database)
    with activate(ctx):
        await ctx.load()
        yield ctx


__all__ = [
    "GraphContext",
    "get_default_context",
    "set_default_context",
    "activate",
    "graph_context",
]
