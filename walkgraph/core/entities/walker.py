"""Walkers: mobile traversal agents with type-keyed abilities."""

import inspect
import logging
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    ClassVar,
    Dict,
    Iterable,
    List,
    Optional,
    Tuple,
    Type,
    Union,
)

from pydantic import ConfigDict

from walkgraph.config import get_settings
from walkgraph.exceptions import TraversalFault, TraversalSkipped, ValidationError

from ..abilities import (
    WALKER_SIDE,
    Ability,
    AbilityKey,
    Visit,
    collect_abilities,
    dispatch,
    verify_references,
)
from ..annotations import private
from ..decorators import ENTRY, EXIT
from .node import Node
from .object import Object
from .walker_components import (
    ProtectionViolation,
    TraversalProtection,
    WalkerQueue,
    WalkerTrail,
)

if TYPE_CHECKING:
    from ..context import GraphContext
    from .root import Root

logger = logging.getLogger(__name__)


class WalkerStatus(str, Enum):
    """Lifecycle of a walker.

    PENDING -> ACTIVE <-> VISITING -> DONE | DISENGAGED | FAILED
    """

    PENDING = "pending"
    ACTIVE = "active"
    VISITING = "visiting"
    DONE = "done"
    DISENGAGED = "disengaged"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (WalkerStatus.DONE, WalkerStatus.DISENGAGED, WalkerStatus.FAILED)


class Walker(Object):
    """Base class for graph walkers.

    A walker carries its own fields through the graph, visiting nodes from a
    FIFO queue. On every node it fires the matching entry abilities, walker
    abilities first and node abilities second, then the matching exit
    abilities just before it moves on. Values passed to ``report`` are
    returned to the caller once the queue is exhausted.

    Example:
        class Collect(Walker):
            @on_visit(Root)
            async def start(self, visit):
                await self.visit(await visit.here.nodes())

            @on_visit(Task)
            def take(self, visit):
                self.report(visit.here.title)

        walker = await Collect().spawn()
        walker.reports  # ["x", "y", "z"]

    Traversal limits default to the ``walker_*`` settings and can be passed
    as keyword arguments: ``max_steps``, ``max_visits_per_node``,
    ``max_execution_time``, ``max_queue_size``.
    """

    model_config = ConfigDict(extra="allow")
    type_code: ClassVar[str] = "w"

    _abilities: ClassVar[Dict[AbilityKey, Ability]] = {}
    _completions: ClassVar[Tuple[Ability, ...]] = ()

    _status: WalkerStatus = private(default=WalkerStatus.PENDING)
    _reports: List[Any] = private(default_factory=list)
    _here: Optional[Node] = private(default=None)
    _disengaged: bool = private(default=False)
    _queue: Optional[WalkerQueue] = private(default=None)
    _trail: Optional[WalkerTrail] = private(default=None)
    _protection: Optional[TraversalProtection] = private(default=None)

    def __init__(self: "Walker", **kwargs: Any) -> None:
        """Initialize a walker; traversal limits fall back to settings."""
        settings = get_settings()
        max_steps = kwargs.pop("max_steps", settings.walker_max_steps)
        max_visits_per_node = kwargs.pop(
            "max_visits_per_node", settings.walker_max_visits_per_node
        )
        max_execution_time = kwargs.pop(
            "max_execution_time", settings.walker_max_execution_time
        )
        max_queue_size = kwargs.pop("max_queue_size", settings.walker_max_queue_size)

        super().__init__(**kwargs)

        self._queue = WalkerQueue(max_size=max_queue_size)
        self._trail = WalkerTrail()
        self._protection = TraversalProtection(
            max_steps=max_steps,
            max_visits_per_node=max_visits_per_node,
            max_execution_time=max_execution_time,
        )

    def __init_subclass__(cls: Type["Walker"], **kwargs: Any) -> None:
        """Build the ability table of the new walker type."""
        super().__init_subclass__(**kwargs)
        cls._abilities, cls._completions = collect_abilities(cls, WALKER_SIDE)

    # ----------------- STATE -----------------

    @property
    def status(self) -> WalkerStatus:
        return self._status

    @property
    def here(self) -> Optional[Node]:
        """Node currently being visited."""
        return self._here

    @property
    def reports(self) -> List[Any]:
        """Reported values in the order they were reported."""
        return list(self._reports)

    def get_report(self) -> List[Any]:
        return self.reports

    def report(self, data: Any) -> None:
        """Add a value to the walker's result list."""
        self._reports.append(data)

    @property
    def disengaged(self) -> bool:
        return self._disengaged

    # ----------------- QUEUE -----------------

    async def visit(
        self,
        nodes: Union[Node, Iterable[Node]],
        otherwise: Optional[Callable[[], Any]] = None,
    ) -> List[Node]:
        """Append nodes to the end of the queue.

        Args:
            nodes: Node or sequence of nodes
            otherwise: Callable (sync or async, no arguments) run instead when
                ``nodes`` is empty

        Returns:
            Nodes actually enqueued. Nothing is enqueued once the walker has
            disengaged or finished.
        """
        if self._disengaged or self._status.is_terminal:
            return []
        pending = [nodes] if isinstance(nodes, Node) else list(nodes)
        if not pending:
            if otherwise is not None:
                result = otherwise()
                if inspect.isawaitable(result):
                    await result
            return []
        return self._queue.visit(pending)

    def prepend(self, nodes: Union[Node, Iterable[Node]]) -> List[Node]:
        """Put nodes at the front of the queue so they are visited next."""
        if self._disengaged or self._status.is_terminal:
            return []
        return self._queue.prepend([nodes] if isinstance(nodes, Node) else nodes)

    def dequeue(self, nodes: Union[Node, Iterable[Node]]) -> List[Node]:
        """Remove nodes from the queue; returns the removed entries."""
        return self._queue.dequeue([nodes] if isinstance(nodes, Node) else nodes)

    def clear_queue(self) -> None:
        self._queue.clear()

    def is_queued(self, node: Node) -> bool:
        return node in self._queue

    def get_queue(self) -> List[Node]:
        return self._queue.snapshot()

    # ----------------- CONTROL -----------------

    def skip(self) -> None:
        """Stop the remaining abilities of the current trigger at this node.

        Works like ``continue``: after an entry ability skips, the exit
        abilities of the node still run and the walk carries on with the
        next queued node.

        Raises:
            TraversalSkipped: Always; handled by the traversal loop
        """
        raise TraversalSkipped("Processing of current node skipped")

    def disengage(self) -> None:
        """Stop the traversal once the current ability returns.

        Clears the queue. No further ability runs (neither the rest of the
        current node's abilities nor any exit or completion ability), later
        ``visit`` calls are ignored and the walker ends DISENGAGED with its
        reports intact.
        """
        self._disengaged = True
        self._queue.clear()

    # ----------------- TRAIL / PROTECTION -----------------

    @property
    def trail(self) -> List[Dict[str, Any]]:
        """Visit steps with metadata, in visit order."""
        return self._trail.get_trail()

    def get_trail(self) -> List[str]:
        """IDs of visited nodes in visit order."""
        return self._trail.node_ids()

    def get_recent_trail(self, count: int = 5) -> List[str]:
        return self._trail.get_recent(count)

    def has_visited(self, node: Union[Node, str]) -> bool:
        return self._trail.has_visited(node if isinstance(node, str) else node.id)

    @property
    def step_count(self) -> int:
        return self._protection.step_count

    @property
    def node_visit_counts(self) -> Dict[str, int]:
        return self._protection.visit_counts

    def get_protection_status(self) -> Dict[str, Any]:
        status = self._protection.status()
        status["queue_size"] = len(self._queue)
        status["max_queue_size"] = self._queue.max_size
        return status

    # ----------------- TRAVERSAL -----------------

    async def spawn(self, start: Optional[Node] = None) -> "Walker":
        """Run the walker to completion.

        The traversal runs inside one graph transaction: its changes are
        committed when it finishes and rolled back when it faults.

        Args:
            start: First node to visit; defaults to the context root

        Returns:
            The walker, now DONE or DISENGAGED

        Raises:
            ValidationError: The walker has already been spawned
            TypeMismatchError: An ability targets an unknown type name
            TraversalFault: An ability failed or a limit was exceeded
        """
        if self._status is not WalkerStatus.PENDING:
            raise ValidationError(
                f"Walker {self.id} has already been spawned",
                details={"walker_id": self.id, "status": self._status.value},
            )
        verify_references(type(self))

        from ..context import activate

        context = start.get_context() if start is not None else self.get_context()
        self.set_context(context)

        with activate(context):
            try:
                async with context.transaction():
                    root = await context.get_root()
                    await self._traverse(start if start is not None else root, root, context)
            except BaseException:
                self._status = WalkerStatus.FAILED
                self._reports.clear()
                self._queue.clear()
                raise
        return self

    async def _traverse(
        self, start: Node, root: "Root", context: "GraphContext"
    ) -> None:
        logger.debug("Spawning %s at %s", self.id, start.id)
        self._queue.clear()
        self._queue.visit([start])
        self._protection.start()

        while self._queue and not self._disengaged:
            node = self._queue.pop()
            self._status = WalkerStatus.ACTIVE
            try:
                self._protection.record_step(node.id)
            except ProtectionViolation as violation:
                logger.warning(
                    "Walker %s stopped at %s: %s",
                    self.id,
                    node.id,
                    violation.protection_type,
                )
                raise TraversalFault(
                    f"Traversal limit exceeded: {violation.protection_type}",
                    walker_id=self.id,
                    node_id=node.id,
                    details=violation.details,
                ) from violation

            self._trail.record_step(node.id, type(node).__name__, len(self._queue))
            self._here = node
            node.visitor = self
            try:
                await self._fire(node, ENTRY, root, context)
                if not self._disengaged:
                    await self._fire(node, EXIT, root, context)
            finally:
                node.visitor = None

            if self._queue and not self._disengaged:
                self._status = WalkerStatus.VISITING

        if self._disengaged:
            self._status = WalkerStatus.DISENGAGED
            logger.debug("Walker %s disengaged at %s", self.id, getattr(self._here, "id", None))
            return

        self._status = WalkerStatus.DONE
        for ability in self._completions:
            try:
                await ability.invoke(self)
            except TraversalSkipped:
                break
            except Exception as e:
                raise self._fault(e, ability) from e
        logger.debug("Walker %s done after %d step(s)", self.id, self.step_count)

    async def _fire(
        self, node: Node, trigger: str, root: "Root", context: "GraphContext"
    ) -> None:
        abilities = dispatch(type(self), type(node), trigger)
        if not abilities:
            return
        visit = Visit(here=node, walker=self, root=root, context=context, trigger=trigger)
        for ability in abilities:
            owner = self if ability.side == WALKER_SIDE else node
            try:
                await ability.invoke(owner, visit)
            except TraversalSkipped:
                return
            except Exception as e:
                raise self._fault(e, ability, node) from e
            if self._disengaged:
                return

    def _fault(
        self, error: Exception, ability: Ability, node: Optional[Node] = None
    ) -> TraversalFault:
        node_id = node.id if node is not None else None
        logger.exception(
            "Ability %s of walker %s failed at %s", ability.qualname, self.id, node_id
        )
        return TraversalFault(
            f"Ability {ability.qualname} failed: {error}",
            walker_id=self.id,
            node_id=node_id,
            ability=ability.qualname,
            details={"error_type": type(error).__name__},
        )


__all__ = ["Walker", "WalkerStatus"]
