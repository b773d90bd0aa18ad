"""Ability registry and type-keyed dispatch.

Each Node and Walker class gets an ability table built once when the class
is created. A dispatch table keyed by the concrete ``(walker type, node
type, trigger)`` triple is then filled lazily and reused for every later
visit, so traversal steps never re-scan class members.
"""

import inspect
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Tuple,
    Type,
)

from walkgraph.exceptions import DuplicateAbilityError, TypeMismatchError

from .decorators import COMPLETE, Target
from .utils import resolve_type

if TYPE_CHECKING:
    from .context import GraphContext
    from .entities.node import Node
    from .entities.root import Root
    from .entities.walker import Walker

WALKER_SIDE = "walker"
NODE_SIDE = "node"

# Type code each side's targets must carry ('n' nodes, 'w' walkers)
_EXPECTED_TARGET_CODE = {WALKER_SIDE: "n", NODE_SIDE: "w"}

AbilityKey = Tuple[str, Optional[Target]]


@dataclass(frozen=True)
class Ability:
    """A bound piece of behavior on a Node or Walker type."""

    name: str
    func: Callable[..., Any]
    owner: type
    side: str
    trigger: str
    target: Optional[Target]

    @property
    def qualname(self) -> str:
        return f"{self.owner.__name__}.{self.name}"

    async def invoke(self, *args: Any) -> None:
        result = self.func(*args)
        if inspect.isawaitable(result):
            await result


@dataclass(frozen=True)
class Visit:
    """Explicit context handed to every entry and exit ability.

    Attributes:
        here: Node currently being visited
        walker: Walker performing the visit
        root: Root node of the graph the walker runs in
        context: GraphContext owning the graph
        trigger: "entry" or "exit"
    """

    here: "Node"
    walker: "Walker"
    root: "Root"
    context: "GraphContext"
    trigger: str

    @property
    def visitor(self) -> "Walker":
        """Alias of ``walker`` that reads naturally inside node abilities."""
        return self.walker


# Owners whose string targets have not been resolved yet
_UNRESOLVED: Dict[type, List[str]] = {}
_DISPATCH_CACHE: Dict[Tuple[type, type, str], Tuple[Ability, ...]] = {}


def _ordered_functions(cls: type) -> Dict[str, Callable[..., Any]]:
    """Functions visible on ``cls`` in definition order; overrides keep their slot."""
    members: Dict[str, Callable[..., Any]] = {}
    for klass in reversed(cls.__mro__):
        for name, value in vars(klass).items():
            if inspect.isfunction(value):
                members[name] = value
    return members


def _check_target(cls: type, side: str, target: Optional[Target]) -> None:
    if target is None or isinstance(target, str):
        return
    expected = _EXPECTED_TARGET_CODE[side]
    if getattr(target, "type_code", None) != expected:
        kind = "Node" if expected == "n" else "Walker"
        raise TypeMismatchError(
            f"{cls.__name__} abilities must target {kind} types, got {target.__name__}",
            details={"owner": cls.__name__, "target": target.__name__},
        )


def collect_abilities(
    cls: type, side: str
) -> Tuple[Dict[AbilityKey, Ability], Tuple[Ability, ...]]:
    """Build the ability table of a class.

    Args:
        cls: Node or Walker subclass being created
        side: WALKER_SIDE or NODE_SIDE

    Returns:
        Tuple of ``{(trigger, target): ability}`` in definition order and the
        completion abilities (walkers only)

    Raises:
        DuplicateAbilityError: Two abilities share trigger and target
        TypeMismatchError: A target is of the wrong kind
    """
    table: Dict[AbilityKey, Ability] = {}
    completions: List[Ability] = []
    unresolved: List[str] = []

    for name, func in _ordered_functions(cls).items():
        for spec in getattr(func, "_ability_specs", ()):
            if spec.trigger == COMPLETE:
                if side != WALKER_SIDE:
                    raise TypeMismatchError(
                        f"Completion ability {cls.__name__}.{name} is only valid on walkers",
                        details={"owner": cls.__name__, "ability": name},
                    )
                completions.append(
                    Ability(name, func, cls, side, COMPLETE, None)
                )
                continue

            for target in spec.targets or (None,):
                _check_target(cls, side, target)
                key = (spec.trigger, target)
                existing = table.get(key)
                if existing is not None and existing.name != name:
                    target_name = getattr(target, "__name__", target) or "*"
                    raise DuplicateAbilityError(
                        f"{cls.__name__} binds both '{existing.name}' and '{name}' "
                        f"to {spec.trigger} of {target_name}",
                        details={
                            "owner": cls.__name__,
                            "trigger": spec.trigger,
                            "target": str(target_name),
                            "abilities": [existing.name, name],
                        },
                    )
                if isinstance(target, str):
                    unresolved.append(target)
                table[key] = Ability(name, func, cls, side, spec.trigger, target)

    if unresolved:
        _UNRESOLVED[cls] = unresolved
    return table, tuple(completions)


def _resolve_target(owner: type, side: str, target: str) -> type:
    resolved = resolve_type(target)
    if resolved is None:
        raise TypeMismatchError(
            f"{owner.__name__} ability targets unknown type '{target}'",
            details={"owner": owner.__name__, "target": target},
        )
    _check_target(owner, side, resolved)
    return resolved


def verify_references(cls: Optional[type] = None) -> None:
    """Resolve pending string targets.

    Called with the walker class before a traversal starts so unknown names
    surface before any ability runs. Node-side names are resolved the
    first time the node type is dispatched.

    Args:
        cls: Only check this class and its bases; every pending class when None

    Raises:
        TypeMismatchError: A string target names no registered type
    """
    owners = list(_UNRESOLVED) if cls is None else [
        klass for klass in cls.__mro__ if klass in _UNRESOLVED
    ]
    for owner in owners:
        side = WALKER_SIDE if getattr(owner, "type_code", None) == "w" else NODE_SIDE
        for target in _UNRESOLVED[owner]:
            _resolve_target(owner, side, target)
        del _UNRESOLVED[owner]


def _matches(owner: type, side: str, target: Optional[Target], other: type) -> bool:
    if target is None:
        return True
    if isinstance(target, str):
        target = _resolve_target(owner, side, target)
    return issubclass(other, target)


def _closest_node_ability(
    node_cls: Type["Node"], walker_cls: Type["Walker"], trigger: str
) -> Tuple[Ability, ...]:
    mro = walker_cls.__mro__
    best: Optional[Ability] = None
    best_rank = len(mro)
    for (ability_trigger, target), ability in node_cls._abilities.items():
        if ability_trigger != trigger or not _matches(
            node_cls, NODE_SIDE, target, walker_cls
        ):
            continue
        if target is None:
            rank = len(mro)
        else:
            resolved = resolve_type(target) if isinstance(target, str) else target
            rank = mro.index(resolved)
        if best is not None and rank == best_rank:
            raise DuplicateAbilityError(
                f"{node_cls.__name__} binds both '{best.name}' and '{ability.name}' "
                f"to {trigger} of {walker_cls.__name__}",
                details={
                    "owner": node_cls.__name__,
                    "trigger": trigger,
                    "target": walker_cls.__name__,
                    "abilities": [best.name, ability.name],
                },
            )
        if best is None or rank < best_rank:
            best, best_rank = ability, rank
    return (best,) if best is not None else ()


def dispatch(
    walker_cls: Type["Walker"], node_cls: Type["Node"], trigger: str
) -> Tuple[Ability, ...]:
    """Abilities fired when ``walker_cls`` meets ``node_cls`` for ``trigger``.

    Every matching walker-defined ability fires, in definition order. At
    most one node-defined ability fires: the one whose target is closest to
    ``walker_cls`` in its MRO, with a typed target beating the wildcard.
    It comes after the walker-defined ones.
    """
    key = (walker_cls, node_cls, trigger)
    cached = _DISPATCH_CACHE.get(key)
    if cached is not None:
        return cached

    walker_side = [
        ability
        for (ability_trigger, target), ability in walker_cls._abilities.items()
        if ability_trigger == trigger
        and _matches(walker_cls, WALKER_SIDE, target, node_cls)
    ]
    node_side = _closest_node_ability(node_cls, walker_cls, trigger)
    resolved = tuple(walker_side) + node_side
    _DISPATCH_CACHE[key] = resolved
    return resolved


__all__ = [
    "Ability",
    "Visit",
    "collect_abilities",
    "dispatch",
    "verify_references",
    "WALKER_SIDE",
    "NODE_SIDE",
]
