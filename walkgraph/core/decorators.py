"""Decorators that declare walker and node abilities."""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Union

from walkgraph.exceptions import TypeMismatchError

ENTRY = "entry"
EXIT = "exit"
COMPLETE = "complete"

Target = Union[type, str]


@dataclass(frozen=True)
class AbilitySpec:
    """Trigger and target selector attached to a decorated function.

    ``targets`` of None means the ability applies to any type.
    """

    trigger: str
    targets: Optional[Tuple[Target, ...]] = None


def _mark(func: Callable[..., Any], spec: AbilitySpec) -> Callable[..., Any]:
    specs = getattr(func, "_ability_specs", ())
    func._ability_specs = (*specs, spec)  # type: ignore[attr-defined]
    return func


def _is_bare_use(target_types: Tuple[Any, ...]) -> bool:
    return (
        len(target_types) == 1
        and callable(target_types[0])
        and not inspect.isclass(target_types[0])
        and not isinstance(target_types[0], str)
    )


def _validated(target_types: Tuple[Any, ...]) -> Optional[Tuple[Target, ...]]:
    for target_type in target_types:
        if not (inspect.isclass(target_type) or isinstance(target_type, str)):
            raise TypeMismatchError(
                f"Ability target must be a class or a class name, got {target_type!r}",
                details={"target": repr(target_type)},
            )
    return tuple(target_types) if target_types else None


def on_visit(*target_types: Target):
    """Register an entry ability fired when a walker arrives at a node.

    On a Walker the targets are Node types; on a Node the targets are Walker
    types. Strings name a class that may be defined later in the module.
    The decorated function receives ``(self, visit)``.

    Examples:
        @on_visit(City, Town)      # Triggers for City OR Town
        @on_visit("Inspector")     # Forward reference, resolved before traversal
        @on_visit()                # Triggers for any type
        @on_visit                  # Same, without parentheses
    """
    if _is_bare_use(target_types):
        return _mark(target_types[0], AbilitySpec(ENTRY))

    targets = _validated(target_types)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        return _mark(func, AbilitySpec(ENTRY, targets))

    return decorator


def on_exit(*target_types: Target):
    """Register an exit ability, or a walker completion ability.

    ``@on_exit(City)`` / ``@on_exit()`` fire when the walker is about to leave
    a matching node, with ``(self, visit)``.

    Bare ``@on_exit`` on a Walker method marks a completion ability that runs
    once, with only ``self``, after the queue is exhausted.
    """
    if _is_bare_use(target_types):
        return _mark(target_types[0], AbilitySpec(COMPLETE))

    targets = _validated(target_types)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        return _mark(func, AbilitySpec(EXIT, targets))

    return decorator


__all__ = ["on_visit", "on_exit", "AbilitySpec", "ENTRY", "EXIT", "COMPLETE"]
