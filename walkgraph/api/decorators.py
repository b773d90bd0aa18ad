"""Endpoint decorator for publishing walkers and functions over HTTP.

Examples:
    @endpoint
    class ListTasks(Walker):
        ...

    @endpoint(name="ping")
    async def health(context):
        return {"nodes": len(await context.all_nodes())}
"""

import inspect
from typing import Any, Callable, Dict, Optional, Type, Union

from walkgraph.core.entities import Walker
from walkgraph.exceptions import InvalidConfigurationError, ValidationError

WALKER_KIND = "walker"
FUNCTION_KIND = "function"

ENDPOINT_ATTR = "_walkgraph_endpoint_config"

_PUBLISHED: Dict[str, Dict[str, Any]] = {WALKER_KIND: {}, FUNCTION_KIND: {}}


def _kind_of(target: Any) -> str:
    if inspect.isclass(target) and issubclass(target, Walker):
        return WALKER_KIND
    if inspect.iscoroutinefunction(target):
        return FUNCTION_KIND
    raise ValidationError(
        "Only Walker subclasses and async functions can be published",
        details={"target": getattr(target, "__name__", repr(target))},
    )


def endpoint(
    target: Optional[Union[Type[Walker], Callable[..., Any]]] = None,
    *,
    name: Optional[str] = None,
) -> Any:
    """Publish a Walker subclass or an async function.

    Usable bare (``@endpoint``) or with options (``@endpoint(name=...)``).
    Walkers are served at ``POST /walker/{name}`` and functions at
    ``POST /function/{name}``. A published function may declare a
    ``context`` parameter to receive the caller's GraphContext.

    Args:
        target: Walker subclass or async function
        name: Public name; defaults to the class or function name

    Returns:
        The target, unchanged apart from its endpoint configuration

    Raises:
        ValidationError: If the target is neither a walker nor async
        InvalidConfigurationError: If the name is taken by another target
    """

    def decorator(
        target: Union[Type[Walker], Callable[..., Any]]
    ) -> Union[Type[Walker], Callable[..., Any]]:
        kind = _kind_of(target)
        endpoint_name = name or target.__name__
        existing = _PUBLISHED[kind].get(endpoint_name)
        if existing is not None and existing is not target:
            raise InvalidConfigurationError(
                "endpoint_name",
                endpoint_name,
                f"A {kind} endpoint with this name is already published",
            )
        setattr(target, ENDPOINT_ATTR, {"kind": kind, "name": endpoint_name})  # noqa: B010
        _PUBLISHED[kind][endpoint_name] = target
        return target

    if target is not None:
        return decorator(target)
    return decorator


def get_published(kind: str, name: str) -> Optional[Any]:
    """Look up a published walker class or function by kind and name."""
    return _PUBLISHED.get(kind, {}).get(name)


def list_published() -> Dict[str, Dict[str, Any]]:
    """Copy of the published walkers and functions, keyed by kind then name."""
    return {kind: dict(entries) for kind, entries in _PUBLISHED.items()}


def unpublish(name: str, kind: Optional[str] = None) -> None:
    """Withdraw an endpoint; from every kind when ``kind`` is None."""
    for entry_kind in (kind,) if kind else tuple(_PUBLISHED):
        target = _PUBLISHED[entry_kind].pop(name, None)
        if target is not None and hasattr(target, ENDPOINT_ATTR):
            delattr(target, ENDPOINT_ATTR)


__all__ = [
    "endpoint",
    "get_published",
    "list_published",
    "unpublish",
    "WALKER_KIND",
    "FUNCTION_KIND",
]
