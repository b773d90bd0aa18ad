"""Utility functions for the graph system."""

import uuid
from typing import Dict, Optional, Type

# Registry of graph types by class name; the most recent definition wins
_TYPE_REGISTRY: Dict[str, Type] = {}


def generate_id(type_: str, class_name: str) -> str:
    """Generate an ID string for graph objects.

    Args:
        type_: Object type ('n' for node, 'e' for edge, 'w' for walker, 'o' for object)
        class_name: Name of the class (e.g., 'City', 'Highway')

    Returns:
        Unique ID string in the format "type:class_name:hex_id"
    """
    hex_id = uuid.uuid4().hex[:24]
    return f"{type_}:{class_name}:{hex_id}"


def register_type(cls: Type) -> None:
    """Record a graph type so it can be found by name later."""
    _TYPE_REGISTRY[cls.__name__] = cls


def resolve_type(name: str) -> Optional[Type]:
    """Look up a registered graph type by class name."""
    return _TYPE_REGISTRY.get(name)


def find_subclass_by_name(base_class: Type, name: str) -> Optional[Type]:
    """Find a registered subclass of ``base_class`` (or the class itself) by name."""
    if base_class.__name__ == name:
        return base_class
    candidate = _TYPE_REGISTRY.get(name)
    if candidate is not None and issubclass(candidate, base_class):
        return candidate
    return None


__all__ = [
    "generate_id",
    "register_type",
    "resolve_type",
    "find_subclass_by_name",
]
