"""Core graph model: entities, abilities, filters and the graph context."""

from .abilities import Visit
from .context import (
    GraphContext,
    activate,
    get_default_context,
    graph_context,
    set_default_context,
)
from .decorators import on_exit, on_visit
from .entities import (
    ROOT_ID,
    Edge,
    Node,
    Object,
    Root,
    Walker,
    WalkerStatus,
)
from .filters import NodeFilter, filter_nodes, where

__all__ = [
    "Object",
    "Node",
    "Edge",
    "Root",
    "ROOT_ID",
    "Walker",
    "WalkerStatus",
    "Visit",
    "on_visit",
    "on_exit",
    "NodeFilter",
    "where",
    "filter_nodes",
    "GraphContext",
    "get_default_context",
    "set_default_context",
    "activate",
    "graph_context",
]
