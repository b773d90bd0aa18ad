"""
walkgraph - Async walker-over-graph Python library.

walkgraph models an application as a persistent graph of typed nodes and
edges, and its behavior as walkers: agents that move across the graph from
a queue and fire type-keyed abilities on every node they visit.

Key Features:
- Typed node/edge modeling via Pydantic
- Reachability-based persistence (JSON files or memory)
- Walker traversal with entry, exit and completion abilities
- Composable node filters
- Model-delegated functions
- FastAPI exposure with per-account graphs

Main Exports (Import from top level):
    Core Entities:
        - Object, Node, Edge, Root, Walker
        - GraphContext: Owner of one graph and its database

    Decorators:
        - on_visit: Register entry abilities
        - on_exit: Register exit and completion abilities
        - endpoint: Publish a walker or function over HTTP

    Filters:
        - NodeFilter, where

    Modules:
        - exceptions: Custom exception classes

Example:
    >>> from walkgraph import Node, Walker, on_visit, graph_context
    >>>
    >>> class Task(Node):
    ...     title: str = ""
    >>>
    >>> async with graph_context() as ctx:
    ...     root = await ctx.get_root()
    ...     await root.connect(await Task.create(title="x"))
"""

__version__ = "0.1.0"

# Modules
from . import exceptions

# AI delegation
from .ai import CallableModel, GenerationRequest, Model, by_model

# API server
from .api import (
    AuthService,
    RunnerRegistry,
    ServerConfig,
    create_app,
    endpoint,
    serve,
)

# Configuration
from .config import Settings, get_settings

# Core entities, decorators and filters
from .core import (
    Edge,
    GraphContext,
    Node,
    NodeFilter,
    Object,
    Root,
    Visit,
    Walker,
    WalkerStatus,
    activate,
    get_default_context,
    graph_context,
    on_exit,
    on_visit,
    set_default_context,
    where,
)

# Database
from .db import Database, JsonDB, MemoryDB, get_database
from .logging import configure_logging

__all__ = [
    # Version
    "__version__",
    # Core entities
    "Object",
    "Node",
    "Edge",
    "Root",
    "Walker",
    "WalkerStatus",
    "Visit",
    "GraphContext",
    "get_default_context",
    "set_default_context",
    "activate",
    "graph_context",
    # Decorators
    "on_visit",
    "on_exit",
    "endpoint",
    # Filters
    "NodeFilter",
    "where",
    # AI
    "by_model",
    "Model",
    "CallableModel",
    "GenerationRequest",
    # API
    "AuthService",
    "RunnerRegistry",
    "ServerConfig",
    "create_app",
    "serve",
    # Database
    "Database",
    "JsonDB",
    "MemoryDB",
    "get_database",
    # Configuration
    "Settings",
    "get_settings",
    "configure_logging",
    # Modules
    "exceptions",
]
