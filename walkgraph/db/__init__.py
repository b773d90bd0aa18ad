"""Database package for walkgraph.

Provides the storage abstraction, the built-in JSON and in-memory backends,
and a registry-based factory.
"""

from .database import Database
from .factory import (
    get_database,
    list_available_databases,
    register_database,
    unregister_database,
)
from .jsondb import JsonDB
from .memorydb import MemoryDB
from .query import QueryEngine

__all__ = [
    "Database",
    "JsonDB",
    "MemoryDB",
    "QueryEngine",
    "get_database",
    "register_database",
    "unregister_database",
    "list_available_databases",
]
