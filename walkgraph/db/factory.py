"""Database factory with registry-based configuration."""

from typing import Any, Callable, Dict, Optional, Type

from walkgraph.config import get_settings
from walkgraph.exceptions import InvalidConfigurationError, ValidationError

from .database import Database

# Registry for database implementations
_DATABASE_REGISTRY: Dict[str, Type[Database]] = {}
# Registry for database configuration functions
_DATABASE_CONFIGURATORS: Dict[str, Callable[[Dict[str, Any]], Database]] = {}


def register_database(
    name: str,
    database_class: Type[Database],
    configurator: Optional[Callable[[Dict[str, Any]], Database]] = None,
) -> None:
    """Register a database implementation.

    Args:
        name: Database type name to register
        database_class: Database class that implements the Database interface
        configurator: Optional function building an instance from kwargs

    Raises:
        ValidationError: If database_class doesn't inherit from Database
        InvalidConfigurationError: If name is already registered
    """
    if not (isinstance(database_class, type) and issubclass(database_class, Database)):
        raise ValidationError(
            f"Database class {getattr(database_class, '__name__', database_class)} "
            "must inherit from Database",
            details={"database_class": str(database_class)},
        )

    if name in _DATABASE_REGISTRY:
        raise InvalidConfigurationError(
            "database_type", name, "Database type is already registered"
        )

    _DATABASE_REGISTRY[name] = database_class
    _DATABASE_CONFIGURATORS[name] = configurator or (
        lambda kwargs: database_class(**kwargs)
    )


def unregister_database(name: str) -> None:
    """Unregister a database implementation."""
    _DATABASE_REGISTRY.pop(name, None)
    _DATABASE_CONFIGURATORS.pop(name, None)


def list_available_databases() -> Dict[str, Type[Database]]:
    """Get all available database types."""
    return _DATABASE_REGISTRY.copy()


def get_database(db_type: Optional[str] = None, **kwargs: Any) -> Database:
    """Get a database instance.

    Args:
        db_type: Registered database type. Defaults to ``Settings.db_type``.
        **kwargs: Database-specific configuration

    Returns:
        Database instance

    Raises:
        InvalidConfigurationError: If db_type is unknown or configuration fails
    """
    if db_type is None:
        db_type = get_settings().db_type

    if db_type not in _DATABASE_REGISTRY:
        available = ", ".join(sorted(_DATABASE_REGISTRY))
        raise InvalidConfigurationError(
            "database_type",
            db_type,
            f"Database type is not registered. Available types: {available}",
        )

    configurator = _DATABASE_CONFIGURATORS[db_type]
    try:
        return configurator(kwargs)
    except (TypeError, ValueError) as e:
        raise InvalidConfigurationError(
            "database_configuration",
            db_type,
            f"Failed to configure database: {e}",
            details={"kwargs": kwargs},
        ) from e


def _register_builtin_databases() -> None:
    from .jsondb import JsonDB
    from .memorydb import MemoryDB

    def json_configurator(kwargs: Dict[str, Any]) -> JsonDB:
        base_path = kwargs.get("base_path") or get_settings().jsondb_path
        return JsonDB(str(base_path))

    register_database("json", JsonDB, json_configurator)
    register_database("memory", MemoryDB, lambda kwargs: MemoryDB())


_register_builtin_databases()
