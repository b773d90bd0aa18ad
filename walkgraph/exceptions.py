"""Exception hierarchy for walkgraph.

All library errors derive from :class:`WalkGraphError` and carry a human
readable ``message`` plus a ``details`` dictionary with structured context.

Definition-time errors (:class:`TypeMismatchError`,
:class:`DuplicateAbilityError`) are raised while classes and filters are
being declared. Runtime errors raised during a traversal are wrapped in
:class:`TraversalFault` and only abort that traversal.
"""

from typing import Any, Dict, Optional


class WalkGraphError(Exception):
    """Base exception for every walkgraph error.

    Attributes:
        message: Human readable description
        details: Structured context about the failure
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


# ----------------- GRAPH ERRORS -----------------


class GraphError(WalkGraphError):
    """Base class for graph structure errors."""


class NodeNotFoundError(GraphError):
    """Raised when a node lookup is made in strict mode and nothing is found."""

    def __init__(self, node_id: str, details: Optional[Dict[str, Any]] = None):
        self.node_id = node_id
        super().__init__(
            f"Node '{node_id}' not found", details={"node_id": node_id, **(details or {})}
        )


class TypeMismatchError(GraphError):
    """Raised when a type selector or filter field cannot match any declared type."""


class DuplicateAbilityError(GraphError):
    """Raised when two abilities share the same owner, trigger and target."""


# ----------------- TRAVERSAL ERRORS -----------------


class TraversalError(WalkGraphError):
    """Base class for traversal errors."""


class TraversalFault(TraversalError):
    """Raised when an ability body fails and the traversal is aborted.

    The original exception is available as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        walker_id: Optional[str] = None,
        node_id: Optional[str] = None,
        ability: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.walker_id = walker_id
        self.node_id = node_id
        self.ability = ability
        merged = {
            "walker_id": walker_id,
            "node_id": node_id,
            "ability": ability,
            **(details or {}),
        }
        super().__init__(
            message, details={k: v for k, v in merged.items() if v is not None}
        )


class TraversalSkipped(TraversalError):
    """Control-flow signal used by ``Walker.skip()``; never escapes a traversal."""


# ----------------- GENERATION ERRORS -----------------


class GenerationError(WalkGraphError):
    """Raised when a model-delegated function fails or violates its return type."""


# ----------------- INPUT / CONFIG / STORAGE ERRORS -----------------


class ValidationError(WalkGraphError):
    """Raised when arguments or field values are invalid."""


class AttributeProtectionError(ValidationError):
    """Raised when a protected attribute is assigned after construction."""

    def __init__(self, attr_name: str, class_name: str):
        self.attr_name = attr_name
        self.class_name = class_name
        super().__init__(
            f"Cannot modify protected attribute '{attr_name}' of {class_name}",
            details={"attribute": attr_name, "class": class_name},
        )


class ConfigurationError(WalkGraphError):
    """Base class for configuration errors."""


class InvalidConfigurationError(ConfigurationError):
    """Raised when a configuration value is not acceptable."""

    def __init__(
        self,
        config_key: str,
        config_value: Any,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.config_key = config_key
        self.config_value = config_value
        super().__init__(
            f"Invalid configuration for '{config_key}': {reason}",
            details={"config_key": config_key, "config_value": config_value, **(details or {})},
        )


class DatabaseError(WalkGraphError):
    """Raised when a storage backend fails to read or write a record."""


class AuthenticationError(WalkGraphError):
    """Raised when credentials or tokens are rejected."""


__all__ = [
    "WalkGraphError",
    "GraphError",
    "NodeNotFoundError",
    "TypeMismatchError",
    "DuplicateAbilityError",
    "TraversalError",
    "TraversalFault",
    "TraversalSkipped",
    "GenerationError",
    "ValidationError",
    "AttributeProtectionError",
    "ConfigurationError",
    "InvalidConfigurationError",
    "DatabaseError",
    "AuthenticationError",
]
